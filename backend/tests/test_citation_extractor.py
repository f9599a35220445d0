"""
Tests for citation extraction from grounding metadata.
"""

import pytest

from app.adapters.parsing import CitationExtractor
from app.schemas.grounding import GroundingMetadata

from conftest import grounding


@pytest.fixture
def extractor():
    return CitationExtractor()


class TestExtractCitations:

    def test_absent_metadata_gives_empty_list(self, extractor):
        assert extractor.extract_citations(None) == []
        assert extractor.extract_citations({}) == []

    def test_duplicate_urls_keep_first_title(self, extractor):
        metadata = grounding(
            ("https://example.com/a", "First title"),
            ("https://example.com/a", "Second title"),
        )

        citations = extractor.extract_citations(metadata)

        assert len(citations) == 1
        assert citations[0].title == "First title"

    def test_chunk_order_is_preserved(self, extractor):
        metadata = grounding(
            ("https://b.example.com/", "B"),
            ("https://a.example.com/", "A"),
            ("https://b.example.com/", "B again"),
        )

        citations = extractor.extract_citations(metadata)

        assert [c.url for c in citations] == ["https://b.example.com/", "https://a.example.com/"]

    def test_non_web_chunks_are_skipped(self, extractor):
        metadata = {
            "groundingChunks": [
                {"retrievedContext": {"uri": "gs://bucket/doc"}},
                {"web": {"title": "No uri"}},
                {"web": {"uri": "https://example.com/", "title": "Example"}},
            ],
        }

        citations = extractor.extract_citations(metadata)

        assert [c.url for c in citations] == ["https://example.com/"]

    def test_missing_title_is_none(self, extractor):
        metadata = {"groundingChunks": [{"web": {"uri": "https://example.com/"}}]}

        assert extractor.extract_citations(metadata)[0].title is None

    def test_accepts_parsed_model_and_snake_case(self, extractor):
        metadata = GroundingMetadata.model_validate({
            "grounding_chunks": [{"web": {"uri": "https://example.com/x", "title": "X"}}],
        })

        citations = extractor.extract_citations(metadata)

        assert citations[0].domain == "example.com"

    def test_malformed_metadata_gives_empty_list(self, extractor):
        assert extractor.extract_citations({"groundingChunks": "not a list"}) == []

    def test_null_lists_are_empty(self, extractor):
        metadata = {"groundingChunks": None, "webSearchQueries": None}

        assert extractor.extract_citations(metadata) == []
        assert extractor.extract_search_queries(metadata) == []


class TestNormalizeDomain:

    @pytest.mark.parametrize("url,domain", [
        ("https://www.example.com/page", "example.com"),
        ("https://blog.example.org/post?id=1", "blog.example.org"),
        ("http://WWW.Example.COM", "example.com"),
        ("https://example.com:8443/path", "example.com"),
    ])
    def test_domain_from_host(self, url, domain):
        assert CitationExtractor.normalize_domain(url) == domain

    @pytest.mark.parametrize("url", ["not a url", "http://[invalid"])
    def test_malformed_url_falls_back_to_raw_string(self, url):
        assert CitationExtractor.normalize_domain(url) == url

    def test_malformed_url_does_not_fail_extraction(self, extractor):
        metadata = grounding(("not a url", "Bad"), ("https://www.example.com/", "Good"))

        citations = extractor.extract_citations(metadata)

        assert [c.domain for c in citations] == ["not a url", "example.com"]


class TestSearchQueries:

    def test_queries_are_surfaced(self, extractor):
        metadata = grounding(queries=["best crm 2025", "crm for startups"])

        assert extractor.extract_search_queries(metadata) == ["best crm 2025", "crm for startups"]

    def test_absent_metadata_has_no_queries(self, extractor):
        assert extractor.extract_search_queries(None) == []
