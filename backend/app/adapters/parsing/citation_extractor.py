"""
Citation Extractor
Turns provider grounding metadata into deduplicated (url, domain, title) records
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Union
from urllib.parse import urlparse

from pydantic import ValidationError

from app.schemas.grounding import GroundingMetadata

logger = logging.getLogger(__name__)

GroundingInput = Union[GroundingMetadata, dict, None]


@dataclass
class ExtractedCitation:
    """A cited web source from an AI response"""
    url: str
    domain: str                  # Normalized domain
    title: Optional[str] = None


class CitationExtractor:
    """
    Extracts citations from the grounding chunks attached to a response.
    Malformed metadata never fails the extraction.
    """

    @staticmethod
    def parse_metadata(grounding_data: GroundingInput) -> Optional[GroundingMetadata]:
        """Validate raw provider metadata; None when absent or malformed"""
        if grounding_data is None:
            return None
        if isinstance(grounding_data, GroundingMetadata):
            return grounding_data

        try:
            return GroundingMetadata.model_validate(grounding_data)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed grounding metadata: {e.error_count()} errors")
            return None

    @staticmethod
    def normalize_domain(url: str) -> str:
        """Lower-cased host without a leading www., or the raw url if unparsable"""
        try:
            hostname = urlparse(url).hostname
        except ValueError:
            hostname = None

        if not hostname:
            return url

        if hostname.startswith("www."):
            hostname = hostname[4:]
        return hostname

    def extract_citations(self, grounding_data: GroundingInput) -> List[ExtractedCitation]:
        """
        Extract citations from grounding metadata.

        Args:
            grounding_data: Provider metadata (raw dict or parsed model), may be None

        Returns:
            One ExtractedCitation per distinct URL, in chunk order
        """
        metadata = self.parse_metadata(grounding_data)
        if metadata is None:
            return []

        citations = []
        seen_urls = set()

        for chunk in metadata.grounding_chunks:
            if chunk.web is None or not chunk.web.uri:
                continue

            url = chunk.web.uri
            if url in seen_urls:
                continue
            seen_urls.add(url)

            citations.append(ExtractedCitation(
                url=url,
                domain=self.normalize_domain(url),
                title=chunk.web.title or None,
            ))

        return citations

    def extract_search_queries(self, grounding_data: Any) -> List[str]:
        """Search queries the provider reported running for the response"""
        metadata = self.parse_metadata(grounding_data)
        if metadata is None:
            return []
        return list(metadata.web_search_queries)
