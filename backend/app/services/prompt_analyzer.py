"""
Prompt Analyzer Service
One grounded AI query plus mention and citation extraction for its answer
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from app.adapters.llm import BaseLLMAdapter
from app.adapters.parsing import BrandMatcher, CitationExtractor, ExtractedCitation, MentionRecord

logger = logging.getLogger(__name__)


@dataclass
class PromptAnalysisResult:
    """Outcome of analyzing one prompt; error is set when the query failed"""
    prompt: str
    success: bool
    processing_time_ms: int
    mentions: List[MentionRecord] = field(default_factory=list)
    citations: List[ExtractedCitation] = field(default_factory=list)
    search_queries: List[str] = field(default_factory=list)
    response: Optional[str] = None
    response_length: Optional[int] = None
    error: Optional[str] = None


class PromptAnalyzer:
    """
    Wraps a single provider call:
    - times the external query
    - extracts brand mentions and citations on success
    - captures every provider failure into the result instead of raising
    """

    def __init__(
        self,
        adapter: BaseLLMAdapter,
        brand_matcher: Optional[BrandMatcher] = None,
        citation_extractor: Optional[CitationExtractor] = None,
    ):
        self.adapter = adapter
        self.brand_matcher = brand_matcher or BrandMatcher()
        self.citation_extractor = citation_extractor or CitationExtractor()

    async def analyze(self, prompt_text: str, brand_names: List[str]) -> PromptAnalysisResult:
        """
        Query the provider with a prompt and analyze the answer.

        Args:
            prompt_text: The search-style prompt
            brand_names: Brands to look for in the answer

        Returns:
            PromptAnalysisResult (never raises for provider errors)
        """
        start = time.perf_counter()

        try:
            response = await self.adapter.execute(prompt_text)
        except Exception as e:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            logger.warning(f"AI query failed after {elapsed_ms}ms: {e}")
            return PromptAnalysisResult(
                prompt=prompt_text,
                success=False,
                processing_time_ms=elapsed_ms,
                mentions=[MentionRecord.not_mentioned(brand) for brand in brand_names],
                error=str(e) or type(e).__name__,
            )

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        text = response.content or ""
        metadata = self.citation_extractor.parse_metadata(response.grounding_metadata)

        return PromptAnalysisResult(
            prompt=prompt_text,
            success=True,
            processing_time_ms=elapsed_ms,
            response=text,
            response_length=len(text),
            mentions=self.brand_matcher.extract_mentions(text, brand_names),
            citations=self.citation_extractor.extract_citations(metadata),
            search_queries=self.citation_extractor.extract_search_queries(metadata),
        )
