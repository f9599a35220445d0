"""
Brand Matching Engine
Finds brand mentions, ranks them by first appearance and scores their context
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from app.models import SentimentPolarity
from .recommendation_detector import RecommendationDetector
from .sentiment_analyzer import SentimentAnalyzer


@dataclass
class MentionRecord:
    """How one looked-for brand appears in a response"""
    brand: str
    mentioned: bool = False
    count: int = 0
    position: Optional[int] = None       # 1-indexed rank among mentioned brands
    character_offset: Optional[int] = None
    context: Optional[str] = None
    sentiment: Optional[SentimentPolarity] = None
    sentiment_score: Optional[float] = None
    is_recommended: bool = False

    @classmethod
    def not_mentioned(cls, brand: str) -> "MentionRecord":
        return cls(brand=brand)


class BrandMatcher:
    """
    Matches brand names in text:
    1. Case-insensitive, whole word (a brand inside a longer word is not a mention)
    2. Position = order of first occurrence among the mentioned brands
    3. Sentiment on the context window, recommendations on the full text
    """

    # Context window size (characters before/after first match)
    CONTEXT_WINDOW = 150

    def __init__(
        self,
        context_window: Optional[int] = None,
        sentiment_analyzer: Optional[SentimentAnalyzer] = None,
        recommendation_detector: Optional[RecommendationDetector] = None,
    ):
        self.context_window = self.CONTEXT_WINDOW if context_window is None else context_window
        self.sentiment_analyzer = sentiment_analyzer or SentimentAnalyzer()
        self.recommendation_detector = recommendation_detector or RecommendationDetector()

    @staticmethod
    def _brand_pattern(brand: str) -> re.Pattern:
        """Whole-word pattern; lookarounds keep names like "C++" matchable"""
        return re.compile(rf"(?<!\w){re.escape(brand)}(?!\w)", re.IGNORECASE)

    def _get_context(self, text: str, start: int, end: int) -> str:
        """Extract context around a match"""
        context_start = max(0, start - self.context_window)
        context_end = min(len(text), end + self.context_window)
        return text[context_start:context_end].strip()

    def rank_positions(self, text: str, brands: List[str]) -> Dict[str, int]:
        """
        Map each mentioned brand to its 1-based rank by first-match offset.
        Equal offsets keep input order (stable sort).
        """
        first_offsets = []
        for brand in dict.fromkeys(brands):
            if not brand:
                continue
            match = self._brand_pattern(brand).search(text)
            if match:
                first_offsets.append((match.start(), brand))

        first_offsets.sort(key=lambda item: item[0])
        return {brand: rank for rank, (_, brand) in enumerate(first_offsets, start=1)}

    def extract_mentions(self, text: str, brands: List[str]) -> List[MentionRecord]:
        """
        Find mentions of every brand in text.

        Args:
            text: The AI response text to analyze
            brands: Brand names to look for

        Returns:
            One MentionRecord per input brand, in input order
        """
        if not brands:
            return []
        if not text:
            return [MentionRecord.not_mentioned(brand) for brand in brands]

        positions = self.rank_positions(text, brands)
        mentions = []

        for brand in brands:
            if brand not in positions:
                mentions.append(MentionRecord.not_mentioned(brand))
                continue

            matches = list(self._brand_pattern(brand).finditer(text))
            first = matches[0]
            context = self._get_context(text, first.start(), first.end())
            sentiment = self.sentiment_analyzer.analyze(context)

            mentions.append(MentionRecord(
                brand=brand,
                mentioned=True,
                count=len(matches),
                position=positions[brand],
                character_offset=first.start(),
                context=context,
                sentiment=sentiment.polarity,
                sentiment_score=sentiment.score,
                is_recommended=self.recommendation_detector.is_recommended(text, brand),
            ))

        return mentions

