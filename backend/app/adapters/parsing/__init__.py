"""
Response Parsing Adapters
"""

from .brand_matcher import BrandMatcher, MentionRecord
from .citation_extractor import CitationExtractor, ExtractedCitation
from .recommendation_detector import RecommendationDetector
from .sentiment_analyzer import SentimentAnalyzer, SentimentResult

__all__ = [
    "BrandMatcher",
    "MentionRecord",
    "CitationExtractor",
    "ExtractedCitation",
    "RecommendationDetector",
    "SentimentAnalyzer",
    "SentimentResult",
]
