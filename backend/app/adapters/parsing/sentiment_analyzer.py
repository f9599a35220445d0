"""
Sentiment Analyzer
Lexical polarity scoring for the text surrounding a brand mention
"""

from dataclasses import dataclass, field
from typing import List

from app.models import SentimentPolarity


@dataclass
class SentimentResult:
    """Result of sentiment analysis"""
    polarity: SentimentPolarity
    score: float  # -1.0 to 1.0
    matched_positive: List[str] = field(default_factory=list)
    matched_negative: List[str] = field(default_factory=list)


class SentimentAnalyzer:
    """
    Rule-based sentiment over two fixed lexicons.

    Each phrase counts at most once (substring, case-insensitive). The score is
    (positive - negative) / max(positive, negative), clamped to [-1, 1].
    """

    POSITIVE_PHRASES = [
        "best", "excellent", "great", "recommended", "leading", "top",
        "powerful", "popular", "reliable", "trusted", "innovative",
        "easy to use", "intuitive", "robust", "comprehensive", "outstanding",
        "impressive", "exceptional", "superior", "favorite", "preferred",
        "highly rated", "well-known", "industry leader", "market leader",
        "stands out", "excels", "shines", "ideal", "perfect for",
    ]

    NEGATIVE_PHRASES = [
        "expensive", "complex", "difficult", "limited", "lacking",
        "poor", "slow", "outdated", "complicated", "overpriced",
        "basic", "frustrating", "clunky", "steep learning curve",
        "confusing", "unreliable", "disappointing", "worst", "avoid",
        "issues", "problems", "bugs", "crashes", "not recommended",
    ]

    # Scores beyond these bounds are polar
    POSITIVE_THRESHOLD = 0.2
    NEGATIVE_THRESHOLD = -0.2

    def analyze(self, text: str) -> SentimentResult:
        """
        Analyze sentiment of text.

        Args:
            text: Context window around a mention

        Returns:
            SentimentResult with polarity and score
        """
        if not text:
            return SentimentResult(polarity=SentimentPolarity.NEUTRAL, score=0.0)

        text_lower = text.lower()
        matched_positive = [p for p in self.POSITIVE_PHRASES if p in text_lower]
        matched_negative = [p for p in self.NEGATIVE_PHRASES if p in text_lower]

        positive = len(matched_positive)
        negative = len(matched_negative)

        if positive + negative == 0:
            score = 0.0
        else:
            score = (positive - negative) / max(positive, negative, 1)
            score = max(-1.0, min(1.0, score))

        return SentimentResult(
            polarity=self.classify(score),
            score=score,
            matched_positive=matched_positive,
            matched_negative=matched_negative,
        )

    def classify(self, score: float) -> SentimentPolarity:
        if score > self.POSITIVE_THRESHOLD:
            return SentimentPolarity.POSITIVE
        if score < self.NEGATIVE_THRESHOLD:
            return SentimentPolarity.NEGATIVE
        return SentimentPolarity.NEUTRAL
