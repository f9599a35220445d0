"""
Tests for brand mention extraction.

These tests verify:
- One record per looked-for brand, in input order
- Whole-word, case-insensitive matching
- Position ranking by first appearance
- Occurrence counts, context windows, sentiment and recommendations
"""

import pytest

from app.adapters.parsing import BrandMatcher, MentionRecord
from app.models import SentimentPolarity


@pytest.fixture
def matcher():
    return BrandMatcher()


# =============================================================================
# RECORD SHAPE
# =============================================================================

class TestRecordShape:

    def test_one_record_per_brand_in_input_order(self, matcher):
        brands = ["Globex", "Acme", "Initech"]
        text = "Acme and Globex are both solid options."

        mentions = matcher.extract_mentions(text, brands)

        assert [m.brand for m in mentions] == brands

    def test_empty_brand_list_gives_empty_result(self, matcher):
        assert matcher.extract_mentions("Acme is great", []) == []

    def test_empty_text_gives_all_brands_unmentioned(self, matcher):
        mentions = matcher.extract_mentions("", ["Acme", "Globex"])

        assert len(mentions) == 2
        for mention in mentions:
            assert mention == MentionRecord.not_mentioned(mention.brand)

    def test_unmentioned_brand_has_null_fields(self, matcher):
        mentions = matcher.extract_mentions("Acme is popular.", ["Acme", "Globex"])
        globex = mentions[1]

        assert globex.mentioned is False
        assert globex.position is None
        assert globex.count == 0
        assert globex.context is None
        assert globex.sentiment is None
        assert globex.sentiment_score is None
        assert globex.is_recommended is False


# =============================================================================
# MATCHING
# =============================================================================

class TestMatching:

    def test_substring_inside_word_is_not_a_mention(self, matcher):
        mentions = matcher.extract_mentions("Browse our Catalog of tools.", ["Cat"])

        assert mentions[0].mentioned is False

    def test_match_is_case_insensitive(self, matcher):
        mentions = matcher.extract_mentions("many people use ACME daily", ["Acme"])

        assert mentions[0].mentioned is True
        assert mentions[0].character_offset == 16

    def test_regex_special_characters_are_escaped(self, matcher):
        text = "For systems work, C++ is still common. C is older."
        mentions = matcher.extract_mentions(text, ["C++", "C"])

        cpp, c = mentions
        assert cpp.mentioned is True
        assert cpp.count == 1
        assert c.mentioned is True

    def test_counts_all_whole_word_occurrences(self, matcher):
        text = "Acme leads. Acme-based teams love Acme. Acmeville is a town."
        mentions = matcher.extract_mentions(text, ["Acme"])

        assert mentions[0].count == 3


# =============================================================================
# POSITIONS
# =============================================================================

class TestPositions:

    def test_positions_follow_first_appearance(self, matcher):
        text = "Initech is cheap, Acme is fast and Globex is big. Acme again."
        mentions = matcher.extract_mentions(text, ["Acme", "Globex", "Initech", "Hooli"])
        positions = {m.brand: m.position for m in mentions}

        assert positions == {"Initech": 1, "Acme": 2, "Globex": 3, "Hooli": None}

    def test_positions_are_a_permutation_without_gaps(self, matcher):
        text = "Zeta, then Beta, then Alpha. Gamma is not here but Delta is."
        brands = ["Alpha", "Beta", "Gamma", "Delta", "Zeta"]
        mentions = matcher.extract_mentions(text, brands)

        positions = sorted(m.position for m in mentions if m.mentioned)
        assert positions == list(range(1, len(positions) + 1))

    def test_equal_offsets_keep_input_order(self, matcher):
        # Both names first match at offset 0
        text = "Acme Cloud is a product line of Acme."
        mentions = matcher.extract_mentions(text, ["Acme Cloud", "Acme"])

        assert [m.position for m in mentions] == [1, 2]

        reversed_mentions = matcher.extract_mentions(text, ["Acme", "Acme Cloud"])
        assert [m.position for m in reversed_mentions] == [1, 2]


# =============================================================================
# CONTEXT, SENTIMENT, RECOMMENDATION
# =============================================================================

class TestContext:

    def test_context_window_is_clipped_and_stripped(self):
        matcher = BrandMatcher(context_window=10)
        text = "   Acme is fine   "

        mentions = matcher.extract_mentions(text, ["Acme"])

        assert mentions[0].context == "Acme is fine"

    def test_context_window_bounds(self):
        matcher = BrandMatcher(context_window=5)
        text = "0123456789 Acme 0123456789"

        mentions = matcher.extract_mentions(text, ["Acme"])

        # 5 chars before the match start, 5 after its end
        assert mentions[0].context == "6789 Acme 0123"

    def test_sentiment_uses_context_only(self):
        matcher = BrandMatcher(context_window=10)
        text = "Acme works. " + "x" * 50 + " It is expensive, clunky and slow."

        mentions = matcher.extract_mentions(text, ["Acme"])

        assert mentions[0].sentiment == SentimentPolarity.NEUTRAL
        assert mentions[0].sentiment_score == 0.0

    def test_positive_context(self, matcher):
        mentions = matcher.extract_mentions("Acme is the best tool, highly rated.", ["Acme"])

        assert mentions[0].sentiment == SentimentPolarity.POSITIVE
        assert mentions[0].sentiment_score > 0.2

    def test_recommendation_uses_full_text(self):
        matcher = BrandMatcher(context_window=5)
        text = "Acme exists.\n" + "filler " * 40 + "\nWe recommend Acme for teams."

        mentions = matcher.extract_mentions(text, ["Acme"])

        assert mentions[0].is_recommended is True

    def test_no_recommendation_language(self, matcher):
        mentions = matcher.extract_mentions("Acme exists.", ["Acme"])

        assert mentions[0].is_recommended is False
