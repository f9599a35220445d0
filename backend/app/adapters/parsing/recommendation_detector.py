"""
Recommendation Detector
Flags explicit recommendation language about a brand in a full response
"""

import re
from typing import List


class RecommendationDetector:
    """
    Matches brand-templated phrases against the whole response text.
    `.*` patterns are permissive within a line; they do not cross newlines.
    """

    TEMPLATES = [
        "recommend {brand}",
        "{brand} is recommended",
        "suggest {brand}",
        "{brand} is a great choice",
        "{brand} is ideal",
        "{brand} is perfect",
        "{brand} is the best",
        "top pick.*{brand}",
        "{brand}.*top pick",
        "best.*{brand}",
        "{brand}.*stands out",
    ]

    def patterns_for(self, brand: str) -> List[re.Pattern]:
        escaped = re.escape(brand.lower())
        return [
            re.compile(template.format(brand=escaped), re.IGNORECASE)
            for template in self.TEMPLATES
        ]

    def is_recommended(self, text: str, brand: str) -> bool:
        if not text or not brand:
            return False
        return any(pattern.search(text) for pattern in self.patterns_for(brand))
