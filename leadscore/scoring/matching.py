"""Case-insensitive search-term matching for scoring criteria.

A criterion's score is the share of its search terms found as substrings
of the text under test, scaled to 0-100. Repeated terms count once per
occurrence in the list; only the confidence ratio uses distinct terms.
"""

import logging
import math
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round .5 away from zero instead of to the nearest even integer."""
    return int(math.floor(abs(value) + 0.5)) * (1 if value >= 0 else -1)


@dataclass
class TermMatch:
    """Terms found in a text and the resulting 0-100 score."""

    matched: list[str] = field(default_factory=list)
    total_terms: int = 0
    unique_terms: int = 0

    @property
    def ratio(self) -> float:
        if not self.total_terms:
            return 0.0
        return len(self.matched) / self.total_terms

    @property
    def unique_ratio(self) -> float:
        """Matches over distinct terms. Exceeds 1.0 when a matched term is repeated."""
        if not self.unique_terms:
            return 0.0
        return len(self.matched) / self.unique_terms

    @property
    def score(self) -> int:
        return round_half_up(self.ratio * 100)


class TermMatcher:
    """Substring matcher over one criterion's search terms."""

    def __init__(self, search_terms: list[str]):
        """Initialize with the criterion's search terms.

        Blank terms are ignored. Duplicates are kept so they weigh in the
        score as often as they are listed.

        Args:
            search_terms: Phrases to look for.
        """
        self.terms: list[str] = [t.strip() for t in search_terms if t.strip()]

    def match(self, text: str) -> TermMatch:
        """Find which terms appear in the text.

        Args:
            text: Text to search. Compared case-insensitively.

        Returns:
            TermMatch with the original spelling of every matched term.
        """
        result = TermMatch(total_terms=len(self.terms), unique_terms=len(set(self.terms)))
        if not text:
            return result

        text_lower = text.lower()
        for term in self.terms:
            if term.lower() in text_lower:
                result.matched.append(term)

        logger.debug("Matched %d/%d terms", len(result.matched), result.total_terms)
        return result
