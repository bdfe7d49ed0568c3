"""Tagging strategies: map free text onto coarse topic tags.

Both the novelty validator (knowledge-base tags) and the specialist router
(domain matching) depend only on :class:`TaggingStrategy`, so the keyword
policy can be swapped without touching orchestration logic.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Mapping


class TaggingStrategy(ABC):
    """Abstract mapping from text to an ordered tuple of tags."""

    @abstractmethod
    def extract_tags(self, text: str) -> tuple[str, ...]:
        """Return the tags matching *text*, in the strategy's declared order."""

    def matches(self, text: str, tag: str) -> bool:
        return tag in self.extract_tags(text)


class KeywordTaggingStrategy(TaggingStrategy):
    """Regex-per-tag tagging, case-insensitive.

    Parameters
    ----------
    patterns:
        Ordered mapping of ``tag -> regex``.  A tag applies when its regex
        matches anywhere in the text.
    fallback:
        Tag returned when nothing matches.  ``None`` returns an empty tuple.
    """

    def __init__(
        self,
        patterns: Mapping[str, str],
        fallback: str | None = None,
    ) -> None:
        self._patterns = {
            tag: re.compile(pattern, re.IGNORECASE) for tag, pattern in patterns.items()
        }
        self._fallback = fallback

    @property
    def tags(self) -> tuple[str, ...]:
        return tuple(self._patterns)

    def extract_tags(self, text: str) -> tuple[str, ...]:
        found = tuple(tag for tag, rx in self._patterns.items() if rx.search(text))
        if not found and self._fallback is not None:
            return (self._fallback,)
        return found

    def __repr__(self) -> str:
        return f"KeywordTaggingStrategy(tags={list(self._patterns)}, fallback={self._fallback!r})"


# -- Defaults -----------------------------------------------------------------

DEFAULT_TOPIC_PATTERNS: dict[str, str] = {
    "quantum": r"quantum",
    "ai": r"\bAI\b|artificial intelligence",
    "blockchain": r"blockchain",
    "biotech": r"biotech",
    "space": r"\bspace\b",
    "materials": r"materials?",
    "energy": r"energy",
    "computing": r"computing",
    "neural": r"neural",
    "genetic": r"genetic",
    "robotics": r"robot",
    "autonomous": r"autonomous",
    "machine_learning": r"machine learning",
    "cryptocurrency": r"cryptocurrency",
    "climate": r"climate",
}

DEFAULT_DOMAIN_PATTERNS: dict[str, str] = {
    "technology": r"tech|\bAI\b|software",
    "science": r"science|research|study",
    "applications": r"application|practical|\buse",
}


def default_topic_tagger() -> KeywordTaggingStrategy:
    """Knowledge-base tagger; unmatched text is filed under ``general``."""
    return KeywordTaggingStrategy(DEFAULT_TOPIC_PATTERNS, fallback="general")


def default_domain_tagger() -> KeywordTaggingStrategy:
    """Routing tagger for the stock technology/science/applications roster."""
    return KeywordTaggingStrategy(DEFAULT_DOMAIN_PATTERNS)
