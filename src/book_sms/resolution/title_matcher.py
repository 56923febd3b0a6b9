"""
Title lookup strategies.

Typed titles are compared in normalized form: lower case, punctuation
dropped, whitespace collapsed and a leading article removed, so "hobbit"
and "The Hobbit." are the same title. Escalation is exact -> substring ->
fuzzy (rapidfuzz).
"""
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional

from rapidfuzz import fuzz, process

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.75
SUBSTRING_MAX_CONFIDENCE = 0.99

_PUNCTUATION = re.compile(r"[^\w\s]")
_LEADING_ARTICLE = re.compile(r"^(?:the|a|an)\s+")


def normalize_title(title: str) -> str:
    """'  The Hobbit! ' -> 'hobbit'"""
    text = _PUNCTUATION.sub(" ", (title or "").lower())
    text = " ".join(text.split())
    return _LEADING_ARTICLE.sub("", text) or text


@dataclass(frozen=True)
class TitleMatch:
    """Outcome of a lookup: the stored title (or None), how sure, and which strategy."""
    title: Optional[str]
    confidence: float
    strategy: str
    query: str

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be between 0.0 and 1.0, got {self.confidence}")

    @property
    def found(self) -> bool:
        return self.title is not None

    @classmethod
    def none(cls, query: str, strategy: str = "none") -> "TitleMatch":
        return cls(title=None, confidence=0.0, strategy=strategy, query=query)


class TitleMatcher(ABC):
    """One way of picking a stored title for what the user typed."""

    name = "base"

    @abstractmethod
    def match(self, query: str, titles: List[str]) -> TitleMatch:
        """
        :param query: Title as typed by the user
        :param titles: Titles in the library
        :return: Best TitleMatch for this strategy
        """
        pass


class ExactTitleMatcher(TitleMatcher):
    name = "exact"

    def match(self, query: str, titles: List[str]) -> TitleMatch:
        wanted = normalize_title(query)
        if wanted:
            for title in titles:
                if normalize_title(title) == wanted:
                    return TitleMatch(title=title, confidence=1.0, strategy=self.name, query=query)
        return TitleMatch.none(query, self.name)


class SubstringTitleMatcher(TitleMatcher):
    """
    Typed text contained in a stored title ("hail mary" -> "Project Hail Mary").

    Among several hits the shortest title wins; confidence grows with the
    share of the title that was typed.
    """

    name = "substring"

    def __init__(self, floor: float = DEFAULT_THRESHOLD):
        self.floor = floor

    def match(self, query: str, titles: List[str]) -> TitleMatch:
        wanted = normalize_title(query)
        if not wanted:
            return TitleMatch.none(query, self.name)

        hits = [(normalize_title(t), t) for t in titles]
        hits = [(norm, t) for norm, t in hits if wanted in norm]
        if not hits:
            return TitleMatch.none(query, self.name)

        norm, title = min(hits, key=lambda hit: len(hit[0]))
        coverage = len(wanted) / max(len(norm), 1)
        confidence = max(self.floor, min(SUBSTRING_MAX_CONFIDENCE, coverage))
        return TitleMatch(title=title, confidence=confidence, strategy=self.name, query=query)


class FuzzyTitleMatcher(TitleMatcher):
    """Typos and reordered words ("Mistbron" -> "Mistborn")."""

    name = "fuzzy"

    def __init__(
        self,
        threshold: float = DEFAULT_THRESHOLD,
        scorer: Callable[..., float] = fuzz.token_set_ratio,
    ):
        """
        :param threshold: Minimum score (0.0-1.0) to accept
        :param scorer: rapidfuzz scorer returning 0-100
        """
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Threshold must be between 0.0 and 1.0, got {threshold}")
        self.threshold = threshold
        self.scorer = scorer

    def match(self, query: str, titles: List[str]) -> TitleMatch:
        wanted = normalize_title(query)
        if not wanted or not titles:
            return TitleMatch.none(query, self.name)

        choices = {title: normalize_title(title) for title in titles}
        best = process.extractOne(wanted, choices, scorer=self.scorer)
        if best is None:
            return TitleMatch.none(query, self.name)

        _, score, title = best
        confidence = min(1.0, score / 100.0)
        if confidence < self.threshold:
            return TitleMatch.none(query, self.name)
        return TitleMatch(title=title, confidence=confidence, strategy=self.name, query=query)


class TitleMatchPolicy:
    """Runs matchers in order and keeps the first confident match."""

    def __init__(self, matchers: Optional[List[TitleMatcher]] = None, threshold: float = DEFAULT_THRESHOLD):
        """
        :param matchers: Strategies in order; defaults to exact, substring, fuzzy
        :param threshold: Minimum confidence to accept a match
        """
        self.threshold = threshold
        self.matchers = matchers or [
            ExactTitleMatcher(),
            SubstringTitleMatcher(floor=threshold),
            FuzzyTitleMatcher(threshold=threshold),
        ]

    def match(self, query: str, titles: List[str]) -> TitleMatch:
        for matcher in self.matchers:
            result = matcher.match(query, titles)
            if result.found and result.confidence >= self.threshold:
                logger.debug(f"'{query}' -> '{result.title}' via {result.strategy} ({result.confidence:.2f})")
                return result
        return TitleMatch.none(query)
