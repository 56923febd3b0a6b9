"""
Reference resolution against conversation context.

Turns "it" / "that one" into the last-referenced book and "the 2nd one" /
"#2" into an entry of the last result list. Side-effect-free: the caller
decides what to write back into context.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..context import ConversationContext

PRONOUN_REFERENCE = r"(?:this book|that book|the book|this one|that one|it|this|that)"

ORDINAL_WORDS = {
    "first": 1,
    "second": 2,
    "third": 3,
    "fourth": 4,
    "fifth": 5,
}
_ORDINAL_CORE = r"(?:first|second|third|fourth|fifth|\d+(?:st|nd|rd|th))"
# Everything but a bare number; a bare number is only a reference when
# the caller knows results are on screen.
ORDINAL_REFERENCE = (
    rf"(?:the\s+)?{_ORDINAL_CORE}(?:\s+(?:one|book|result))?"
    r"|#\s*\d+|(?:number|no\.?)\s*\d+"
)

_PRONOUN_RE = re.compile(rf"^{PRONOUN_REFERENCE}$")
_LIST_REFERENCE_RE = re.compile(rf"^(?:{ORDINAL_REFERENCE}|\d+)$")
_TRAILING_PUNCTUATION = " \t\r\n?!.,"


class ResolutionStatus(str, Enum):
    RESOLVED = "resolved"
    NO_CONTEXT = "no_context"
    AMBIGUOUS = "ambiguous"
    NO_RESULTS = "no_results"
    OUT_OF_RANGE = "out_of_range"


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of resolving a reference."""
    status: ResolutionStatus
    book_id: Optional[int] = None
    book_title: Optional[str] = None
    message: Optional[str] = None
    position: Optional[int] = None

    @property
    def resolved(self) -> bool:
        return self.status == ResolutionStatus.RESOLVED


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", (text or "").strip(_TRAILING_PUNCTUATION).lower())


def is_pronoun_reference(text: str) -> bool:
    """True when the whole text is one of the pronoun phrases."""
    return bool(_PRONOUN_RE.match(_normalize(text)))


def ordinal_position(text: str) -> Optional[int]:
    """
    Read a 1-based list position out of an ordinal phrase.

    "2", "#2", "number 2", "second", "2nd", "the 2nd one" -> 2

    :return: Position, or None if the text is not an ordinal phrase
    """
    normalized = _normalize(text)
    if not _LIST_REFERENCE_RE.match(normalized):
        return None

    for word, position in ORDINAL_WORDS.items():
        if re.search(rf"\b{word}\b", normalized):
            return position

    digits = re.search(r"\d+", normalized)
    return int(digits.group()) if digits else None


class ReferenceResolver:
    """Resolves pronoun and list references against a ConversationContext."""

    def resolve_pronoun(
        self,
        text: str,
        context: Optional[ConversationContext],
    ) -> Optional[ResolutionResult]:
        """
        Resolve a pronoun to the last-referenced book.

        :param text: Reference text ("it", "that one", ...)
        :param context: Sender's live context, or None
        :return: ResolutionResult, or None when text is not a pronoun
        """
        if not is_pronoun_reference(text):
            return None

        if context is None:
            return ResolutionResult(
                status=ResolutionStatus.NO_CONTEXT,
                message="No context available. Which book do you mean? Please include the title.",
            )

        if not context.has_last_book():
            return ResolutionResult(
                status=ResolutionStatus.AMBIGUOUS,
                message="Which book do you mean? Please specify the title.",
            )

        return ResolutionResult(
            status=ResolutionStatus.RESOLVED,
            book_id=context.last_book_id,
            book_title=context.last_book_title,
        )

    def resolve_list_reference(
        self,
        text: str,
        context: Optional[ConversationContext],
    ) -> Optional[ResolutionResult]:
        """
        Resolve an ordinal to an entry of the last result list.

        :param text: Reference text ("2", "#2", "the second one", ...)
        :param context: Sender's live context, or None
        :return: ResolutionResult, or None when text is not an ordinal
        """
        position = ordinal_position(text)
        if position is None:
            return None

        if context is None:
            return ResolutionResult(
                status=ResolutionStatus.NO_CONTEXT,
                message="No previous results to choose from. Try a search first.",
                position=position,
            )

        if not context.has_search_results():
            return ResolutionResult(
                status=ResolutionStatus.NO_RESULTS,
                message="No previous results to choose from. Try a search first.",
                position=position,
            )

        available = len(context.last_search_results)
        if position < 1 or position > available:
            noun = "result" if available == 1 else "results"
            return ResolutionResult(
                status=ResolutionStatus.OUT_OF_RANGE,
                message=f"Only {available} {noun} available. Reply with a number from 1 to {available}.",
                position=position,
            )

        book = context.last_search_results[position - 1]
        return ResolutionResult(
            status=ResolutionStatus.RESOLVED,
            book_id=book.id,
            book_title=book.title,
            position=position,
        )
