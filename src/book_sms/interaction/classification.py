"""
Classification result shared by the pattern and AI classifiers.
"""
from dataclasses import dataclass, field, replace
from typing import Optional

from .intent_parameters import (
    AddBookParameters,
    BookParameters,
    CompareParameters,
    IntentParameters,
    NoParameters,
    ProgressParameters,
    SearchParameters,
    TimeParameters,
)
from .intent_types import Intent

MAX_PATTERN_CONFIDENCE = 0.95


@dataclass
class ClassificationResult:
    """Intent, confidence and typed parameters for one message."""
    intent: Intent
    confidence: float
    parameters: IntentParameters = field(default_factory=NoParameters)
    raw_message: str = ""
    needs_more_info: bool = False
    follow_up_question: Optional[str] = None

    def to_dict(self) -> dict:
        result = {
            "intent": self.intent.value,
            "confidence": self.confidence,
            "parameters": self.parameters.to_dict(),
            "raw_message": self.raw_message,
            "needs_more_info": self.needs_more_info,
        }
        if self.follow_up_question:
            result["follow_up_question"] = self.follow_up_question
        return result


def is_confident(result: ClassificationResult, threshold: float = 0.5) -> bool:
    """Check if a classification is confident enough to act on."""
    return result.intent != Intent.UNKNOWN and result.confidence >= threshold


def missing_slot_question(intent: Intent, parameters: IntentParameters) -> Optional[str]:
    """
    Follow-up question for an intent whose required slot is empty.

    :return: Question text, or None when nothing is missing
    """
    if intent == Intent.UPDATE_PROGRESS:
        if isinstance(parameters, ProgressParameters) and parameters.has_progress():
            return None
        return "What page are you on? You can also send a percentage, like 50%."

    if intent in (Intent.START_BOOK, Intent.FINISH_BOOK, Intent.BOOK_DETAILS):
        if isinstance(parameters, BookParameters) and parameters.has_book():
            return None
        verbs = {
            Intent.START_BOOK: "are you starting",
            Intent.FINISH_BOOK: "did you finish",
            Intent.BOOK_DETAILS: "do you want details about",
        }
        return f"Which book {verbs[intent]}?"

    if intent == Intent.COMPARE_BOOKS:
        if isinstance(parameters, CompareParameters) and len(parameters.book_titles) >= 2:
            return None
        return "Which two books should I compare? Example: compare Dune and Foundation"

    if intent == Intent.TIME_QUERY:
        if isinstance(parameters, TimeParameters) and parameters.has_timeframe():
            return None
        return "For what time period? Example: last month, this year, or 2023"

    if intent == Intent.SEARCH_BOOK:
        if isinstance(parameters, SearchParameters) and parameters.search_term:
            return None
        return "What should I search for?"

    if intent == Intent.ADD_BOOK:
        if isinstance(parameters, AddBookParameters) and parameters.title:
            return None
        return "What's the title of the book you want to add?"

    return None


def with_follow_up(result: ClassificationResult) -> ClassificationResult:
    """
    Flag a recognized intent whose required slot is empty.

    :return: The same result, or a copy with needs_more_info and the question set
    """
    if result.intent == Intent.UNKNOWN or result.needs_more_info:
        return result
    question = missing_slot_question(result.intent, result.parameters)
    if question is None:
        return result
    return replace(result, needs_more_info=True, follow_up_question=question)
