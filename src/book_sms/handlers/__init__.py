"""
Intent handlers.

Each handler validates its parameters, talks to storage, and returns a
HandlerResponse with the reply text and context fields to remember.
"""
from .base import BaseHandler, HandlerResponse
from .help import HelpHandler, UnknownHandler
from .library import (
    AddBookHandler,
    BookDetailsHandler,
    CompareBooksHandler,
    FilterBooksHandler,
    RatingsHandler,
    RecommendHandler,
    ResultsPageHandler,
    SearchHandler,
    SimilarBooksHandler,
    TimeQueryHandler,
    UnreadBooksHandler,
)
from .progress import (
    FinishBookHandler,
    ListReadingHandler,
    StartBookHandler,
    StatusHandler,
    UpdateProgressHandler,
)
from .registry import HandlerRegistry, build_default_registry
from .stats import StatsHandler

__all__ = [
    "BaseHandler",
    "HandlerResponse",
    "HandlerRegistry",
    "build_default_registry",
    "UpdateProgressHandler",
    "StartBookHandler",
    "FinishBookHandler",
    "StatusHandler",
    "ListReadingHandler",
    "SearchHandler",
    "BookDetailsHandler",
    "FilterBooksHandler",
    "UnreadBooksHandler",
    "RatingsHandler",
    "CompareBooksHandler",
    "TimeQueryHandler",
    "SimilarBooksHandler",
    "AddBookHandler",
    "RecommendHandler",
    "ResultsPageHandler",
    "StatsHandler",
    "HelpHandler",
    "UnknownHandler",
]
