"""
Intent -> handler registry.
"""
import logging
from datetime import date
from typing import Callable, Dict, Optional

from ..interaction.intent_types import Intent
from ..storage.base import BookStorage
from .base import DEFAULT_PAGE_SIZE, BaseHandler
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
from .stats import StatsHandler

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """
    Maps each Intent to its handler.

    Unregistered intents get the fallback (unknown) handler.
    """

    def __init__(self, handlers: Optional[Dict[Intent, BaseHandler]] = None, fallback: Optional[BaseHandler] = None):
        self._handlers: Dict[Intent, BaseHandler] = dict(handlers or {})
        self.fallback = fallback or self._handlers.get(Intent.UNKNOWN) or UnknownHandler()

    def register(self, intent: Intent, handler: BaseHandler) -> None:
        self._handlers[intent] = handler

    def get(self, intent: Intent) -> BaseHandler:
        handler = self._handlers.get(intent)
        if handler is None:
            logger.debug(f"No handler for {intent}; using fallback")
            return self.fallback
        return handler

    def __contains__(self, intent: Intent) -> bool:
        return intent in self._handlers


def build_default_registry(
    storage: BookStorage,
    page_size: int = DEFAULT_PAGE_SIZE,
    today: Callable[[], date] = date.today,
) -> HandlerRegistry:
    """
    Registry with a handler for every dispatchable intent.

    Reference intents are resolved by the orchestrator before dispatch and
    have no handler of their own.
    """
    options = {"page_size": page_size, "today": today}
    unknown = UnknownHandler(storage, **options)
    handlers = {
        Intent.UPDATE_PROGRESS: UpdateProgressHandler(storage, **options),
        Intent.START_BOOK: StartBookHandler(storage, **options),
        Intent.FINISH_BOOK: FinishBookHandler(storage, **options),
        Intent.GET_STATUS: StatusHandler(storage, **options),
        Intent.LIST_READING: ListReadingHandler(storage, **options),
        Intent.SEARCH_BOOK: SearchHandler(storage, **options),
        Intent.BOOK_DETAILS: BookDetailsHandler(storage, **options),
        Intent.FILTER_BOOKS: FilterBooksHandler(storage, **options),
        Intent.UNREAD_BOOKS: UnreadBooksHandler(storage, **options),
        Intent.RATINGS_QUERY: RatingsHandler(storage, **options),
        Intent.COMPARE_BOOKS: CompareBooksHandler(storage, **options),
        Intent.TIME_QUERY: TimeQueryHandler(storage, **options),
        Intent.SIMILAR_BOOKS: SimilarBooksHandler(storage, **options),
        Intent.ADD_BOOK: AddBookHandler(storage, **options),
        Intent.RECOMMEND: RecommendHandler(storage, **options),
        Intent.GET_STATS: StatsHandler(storage, **options),
        Intent.HELP: HelpHandler(storage, **options),
        Intent.NEXT_PAGE: ResultsPageHandler(storage, direction=1, **options),
        Intent.PREVIOUS_PAGE: ResultsPageHandler(storage, direction=-1, **options),
        Intent.UNKNOWN: unknown,
    }
    return HandlerRegistry(handlers, fallback=unknown)
