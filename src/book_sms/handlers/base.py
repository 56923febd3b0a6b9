"""
Handler contract.

Every handler is awaited as `handler.handle(params, context)` and always
returns a HandlerResponse: failures become safe messages, never exceptions.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional

from ..context import ConversationContext
from ..exceptions import CollaboratorError, NotFoundError, ValidationError
from ..interaction.intent_parameters import BookParameters, IntentParameters
from ..query.filters import StorageQuery
from ..storage.base import BookStorage
from .formatting import format_book_line

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 5


@dataclass
class HandlerResponse:
    """Handler outcome plus context fields to merge."""
    success: bool
    message: str
    data: Optional[dict] = None
    updated_context: Optional[dict] = None


def book_ref(book: dict) -> dict:
    return {"id": book["id"], "title": book["title"]}


def single_book_context(book: dict) -> dict:
    return {"last_book_id": book["id"], "last_book_title": book["title"]}


class BaseHandler(ABC):
    """
    Base class for intent handlers.

    Subclasses implement _handle and raise ValidationError for missing
    parameters or NotFoundError for unknown books; everything else is
    caught here.
    """

    failure_message = "Sorry, something went wrong. Please try again."

    def __init__(
        self,
        storage: BookStorage,
        page_size: int = DEFAULT_PAGE_SIZE,
        today: Callable[[], date] = date.today,
    ):
        """
        :param storage: Book storage collaborator
        :param page_size: Books per result page
        :param today: Returns the current date
        """
        self.storage = storage
        self.page_size = page_size
        self.today = today

    async def handle(
        self,
        params: IntentParameters,
        context: Optional[ConversationContext] = None,
    ) -> HandlerResponse:
        """
        Run the handler.

        :param params: Parameter record for the intent
        :param context: Sender's conversation context, if any
        :return: HandlerResponse; never raises
        """
        name = type(self).__name__
        try:
            return await self._handle(params, context)
        except ValidationError as e:
            logger.info(f"{name} rejected parameters: {e}")
            return HandlerResponse(success=False, message=e.user_message)
        except NotFoundError as e:
            logger.info(f"{name}: {e}")
            return HandlerResponse(success=False, message=e.user_message, data={"not_found": e.search_term})
        except CollaboratorError as e:
            logger.error(f"{name} collaborator failure: {e}", exc_info=True)
            return HandlerResponse(success=False, message=self.failure_message)
        except Exception as e:
            logger.error(f"{name} failed: {type(e).__name__}: {e}", exc_info=True)
            return HandlerResponse(success=False, message=self.failure_message)

    @abstractmethod
    async def _handle(
        self,
        params: IntentParameters,
        context: Optional[ConversationContext],
    ) -> HandlerResponse:
        pass

    async def find_book(self, params: BookParameters) -> Optional[dict]:
        """Look up a book by id, else by title."""
        if params.book_id is not None:
            return await self.storage.get_by_id(params.book_id)
        if params.book_title:
            return await self.storage.find_by_title(params.book_title)
        return None

    async def context_or_current_book(self, context: Optional[ConversationContext]) -> Optional[dict]:
        """Last-referenced book, else the most recently started book in progress."""
        if context is not None and context.has_last_book():
            book = await self.storage.get_by_id(context.last_book_id)
            if book is not None:
                return book
        current = await self.storage.find_many(StorageQuery(
            where={"read": "Reading"},
            order_by=[{"date_started": "desc"}],
            take=1,
        ))
        return current[0] if current else None

    def list_response(
        self,
        header: str,
        books: List[dict],
        total: int,
        query: Optional[StorageQuery],
        page: int = 0,
        show_count: bool = True,
    ) -> HandlerResponse:
        """
        Numbered list reply that remembers the list for follow-ups.

        :param header: First line, without the count
        :param books: Books on this page
        :param total: Total matches across all pages
        :param query: Query to re-run for paging, without skip; take caps the whole list
        :param page: Zero-based page index
        :param show_count: Append "(total)" to the header
        """
        refs = [book_ref(b) for b in books]
        lines = [f"{header} ({total}):" if show_count else f"{header}:"]
        lines.extend(format_book_line(i, b) for i, b in enumerate(books, start=1))
        if total > (page + 1) * self.page_size:
            lines.append("Reply MORE for more results.")

        updated_context = {
            "last_search_results": refs,
            "last_results_page": page,
            "total_results_count": total,
            "last_query": query.to_dict() if query is not None else None,
        }
        if len(books) == 1:
            updated_context.update(single_book_context(books[0]))

        return HandlerResponse(
            success=True,
            message="\n".join(lines),
            data={"books": refs, "total": total, "page": page},
            updated_context=updated_context,
        )
