"""
Reading-progress handlers: update page, start, finish, status, list reading.
"""
import logging
from typing import Optional

from ..context import ConfirmationType, ConversationContext
from ..exceptions import NotFoundError, ValidationError
from ..interaction.intent_parameters import BookParameters, NoParameters, ProgressParameters
from ..query.filters import StorageQuery
from .base import BaseHandler, HandlerResponse, single_book_context
from .formatting import format_book_summary, progress_percent, truncate

logger = logging.getLogger(__name__)

NOT_READING_MESSAGE = 'You\'re not currently reading any books. Start one with "start [book title]"'


def _not_found(title: str) -> NotFoundError:
    return NotFoundError(title, f'Book "{truncate(title, 30)}" not found. Try searching first.')


def _confirmation(book: dict, confirmation_type: ConfirmationType, message: str) -> HandlerResponse:
    updated_context = single_book_context(book)
    updated_context.update({
        "awaiting_confirmation": True,
        "confirmation_type": confirmation_type,
    })
    return HandlerResponse(
        success=True,
        message=message,
        data={"book_id": book["id"], "confirmation_type": confirmation_type.value},
        updated_context=updated_context,
    )


class UpdateProgressHandler(BaseHandler):
    """Set the current page (or percentage) of a book being read."""

    failure_message = "Sorry, there was an error updating your progress. Please try again."

    async def _handle(self, params: ProgressParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        if not params.has_progress():
            raise ValidationError(
                "Missing page or percentage",
                'Please specify a page number or percentage. Example: "page 150" or "50%"',
            )

        if params.book_id is not None or params.book_title:
            book = await self.find_book(BookParameters(book_id=params.book_id, book_title=params.book_title))
            if book is None:
                raise _not_found(params.book_title or str(params.book_id))
        else:
            book = await self.context_or_current_book(context)
            if book is None:
                return HandlerResponse(
                    success=False,
                    message='No active book found. Start reading a book first with "start [book title]"',
                )

        total = book.get("pages")
        page = params.page_number
        if page is None:
            if not total:
                raise ValidationError(
                    "Percentage without page count",
                    f'"{truncate(book["title"], 30)}" has no page count. Send a page number instead.',
                )
            page = round(params.percentage / 100 * total)

        if total and page >= total:
            return _confirmation(
                book,
                ConfirmationType.FINISH_BOOK,
                f'"{truncate(book["title"], 30)}" has {total} pages. Did you finish it? Reply YES or NO.',
            )

        changes = {"current_page": page, "read": "Reading"}
        if not book.get("date_started"):
            changes["date_started"] = self.today().isoformat()
        book = await self.storage.update(book["id"], changes)

        percent = progress_percent(book)
        page_info = f"{page}/{total}" if total else f"{page}"
        percent_info = f" ({percent}%)" if percent is not None else ""
        logger.info(f"Progress for book {book['id']} set to page {page}")
        return HandlerResponse(
            success=True,
            message=f'Updated "{truncate(book["title"], 35)}" to page {page_info}{percent_info}',
            data={"book_id": book["id"], "page": page, "percent": percent},
            updated_context=single_book_context(book),
        )


class StartBookHandler(BaseHandler):
    """Mark a book as being read. Re-reading a finished book needs confirmation."""

    failure_message = "Sorry, there was an error starting the book. Please try again."

    async def _handle(self, params: BookParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        if not params.has_book():
            raise ValidationError(
                "Missing book title",
                'Please specify a book title. Example: "start The Great Gatsby"',
            )

        book = await self.find_book(params)
        if book is None:
            title = params.book_title or str(params.book_id)
            raise NotFoundError(
                title,
                f'Couldn\'t find a book matching "{truncate(title, 30)}". '
                f"Check the title or add it to your library first.",
            )

        title = truncate(book["title"], 35)

        if book.get("read") == "Reading":
            return HandlerResponse(
                success=False,
                message=f'You\'re already reading "{title}". Currently on page {book.get("current_page") or 0}.',
                data={"book_id": book["id"], "already_reading": True},
                updated_context=single_book_context(book),
            )

        if book.get("read") == "Read" and not params.restart:
            return _confirmation(
                book,
                ConfirmationType.START_BOOK,
                f'You already finished "{title}". Start it again? Reply YES or NO.',
            )

        book = await self.storage.update(book["id"], {
            "read": "Reading",
            "current_page": 0,
            "date_started": self.today().isoformat(),
            "date_finished": None,
        })

        pages = f" ({book['pages']} pages)" if book.get("pages") else ""
        verb = "Started re-reading" if params.restart else "Started reading"
        logger.info(f"Book {book['id']} started (restart={params.restart})")
        return HandlerResponse(
            success=True,
            message=f'{verb} "{title}"{pages}. Good luck!',
            data={"book_id": book["id"], "title": book["title"]},
            updated_context=single_book_context(book),
        )


class FinishBookHandler(BaseHandler):
    """
    Mark a book as finished.

    Without an explicit title the target comes from context (or the current
    book) and the user is asked to confirm first.
    """

    failure_message = "Sorry, there was an error marking the book as finished. Please try again."

    async def _handle(self, params: BookParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        explicit = params.has_book()

        if explicit:
            book = await self.find_book(params)
            if book is None:
                raise _not_found(params.book_title or str(params.book_id))
        else:
            book = await self.context_or_current_book(context)
            if book is None:
                return HandlerResponse(success=False, message="No active book found to finish.")

        title = truncate(book["title"], 40)

        if book.get("read") == "Read":
            return HandlerResponse(
                success=True,
                message=f'"{title}" is already marked as finished.',
                data={"book_id": book["id"], "already_finished": True},
                updated_context=single_book_context(book),
            )

        if not explicit and not params.confirmed:
            return _confirmation(
                book,
                ConfirmationType.FINISH_BOOK,
                f'Mark "{title}" as finished? Reply YES or NO.',
            )

        changes = {"read": "Read", "date_finished": self.today().isoformat()}
        if book.get("pages"):
            changes["current_page"] = book["pages"]
        book = await self.storage.update(book["id"], changes)

        logger.info(f"Book {book['id']} finished")
        return HandlerResponse(
            success=True,
            message=f'Congratulations on finishing "{title}"! That\'s awesome!',
            data={"book_id": book["id"], "title": book["title"]},
            updated_context=single_book_context(book),
        )


class StatusHandler(BaseHandler):
    """Progress on a named book, the last-referenced book, or the current one."""

    failure_message = "Sorry, there was an error getting your status. Please try again."

    async def _handle(self, params: BookParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        if isinstance(params, BookParameters) and params.has_book():
            book = await self.find_book(params)
            if book is None:
                raise _not_found(params.book_title or str(params.book_id))
            prefix = ""
        else:
            book = await self.context_or_current_book(context)
            if book is None:
                return HandlerResponse(success=True, message=NOT_READING_MESSAGE)
            prefix = "Currently reading: " if book.get("read") == "Reading" else ""

        summary = format_book_summary(book)
        if book.get("read") == "Read":
            finished = f" on {book['date_finished']}" if book.get("date_finished") else ""
            summary = f"{summary} - finished{finished}"
        elif book.get("read") is None:
            summary = f"{summary} - not started"

        return HandlerResponse(
            success=True,
            message=f"{prefix}{summary}",
            data={"book_id": book["id"]},
            updated_context=single_book_context(book),
        )


class ListReadingHandler(BaseHandler):
    """Books currently in progress."""

    failure_message = "Sorry, there was an error getting your reading list. Please try again."

    async def _handle(self, params: NoParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        query = StorageQuery(where={"read": "Reading"}, order_by=[{"date_started": "desc"}])
        total = await self.storage.count(query.where)
        if total == 0:
            return HandlerResponse(success=True, message=NOT_READING_MESSAGE)

        books = await self.storage.find_many(query.page(0, self.page_size))
        response = self.list_response("Currently reading", books, total, query)

        # Swap the generic lines for progress percentages.
        lines = [f"Currently reading ({total}):"]
        for index, book in enumerate(books, start=1):
            percent = progress_percent(book)
            suffix = f" - {percent}%" if percent is not None else ""
            lines.append(f'{index}. "{truncate(book["title"], 30)}"{suffix}')
        if total > self.page_size:
            lines.append("Reply MORE for more results.")
        response.message = "\n".join(lines)
        return response
