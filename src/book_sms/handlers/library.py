"""
Library query handlers: search, details, filters, comparisons, time
queries, similar books, add, recommend and result paging.
"""
import calendar
import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import Optional, Tuple

from ..context import ConversationContext
from ..exceptions import NotFoundError, ValidationError
from ..interaction.intent_parameters import (
    AddBookParameters,
    BookParameters,
    CompareParameters,
    FilterParameters,
    NoParameters,
    RecommendParameters,
    SearchParameters,
    TimeParameters,
)
from ..query.filters import ParsedFilters, StorageQuery
from ..query.query_builder import build_query, combine_and, combine_or
from .base import BaseHandler, HandlerResponse, book_ref, single_book_context
from .formatting import format_rating, truncate

logger = logging.getLogger(__name__)

FILTER_EXAMPLES = (
    'Please specify filter criteria. Examples: "unread fantasy", '
    '"books over 500 pages", "5 star books"'
)


class SearchHandler(BaseHandler):
    """Substring search over title, author and genre."""

    failure_message = "Sorry, there was an error searching. Please try again."

    async def _handle(self, params: SearchParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        term = params.search_term
        if not term:
            raise ValidationError("Missing search term", "Please provide a search term. Example: search Harry Potter")

        where = combine_or(
            {"title": {"contains": term}},
            {"author": {"contains": term}},
            {"genre": {"contains": term}},
        )
        query = StorageQuery(where=where, order_by=[{"rating": "desc"}, {"title": "asc"}])

        total = await self.storage.count(where)
        if total == 0:
            return HandlerResponse(
                success=True,
                message=f'No books found matching "{truncate(term, 25)}". Try a different search term.',
                data={"books": [], "total": 0},
            )

        books = await self.storage.find_many(query.page(0, self.page_size))
        return self.list_response(f'Found books matching "{truncate(term, 25)}"', books, total, query)


class BookDetailsHandler(BaseHandler):
    """Everything known about one book."""

    async def _handle(self, params: BookParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        if not params.has_book():
            raise ValidationError("Missing book", 'Please specify a book. Example: "about The Great Gatsby"')

        book = await self.find_book(params)
        if book is None:
            title = params.book_title or str(params.book_id)
            raise NotFoundError(title, f'Book "{truncate(title, 30)}" not found.')

        lines = [f'"{book["title"]}"']
        if book.get("author"):
            lines.append(f"By: {book['author']}")
        if book.get("genre"):
            lines.append(f"Genre: {book['genre']}")
        if book.get("pages"):
            lines.append(f"Pages: {book['pages']}")
        if book.get("rating") is not None:
            lines.append(f"Rating:{format_rating(book['rating'])}")

        status = book.get("read")
        if status == "Read":
            finished = f" ({book['date_finished']})" if book.get("date_finished") else ""
            lines.append(f"Status: Finished{finished}")
        elif status == "Reading":
            lines.append(f"Status: Reading, page {book.get('current_page') or 0}")
        elif status == "DNF":
            lines.append("Status: Did not finish")
        else:
            lines.append("Status: Unread")

        return HandlerResponse(
            success=True,
            message="\n".join(lines),
            data={"book": book_ref(book)},
            updated_context=single_book_context(book),
        )


class FilterBooksHandler(BaseHandler):
    """
    List books matching parsed filter criteria.

    Subclasses adjust the filters through _prepare and may relax the
    "criteria required" rule.
    """

    requires_criteria = True
    header = "Books"

    def _prepare(self, filters: ParsedFilters) -> ParsedFilters:
        return filters

    def _header(self, filters: ParsedFilters) -> str:
        shown = replace(filters, read_status=None) if self.header != "Books" else filters
        return f"{self.header}: {shown.describe()}" if shown.has_criteria() else self.header

    def _extra_where(self) -> Optional[dict]:
        return None

    async def _handle(self, params: FilterParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        filters = params.to_filters() if isinstance(params, FilterParameters) else ParsedFilters()
        if self.requires_criteria and not filters.has_criteria():
            raise ValidationError("No filter criteria", FILTER_EXAMPLES)

        filters = self._prepare(filters)
        built = build_query(filters, today=self.today())
        where = combine_and(built.where, self._extra_where()) or None
        query = StorageQuery(where=where, order_by=built.order_by, take=filters.limit)

        total = await self.storage.count(where)
        if filters.limit is not None:
            total = min(total, filters.limit)
        description = filters.describe()

        if total == 0:
            return HandlerResponse(
                success=True,
                message=f"No books found for {description}.",
                data={"books": [], "total": 0},
            )

        books = await self.storage.find_many(query.page(0, self.page_size))
        return self.list_response(self._header(filters), books, total, query)


class UnreadBooksHandler(FilterBooksHandler):
    requires_criteria = False
    header = "Unread books"

    def _prepare(self, filters: ParsedFilters) -> ParsedFilters:
        filters.read_status = "unread"
        return filters


class RatingsHandler(FilterBooksHandler):
    """Rated books, best first unless another order was asked for."""

    requires_criteria = False
    header = "Rated books"

    def _prepare(self, filters: ParsedFilters) -> ParsedFilters:
        if filters.sort_by is None:
            filters.sort_by = "rating"
            filters.sort_order = "desc"
        return filters

    def _extra_where(self) -> Optional[dict]:
        return {"rating": {"not": None}}


class CompareBooksHandler(BaseHandler):
    """Compare two books by pages, rating or finish date."""

    async def _handle(self, params: CompareParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        if len(params.book_titles) < 2:
            raise ValidationError(
                "Need two books",
                "Please specify two books to compare. Example: compare Dune and Foundation",
            )

        books = []
        for title in params.book_titles[:2]:
            book = await self.storage.find_by_title(title)
            if book is None:
                raise NotFoundError(title, f'Book "{truncate(title, 30)}" not found.')
            books.append(book)

        first, second = books
        if params.comparison_type == "pages":
            message = self._compare_pages(first, second)
        elif params.comparison_type == "rating":
            message = self._compare_ratings(first, second)
        elif params.comparison_type == "date_read":
            message = self._compare_dates(first, second)
        else:
            message = "\n".join([self._summary_line(1, first), self._summary_line(2, second)])

        refs = [book_ref(b) for b in books]
        return HandlerResponse(
            success=True,
            message=message,
            data={"books": refs, "total": 2},
            updated_context={
                "last_search_results": refs,
                "last_results_page": 0,
                "total_results_count": 2,
                "last_query": None,
            },
        )

    @staticmethod
    def _summary_line(index: int, book: dict) -> str:
        pages = f"{book['pages']} pages" if book.get("pages") else "? pages"
        rating = format_rating(book.get("rating")).strip() or "unrated"
        return f"{index}. {truncate(book['title'], 30)}: {pages}, {rating}"

    @staticmethod
    def _compare_pages(first: dict, second: dict) -> str:
        a, b = first.get("pages"), second.get("pages")
        if not a or not b:
            return "I don't have page counts for both books."
        if a == b:
            return f'Both have {a} pages.'
        longer, shorter = (first, second) if a > b else (second, first)
        return (
            f'"{truncate(longer["title"], 30)}" is longer: {longer["pages"]} pages vs '
            f'{shorter["pages"]} for "{truncate(shorter["title"], 30)}".'
        )

    @staticmethod
    def _compare_ratings(first: dict, second: dict) -> str:
        a, b = first.get("rating"), second.get("rating")
        if a is None or b is None:
            return "I don't have ratings for both books."
        if a == b:
            return f"Both are rated{format_rating(a)}."
        better, worse = (first, second) if a > b else (second, first)
        return (
            f'"{truncate(better["title"], 30)}" is rated higher:{format_rating(better["rating"])} vs'
            f'{format_rating(worse["rating"])} for "{truncate(worse["title"], 30)}".'
        )

    @staticmethod
    def _compare_dates(first: dict, second: dict) -> str:
        a, b = first.get("date_finished"), second.get("date_finished")
        if not a or not b:
            return "I don't have finish dates for both books."
        if a == b:
            return f"You finished both on {a}."
        earlier, later = (first, second) if a < b else (second, first)
        return (
            f'You finished "{truncate(earlier["title"], 30)}" first ({earlier["date_finished"]}), '
            f'then "{truncate(later["title"], 30)}" ({later["date_finished"]}).'
        )


def timeframe_range(params: TimeParameters, today: date) -> Optional[Tuple[str, str, str]]:
    """
    Resolve a timeframe to an inclusive ISO date range.

    :return: (start, end, label) or None when the timeframe is not understood
    """
    timeframe = (params.timeframe or "").lower().replace("past ", "last ")

    if timeframe == "today":
        return today.isoformat(), today.isoformat(), "today"
    if timeframe == "yesterday":
        day = today - timedelta(days=1)
        return day.isoformat(), day.isoformat(), "yesterday"
    if timeframe in ("this week", "last week"):
        monday = today - timedelta(days=today.weekday())
        if timeframe == "last week":
            monday -= timedelta(days=7)
            return monday.isoformat(), (monday + timedelta(days=6)).isoformat(), "last week"
        return monday.isoformat(), today.isoformat(), "this week"
    if timeframe in ("this month", "last month"):
        year, month = today.year, today.month
        if timeframe == "last month":
            year, month = (year - 1, 12) if month == 1 else (year, month - 1)
        last_day = calendar.monthrange(year, month)[1]
        return f"{year:04d}-{month:02d}-01", f"{year:04d}-{month:02d}-{last_day:02d}", timeframe
    if timeframe in ("this year", "last year"):
        year = today.year if timeframe == "this year" else today.year - 1
        return f"{year:04d}-01-01", f"{year:04d}-12-31", timeframe

    if params.month is not None:
        year = params.year if params.year is not None else today.year
        last_day = calendar.monthrange(year, params.month)[1]
        label = f"in {calendar.month_name[params.month]} {year}"
        return f"{year:04d}-{params.month:02d}-01", f"{year:04d}-{params.month:02d}-{last_day:02d}", label
    if params.year is not None:
        return f"{params.year:04d}-01-01", f"{params.year:04d}-12-31", f"in {params.year}"
    return None


class TimeQueryHandler(BaseHandler):
    """Books finished within a relative or absolute timeframe."""

    async def _handle(self, params: TimeParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        if not isinstance(params, TimeParameters) or not params.has_timeframe():
            raise ValidationError(
                "Missing timeframe",
                'Please specify a time period. Example: "what did I read last month"',
            )

        resolved = timeframe_range(params, self.today())
        if resolved is None:
            raise ValidationError(
                f"Unknown timeframe: {params.timeframe}",
                'I didn\'t understand that time period. Try "last month", "this year" or "2023".',
            )

        start, end, label = resolved
        where = {"read": "Read", "date_finished": {"gte": start, "lte": end}}
        query = StorageQuery(where=where, order_by=[{"date_finished": "desc"}])

        total = await self.storage.count(where)
        if total == 0:
            return HandlerResponse(
                success=True,
                message=f"You didn't finish any books {label}.",
                data={"books": [], "total": 0},
            )

        books = await self.storage.find_many(query.page(0, self.page_size))
        return self.list_response(f"Books finished {label}", books, total, query)


class SimilarBooksHandler(BaseHandler):
    """Books sharing a genre or author with the given book."""

    async def _handle(self, params: BookParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        if not params.has_book():
            raise ValidationError("Missing book", 'Please specify a book. Example: "books like Dune"')

        book = await self.find_book(params)
        if book is None:
            title = params.book_title or str(params.book_id)
            raise NotFoundError(title, f'Book "{truncate(title, 30)}" not found.')

        related = combine_or(
            {"genre": book["genre"]} if book.get("genre") else None,
            {"author": book["author"]} if book.get("author") else None,
        )
        if not related:
            return HandlerResponse(
                success=False,
                message=f'Not enough info about "{truncate(book["title"], 30)}" to find similar books.',
            )

        where = combine_and({"id": {"not": book["id"]}}, related)
        query = StorageQuery(where=where, order_by=[{"rating": "desc"}, {"title": "asc"}])

        total = await self.storage.count(where)
        if total == 0:
            return HandlerResponse(
                success=True,
                message=f'No books like "{truncate(book["title"], 30)}" in your library yet.',
                data={"books": [], "total": 0},
                updated_context=single_book_context(book),
            )

        books = await self.storage.find_many(query.page(0, self.page_size))
        return self.list_response(f'Books like "{truncate(book["title"], 30)}"', books, total, query)


class AddBookHandler(BaseHandler):
    """Add a book to the library unless it is already there."""

    failure_message = "Sorry, couldn't add the book. Try again."

    async def _handle(self, params: AddBookParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        if not params.title:
            raise ValidationError(
                "Missing title",
                "Please provide a book title. Example: add The Hobbit by J.R.R. Tolkien",
            )

        existing = await self.storage.find_many(StorageQuery(where={"title": {"contains": params.title}}))
        for book in existing:
            same_title = book["title"].strip().lower() == params.title.strip().lower()
            same_author = (
                not params.author
                or not book.get("author")
                or book["author"].strip().lower() == params.author.strip().lower()
            )
            if same_title and same_author:
                return HandlerResponse(
                    success=False,
                    message=f'"{truncate(book["title"], 35)}" is already in your library.',
                    data={"book_id": book["id"], "duplicate": True},
                    updated_context=single_book_context(book),
                )

        book = await self.storage.create({
            "title": params.title,
            "author": params.author,
            "genre": params.genre,
            "pages": params.pages,
            "read": None,
        })

        author = f" by {book['author']}" if book.get("author") else ""
        return HandlerResponse(
            success=True,
            message=f'Added "{truncate(book["title"], 35)}"{author} to your library.',
            data={"book_id": book["id"], "title": book["title"]},
            updated_context=single_book_context(book),
        )


class RecommendHandler(BaseHandler):
    """Highest-rated unread books, optionally within a genre."""

    async def _handle(self, params: RecommendParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        genre = getattr(params, "genre", None)
        where = {"read": None}
        if genre:
            where["genre"] = genre
        query = StorageQuery(where=where, order_by=[{"rating": "desc"}, {"pages": "asc"}])

        total = await self.storage.count(where)
        scope = f" {genre}" if genre else ""
        if total == 0:
            return HandlerResponse(
                success=True,
                message=f'No unread{scope} books to recommend. Add some with "add [title]"',
                data={"books": [], "total": 0},
            )

        books = await self.storage.find_many(query.page(0, self.page_size))
        return self.list_response(f"Top unread{scope} picks", books, total, query)


class ResultsPageHandler(BaseHandler):
    """Move forward or back through the last result list."""

    def __init__(self, storage, direction: int = 1, **kwargs):
        """
        :param direction: +1 for next page, -1 for previous page
        """
        super().__init__(storage, **kwargs)
        if direction not in (1, -1):
            raise ValueError(f"direction must be 1 or -1, got {direction}")
        self.direction = direction

    async def _handle(self, params: NoParameters, context: Optional[ConversationContext]) -> HandlerResponse:
        if context is None or not context.has_search_results():
            return HandlerResponse(
                success=False,
                message="No previous results to show more of. Try a search first.",
            )

        page = context.last_results_page + self.direction
        if page < 0:
            return HandlerResponse(success=False, message="You're already at the first page.")
        if context.last_query is None or page * self.page_size >= context.total_results_count:
            return HandlerResponse(success=False, message="No more results to show. Try a new search.")

        query = StorageQuery.from_dict(context.last_query)
        books = await self.storage.find_many(query.page(page, self.page_size))
        if not books:
            return HandlerResponse(success=False, message="No more results to show. Try a new search.")

        start = page * self.page_size + 1
        end = start + len(books) - 1
        total = context.total_results_count
        return self.list_response(f"Results {start}-{end} of {total}", books, total, query, page=page, show_count=False)
