"""
Tests for intent handlers against the in-memory library.
"""
from unittest.mock import AsyncMock, Mock

import pytest

from book_sms.context import ConfirmationType, ContextStore, ConversationContext
from book_sms.exceptions import StorageError
from book_sms.handlers import (
    AddBookHandler,
    CompareBooksHandler,
    FilterBooksHandler,
    FinishBookHandler,
    HelpHandler,
    ListReadingHandler,
    RatingsHandler,
    RecommendHandler,
    ResultsPageHandler,
    SearchHandler,
    SimilarBooksHandler,
    StartBookHandler,
    StatsHandler,
    StatusHandler,
    TimeQueryHandler,
    UnknownHandler,
    UnreadBooksHandler,
    UpdateProgressHandler,
    build_default_registry,
)
from book_sms.interaction import Intent
from book_sms.interaction.intent_parameters import (
    AddBookParameters,
    BookParameters,
    CompareParameters,
    FilterParameters,
    HelpParameters,
    NoParameters,
    ProgressParameters,
    RecommendParameters,
    SearchParameters,
    TimeParameters,
)


def context_from(response, sender="+1"):
    """Build the context a sender would have after this response."""
    store = ContextStore(ttl_seconds=300)
    return store.update(sender, response.updated_context or {})


class TestUpdateProgressHandler:
    """Tests for UpdateProgressHandler."""

    @pytest.mark.asyncio
    async def test_updates_current_book(self, storage, today):
        """Test that a bare page update goes to the book in progress."""
        handler = UpdateProgressHandler(storage, today=today)

        response = await handler.handle(ProgressParameters(page_number=150))

        assert response.success
        assert response.message == 'Updated "Project Hail Mary" to page 150/476 (32%)'
        assert (await storage.get_by_id(2))["current_page"] == 150
        assert response.updated_context["last_book_id"] == 2

    @pytest.mark.asyncio
    async def test_percentage_uses_page_count(self, storage, today):
        handler = UpdateProgressHandler(storage, today=today)

        response = await handler.handle(ProgressParameters(percentage=50, book_title="Dune"))

        assert response.success
        book = await storage.get_by_id(5)
        assert book["current_page"] == 206
        assert book["read"] == "Reading"
        assert book["date_started"] == "2024-06-15"

    @pytest.mark.asyncio
    async def test_last_page_asks_to_finish(self, storage, today):
        """Test that reaching the page count asks for confirmation instead."""
        handler = UpdateProgressHandler(storage, today=today)

        response = await handler.handle(ProgressParameters(page_number=476))

        assert response.updated_context["awaiting_confirmation"] is True
        assert response.updated_context["confirmation_type"] == ConfirmationType.FINISH_BOOK
        assert (await storage.get_by_id(2))["current_page"] == 120

    @pytest.mark.asyncio
    async def test_missing_page(self, storage):
        response = await UpdateProgressHandler(storage).handle(ProgressParameters())

        assert not response.success
        assert "page number or percentage" in response.message

    @pytest.mark.asyncio
    async def test_unknown_title(self, storage):
        response = await UpdateProgressHandler(storage).handle(
            ProgressParameters(page_number=10, book_title="zzzz qqqq")
        )

        assert not response.success
        assert "not found" in response.message


class TestStartAndFinish:
    """Tests for StartBookHandler and FinishBookHandler."""

    @pytest.mark.asyncio
    async def test_start_unread_book(self, storage, today):
        response = await StartBookHandler(storage, today=today).handle(BookParameters(book_title="Dune"))

        assert response.success
        assert response.message.startswith('Started reading "Dune"')
        book = await storage.get_by_id(5)
        assert (book["read"], book["current_page"], book["date_started"]) == ("Reading", 0, "2024-06-15")

    @pytest.mark.asyncio
    async def test_start_book_already_reading(self, storage):
        """Test that starting a book in progress is reported, not re-applied."""
        response = await StartBookHandler(storage).handle(BookParameters(book_title="Project Hail Mary"))

        assert not response.success
        assert "already reading" in response.message
        assert (await storage.get_by_id(2))["current_page"] == 120

    @pytest.mark.asyncio
    async def test_restart_finished_book_needs_confirmation(self, storage):
        response = await StartBookHandler(storage).handle(BookParameters(book_title="The Hobbit"))

        assert response.updated_context["confirmation_type"] == ConfirmationType.START_BOOK
        assert (await storage.get_by_id(1))["read"] == "Read"

    @pytest.mark.asyncio
    async def test_confirmed_restart(self, storage, today):
        response = await StartBookHandler(storage, today=today).handle(BookParameters(book_id=1, restart=True))

        assert response.message.startswith('Started re-reading "The Hobbit"')
        assert (await storage.get_by_id(1))["date_finished"] is None

    @pytest.mark.asyncio
    async def test_start_without_title(self, storage):
        response = await StartBookHandler(storage).handle(BookParameters())

        assert not response.success
        assert "specify a book title" in response.message

    @pytest.mark.asyncio
    async def test_finish_named_book(self, storage, today):
        response = await FinishBookHandler(storage, today=today).handle(BookParameters(book_title="dune"))

        assert response.success
        book = await storage.get_by_id(5)
        assert (book["read"], book["date_finished"], book["current_page"]) == ("Read", "2024-06-15", 412)

    @pytest.mark.asyncio
    async def test_finish_already_finished(self, storage):
        """Test that finishing twice does not move date_finished."""
        response = await FinishBookHandler(storage).handle(BookParameters(book_title="The Hobbit"))

        assert response.success
        assert response.data["already_finished"] is True
        assert (await storage.get_by_id(1))["date_finished"] == "2023-03-10"

    @pytest.mark.asyncio
    async def test_finish_without_title_asks_first(self, storage):
        """Test that the implied current book needs a YES first."""
        response = await FinishBookHandler(storage).handle(BookParameters())

        assert response.updated_context["awaiting_confirmation"] is True
        assert response.updated_context["last_book_id"] == 2
        assert "Project Hail Mary" in response.message
        assert (await storage.get_by_id(2))["read"] == "Reading"

    @pytest.mark.asyncio
    async def test_finish_uses_context_book(self, storage):
        context = ConversationContext(sender="+1", last_book_id=5, last_book_title="Dune")

        response = await FinishBookHandler(storage).handle(BookParameters(), context)

        assert response.updated_context["last_book_id"] == 5


class TestStatusAndReading:

    @pytest.mark.asyncio
    async def test_status_of_current_book(self, storage):
        response = await StatusHandler(storage).handle(BookParameters())

        assert response.message == 'Currently reading: "Project Hail Mary" by Andy Weir - 120/476 pages (25%)'

    @pytest.mark.asyncio
    async def test_list_reading(self, storage):
        response = await ListReadingHandler(storage).handle(NoParameters())

        assert response.message == 'Currently reading (1):\n1. "Project Hail Mary" - 25%'
        assert response.updated_context["last_search_results"] == [{"id": 2, "title": "Project Hail Mary"}]

    @pytest.mark.asyncio
    async def test_nothing_in_progress(self, storage):
        await storage.update(2, {"read": "Read"})

        response = await ListReadingHandler(storage).handle(NoParameters())

        assert response.message.startswith("You're not currently reading any books.")


class TestSearchAndPaging:
    """Tests for SearchHandler and ResultsPageHandler."""

    @pytest.mark.asyncio
    async def test_search_lists_matches(self, storage):
        response = await SearchHandler(storage).handle(SearchParameters(search_term="fantasy"))

        lines = response.message.split("\n")
        assert lines[0] == 'Found books matching "fantasy" (3):'
        assert lines[1] == "1. ✓The Hobbit ★5 - J.R.R. Tolkien"
        assert response.updated_context["total_results_count"] == 3
        assert response.updated_context["last_query"]["where"]["OR"][0] == {"title": {"contains": "fantasy"}}

    @pytest.mark.asyncio
    async def test_search_no_matches(self, storage):
        response = await SearchHandler(storage).handle(SearchParameters(search_term="cookbook"))

        assert response.success
        assert response.message == 'No books found matching "cookbook". Try a different search term.'

    @pytest.mark.asyncio
    async def test_paging_forward_and_back(self, storage):
        """Test next/previous pages and both edges."""
        search = await SearchHandler(storage, page_size=2).handle(SearchParameters(search_term="fantasy"))
        assert search.message.endswith("Reply MORE for more results.")

        next_page = ResultsPageHandler(storage, direction=1, page_size=2)
        previous_page = ResultsPageHandler(storage, direction=-1, page_size=2)

        second = await next_page.handle(NoParameters(), context_from(search))
        assert second.message == "Results 3-3 of 3:\n1. Mistborn - Brandon Sanderson"
        assert second.updated_context["last_results_page"] == 1

        past_end = await next_page.handle(NoParameters(), context_from(second))
        assert past_end.message == "No more results to show. Try a new search."

        before_start = await previous_page.handle(NoParameters(), context_from(search))
        assert before_start.message == "You're already at the first page."

        back = await previous_page.handle(NoParameters(), context_from(second))
        assert back.message.startswith("Results 1-2 of 3:")

    @pytest.mark.asyncio
    async def test_paging_without_results(self, storage):
        response = await ResultsPageHandler(storage).handle(NoParameters(), None)

        assert response.message == "No previous results to show more of. Try a search first."

    def test_invalid_direction(self, storage):
        with pytest.raises(ValueError):
            ResultsPageHandler(storage, direction=2)


class TestFilters:
    """Tests for filter, unread, ratings and recommend handlers."""

    @pytest.mark.asyncio
    async def test_filter_requires_criteria(self, storage):
        response = await FilterBooksHandler(storage).handle(FilterParameters())

        assert not response.success
        assert response.message.startswith("Please specify filter criteria.")

    @pytest.mark.asyncio
    async def test_filter_by_pages(self, storage):
        response = await FilterBooksHandler(storage).handle(FilterParameters(min_pages=500))

        assert response.message.split("\n")[0] == "Books: 500+ pages (2):"
        assert [b["id"] for b in response.data["books"]] == [3, 4]

    @pytest.mark.asyncio
    async def test_unread_fantasy(self, storage):
        response = await UnreadBooksHandler(storage).handle(FilterParameters(genre="Fantasy"))

        assert response.message.split("\n")[0] == "Unread books: Fantasy (2):"

    @pytest.mark.asyncio
    async def test_no_matches(self, storage):
        response = await UnreadBooksHandler(storage).handle(FilterParameters(genre="Fantasy", max_pages=300))

        assert response.success
        assert response.message == "No books found for unread, Fantasy, under 300 pages."

    @pytest.mark.asyncio
    async def test_ratings_best_first(self, storage):
        response = await RatingsHandler(storage).handle(FilterParameters(limit=2))

        assert response.data["total"] == 2
        assert [b["id"] for b in response.data["books"]] == [1, 2]

    @pytest.mark.asyncio
    async def test_limit_caps_later_pages(self, storage):
        """Test that MORE after a "top 3" list stops at the third book."""
        first = await RatingsHandler(storage, page_size=2).handle(FilterParameters(limit=3))
        assert first.data["total"] == 3
        assert first.updated_context["last_query"]["take"] == 3

        next_page = ResultsPageHandler(storage, direction=1, page_size=2)
        second = await next_page.handle(NoParameters(), context_from(first))

        assert second.message.startswith("Results 3-3 of 3:")
        assert [b["id"] for b in second.data["books"]] == [5]

        past_end = await next_page.handle(NoParameters(), context_from(second))
        assert past_end.message == "No more results to show. Try a new search."

    @pytest.mark.asyncio
    async def test_recommend(self, storage):
        response = await RecommendHandler(storage).handle(RecommendParameters())

        assert [b["title"] for b in response.data["books"]] == ["Dune", "The Name of the Wind", "Mistborn"]

    @pytest.mark.asyncio
    async def test_recommend_genre_without_matches(self, storage):
        response = await RecommendHandler(storage).handle(RecommendParameters(genre="Horror"))

        assert response.message.startswith("No unread Horror books to recommend.")


class TestOtherHandlers:

    @pytest.mark.asyncio
    async def test_compare_pages(self, storage):
        params = CompareParameters(book_titles=["The Hobbit", "Dune"], comparison_type="pages")

        response = await CompareBooksHandler(storage).handle(params)

        assert response.message == '"Dune" is longer: 412 pages vs 310 for "The Hobbit".'
        assert [r["id"] for r in response.updated_context["last_search_results"]] == [1, 5]

    @pytest.mark.asyncio
    async def test_compare_needs_two(self, storage):
        response = await CompareBooksHandler(storage).handle(CompareParameters(book_titles=["Dune"]))

        assert not response.success

    @pytest.mark.asyncio
    async def test_time_query_last_month(self, storage, today):
        response = await TimeQueryHandler(storage, today=today).handle(TimeParameters(timeframe="last month"))

        assert response.message.split("\n")[0] == "Books finished last month (1):"
        assert response.updated_context["last_book_id"] == 6

    @pytest.mark.asyncio
    async def test_time_query_year(self, storage, today):
        response = await TimeQueryHandler(storage, today=today).handle(TimeParameters(year=2022))

        assert response.message == "You didn't finish any books in 2022."

    @pytest.mark.asyncio
    async def test_similar_books(self, storage):
        response = await SimilarBooksHandler(storage).handle(BookParameters(book_title="Dune"))

        assert [b["id"] for b in response.data["books"]] == [2]

    @pytest.mark.asyncio
    async def test_add_book(self, storage):
        params = AddBookParameters(title="Piranesi", author="Susanna Clarke", pages=272)

        response = await AddBookHandler(storage).handle(params)

        assert response.message == 'Added "Piranesi" by Susanna Clarke to your library.'
        assert (await storage.get_by_id(8))["pages"] == 272

    @pytest.mark.asyncio
    async def test_add_duplicate(self, storage):
        response = await AddBookHandler(storage).handle(AddBookParameters(title="the hobbit"))

        assert not response.success
        assert response.data["duplicate"] is True
        assert len(storage) == 7

    @pytest.mark.asyncio
    async def test_stats(self, storage, today):
        response = await StatsHandler(storage, today=today).handle(NoParameters())

        assert response.data["stats"] == {
            "total": 7, "completed": 2, "reading": 1, "unread": 3, "dnf": 1, "finished_this_year": 1,
        }

    @pytest.mark.asyncio
    async def test_help_topic_and_unknown_topic(self):
        handler = HelpHandler()

        assert (await handler.handle(HelpParameters(topic="page"))).data["topic"] == "progress"
        fallback = await handler.handle(HelpParameters(topic="weather"))
        assert fallback.message.endswith("Topics: search, add, progress, stats, recommend")

    @pytest.mark.asyncio
    async def test_unknown(self):
        response = await UnknownHandler().handle(NoParameters())

        assert not response.success
        assert response.message == "Sorry, didn't understand. Text HELP for commands."


class TestHandlerFailures:
    """Collaborator failures become safe messages."""

    @pytest.mark.asyncio
    async def test_storage_error_is_contained(self):
        storage = Mock()
        storage.count = AsyncMock(side_effect=StorageError("connection refused to db-1:5432"))

        response = await StatsHandler(storage).handle(NoParameters())

        assert not response.success
        assert response.message == "Sorry, there was an error getting your stats. Please try again."
        assert "5432" not in response.message

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self):
        storage = Mock()
        storage.count = AsyncMock(side_effect=KeyError("boom"))

        response = await SearchHandler(storage).handle(SearchParameters(search_term="x"))

        assert not response.success
        assert response.message == "Sorry, there was an error searching. Please try again."


class TestRegistry:

    def test_every_dispatchable_intent_registered(self, storage):
        registry = build_default_registry(storage)

        for intent in Intent:
            if intent in (Intent.PRONOUN_REFERENCE, Intent.LIST_REFERENCE):
                continue
            assert intent in registry

    def test_reference_intents_fall_back(self, storage):
        registry = build_default_registry(storage)

        assert isinstance(registry.get(Intent.LIST_REFERENCE), UnknownHandler)
