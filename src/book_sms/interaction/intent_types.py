"""
Intent types for SMS message classification.

Closed set: anything the classifiers produce is one of these.
"""
from enum import Enum


class Intent(str, Enum):
    """Types of user intents."""
    UPDATE_PROGRESS = "update_progress"
    START_BOOK = "start_book"
    FINISH_BOOK = "finish_book"
    GET_STATUS = "get_status"
    LIST_READING = "list_reading"
    SEARCH_BOOK = "search_book"
    BOOK_DETAILS = "book_details"
    FILTER_BOOKS = "filter_books"
    UNREAD_BOOKS = "unread_books"
    RATINGS_QUERY = "ratings_query"
    COMPARE_BOOKS = "compare_books"
    TIME_QUERY = "time_query"
    SIMILAR_BOOKS = "similar_books"
    ADD_BOOK = "add_book"
    RECOMMEND = "recommend"
    GET_STATS = "get_stats"
    HELP = "help"
    PRONOUN_REFERENCE = "pronoun_reference"
    LIST_REFERENCE = "list_reference"
    NEXT_PAGE = "next_page"
    PREVIOUS_PAGE = "previous_page"
    UNKNOWN = "unknown"

    @classmethod
    def from_value(cls, value) -> "Intent":
        """
        Parse an intent name, case-insensitive.

        :param value: Intent string (e.g. "update_progress")
        :return: Matching Intent, or UNKNOWN
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def follow_up_intents(cls) -> set:
        """Intents that only make sense against conversation context."""
        return {cls.PRONOUN_REFERENCE, cls.LIST_REFERENCE, cls.NEXT_PAGE, cls.PREVIOUS_PAGE}
