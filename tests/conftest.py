"""
Shared fixtures: a small library, in-memory storage and fixed clocks.
"""
from datetime import date, datetime

import pytest

from book_sms.context import ContextStore
from book_sms.storage import InMemoryBookStorage

TODAY = date(2024, 6, 15)


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def sample_books():
    return [
        {"id": 1, "title": "The Hobbit", "author": "J.R.R. Tolkien", "genre": "Fantasy", "pages": 310,
         "rating": 5.0, "read": "Read", "date_started": "2023-02-20", "date_finished": "2023-03-10"},
        {"id": 2, "title": "Project Hail Mary", "author": "Andy Weir", "genre": "Science Fiction", "pages": 476,
         "rating": 5.0, "read": "Reading", "current_page": 120, "date_started": "2024-06-01"},
        {"id": 3, "title": "The Name of the Wind", "author": "Patrick Rothfuss", "genre": "Fantasy", "pages": 662,
         "rating": 4.0, "read": None},
        {"id": 4, "title": "Mistborn", "author": "Brandon Sanderson", "genre": "Fantasy", "pages": 541,
         "rating": None, "read": None},
        {"id": 5, "title": "Dune", "author": "Frank Herbert", "genre": "Science Fiction", "pages": 412,
         "rating": 4.5, "read": None},
        {"id": 6, "title": "The Little Prince", "author": "Antoine de Saint-Exupery", "genre": "Classics",
         "pages": 96, "rating": 4.0, "read": "Read", "date_finished": "2024-05-20"},
        {"id": 7, "title": "Gone Girl", "author": "Gillian Flynn", "genre": "Thriller", "pages": 422,
         "rating": 3.0, "read": "DNF"},
    ]


@pytest.fixture
def storage(sample_books):
    return InMemoryBookStorage(sample_books, clock=lambda: datetime(2024, 6, 15, 12, 0, 0))


@pytest.fixture
def today():
    return lambda: TODAY


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def context_store(clock):
    return ContextStore(ttl_seconds=300, clock=clock)
