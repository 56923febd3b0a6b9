"""
Storage collaborator interface.

Books are plain dicts with the keys in BOOK_FIELDS; the engine owns no schema
beyond these names.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from ..query.filters import StorageQuery

BOOK_FIELDS = (
    "id",
    "title",
    "author",
    "genre",
    "pages",
    "rating",
    "read",
    "current_page",
    "date_started",
    "date_finished",
    "created_at",
)

READ_VALUES = (None, "Reading", "Read", "DNF")


class BookStorage(ABC):
    """
    Async book storage.

    Implementations raise StorageError for backend failures.
    """

    @abstractmethod
    async def find_many(self, query: Optional[StorageQuery] = None) -> List[dict]:
        """
        :param query: where / order_by / take / skip
        :return: Matching books, ordered and paged
        """
        pass

    @abstractmethod
    async def count(self, where: Optional[dict] = None) -> int:
        pass

    @abstractmethod
    async def get_by_id(self, book_id: int) -> Optional[dict]:
        pass

    @abstractmethod
    async def find_by_title(self, title: str) -> Optional[dict]:
        """
        Best single match for a typed title.

        :return: Book dict, or None when nothing is close enough
        """
        pass

    @abstractmethod
    async def create(self, data: dict) -> dict:
        pass

    @abstractmethod
    async def update(self, book_id: int, data: dict) -> dict:
        """
        :raises StorageError: If the book does not exist
        """
        pass

    @abstractmethod
    async def upsert(self, where: dict, create: dict, update: dict) -> dict:
        """Update the first book matching where, or create one."""
        pass
