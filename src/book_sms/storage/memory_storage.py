"""
In-memory book storage.

Evaluates where clauses over a list of dicts:

- equality (None matches None)
- {"contains": s} case-insensitive substring
- {"gte"|"lte"|"gt"|"lt": v}
- {"in": [...]} / {"not_in": [...]}
- {"not": v}
- {"AND": [...]} / {"OR": [...]} / {"NOT": clause}
"""
import copy
import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ..exceptions import StorageError
from ..query.filters import StorageQuery
from ..resolution.title_matcher import TitleMatchPolicy
from .base import BOOK_FIELDS, BookStorage

logger = logging.getLogger(__name__)

OPERATORS = {"eq", "contains", "gte", "lte", "gt", "lt", "in", "not_in", "not"}


def _compare(value, operand, op: str) -> bool:
    if value is None or operand is None:
        return False
    try:
        if op == "gte":
            return value >= operand
        if op == "lte":
            return value <= operand
        if op == "gt":
            return value > operand
        return value < operand
    except TypeError:
        return False


def _match_field(value, condition) -> bool:
    if not (isinstance(condition, dict) and condition and set(condition) <= OPERATORS):
        return value == condition

    for op, operand in condition.items():
        if op == "eq":
            ok = value == operand
        elif op == "contains":
            ok = value is not None and str(operand).lower() in str(value).lower()
        elif op in ("gte", "lte", "gt", "lt"):
            ok = _compare(value, operand, op)
        elif op == "in":
            ok = value in (operand or [])
        elif op == "not_in":
            ok = value not in (operand or [])
        else:
            ok = not _match_field(value, operand)
        if not ok:
            return False
    return True


def matches_where(record: dict, where: Optional[dict]) -> bool:
    """
    Evaluate a where clause against one record.

    :param record: Book dict
    :param where: Where clause; None or {} matches everything
    :return: True if the record matches
    """
    if not where:
        return True

    for key, condition in where.items():
        if key == "AND":
            ok = all(matches_where(record, clause) for clause in condition)
        elif key == "OR":
            ok = any(matches_where(record, clause) for clause in condition)
        elif key == "NOT":
            ok = not matches_where(record, condition)
        else:
            ok = _match_field(record.get(key), condition)
        if not ok:
            return False
    return True


def _sort_value(value):
    return value.lower() if isinstance(value, str) else value


def apply_order(records: List[dict], order_by) -> List[dict]:
    """
    Sort records by [{field: "asc"|"desc"}, ...]. None values sort last
    in either direction.
    """
    if not order_by:
        return list(records)
    if isinstance(order_by, dict):
        order_by = [order_by]

    rows = list(records)
    for spec in reversed(order_by):
        for field, direction in spec.items():
            present = [r for r in rows if r.get(field) is not None]
            missing = [r for r in rows if r.get(field) is None]
            present.sort(key=lambda r: _sort_value(r[field]), reverse=str(direction).lower() == "desc")
            rows = present + missing
    return rows


class InMemoryBookStorage(BookStorage):
    """
    Book storage over a dict of records.

    Single process. Reads return copies so callers cannot mutate stored state.
    """

    def __init__(
        self,
        books: Optional[List[dict]] = None,
        title_matcher: Optional[TitleMatchPolicy] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        :param books: Initial records; ids are assigned when missing
        :param title_matcher: Title lookup policy (default exact -> substring -> fuzzy)
        :param clock: Returns the current datetime, used for created_at
        """
        self._books: Dict[int, dict] = {}
        self._next_id = 1
        self._lock = threading.Lock()
        self._clock = clock
        self.title_matcher = title_matcher or TitleMatchPolicy()

        for book in books or []:
            self._insert(book)

    def _insert(self, data: dict) -> dict:
        title = (data.get("title") or "").strip()
        if not title:
            raise StorageError("Book title is required")

        record = {name: None for name in BOOK_FIELDS}
        record.update(data)
        record["title"] = title

        book_id = record.get("id")
        if book_id is None:
            book_id = self._next_id
        if book_id in self._books:
            raise StorageError(f"Duplicate book id: {book_id}")
        record["id"] = book_id
        self._next_id = max(self._next_id, book_id + 1)

        if record.get("created_at") is None:
            record["created_at"] = self._clock().isoformat(timespec="seconds")

        self._books[book_id] = record
        return record

    async def find_many(self, query: Optional[StorageQuery] = None) -> List[dict]:
        query = query or StorageQuery()
        with self._lock:
            rows = [b for b in self._books.values() if matches_where(b, query.where)]
            rows = apply_order(rows, query.order_by)
            start = query.skip or 0
            end = start + query.take if query.take is not None else None
            return copy.deepcopy(rows[start:end])

    async def count(self, where: Optional[dict] = None) -> int:
        with self._lock:
            return sum(1 for b in self._books.values() if matches_where(b, where))

    async def get_by_id(self, book_id: int) -> Optional[dict]:
        with self._lock:
            book = self._books.get(book_id)
            return copy.deepcopy(book) if book else None

    async def find_by_title(self, title: str) -> Optional[dict]:
        if not title or not title.strip():
            return None

        with self._lock:
            books = list(self._books.values())
            match = self.title_matcher.match(title, [b["title"] for b in books])
            if not match.found:
                logger.debug(f"No title match for '{title}'")
                return None
            for book in books:
                if book["title"] == match.title:
                    return copy.deepcopy(book)
        return None

    async def create(self, data: dict) -> dict:
        with self._lock:
            record = self._insert(dict(data))
            logger.info(f"Created book {record['id']}")
            return copy.deepcopy(record)

    async def update(self, book_id: int, data: dict) -> dict:
        with self._lock:
            record = self._books.get(book_id)
            if record is None:
                raise StorageError(f"Book {book_id} does not exist")
            changes = {k: v for k, v in data.items() if k != "id"}
            record.update(changes)
            return copy.deepcopy(record)

    async def upsert(self, where: dict, create: dict, update: dict) -> dict:
        with self._lock:
            for record in self._books.values():
                if matches_where(record, where):
                    record.update({k: v for k, v in update.items() if k != "id"})
                    return copy.deepcopy(record)
            return copy.deepcopy(self._insert(dict(create)))

    def __len__(self) -> int:
        return len(self._books)
