"""
Query builder: ParsedFilters -> StorageQuery.

Pure and deterministic. Each set filter field yields exactly one where
clause; unset fields yield nothing.
"""
from datetime import date
from typing import Optional

from .filters import ParsedFilters, StorageQuery

READ_STATUS_VALUES = {
    "unread": None,
    "reading": "Reading",
    "completed": "Read",
    "dnf": "DNF",
}

SORT_FIELD_MAP = {
    "rating": "rating",
    "pages": "pages",
    "date": "date_finished",
    "title": "title",
    "author": "author",
}

DEFAULT_SORT_ORDER = "desc"


def build_query(filters: ParsedFilters, today: Optional[date] = None) -> StorageQuery:
    """
    Project parsed filters onto a storage query.

    :param filters: Parsed filter criteria
    :param today: Reference date for a month given without a year
    :return: StorageQuery with absent parts left as None
    """
    where = {}

    if filters.read_status is not None and filters.read_status in READ_STATUS_VALUES:
        where["read"] = READ_STATUS_VALUES[filters.read_status]

    if filters.genre:
        where["genre"] = filters.genre

    if filters.author:
        where["author"] = {"contains": filters.author}

    pages = _range_clause(filters.min_pages, filters.max_pages)
    if pages:
        where["pages"] = pages

    rating = _range_clause(filters.min_rating, filters.max_rating)
    if rating:
        where["rating"] = rating

    finished = _date_clause(filters.year, filters.month, today)
    if finished:
        where["date_finished"] = finished

    order_by = None
    if filters.sort_by in SORT_FIELD_MAP:
        direction = filters.sort_order or DEFAULT_SORT_ORDER
        order_by = [{SORT_FIELD_MAP[filters.sort_by]: direction}]

    return StorageQuery(
        where=where or None,
        order_by=order_by,
        take=filters.limit,
        skip=filters.offset,
    )


def _range_clause(minimum, maximum) -> dict:
    clause = {}
    if minimum is not None:
        clause["gte"] = minimum
    if maximum is not None:
        clause["lte"] = maximum
    return clause


def _date_clause(year: Optional[int], month: Optional[int], today: Optional[date]) -> dict:
    if month is not None:
        if year is None:
            year = (today or date.today()).year
        # Day 31 for every month; string comparison keeps it correct.
        return {"gte": f"{year:04d}-{month:02d}-01", "lte": f"{year:04d}-{month:02d}-31"}
    if year is not None:
        return {"gte": f"{year:04d}-01-01", "lte": f"{year:04d}-12-31"}
    return {}


def combine_and(*clauses: Optional[dict]) -> dict:
    """
    Combine where clauses with AND.

    :return: {} for none, the clause itself for one, {"AND": [...]} otherwise
    """
    return _combine("AND", clauses)


def combine_or(*clauses: Optional[dict]) -> dict:
    """Combine where clauses with OR. Same shape rules as combine_and."""
    return _combine("OR", clauses)


def _combine(operator: str, clauses) -> dict:
    present = [c for c in clauses if c]
    if not present:
        return {}
    if len(present) == 1:
        return present[0]
    return {operator: present}
