"""
Structured filter and query types.

ParsedFilters is what the parser reads out of a sentence; StorageQuery is what
the storage collaborator executes.
"""
from dataclasses import asdict, dataclass, fields, replace
from typing import List, Optional

READ_STATUSES = ("unread", "reading", "completed", "dnf")
SORT_FIELDS = ("rating", "pages", "date", "title", "author")
SORT_ORDERS = ("asc", "desc")


@dataclass
class ParsedFilters:
    """Optional filter criteria extracted from free text."""
    genre: Optional[str] = None
    author: Optional[str] = None
    read_status: Optional[str] = None
    min_pages: Optional[int] = None
    max_pages: Optional[int] = None
    min_rating: Optional[float] = None
    max_rating: Optional[float] = None
    year: Optional[int] = None
    month: Optional[int] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None

    def is_empty(self) -> bool:
        """True when no field is set."""
        return all(getattr(self, f.name) is None for f in fields(self))

    def has_criteria(self) -> bool:
        """True when at least one where-clause field is set (sorting and paging excluded)."""
        criteria = (
            self.genre, self.author, self.read_status, self.min_pages, self.max_pages,
            self.min_rating, self.max_rating, self.year, self.month,
        )
        return any(value is not None for value in criteria)

    def merged_with(self, overrides: "ParsedFilters") -> "ParsedFilters":
        """Return a copy where every set field of overrides wins."""
        changes = {k: v for k, v in asdict(overrides).items() if v is not None}
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Only the fields that are set."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def describe(self) -> str:
        """Short human-readable summary used in replies."""
        parts = []
        if self.read_status:
            parts.append(self.read_status)
        if self.genre:
            parts.append(self.genre)
        if self.author:
            parts.append(f"by {self.author}")
        if self.min_pages is not None:
            parts.append(f"{self.min_pages}+ pages")
        if self.max_pages is not None:
            parts.append(f"under {self.max_pages} pages")
        if self.min_rating is not None and self.min_rating == self.max_rating:
            parts.append(f"{self.min_rating:g} stars")
        else:
            if self.min_rating is not None:
                parts.append(f"{self.min_rating:g}+ stars")
            if self.max_rating is not None:
                parts.append(f"up to {self.max_rating:g} stars")
        if self.month is not None:
            parts.append(f"month {self.month}")
        if self.year is not None:
            parts.append(str(self.year))
        return ", ".join(parts) if parts else "all books"


@dataclass
class StorageQuery:
    """
    Storage-facing query: where / order_by / take / skip.

    Absent parts are None, never empty containers.
    """
    where: Optional[dict] = None
    order_by: Optional[List[dict]] = None
    take: Optional[int] = None
    skip: Optional[int] = None

    def to_dict(self) -> dict:
        """Serialize, omitting absent parts."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "StorageQuery":
        data = data or {}
        return cls(
            where=data.get("where"),
            order_by=data.get("order_by"),
            take=data.get("take"),
            skip=data.get("skip"),
        )

    def page(self, page_index: int, page_size: int) -> "StorageQuery":
        """
        Copy of this query restricted to one page of results.

        A take already set on this query caps the whole result list, so the
        last page of a "top 7" list holds only the remainder.
        """
        skip = page_index * page_size
        take = page_size if self.take is None else max(0, min(page_size, self.take - skip))
        return replace(self, take=take, skip=skip)
