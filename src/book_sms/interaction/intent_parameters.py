"""
Typed parameter records, one per intent family.

INTENT_PARAMETERS maps every Intent to the record its classifier output
carries, so handlers can rely on field names.
"""
from dataclasses import asdict, dataclass, field, fields
from typing import Dict, List, Optional, Type

from ..query.filters import READ_STATUSES, SORT_FIELDS, SORT_ORDERS, ParsedFilters
from .intent_types import Intent

COMPARISON_TYPES = ("pages", "rating", "date_read")


def _to_int(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _to_float(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class IntentParameters:
    """Base for parameter records."""

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "IntentParameters":
        """Build from a loose dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class NoParameters(IntentParameters):
    """Intents that take no parameters."""


@dataclass
class ProgressParameters(IntentParameters):
    page_number: Optional[int] = None
    percentage: Optional[float] = None
    book_title: Optional[str] = None
    book_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ProgressParameters":
        data = data or {}
        percentage = _to_float(data.get("percentage"))
        if percentage is not None and not 0 <= percentage <= 100:
            percentage = None
        page_number = _to_int(data.get("page_number"))
        if page_number is not None and page_number < 0:
            page_number = None
        return cls(
            page_number=page_number,
            percentage=percentage,
            book_title=_to_text(data.get("book_title")),
            book_id=_to_int(data.get("book_id")),
        )

    def has_progress(self) -> bool:
        return self.page_number is not None or self.percentage is not None


@dataclass
class BookParameters(IntentParameters):
    """Single-book intents: start, finish, details, similar, status."""
    book_title: Optional[str] = None
    book_id: Optional[int] = None
    confirmed: bool = False
    restart: bool = False

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "BookParameters":
        data = data or {}
        return cls(
            book_title=_to_text(data.get("book_title")),
            book_id=_to_int(data.get("book_id")),
            confirmed=bool(data.get("confirmed", False)),
            restart=bool(data.get("restart", False)),
        )

    def has_book(self) -> bool:
        return self.book_id is not None or bool(self.book_title)


@dataclass
class SearchParameters(IntentParameters):
    search_term: Optional[str] = None


@dataclass
class FilterParameters(IntentParameters):
    """Filter criteria; field names follow ParsedFilters."""
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

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "FilterParameters":
        """Enumerated fields with illegal values are dropped, not coerced."""
        data = data or {}
        read_status = _to_text(data.get("read_status"))
        sort_by = _to_text(data.get("sort_by"))
        sort_order = _to_text(data.get("sort_order"))
        month = _to_int(data.get("month"))
        return cls(
            genre=_to_text(data.get("genre")),
            author=_to_text(data.get("author")),
            read_status=read_status if read_status in READ_STATUSES else None,
            min_pages=_to_int(data.get("min_pages")),
            max_pages=_to_int(data.get("max_pages")),
            min_rating=_to_float(data.get("min_rating")),
            max_rating=_to_float(data.get("max_rating")),
            year=_to_int(data.get("year")),
            month=month if month is not None and 1 <= month <= 12 else None,
            sort_by=sort_by if sort_by in SORT_FIELDS else None,
            sort_order=sort_order if sort_order in SORT_ORDERS else None,
            limit=_to_int(data.get("limit")),
        )

    @classmethod
    def from_filters(cls, filters: ParsedFilters) -> "FilterParameters":
        return cls.from_dict(filters.to_dict())

    def to_filters(self) -> ParsedFilters:
        return ParsedFilters(**self.to_dict())


@dataclass
class CompareParameters(IntentParameters):
    book_titles: List[str] = field(default_factory=list)
    comparison_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "CompareParameters":
        data = data or {}
        titles = data.get("book_titles") or []
        if isinstance(titles, str):
            titles = [titles]
        comparison_type = _to_text(data.get("comparison_type"))
        return cls(
            book_titles=[t for t in (_to_text(x) for x in titles) if t],
            comparison_type=comparison_type if comparison_type in COMPARISON_TYPES else None,
        )


@dataclass
class TimeParameters(IntentParameters):
    timeframe: Optional[str] = None
    year: Optional[int] = None
    month: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "TimeParameters":
        data = data or {}
        month = _to_int(data.get("month"))
        return cls(
            timeframe=_to_text(data.get("timeframe")),
            year=_to_int(data.get("year")),
            month=month if month is not None and 1 <= month <= 12 else None,
        )

    def has_timeframe(self) -> bool:
        return bool(self.timeframe) or self.year is not None or self.month is not None


@dataclass
class AddBookParameters(IntentParameters):
    title: Optional[str] = None
    author: Optional[str] = None
    genre: Optional[str] = None
    pages: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "AddBookParameters":
        data = data or {}
        return cls(
            title=_to_text(data.get("title") or data.get("book_title")),
            author=_to_text(data.get("author")),
            genre=_to_text(data.get("genre")),
            pages=_to_int(data.get("pages")),
        )


@dataclass
class RecommendParameters(IntentParameters):
    genre: Optional[str] = None


@dataclass
class HelpParameters(IntentParameters):
    topic: Optional[str] = None


@dataclass
class ReferenceParameters(IntentParameters):
    """A pronoun or list reference plus the action to apply to the resolved book."""
    reference_text: Optional[str] = None
    position: Optional[int] = None
    action: Optional[str] = None


INTENT_PARAMETERS: Dict[Intent, Type[IntentParameters]] = {
    Intent.UPDATE_PROGRESS: ProgressParameters,
    Intent.START_BOOK: BookParameters,
    Intent.FINISH_BOOK: BookParameters,
    Intent.GET_STATUS: BookParameters,
    Intent.LIST_READING: NoParameters,
    Intent.SEARCH_BOOK: SearchParameters,
    Intent.BOOK_DETAILS: BookParameters,
    Intent.FILTER_BOOKS: FilterParameters,
    Intent.UNREAD_BOOKS: FilterParameters,
    Intent.RATINGS_QUERY: FilterParameters,
    Intent.COMPARE_BOOKS: CompareParameters,
    Intent.TIME_QUERY: TimeParameters,
    Intent.SIMILAR_BOOKS: BookParameters,
    Intent.ADD_BOOK: AddBookParameters,
    Intent.RECOMMEND: RecommendParameters,
    Intent.GET_STATS: NoParameters,
    Intent.HELP: HelpParameters,
    Intent.PRONOUN_REFERENCE: ReferenceParameters,
    Intent.LIST_REFERENCE: ReferenceParameters,
    Intent.NEXT_PAGE: NoParameters,
    Intent.PREVIOUS_PAGE: NoParameters,
    Intent.UNKNOWN: NoParameters,
}


def parameters_for(intent: Intent, data: Optional[dict] = None) -> IntentParameters:
    """
    Build the parameter record for an intent from a loose dict.

    :param intent: Classified intent
    :param data: Raw parameter values (e.g. decoded AI JSON)
    :return: Instance of the intent's record type
    """
    return INTENT_PARAMETERS.get(intent, NoParameters).from_dict(data)
