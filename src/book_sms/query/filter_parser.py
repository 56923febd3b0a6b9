"""
Natural-language filter parser.

Turns phrases like "unread fantasy under 300 pages" into ParsedFilters.
Every pass below is independent: one sentence can set any subset of fields
and all of them survive.
"""
import re
from typing import List, Optional, Pattern, Tuple

from .filters import ParsedFilters

# Longer phrases first so "historical fiction" beats "history".
GENRE_SYNONYMS: List[Tuple[Pattern, str]] = [
    (re.compile(r"\b(?:science[\s-]?fiction|sci[\s-]?fi|scifi|sf)\b"), "Science Fiction"),
    (re.compile(r"\bhistorical\s+fiction\b"), "Historical Fiction"),
    (re.compile(r"\bliterary\s+fiction\b"), "Literary Fiction"),
    (re.compile(r"\b(?:young\s+adult|ya)\b"), "Young Adult"),
    (re.compile(r"\bnon[\s-]?fiction\b"), "Non-Fiction"),
    (re.compile(r"\bself[\s-]?help\b"), "Self-Help"),
    (re.compile(r"\bgraphic\s+novels?\b"), "Graphic Novel"),
    (re.compile(r"\bfantasy\b"), "Fantasy"),
    (re.compile(r"\bmyster(?:y|ies)\b"), "Mystery"),
    (re.compile(r"\bthrillers?\b"), "Thriller"),
    (re.compile(r"\bromance\b"), "Romance"),
    (re.compile(r"\bhorror\b"), "Horror"),
    (re.compile(r"\bbiograph(?:y|ies)\b"), "Biography"),
    (re.compile(r"\bmemoirs?\b"), "Memoir"),
    (re.compile(r"\bdystopi(?:a|an)\b"), "Dystopian"),
    (re.compile(r"\bpoetry\b"), "Poetry"),
    (re.compile(r"\bclassics?\b"), "Classics"),
    (re.compile(r"\bhistory\b"), "History"),
]

# Checked in this order; "haven't read" must be seen before any "read" test
# and "did not finish" before any "finish" test.
READ_STATUS_PATTERNS: List[Tuple[Pattern, str]] = [
    (re.compile(
        r"\b(?:unread|haven'?t\s+(?:yet\s+)?(?:read|started)|have\s+not\s+(?:yet\s+)?(?:read|started)"
        r"|not\s+(?:yet\s+)?(?:read|started)|never\s+read|tbr|to[\s-]be[\s-]read)\b"
    ), "unread"),
    (re.compile(r"\b(?:dnf|did\s+not\s+finish|didn'?t\s+finish|abandoned|gave\s+up\s+on)\b"), "dnf"),
    (re.compile(
        r"\b(?:currently\s+reading|reading\s+now|in[\s-]progress"
        r"|(?<!finished\s)(?<!done\s)(?<!stopped\s)reading)\b"
    ), "reading"),
    (re.compile(
        r"\b(?:finished|completed|already\s+read|have\s+read|i'?ve\s+read"
        r"|read\s+(?:in|during|last|this)|books?\s+i\s+read)\b"
    ), "completed"),
]

_NUMBER_NOT_RATING = r"(\d+)\b(?!\s*(?:\+|-?\s*stars?\b|\.\d))"
PAGES_MAX_PATTERN = re.compile(
    r"\b(?:under|less\s+than|fewer\s+than|below|shorter\s+than|at\s+most)\s+" + _NUMBER_NOT_RATING
)
PAGES_MIN_PATTERN = re.compile(
    r"\b(?:over|more\s+than|above|longer\s+than|at\s+least)\s+" + _NUMBER_NOT_RATING
)
RATING_WORD_BEFORE = re.compile(r"\b(?:rated|rating|ratings)\s*$")
SHORT_PATTERN = re.compile(r"\b(?:short(?:er|est)?|quick\s+reads?)\b")
LONG_PATTERN = re.compile(r"\b(?:long(?:er|est)?|chunky)\b")
DEFAULT_SHORT_MAX_PAGES = 200
DEFAULT_LONG_MIN_PAGES = 500

_STARS = r"([1-5](?:\.\d)?)"
RATING_EXACT_PATTERNS = [
    re.compile(r"\bonly\s+([1-5])[\s-]?stars?\b"),
    re.compile(r"\b([1-5])[\s-]?stars?\s+only\b"),
    re.compile(r"\bexactly\s+([1-5])\s*stars?\b"),
]
RATING_MIN_PATTERNS = [
    re.compile(r"\b" + _STARS + r"\s*\+\s*(?:stars?\b|rating\b)?"),
    re.compile(r"\b(?:at\s+least|above|over|minimum(?:\s+of)?|more\s+than)\s+" + _STARS + r"\s*stars?\b"),
    re.compile(r"\b(?:rated|rating)\s+(?:above|over|at\s+least)\s+" + _STARS + r"\b"),
    re.compile(r"\b" + _STARS + r"\s*stars?\s+or\s+(?:more|higher|above|better)\b"),
]
RATING_MAX_PATTERNS = [
    re.compile(r"\b(?:below|under|less\s+than|at\s+most)\s+" + _STARS + r"\s*stars?\b"),
    re.compile(r"\b(?:rated|rating)\s+(?:below|under|at\s+most)\s+" + _STARS + r"\b"),
    re.compile(r"\b" + _STARS + r"\s*stars?\s+or\s+(?:less|lower|below|fewer|worse)\b"),
]
RATING_BARE_PATTERN = re.compile(r"\b([1-5])[\s-]?stars?\b")
HIGHLY_RATED_PATTERN = re.compile(r"\b(?:highly|top|well)[\s-]rated\b")
DEFAULT_HIGHLY_RATED_MIN = 4

YEAR_PREPOSITION_PATTERN = re.compile(r"\b(?:in|from|during|since)\s+((?:19|20)\d{2})\b")
YEAR_BARE_PATTERN = re.compile(r"\b((?:19|20)\d{2})\b(?!\s*(?:pages?|pgs?)\b)")
COMPARATOR_BEFORE = re.compile(r"\b(?:under|over|than|below|above|least|most)\s*$")

MONTH_PATTERNS: List[Tuple[Pattern, int]] = [
    (re.compile(r"\b(?:january|jan)\b"), 1),
    (re.compile(r"\b(?:february|feb)\b"), 2),
    (re.compile(r"\b(?:march|mar)\b"), 3),
    (re.compile(r"\b(?:april|apr)\b"), 4),
    # "may" is also a verb
    (re.compile(r"\b(?:in|during|from)\s+may\b|\bmay\s+(?:19|20)\d{2}\b"), 5),
    (re.compile(r"\b(?:june|jun)\b"), 6),
    (re.compile(r"\b(?:july|jul)\b"), 7),
    (re.compile(r"\b(?:august|aug)\b"), 8),
    (re.compile(r"\b(?:september|sept|sep)\b"), 9),
    (re.compile(r"\b(?:october|oct)\b"), 10),
    (re.compile(r"\b(?:november|nov)\b"), 11),
    (re.compile(r"\b(?:december|dec)\b"), 12),
]

SORT_EXPLICIT_PATTERN = re.compile(
    r"\bsort(?:ed)?\s+by\s+(ratings?|stars|pages?|length|title|author|date(?:\s+(?:read|finished))?|finished)"
    r"(?:\s+(asc|ascending|desc|descending))?\b"
)
SORT_FIELD_ALIASES = {
    "rating": "rating", "ratings": "rating", "stars": "rating",
    "page": "pages", "pages": "pages", "length": "pages",
    "title": "title", "author": "author",
    "date": "date", "date read": "date", "date finished": "date", "finished": "date",
}
SORT_SUPERLATIVES: List[Tuple[Pattern, str, str]] = [
    (re.compile(r"\b(?:highest|best|top)[\s-]rated\b|\bhighest\b|\bbest\b"), "rating", "desc"),
    (re.compile(r"\b(?:lowest|worst)\b"), "rating", "asc"),
    (re.compile(r"\bshortest\b"), "pages", "asc"),
    (re.compile(r"\blongest\b"), "pages", "desc"),
    (re.compile(r"\b(?:newest|latest|most\s+recent(?:ly)?)\b"), "date", "desc"),
    (re.compile(r"\b(?:oldest|earliest)\b"), "date", "asc"),
]

LIMIT_PATTERN = re.compile(
    r"\b(?:top|first|show(?:\s+me)?|list|give\s+me)\s+(\d{1,2})\b(?!\s*(?:\+|-?\s*stars?\b|pages?\b|%))"
)
AUTHOR_PATTERN = re.compile(r"\b[Bb]y\s+([A-Z][\w'.\-]*(?:\s+[A-Z][\w'.\-]*)*)")
SORT_BEFORE = re.compile(r"\bsort(?:ed)?\s*$", re.IGNORECASE)


def parse_filters(text: str) -> ParsedFilters:
    """
    Extract filter criteria from free text.

    Pure function of its input: no clock, no storage.

    :param text: User message
    :return: ParsedFilters with every criterion found
    """
    filters = ParsedFilters()
    if not text or not text.strip():
        return filters

    lower = text.lower()

    filters.genre = _parse_genre(lower)
    filters.read_status = _parse_read_status(lower)
    filters.min_pages, filters.max_pages = _parse_page_bounds(lower)
    filters.min_rating, filters.max_rating = _parse_rating_bounds(lower)
    filters.year = _parse_year(lower)
    filters.month = _parse_month(lower)
    filters.sort_by, filters.sort_order = _parse_sort(lower)
    filters.limit = _parse_limit(lower)
    filters.author = _parse_author(text)

    return filters


def _parse_genre(lower: str) -> Optional[str]:
    for pattern, canonical in GENRE_SYNONYMS:
        if pattern.search(lower):
            return canonical
    return None


def _parse_read_status(lower: str) -> Optional[str]:
    for pattern, status in READ_STATUS_PATTERNS:
        if pattern.search(lower):
            return status
    return None


def _first_page_number(pattern: Pattern, lower: str) -> Optional[int]:
    for match in pattern.finditer(lower):
        if RATING_WORD_BEFORE.search(lower[:match.start()]):
            continue
        return int(match.group(1))
    return None


def _parse_page_bounds(lower: str) -> Tuple[Optional[int], Optional[int]]:
    max_pages = _first_page_number(PAGES_MAX_PATTERN, lower)
    min_pages = _first_page_number(PAGES_MIN_PATTERN, lower)

    if max_pages is None and SHORT_PATTERN.search(lower):
        max_pages = DEFAULT_SHORT_MAX_PAGES
    if min_pages is None and LONG_PATTERN.search(lower):
        min_pages = DEFAULT_LONG_MIN_PAGES

    return min_pages, max_pages


def _clamp_rating(value: str) -> float:
    rating = float(value)
    rating = min(5.0, max(1.0, rating))
    return int(rating) if rating.is_integer() else rating


def _first_rating(patterns: List[Pattern], lower: str) -> Optional[float]:
    for pattern in patterns:
        match = pattern.search(lower)
        if match:
            return _clamp_rating(next(g for g in match.groups() if g is not None))
    return None


def _parse_rating_bounds(lower: str) -> Tuple[Optional[float], Optional[float]]:
    exact = _first_rating(RATING_EXACT_PATTERNS, lower)
    if exact is not None:
        return exact, exact

    min_rating = _first_rating(RATING_MIN_PATTERNS, lower)
    max_rating = _first_rating(RATING_MAX_PATTERNS, lower)

    if min_rating is None and max_rating is None:
        bare = RATING_BARE_PATTERN.search(lower)
        if bare:
            min_rating = _clamp_rating(bare.group(1))
        elif HIGHLY_RATED_PATTERN.search(lower):
            min_rating = DEFAULT_HIGHLY_RATED_MIN

    return min_rating, max_rating


def _parse_year(lower: str) -> Optional[int]:
    match = YEAR_PREPOSITION_PATTERN.search(lower)
    if match:
        return int(match.group(1))

    for match in YEAR_BARE_PATTERN.finditer(lower):
        if COMPARATOR_BEFORE.search(lower[:match.start()]):
            continue
        return int(match.group(1))
    return None


def _parse_month(lower: str) -> Optional[int]:
    for pattern, month in MONTH_PATTERNS:
        if pattern.search(lower):
            return month
    return None


def _parse_sort(lower: str) -> Tuple[Optional[str], Optional[str]]:
    explicit = SORT_EXPLICIT_PATTERN.search(lower)
    if explicit:
        field = SORT_FIELD_ALIASES[re.sub(r"\s+", " ", explicit.group(1))]
        direction = explicit.group(2)
        if direction:
            direction = "asc" if direction.startswith("asc") else "desc"
        return field, direction

    for pattern, field, direction in SORT_SUPERLATIVES:
        if pattern.search(lower):
            return field, direction
    return None, None


def _parse_limit(lower: str) -> Optional[int]:
    match = LIMIT_PATTERN.search(lower)
    if match:
        limit = int(match.group(1))
        return limit if limit > 0 else None
    return None


def _parse_author(text: str) -> Optional[str]:
    for match in AUTHOR_PATTERN.finditer(text):
        if SORT_BEFORE.search(text[:match.start()]):
            continue
        return match.group(1).strip().rstrip(".")
    return None
