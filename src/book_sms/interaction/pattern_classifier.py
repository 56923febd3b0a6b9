"""
Deterministic pattern classifier for SMS messages.

Classifies text into intents with an ordered rule table. First match wins,
so the order below is part of the behavior:

    help, next_page, previous_page, list_reference, pronoun_reference,
    update_progress, compare_books, book_details, similar_books, add_book,
    time_query, ratings_query, unread_books, recommend, list_reading,
    get_status, filter_books, finish_book, start_book, get_stats,
    search_book

update_progress sits before finish_book so "page 50 done" is progress.
No LLM, no network: fast, safe, and predictable.
"""
import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern, Tuple

from ..query.filter_parser import parse_filters
from ..resolution.reference_resolver import ORDINAL_REFERENCE, PRONOUN_REFERENCE, ordinal_position
from .classification import MAX_PATTERN_CONFIDENCE, ClassificationResult
from .intent_parameters import (
    AddBookParameters,
    BookParameters,
    CompareParameters,
    FilterParameters,
    HelpParameters,
    IntentParameters,
    NoParameters,
    ProgressParameters,
    RecommendParameters,
    ReferenceParameters,
    SearchParameters,
    TimeParameters,
    parameters_for,
)
from .intent_types import Intent

logger = logging.getLogger(__name__)

PATTERN_BASE_CONFIDENCE = 0.7
KEYWORD_BASE_CONFIDENCE = 0.3
KEYWORD_MAX_CONFIDENCE = 0.6
KEYWORD_STEP = 0.1
BARE_NUMBER_CONFIDENCE = 0.6
UNKNOWN_CONFIDENCE = 0.1

Extractor = Callable[[Optional[re.Match], str], IntentParameters]


@dataclass(frozen=True)
class ClassificationRule:
    """One row of the rule table."""
    name: str
    intent: Intent
    patterns: Tuple[Pattern, ...]
    extractor: Extractor
    keywords: Tuple[str, ...] = ()
    predicate: Optional[Callable[[str], bool]] = None

    def match(self, text: str) -> Tuple[bool, Optional[re.Match]]:
        """
        :param text: Stripped message text (original case)
        :return: (matched, regex match or None for predicate rules)
        """
        if self.predicate is not None:
            return self.predicate(text), None
        for pattern in self.patterns:
            found = pattern.search(text)
            if found:
                return True, found
        return False, None


def _compile(*patterns: str) -> Tuple[Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


def _clean_title(value: Optional[str]) -> Optional[str]:
    """Trim whitespace, trailing punctuation and surrounding quotes."""
    if not value:
        return None
    title = value.strip().rstrip("?!.,;:").strip()
    title = title.strip("\"'“”‘’").strip()
    return title or None


def _group(match: Optional[re.Match], name: str) -> Optional[str]:
    if match is None or name not in match.re.groupindex:
        return None
    return match.group(name)


# Verb phrase in front of a reference -> intent applied to the resolved book.
REFERENCE_ACTIONS = (
    (r"start(?:ed)?|begin|began", Intent.START_BOOK),
    (r"finish(?:ed)?|done with|completed?", Intent.FINISH_BOOK),
    (r"(?:more\s+)?like|similar to", Intent.SIMILAR_BOOKS),
    (r"tell me (?:more )?about|more about|about|details(?: on| for| about)?|info(?: on| about)?", Intent.BOOK_DETAILS),
)
_ACTION_PREFIX = "|".join(pattern for pattern, _ in REFERENCE_ACTIONS)


def _action_for(verb: Optional[str]) -> Optional[str]:
    if not verb:
        return None
    for pattern, intent in REFERENCE_ACTIONS:
        if re.fullmatch(pattern, verb.strip(), re.IGNORECASE):
            return intent.value
    return None


def _extract_help(match, text) -> HelpParameters:
    topic = _group(match, "topic")
    return HelpParameters(topic=topic.lower() if topic else None)


def _extract_none(match, text) -> NoParameters:
    return NoParameters()


def _extract_reference(match, text) -> ReferenceParameters:
    reference = _group(match, "ref")
    return ReferenceParameters(
        reference_text=reference.strip() if reference else None,
        position=ordinal_position(reference) if reference else None,
        action=_action_for(_group(match, "action")),
    )


PAGE_PATTERNS = _compile(
    r"\b(?:page|pg\.?|p\.)\s*(\d+)\b",
    r"\b(?:i'?m|im|i am)\s+(?:on|at)\s+(\d+)\b",
)
PERCENT_PATTERN = re.compile(r"\b(\d+(?:\.\d+)?)\s*(?:%|percent\b)", re.IGNORECASE)
PROGRESS_TITLE_PATTERN = re.compile(
    r"(?:\d\s*(?:%|percent)?|page\s+\d+)\s+(?:of|in|through|into)\s+(?P<title>.+)$",
    re.IGNORECASE,
)


def _extract_progress(match, text) -> ProgressParameters:
    page_number = None
    for pattern in PAGE_PATTERNS:
        found = pattern.search(text)
        if found:
            page_number = int(found.group(1))
            break

    percentage = None
    found = PERCENT_PATTERN.search(text)
    if found:
        value = float(found.group(1))
        # Out-of-range percentages are rejected, not clamped.
        percentage = value if 0 <= value <= 100 else None

    title = None
    found = PROGRESS_TITLE_PATTERN.search(text)
    if found:
        candidate = _clean_title(found.group("title"))
        if candidate and not candidate.isdigit():
            title = candidate

    return ProgressParameters(page_number=page_number, percentage=percentage, book_title=title)


def _comparison_type(text: str) -> Optional[str]:
    lower = text.lower()
    if re.search(r"\b(?:longer|shorter|pages?|length|thicker)\b", lower):
        return "pages"
    if re.search(r"\b(?:better|rating|rated|stars?|liked)\b", lower):
        return "rating"
    if re.search(r"\b(?:first|earlier|sooner|when)\b", lower):
        return "date_read"
    return None


def _extract_compare(match, text) -> CompareParameters:
    titles = [_clean_title(_group(match, "a")), _clean_title(_group(match, "b"))]
    return CompareParameters(
        book_titles=[t for t in titles if t],
        comparison_type=_comparison_type(text),
    )


def _extract_book_title(match, text) -> BookParameters:
    title = _clean_title(_group(match, "title"))
    if title:
        title = re.sub(r"^(?:reading|the book)\s+", "", title, flags=re.IGNORECASE) or None
    return BookParameters(book_title=title)


ADD_DETAILS_PATTERN = re.compile(
    r"^(?P<title>.+?)(?:\s+by\s+(?P<author>.+?))?(?:\s*[,;]\s*(?P<pages>\d+)\s*(?:pages?|pgs?|p)?)?\s*$",
    re.IGNORECASE,
)


def _extract_add(match, text) -> AddBookParameters:
    rest = (_group(match, "rest") or "").strip()
    if not rest:
        return AddBookParameters()

    found = ADD_DETAILS_PATTERN.match(rest)
    if not found:
        return AddBookParameters(title=_clean_title(rest))

    genre = parse_filters(rest).genre
    pages = found.group("pages")
    return AddBookParameters(
        title=_clean_title(found.group("title")),
        author=_clean_title(found.group("author")),
        genre=genre,
        pages=int(pages) if pages else None,
    )


MONTH_NAMES = (
    "january", "february", "march", "april", "may", "june", "july",
    "august", "september", "october", "november", "december",
)
TIMEFRAME_PATTERN = re.compile(
    r"\b(?P<timeframe>(?:last|this|past)\s+(?:week|month|year)|yesterday|today"
    r"|(?:19|20)\d{2}|" + "|".join(MONTH_NAMES) + r")\b",
    re.IGNORECASE,
)
YEAR_TOKEN = re.compile(r"\b((?:19|20)\d{2})\b")


def _extract_time(match, text) -> TimeParameters:
    lower = text.lower()
    found = TIMEFRAME_PATTERN.search(lower)
    year = YEAR_TOKEN.search(lower)
    month = None
    for index, name in enumerate(MONTH_NAMES, start=1):
        if re.search(rf"\b{name}\b", lower):
            month = index
            break
    return TimeParameters(
        timeframe=re.sub(r"\s+", " ", found.group("timeframe")) if found else None,
        year=int(year.group(1)) if year else None,
        month=month,
    )


def _extract_filters(match, text) -> FilterParameters:
    return FilterParameters.from_filters(parse_filters(text))


def _extract_unread(match, text) -> FilterParameters:
    params = _extract_filters(match, text)
    params.read_status = "unread"
    return params


def _extract_recommend(match, text) -> RecommendParameters:
    return RecommendParameters(genre=parse_filters(text).genre)


def _extract_search(match, text) -> SearchParameters:
    return SearchParameters(search_term=_clean_title(_group(match, "term")))


FILTER_NOUN_PATTERN = re.compile(r"\b(?:books?|novels?|reads|titles?|show|list|find)\b", re.IGNORECASE)


def _filter_predicate(text: str) -> bool:
    return bool(FILTER_NOUN_PATTERN.search(text)) and parse_filters(text).has_criteria()


RULES: List[ClassificationRule] = [
    ClassificationRule(
        name="help",
        intent=Intent.HELP,
        patterns=_compile(
            r"^(?:help|\?|commands|menu|what can you do\??|how does this work\??)$",
            r"^help\s+(?:with\s+|on\s+|me\s+with\s+)?(?P<topic>\w+)",
        ),
        extractor=_extract_help,
        keywords=("help", "commands"),
    ),
    ClassificationRule(
        name="next_page",
        intent=Intent.NEXT_PAGE,
        patterns=_compile(r"^(?:next|more|show more|more results|continue|next page|next results)[.!]?$"),
        extractor=_extract_none,
        keywords=("next", "more"),
    ),
    ClassificationRule(
        name="previous_page",
        intent=Intent.PREVIOUS_PAGE,
        patterns=_compile(r"^(?:previous|prev|back|go back|previous page|prev page|previous results)[.!]?$"),
        extractor=_extract_none,
        keywords=("previous", "back"),
    ),
    ClassificationRule(
        name="list_reference",
        intent=Intent.LIST_REFERENCE,
        patterns=_compile(rf"^(?:(?P<action>{_ACTION_PREFIX})\s+)?(?P<ref>{ORDINAL_REFERENCE})[?.!]*$"),
        extractor=_extract_reference,
    ),
    ClassificationRule(
        name="pronoun_reference",
        intent=Intent.PRONOUN_REFERENCE,
        patterns=_compile(rf"^(?:(?P<action>{_ACTION_PREFIX})\s+)?(?P<ref>{PRONOUN_REFERENCE})[?.!]*$"),
        extractor=_extract_reference,
    ),
    ClassificationRule(
        name="update_progress",
        intent=Intent.UPDATE_PROGRESS,
        patterns=_compile(
            r"\b(?:page|pg\.?|p\.)\s*\d+\b",
            r"\b\d+(?:\.\d+)?\s*(?:%|percent\b)",
            r"\b(?:i'?m|im|i am)\s+(?:on|at)\s+\d+\b",
            r"^(?:update\s+)?progress\s*:?\s*\d",
        ),
        extractor=_extract_progress,
        keywords=("page", "percent", "progress", "through"),
    ),
    ClassificationRule(
        name="compare_books",
        intent=Intent.COMPARE_BOOKS,
        patterns=_compile(
            r"^compare\s+(?P<a>.+?)\s+(?:and|with|to|vs\.?|versus)\s+(?P<b>.+?)$",
            r"^which (?:is|was) (?:longer|shorter|better|rated higher)[:,]?\s+(?P<a>.+?)\s+or\s+(?P<b>.+?)$",
            r"^(?P<a>.+?)\s+(?:vs\.?|versus)\s+(?P<b>.+?)$",
            r"^compare\b\s*(?P<a>.*)$",
        ),
        extractor=_extract_compare,
        keywords=("compare", "vs", "versus"),
    ),
    ClassificationRule(
        name="book_details",
        intent=Intent.BOOK_DETAILS,
        patterns=_compile(
            r"^(?:tell me (?:more )?about|more about|info(?:rmation)? (?:on|about)|details (?:on|for|about)"
            r"|about|describe|what do you know about)\s+(?P<title>.+)$",
            r"^what(?:'s| is)\s+(?P<title>.+?)\s+about\??$",
            r"^(?:details|info|about)\??$",
        ),
        extractor=_extract_book_title,
        keywords=("about", "details", "info"),
    ),
    ClassificationRule(
        name="similar_books",
        intent=Intent.SIMILAR_BOOKS,
        patterns=_compile(
            r"^(?:(?:find|show|recommend|suggest)\s+(?:me\s+)?)?(?:books?|something|anything)\s+"
            r"(?:similar to|like)\s+(?P<title>.+)$",
            r"^(?:similar to|more like|more books like)\s+(?P<title>.+)$",
            r"^similar(?:\s+books)?\??$",
        ),
        extractor=_extract_book_title,
        keywords=("similar", "like"),
    ),
    ClassificationRule(
        name="add_book",
        intent=Intent.ADD_BOOK,
        patterns=_compile(r"^(?:add|new book|track|save)\b\s*:?\s*(?P<rest>.*)$"),
        extractor=_extract_add,
        keywords=("add", "new"),
    ),
    ClassificationRule(
        name="time_query",
        intent=Intent.TIME_QUERY,
        patterns=_compile(
            r"^(?:what|which|how many)\b.*\b(?:did i|have i)\s+(?:read|finish(?:ed)?|complete(?:d)?)\b",
            r"\b(?:read|finished|completed)\s+(?:in|during|last|this|since)\b",
        ),
        extractor=_extract_time,
        keywords=("when", "last", "month", "year", "week"),
    ),
    ClassificationRule(
        name="ratings_query",
        intent=Intent.RATINGS_QUERY,
        patterns=_compile(
            r"\b(?:highest|best|top|lowest|worst)[\s-]rated\b",
            r"^(?:what|which|show|list|my)\b.*\b(?:rated|ratings?|stars?)\b",
            r"\b[1-5](?:\.\d)?\s*(?:\+\s*)?[\s-]?stars?\b",
        ),
        extractor=_extract_filters,
        keywords=("rated", "rating", "ratings", "stars"),
    ),
    ClassificationRule(
        name="unread_books",
        intent=Intent.UNREAD_BOOKS,
        patterns=_compile(
            r"\b(?:unread|haven'?t\s+(?:yet\s+)?read|not\s+(?:yet\s+)?read|never\s+read|to[\s-]be[\s-]read|tbr)\b",
        ),
        extractor=_extract_unread,
        keywords=("unread", "tbr"),
    ),
    ClassificationRule(
        name="recommend",
        intent=Intent.RECOMMEND,
        patterns=_compile(
            r"\b(?:recommend|suggest|suggestion)\b",
            r"\bwhat (?:should|can) i read\b",
            r"\bwhat to read(?: next)?\b",
            r"^what next\??$",
        ),
        extractor=_extract_recommend,
        keywords=("recommend", "suggest", "next"),
    ),
    ClassificationRule(
        name="list_reading",
        intent=Intent.LIST_READING,
        patterns=_compile(
            r"\bwhat am i (?:currently )?reading\b",
            r"\bcurrently reading\b",
            r"\b(?:books?|what) (?:i'?m|i am) reading\b",
            r"\breading list\b",
            r"^(?:reading|current|current books)\??$",
        ),
        extractor=_extract_none,
        keywords=("reading", "current", "currently"),
    ),
    ClassificationRule(
        name="get_status",
        intent=Intent.GET_STATUS,
        patterns=_compile(
            r"^(?:status|my status|progress|my progress)\s+(?:of|for|on)\s+(?P<title>.+)$",
            r"^(?:status|my status|progress|my progress)\??$",
            r"\bwhere (?:am|was) i\b",
            r"\bhow far\b",
        ),
        extractor=_extract_book_title,
        keywords=("status", "progress", "far"),
    ),
    ClassificationRule(
        name="filter_books",
        intent=Intent.FILTER_BOOKS,
        patterns=(),
        extractor=_extract_filters,
        keywords=("books", "show", "list"),
        predicate=_filter_predicate,
    ),
    ClassificationRule(
        name="finish_book",
        intent=Intent.FINISH_BOOK,
        patterns=_compile(
            r"^(?:i\s+)?(?:just\s+)?(?:finished|finish|completed|complete|done with|done)\b"
            r"(?:\s+reading)?\s*(?P<title>.*)$",
            r"^(?:i'?m|i am)\s+done with\s+(?P<title>.+)$",
        ),
        extractor=_extract_book_title,
        keywords=("finish", "finished", "done", "completed"),
    ),
    ClassificationRule(
        name="start_book",
        intent=Intent.START_BOOK,
        patterns=_compile(
            r"^(?:i\s+)?(?:just\s+)?(?:started|starting|start|began|begin|beginning)\b"
            r"(?:\s+reading)?\s*(?P<title>.*)$",
            r"^(?:i'?m|i am)\s+starting\s+(?P<title>.+)$",
        ),
        extractor=_extract_book_title,
        keywords=("start", "started", "begin"),
    ),
    ClassificationRule(
        name="get_stats",
        intent=Intent.GET_STATS,
        patterns=_compile(
            r"\b(?:stats|statistics|summary|totals?)\b",
            r"\bhow many books\b",
        ),
        extractor=_extract_none,
        keywords=("stats", "statistics", "how many"),
    ),
    ClassificationRule(
        name="search_book",
        intent=Intent.SEARCH_BOOK,
        patterns=_compile(
            r"^(?:search|find|look up|lookup|look for|do i have)\b\s*(?:for\s+)?(?P<term>.*?)\??$",
        ),
        extractor=_extract_search,
        keywords=("search", "find"),
    ),
]

BARE_NUMBER_PATTERN = re.compile(r"^\d+$")


class PatternClassifier:
    """
    Deterministic intent classifier.

    Confidence bands:
    - rule match: 0.7 + 0.1 per intent keyword, capped at 0.95
    - bare integer: 0.6 (page number)
    - keyword-only: 0.3 + 0.1 per keyword, capped at 0.6
    - no match: unknown at 0.1; empty input: unknown at 0
    """

    def __init__(self, rules: Optional[List[ClassificationRule]] = None):
        """
        :param rules: Ordered rule table; defaults to RULES
        """
        self.rules = rules if rules is not None else RULES

    def classify(self, text: str) -> ClassificationResult:
        """
        Classify a message.

        :param text: Raw message text
        :return: ClassificationResult; raw_message is the text unchanged
        """
        raw_message = text if text is not None else ""
        stripped = raw_message.strip()

        if not stripped:
            return ClassificationResult(intent=Intent.UNKNOWN, confidence=0.0, raw_message=raw_message)

        lower = stripped.lower()

        for rule in self.rules:
            matched, found = rule.match(stripped)
            if not matched:
                continue

            confidence = min(
                MAX_PATTERN_CONFIDENCE,
                PATTERN_BASE_CONFIDENCE + KEYWORD_STEP * self._keyword_hits(rule.keywords, lower),
            )
            logger.debug(f"Rule '{rule.name}' matched ({confidence:.2f})")
            return ClassificationResult(
                intent=rule.intent,
                confidence=round(confidence, 2),
                parameters=rule.extractor(found, stripped),
                raw_message=raw_message,
            )

        if BARE_NUMBER_PATTERN.match(stripped):
            return ClassificationResult(
                intent=Intent.UPDATE_PROGRESS,
                confidence=BARE_NUMBER_CONFIDENCE,
                parameters=ProgressParameters(page_number=int(stripped)),
                raw_message=raw_message,
            )

        fallback = self._keyword_fallback(lower)
        if fallback is not None:
            intent, hits = fallback
            confidence = min(KEYWORD_MAX_CONFIDENCE, KEYWORD_BASE_CONFIDENCE + KEYWORD_STEP * hits)
            return ClassificationResult(
                intent=intent,
                confidence=round(confidence, 2),
                parameters=self._default_parameters(intent, stripped),
                raw_message=raw_message,
            )

        return ClassificationResult(intent=Intent.UNKNOWN, confidence=UNKNOWN_CONFIDENCE, raw_message=raw_message)

    @staticmethod
    def _keyword_hits(keywords: Tuple[str, ...], lower: str) -> int:
        return sum(1 for keyword in keywords if re.search(rf"\b{re.escape(keyword)}\b", lower))

    def _keyword_fallback(self, lower: str) -> Optional[Tuple[Intent, int]]:
        """Intent with the most keyword hits; earlier rules win ties."""
        best: Optional[Tuple[Intent, int]] = None
        for rule in self.rules:
            hits = self._keyword_hits(rule.keywords, lower)
            if hits and (best is None or hits > best[1]):
                best = (rule.intent, hits)
        return best

    @staticmethod
    def _default_parameters(intent: Intent, text: str) -> IntentParameters:
        if intent in (Intent.FILTER_BOOKS, Intent.RATINGS_QUERY, Intent.UNREAD_BOOKS):
            return _extract_filters(None, text)
        if intent == Intent.RECOMMEND:
            return _extract_recommend(None, text)
        if intent == Intent.TIME_QUERY:
            return _extract_time(None, text)
        return parameters_for(intent)
