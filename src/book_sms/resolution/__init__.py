"""
Resolution layer: conversational references and book titles.

Key components:
- ReferenceResolver: "it" / "the 2nd one" against conversation context
- TitleMatchPolicy: exact -> substring -> fuzzy title lookup
"""
from .reference_resolver import (
    ReferenceResolver,
    ResolutionResult,
    ResolutionStatus,
    is_pronoun_reference,
    ordinal_position,
)
from .title_matcher import (
    ExactTitleMatcher,
    FuzzyTitleMatcher,
    SubstringTitleMatcher,
    TitleMatch,
    TitleMatcher,
    TitleMatchPolicy,
    normalize_title,
)

__all__ = [
    "ReferenceResolver",
    "ResolutionResult",
    "ResolutionStatus",
    "is_pronoun_reference",
    "ordinal_position",
    "ExactTitleMatcher",
    "FuzzyTitleMatcher",
    "SubstringTitleMatcher",
    "TitleMatch",
    "TitleMatcher",
    "TitleMatchPolicy",
    "normalize_title",
]
