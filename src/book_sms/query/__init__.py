"""
Natural-language filters and storage queries.
"""
from .filters import ParsedFilters, StorageQuery
from .filter_parser import parse_filters
from .query_builder import build_query, combine_and, combine_or

__all__ = [
    "ParsedFilters",
    "StorageQuery",
    "parse_filters",
    "build_query",
    "combine_and",
    "combine_or",
]
