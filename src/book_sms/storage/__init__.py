"""
Book storage collaborators.
"""
from .base import BOOK_FIELDS, READ_VALUES, BookStorage
from .memory_storage import InMemoryBookStorage, apply_order, matches_where
from .library_loader import BookLibraryLoader

__all__ = [
    "BOOK_FIELDS",
    "READ_VALUES",
    "BookStorage",
    "InMemoryBookStorage",
    "apply_order",
    "matches_where",
    "BookLibraryLoader",
]
