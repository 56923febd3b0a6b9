"""
Conversation context domain objects.

Pure domain models - no Flask, no LangChain, no storage.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ConfirmationType(str, Enum):
    """Sensitive actions that wait for a YES/NO reply."""
    FINISH_BOOK = "finish_book"
    START_BOOK = "start_book"


@dataclass(frozen=True)
class BookRef:
    """A book mentioned in a reply, as remembered between turns."""
    id: int
    title: str

    def to_dict(self) -> dict:
        return {"id": self.id, "title": self.title}


@dataclass
class ConversationContext:
    """Per-sender state carried across SMS turns."""
    sender: str
    last_intent: Optional[str] = None
    last_book_id: Optional[int] = None
    last_book_title: Optional[str] = None
    last_search_results: List[BookRef] = field(default_factory=list)
    last_results_page: int = 0
    total_results_count: int = 0
    last_query: Optional[dict] = None
    awaiting_confirmation: bool = False
    confirmation_type: Optional[ConfirmationType] = None
    awaiting_more_info: bool = False
    timestamp: float = 0.0
    expires_at: float = 0.0

    def has_last_book(self) -> bool:
        """Check if a book was referenced in an earlier turn."""
        return self.last_book_id is not None

    def has_search_results(self) -> bool:
        """Check if the last reply listed books."""
        return len(self.last_search_results) > 0

    def is_expired(self, now: float) -> bool:
        """A context is live while now <= expires_at."""
        return now > self.expires_at
