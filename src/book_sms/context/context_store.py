"""
Conversation context store.

Manages ConversationContext instances per sender with a sliding TTL.
"""
import copy
import logging
import threading
import time
from dataclasses import fields
from typing import Callable, Dict, Optional

from ..config_validator import mask_sender
from .conversation_context import BookRef, ConfirmationType, ConversationContext

logger = logging.getLogger(__name__)


class ContextStore:
    """
    In-memory context store keyed by sender id.

    - get() evicts expired entries on read
    - update() merges fields and slides the expiry window
    - clear() removes unconditionally

    Single process only. Each call holds the store lock, so one update is
    atomic; concurrent turns for the same sender are last-write-wins.
    """

    _PROTECTED_FIELDS = {"sender", "timestamp", "expires_at"}

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.time):
        """
        Initialize context store.

        :param ttl_seconds: Idle time after which a context expires
        :param clock: Returns the current time in seconds
        """
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")

        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._contexts: Dict[str, ConversationContext] = {}
        self._lock = threading.Lock()
        self._field_names = {f.name for f in fields(ConversationContext)}

    def get(self, sender: str) -> Optional[ConversationContext]:
        """
        Get the live context for a sender.

        :param sender: Sender identifier, used verbatim
        :return: A copy of the context, or None if missing or expired
        """
        with self._lock:
            context = self._contexts.get(sender)
            if context is None:
                return None

            if context.is_expired(self._clock()):
                del self._contexts[sender]
                logger.debug(f"Context for {mask_sender(sender)} expired and was evicted")
                return None

            return copy.deepcopy(context)

    def update(self, sender: str, updates: Optional[dict] = None, **kwargs) -> ConversationContext:
        """
        Merge fields into a sender's context, creating it if needed.

        Unspecified fields keep their values. Every call refreshes
        timestamp and expires_at.

        :param sender: Sender identifier
        :param updates: Field values to merge
        :return: A copy of the updated context
        :raises ValueError: On unknown or protected field names
        """
        changes = dict(updates or {})
        changes.update(kwargs)

        for name in changes:
            if name not in self._field_names or name in self._PROTECTED_FIELDS:
                raise ValueError(f"Unknown context field: {name}")

        with self._lock:
            now = self._clock()
            context = self._contexts.get(sender)
            if context is None or context.is_expired(now):
                context = ConversationContext(sender=sender)
                self._contexts[sender] = context

            for name, value in changes.items():
                setattr(context, name, self._coerce(name, value))

            context.timestamp = now
            context.expires_at = now + self.ttl_seconds
            return copy.deepcopy(context)

    def clear(self, sender: str) -> None:
        """Remove a sender's context."""
        with self._lock:
            self._contexts.pop(sender, None)

    def purge_expired(self) -> int:
        """
        Evict every expired context.

        :return: Number of contexts removed
        """
        with self._lock:
            now = self._clock()
            expired = [s for s, c in self._contexts.items() if c.is_expired(now)]
            for sender in expired:
                del self._contexts[sender]
            return len(expired)

    def __len__(self) -> int:
        return len(self._contexts)

    @staticmethod
    def _coerce(name: str, value):
        """Accept plain dicts/strings from handler payloads."""
        if name == "last_search_results" and value is not None:
            return [
                item if isinstance(item, BookRef) else BookRef(id=item["id"], title=item["title"])
                for item in value
            ]
        if name == "last_search_results":
            return []
        if name == "confirmation_type" and value is not None:
            return ConfirmationType(value)
        return value
