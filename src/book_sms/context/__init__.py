"""
Conversation context domain objects.

Pure domain models with no external dependencies.
"""
from .conversation_context import BookRef, ConfirmationType, ConversationContext
from .context_store import ContextStore

__all__ = ["BookRef", "ConfirmationType", "ConversationContext", "ContextStore"]
