from typing import Optional


class BookSmsError(Exception):
    """Base exception for the SMS book service."""

    user_message = "Oops! Something went wrong on my end. Please try again."

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        if user_message is not None:
            self.user_message = user_message


class ConfigurationError(BookSmsError):
    """Raised when required configuration is missing or invalid."""


class ValidationError(BookSmsError):
    """Raised when a parameter is missing or invalid. Message is safe to show."""

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message, user_message or message)


class NotFoundError(BookSmsError):
    """Raised when a referenced book does not exist."""

    def __init__(self, search_term: str, user_message: Optional[str] = None):
        super().__init__(
            f"Book not found: {search_term}",
            user_message or f'I couldn\'t find "{search_term}" in your library. Try a different search term.',
        )
        self.search_term = search_term


class AmbiguousReferenceError(BookSmsError):
    """Raised when a pronoun or list reference cannot be resolved."""

    def __init__(self, reason: str, user_message: str):
        super().__init__(f"Unresolved reference: {reason}", user_message)
        self.reason = reason


class CollaboratorError(BookSmsError):
    """Raised when an external collaborator (storage, AI) fails."""

    user_message = "Sorry, I'm having trouble accessing your bookshelf right now. Please try again in a moment."


class StorageError(CollaboratorError):
    """Raised by storage backends."""


class AIServiceError(CollaboratorError):
    """Raised by the AI completion service."""

    user_message = "I'm having trouble connecting to external services. Please try again shortly."

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        status_code: Optional[int] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.code = code
        self.status_code = status_code
        self.retryable = retryable
