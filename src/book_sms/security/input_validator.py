"""
Inbound SMS validation.

OOP: Single Responsibility - Only checks and cleans raw message text.
"""
from typing import Optional

from ..exceptions import ValidationError

EMPTY_MESSAGE = "Please send a message. Reply HELP for available commands."
TOO_LONG_MESSAGE = "Your message is too long. Please keep it under 1600 characters."


class InputValidator:
    """
    Validates raw message text before classification.

    SMS gateways concatenate long texts, so the cap is on the whole body.
    """

    MAX_MESSAGE_LENGTH = 1600

    @staticmethod
    def validate_message(text: Optional[str], max_length: Optional[int] = None) -> str:
        """
        Check an inbound message and return it cleaned.

        :param text: Raw message body
        :param max_length: Override for MAX_MESSAGE_LENGTH
        :return: Message with NUL bytes removed and surrounding whitespace stripped
        :raises ValidationError: If the message is empty or too long
        """
        limit = max_length or InputValidator.MAX_MESSAGE_LENGTH

        if text is None or not isinstance(text, str):
            raise ValidationError("Message must be a string", EMPTY_MESSAGE)

        cleaned = text.replace("\x00", "").strip()
        if not cleaned:
            raise ValidationError("Empty message", EMPTY_MESSAGE)

        if len(text) > limit:
            user_message = TOO_LONG_MESSAGE
            if limit != InputValidator.MAX_MESSAGE_LENGTH:
                user_message = f"Your message is too long. Please keep it under {limit} characters."
            raise ValidationError(f"Message exceeds maximum length of {limit} characters", user_message)

        return cleaned

    @staticmethod
    def clean_sender(sender: Optional[str]) -> str:
        """
        Trim a sender id; the result is used verbatim as the context key.

        :raises ValidationError: If the sender is missing
        """
        if sender is None or not isinstance(sender, str) or not sender.strip():
            raise ValidationError("Missing sender", "Invalid request")
        return sender.strip()
