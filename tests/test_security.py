"""
Tests for inbound message validation.
"""
import pytest

from book_sms.exceptions import ValidationError
from book_sms.security import EMPTY_MESSAGE, TOO_LONG_MESSAGE, InputValidator


class TestInputValidator:
    """Test message validation and cleaning."""

    def test_valid_message_is_stripped(self):
        """Test surrounding whitespace is removed."""
        assert InputValidator.validate_message("  page 150\n") == "page 150"

    def test_nul_bytes_removed(self):
        assert InputValidator.validate_message("page\x00 150") == "page 150"

    @pytest.mark.parametrize("text", [None, "", "   ", "\x00\x00"])
    def test_empty_message_rejected(self, text):
        """Test empty or blank messages get the help prompt."""
        with pytest.raises(ValidationError) as exc_info:
            InputValidator.validate_message(text)
        assert exc_info.value.user_message == EMPTY_MESSAGE

    def test_message_at_limit_accepted(self):
        text = "a" * 1600
        assert InputValidator.validate_message(text) == text

    def test_message_too_long(self):
        """Test message exceeding max length is rejected."""
        with pytest.raises(ValidationError, match="exceeds maximum length") as exc_info:
            InputValidator.validate_message("a" * 1601)
        assert exc_info.value.user_message == TOO_LONG_MESSAGE

    def test_custom_limit(self):
        with pytest.raises(ValidationError) as exc_info:
            InputValidator.validate_message("hello there", max_length=5)
        assert exc_info.value.user_message == "Your message is too long. Please keep it under 5 characters."

    def test_clean_sender(self):
        assert InputValidator.clean_sender(" +15551234567 ") == "+15551234567"

    @pytest.mark.parametrize("sender", [None, "", "  "])
    def test_missing_sender(self, sender):
        with pytest.raises(ValidationError):
            InputValidator.clean_sender(sender)
