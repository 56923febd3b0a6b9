"""
Input validation for inbound messages.
"""
from .input_validator import EMPTY_MESSAGE, TOO_LONG_MESSAGE, InputValidator

__all__ = ["InputValidator", "EMPTY_MESSAGE", "TOO_LONG_MESSAGE"]
