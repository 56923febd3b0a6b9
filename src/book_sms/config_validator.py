"""
Environment lookups for the service configuration.

Values that look like template placeholders (from .env.example) are treated
as unset. Numeric settings are parsed and range-checked here so the loader
stays declarative.
"""
import os
import warnings
from typing import Callable, Optional, TypeVar

from .exceptions import ConfigurationError

Number = TypeVar("Number", int, float)

PLACEHOLDER_MARKERS = ("your_", "your-", "placeholder", "xxx", "sk-0000", "gsk_0000", "replace", "todo")

TRUE_VALUES = ("1", "true", "yes", "on")


def is_placeholder(value: Optional[str]) -> bool:
    """True for template values such as 'your_openai_key'."""
    if not value:
        return False
    lowered = value.lower()
    return any(marker in lowered for marker in PLACEHOLDER_MARKERS)


def get_required_env(key: str, description: str = None) -> str:
    """
    Read a secret or other value the service cannot run without.

    :param key: Environment variable name
    :param description: What the value is for, shown in the error
    :return: Environment variable value
    :raises: ConfigurationError if unset or a placeholder
    """
    value = os.getenv(key)

    if not value:
        raise ConfigurationError(
            f"{key} is required but not set. {description or ''}\n"
            f"Export it in your shell or add {key}=... to .env (see .env.example)."
        )

    if is_placeholder(value):
        raise ConfigurationError(
            f"{key} still holds a placeholder value ({mask_secret(value)}). Set the real value."
        )

    return value


def get_optional_env(key: str, default: Optional[str] = None) -> Optional[str]:
    """
    Read an optional setting; placeholders fall back to the default.

    :param key: Environment variable name
    :param default: Value used when unset
    """
    value = os.getenv(key)
    if value is None or value == "":
        return default

    if is_placeholder(value):
        warnings.warn(f"{key} looks like a placeholder; using the default instead.", UserWarning)
        return default

    return value


def get_bool_env(key: str, default: bool) -> bool:
    value = get_optional_env(key)
    if value is None:
        return default
    return value.strip().lower() in TRUE_VALUES


def _get_number_env(key: str, default: Number, cast: Callable[[str], Number], kind: str, minimum: Number) -> Number:
    raw = get_optional_env(key)
    if raw is None:
        return default

    try:
        value = cast(raw.strip())
    except ValueError:
        raise ConfigurationError(f"{key} must be {kind}, got {raw!r}")

    if value < minimum:
        raise ConfigurationError(f"{key} must be >= {minimum}, got {value}")
    return value


def get_int_env(key: str, default: int, minimum: int = 0) -> int:
    """
    Read an integer setting.

    :raises: ConfigurationError if the value is not an integer or is below minimum
    """
    return _get_number_env(key, default, int, "an integer", minimum)


def get_float_env(key: str, default: float, minimum: float = 0.0) -> float:
    """
    Read a float setting.

    :raises: ConfigurationError if the value is not a number or is below minimum
    """
    return _get_number_env(key, default, float, "a number", minimum)


def validate_library_path(path: str) -> str:
    """
    Check the seed library file exists.

    :raises: ConfigurationError if the path is not an existing file
    """
    if not os.path.isfile(path):
        raise ConfigurationError(f"LIBRARY_PATH does not exist or is not a file: {path}")
    return path


def mask_sender(sender: Optional[str]) -> str:
    """
    Mask a sender id (phone number) for logs.

    :return: "***" followed by the last 4 characters
    """
    if not sender:
        return "unknown"
    return f"***{sender[-4:]}"


def mask_secret(secret: str, visible: int = 4) -> str:
    if not secret or len(secret) <= visible * 2:
        return "***"
    return f"{secret[:visible]}...{secret[-visible:]}"
