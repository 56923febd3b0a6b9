"""
Configuration loader.

Builds BookSmsConfig from environment variables (and a local .env file).
"""
from dotenv import load_dotenv
from .config import BookSmsConfig
from .config_validator import (
    get_bool_env,
    get_float_env,
    get_int_env,
    get_optional_env,
    validate_library_path,
)


def load_config_from_env(use_dotenv: bool = True) -> BookSmsConfig:
    """
    Load configuration from environment variables with validation.

    Usage:
        config = load_config_from_env()
        app = BookSmsApp(config)
        app.initialize()

    :param use_dotenv: Load a .env file first (local development)
    :return: Validated BookSmsConfig instance
    :raises: ConfigurationError if a value is malformed
    """
    if use_dotenv:
        load_dotenv()

    config = BookSmsConfig(
        context_ttl_seconds=get_int_env("CONTEXT_TTL_SECONDS", 300, minimum=1),
        enable_ai_classifier=get_bool_env("ENABLE_AI_CLASSIFIER", True),
        llm_provider=get_optional_env("LLM_PROVIDER", default="openai"),
        llm_model=get_optional_env("LLM_MODEL", default="gpt-4o-mini"),
        llm_temperature=get_float_env("LLM_TEMPERATURE", 0.1),
        llm_max_tokens=get_int_env("LLM_MAX_TOKENS", 500, minimum=1),
        ai_timeout_seconds=get_float_env("AI_TIMEOUT_SECONDS", 30.0, minimum=1.0),
        ai_max_retries=get_int_env("AI_MAX_RETRIES", 2),
        ai_confidence_threshold=get_float_env("AI_CONFIDENCE_THRESHOLD", 0.7),
        results_page_size=get_int_env("RESULTS_PAGE_SIZE", 5, minimum=1),
        max_message_length=get_int_env("MAX_MESSAGE_LENGTH", 1600, minimum=1),
        split_long_replies=get_bool_env("SPLIT_LONG_REPLIES", False),
        rate_limit=get_optional_env("RATE_LIMIT", default="20 per minute"),
        log_level=get_optional_env("LOG_LEVEL", default="INFO").upper(),
        library_path=get_optional_env("LIBRARY_PATH"),
    )

    if config.library_path:
        validate_library_path(config.library_path)

    return config
