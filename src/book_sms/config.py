from dataclasses import dataclass
from typing import Optional


@dataclass
class BookSmsConfig:
    # Conversation context
    context_ttl_seconds: int = 300

    # LLM / AI classifier
    enable_ai_classifier: bool = True
    llm_provider: str = "openai"
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.1
    llm_max_tokens: int = 500
    ai_timeout_seconds: float = 30.0
    ai_max_retries: int = 2
    ai_confidence_threshold: float = 0.7

    # Replies
    results_page_size: int = 5
    max_message_length: int = 1600
    split_long_replies: bool = False

    # Webhook
    rate_limit: str = "20 per minute"
    log_level: str = "INFO"

    # Optional JSON file with seed books for the in-memory storage
    library_path: Optional[str] = None
