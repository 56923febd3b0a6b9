import logging
from typing import Any

from langchain_groq import ChatGroq
from langchain_openai import ChatOpenAI

from .config_validator import get_required_env
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


KNOWN_GROQ_MODELS = [
    "llama-3.1-8b-instant",
    "llama-3.3-70b-versatile",
    "mixtral-8x7b-32768",
]


def get_llm_instance(
    provider: str,
    model: str,
    temperature: float = 0.1,
    max_tokens: int = 500,
    timeout: float = 30.0,
) -> Any:
    """
    Factory to return a ready-to-use chat model based on provider name.

    Retries are handled by LangChainCompletionService, so the client's own
    retry loop is switched off.

    :param provider: 'openai' or 'groq'
    :param model: Model name
    :param temperature: Sampling temperature
    :param max_tokens: Completion token cap
    :param timeout: Request timeout in seconds
    :return: LangChain chat model
    :raises: ConfigurationError if the provider is unknown or its API key is missing
    """
    provider = provider.lower()

    if provider == "groq":
        api_key = get_required_env(
            "GROQ_API_KEY",
            description="Groq API key for intent classification (https://console.groq.com/keys)"
        )

        if model not in KNOWN_GROQ_MODELS:
            # Groq adds models often, so only warn
            logger.warning(
                f"Model '{model}' not in known Groq models. Known models: {KNOWN_GROQ_MODELS}"
            )

        return ChatGroq(
            model=model,
            api_key=api_key,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            max_retries=0,
        )

    elif provider == "openai":
        api_key = get_required_env(
            "OPENAI_API_KEY",
            description="OpenAI API key for intent classification (https://platform.openai.com/api-keys)"
        )
        return ChatOpenAI(
            model=model,
            api_key=api_key,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            max_retries=0,
        )

    else:
        raise ConfigurationError(f"Unknown LLM provider: {provider}. Use 'openai' or 'groq'.")
