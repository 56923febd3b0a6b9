"""
AI completion service used by the AI classifier.

The classifier only sees AICompletionService; LangChainCompletionService
adapts any LangChain chat model (ChatOpenAI, ChatGroq) to it.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from langchain_core.messages import HumanMessage, SystemMessage

from ..exceptions import AIServiceError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429}


class AICompletionService(ABC):
    """Interface to an external text-completion collaborator."""

    @abstractmethod
    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """
        Run one completion.

        :param system_prompt: Instructions
        :param user_prompt: The message to classify
        :return: Raw completion text
        :raises AIServiceError: On any collaborator failure
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """True when the service can be called."""
        pass


def _status_code(error: Exception) -> Optional[int]:
    status = getattr(error, "status_code", None)
    if status is None:
        response = getattr(error, "response", None)
        status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def _is_retryable_status(status_code: Optional[int]) -> bool:
    return status_code is not None and (status_code in RETRYABLE_STATUS_CODES or status_code >= 500)


class LangChainCompletionService(AICompletionService):
    """
    Completion service backed by a LangChain chat model.

    Each call is bounded by a timeout and retried with exponential backoff
    (1s, 2s, ...) on timeouts, HTTP 429 and 5xx. Other errors fail at once.
    """

    def __init__(
        self,
        llm,
        timeout_seconds: float = 30.0,
        max_retries: int = 2,
        backoff_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        :param llm: LangChain chat model (anything with ainvoke), or None
        :param timeout_seconds: Per-attempt timeout
        :param max_retries: Retries after the first attempt
        :param backoff_seconds: First backoff delay, doubled per retry
        :param sleep: Awaitable sleep, injectable for tests
        """
        self.llm = llm
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    def is_available(self) -> bool:
        return self.llm is not None

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        if not self.is_available():
            raise AIServiceError("No language model configured", code="NOT_CONFIGURED")

        messages = [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]
        last_error: Optional[AIServiceError] = None

        for attempt in range(self.max_retries + 1):
            try:
                response = await asyncio.wait_for(self.llm.ainvoke(messages), timeout=self.timeout_seconds)
                return self._content_text(response)
            except asyncio.TimeoutError:
                last_error = AIServiceError(
                    f"AI call timed out after {self.timeout_seconds}s",
                    code="TIMEOUT",
                    retryable=True,
                )
            except AIServiceError as e:
                last_error = e
            except Exception as e:
                status_code = _status_code(e)
                last_error = AIServiceError(
                    f"AI call failed: {type(e).__name__}: {e}",
                    code="PROVIDER_ERROR",
                    status_code=status_code,
                    retryable=_is_retryable_status(status_code),
                )

            if not last_error.retryable or attempt >= self.max_retries:
                break

            delay = self.backoff_seconds * (2 ** attempt)
            logger.warning(
                f"AI attempt {attempt + 1} failed ({last_error.code}); retrying in {delay:.1f}s"
            )
            await self._sleep(delay)

        logger.error(f"AI completion failed: {last_error}")
        raise last_error

    @staticmethod
    def _content_text(response) -> str:
        content = getattr(response, "content", response)
        if isinstance(content, list):
            parts = []
            for part in content:
                if isinstance(part, dict):
                    parts.append(str(part.get("text", "")))
                else:
                    parts.append(str(part))
            return "".join(parts)
        return str(content)
