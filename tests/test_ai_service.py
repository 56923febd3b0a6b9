"""
Tests for the LangChain-backed completion service.
"""
import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from book_sms.exceptions import AIServiceError
from book_sms.interaction import LangChainCompletionService


class ProviderError(Exception):
    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


@pytest.fixture
def sleep():
    return AsyncMock()


def make_llm(*outcomes):
    llm = Mock()
    llm.ainvoke = AsyncMock(side_effect=list(outcomes))
    return llm


class TestLangChainCompletionService:
    """Tests for LangChainCompletionService."""

    @pytest.mark.asyncio
    async def test_returns_message_content(self, sleep):
        llm = make_llm(SimpleNamespace(content='{"intent": "help"}'))
        service = LangChainCompletionService(llm, sleep=sleep)

        result = await service.complete("system", "user")

        assert result == '{"intent": "help"}'
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sends_system_and_human_messages(self, sleep):
        """Test that both prompts are passed to the model in order."""
        llm = make_llm(SimpleNamespace(content="ok"))
        service = LangChainCompletionService(llm, sleep=sleep)

        await service.complete("be terse", "page 150")

        messages = llm.ainvoke.await_args.args[0]
        assert [m.type for m in messages] == ["system", "human"]
        assert messages[1].content == "page 150"

    @pytest.mark.asyncio
    async def test_list_content_is_joined(self, sleep):
        llm = make_llm(SimpleNamespace(content=[{"type": "text", "text": "{}"}, "!"]))
        service = LangChainCompletionService(llm, sleep=sleep)

        assert await service.complete("s", "u") == "{}!"

    @pytest.mark.asyncio
    async def test_retries_rate_limit_with_backoff(self, sleep):
        """Test that 429s are retried with doubling delays."""
        llm = make_llm(
            ProviderError("rate limited", 429),
            ProviderError("rate limited", 429),
            SimpleNamespace(content="done"),
        )
        service = LangChainCompletionService(llm, max_retries=2, backoff_seconds=1.0, sleep=sleep)

        assert await service.complete("s", "u") == "done"
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, sleep):
        """Test that a 400 fails immediately."""
        llm = make_llm(ProviderError("bad request", 400), SimpleNamespace(content="never"))
        service = LangChainCompletionService(llm, sleep=sleep)

        with pytest.raises(AIServiceError) as exc_info:
            await service.complete("s", "u")

        assert exc_info.value.status_code == 400
        assert exc_info.value.retryable is False
        assert llm.ainvoke.await_count == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, sleep):
        """Test that server errors raise once retries are exhausted."""
        llm = make_llm(*[ProviderError("unavailable", 503)] * 3)
        service = LangChainCompletionService(llm, max_retries=2, sleep=sleep)

        with pytest.raises(AIServiceError) as exc_info:
            await service.complete("s", "u")

        assert exc_info.value.code == "PROVIDER_ERROR"
        assert llm.ainvoke.await_count == 3

    @pytest.mark.asyncio
    async def test_timeout(self, sleep):
        """Test that a hung model call becomes a retryable TIMEOUT error."""
        async def hang(messages):
            await asyncio.sleep(10)

        llm = Mock()
        llm.ainvoke = hang
        service = LangChainCompletionService(llm, timeout_seconds=0.01, max_retries=0, sleep=sleep)

        with pytest.raises(AIServiceError) as exc_info:
            await service.complete("s", "u")

        assert exc_info.value.code == "TIMEOUT"
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_unavailable_without_llm(self):
        service = LangChainCompletionService(None)

        assert service.is_available() is False
        with pytest.raises(AIServiceError):
            await service.complete("s", "u")
