"""Tests for overlay_packs.core.retry module."""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from overlay_packs.core.exceptions import ParseError, ProviderError, RateLimitError
from overlay_packs.core.retry import is_rate_limit_error, rate_limited, retry_with_backoff


class RecordingSleep:
    """Injectable sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


class TestIsRateLimitError:
    """Tests for rate-limit signal detection."""

    def test_status_429(self):
        """Test status attribute."""
        assert is_rate_limit_error(ProviderError("x", status=429)) is True

    def test_rate_limit_error_class(self):
        """Test RateLimitError always qualifies."""
        assert is_rate_limit_error(RateLimitError("x")) is True

    def test_status_code_attribute(self):
        """Test status_code attribute."""
        error = Exception("boom")
        error.status_code = 429
        assert is_rate_limit_error(error) is True

    def test_response_status_code(self):
        """Test status on an attached response."""
        error = Exception("boom")
        error.response = MagicMock(status_code=429)
        assert is_rate_limit_error(error) is True

    def test_error_code(self):
        """Test rate_limit_exceeded code."""
        error = Exception("boom")
        error.code = "rate_limit_exceeded"
        assert is_rate_limit_error(error) is True

    @pytest.mark.parametrize(
        "message",
        ["Rate limit reached for requests", "429 Too Many Requests", "HTTP 429"],
    )
    def test_message_patterns(self, message):
        """Test message patterns."""
        assert is_rate_limit_error(Exception(message)) is True

    def test_other_errors(self):
        """Test non rate-limit errors."""
        assert is_rate_limit_error(ProviderError("Server error", status=500)) is False
        assert is_rate_limit_error(ParseError("bad json")) is False
        assert is_rate_limit_error(ValueError("nope")) is False


class TestRetryWithBackoff:
    """Tests for retry_with_backoff."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self):
        """Test no retry when the call succeeds."""
        fn = AsyncMock(return_value="ok")
        sleep = RecordingSleep()

        result = await retry_with_backoff(fn, sleep=sleep)

        assert result == "ok"
        assert fn.await_count == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_rate_limited_twice_then_success(self):
        """Test two 429s then success sleeps base then base * factor."""
        fn = AsyncMock(side_effect=[RateLimitError("429"), RateLimitError("429"), "ok"])
        sleep = RecordingSleep()

        result = await retry_with_backoff(
            fn, max_attempts=3, base_delay=2.0, backoff_factor=2.0, max_delay=30.0, sleep=sleep
        )

        assert result == "ok"
        assert fn.await_count == 3
        assert sleep.delays == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_delay_capped_at_max(self):
        """Test delays never exceed max_delay."""
        fn = AsyncMock(side_effect=[RateLimitError("x")] * 4 + ["ok"])
        sleep = RecordingSleep()

        await retry_with_backoff(
            fn, max_attempts=5, base_delay=2.0, backoff_factor=3.0, max_delay=10.0, sleep=sleep
        )

        assert sleep.delays == [2.0, 6.0, 10.0, 10.0]

    @pytest.mark.asyncio
    async def test_exhaustion_reraises_last_error(self):
        """Test the original rate-limit error propagates after the budget."""
        error = RateLimitError("still limited")
        fn = AsyncMock(side_effect=error)
        sleep = RecordingSleep()

        with pytest.raises(RateLimitError) as exc_info:
            await retry_with_backoff(fn, max_attempts=3, base_delay=1.0, sleep=sleep)

        assert exc_info.value is error
        assert fn.await_count == 3
        assert len(sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_non_rate_limit_not_retried(self):
        """Test other errors propagate immediately."""
        fn = AsyncMock(side_effect=ProviderError("Server error", status=500))
        sleep = RecordingSleep()

        with pytest.raises(ProviderError):
            await retry_with_backoff(fn, max_attempts=3, sleep=sleep)

        assert fn.await_count == 1
        assert sleep.delays == []


class TestRateLimitedDecorator:
    """Tests for the decorator form."""

    @pytest.mark.asyncio
    async def test_decorated_function_passes_arguments(self):
        """Test arguments are forwarded."""

        @rate_limited(max_attempts=2, base_delay=0.0)
        async def add(a, b=0):
            return a + b

        assert await add(1, b=2) == 3

    @pytest.mark.asyncio
    async def test_decorated_function_retries(self):
        """Test rate limits are retried through the decorator."""
        calls = []

        @rate_limited(max_attempts=3, base_delay=0.0, max_delay=0.0)
        async def flaky():
            calls.append(1)
            if len(calls) < 2:
                raise RateLimitError("Too Many Requests")
            return "done"

        assert await flaky() == "done"
        assert len(calls) == 2


class TestCoroutineFactories:
    """Tests for plain callables returning coroutines."""

    @pytest.mark.asyncio
    async def test_lambda_factory_awaited(self):
        """Test a lambda returning a coroutine yields its result."""

        async def fetch(value):
            return value

        result = await retry_with_backoff(lambda: fetch("url"), sleep=RecordingSleep())

        assert result == "url"

    @pytest.mark.asyncio
    async def test_lambda_factory_retried(self):
        """Test each retry builds a fresh coroutine."""
        calls = []

        async def fetch():
            calls.append(1)
            if len(calls) == 1:
                raise RateLimitError("429")
            return "ok"

        sleep = RecordingSleep()
        result = await retry_with_backoff(lambda: fetch(), base_delay=1.0, sleep=sleep)

        assert result == "ok"
        assert len(calls) == 2
        assert sleep.delays == [1.0]


class TestAttemptTimeout:
    """Tests for the per-attempt timeout."""

    @pytest.mark.asyncio
    async def test_slow_attempt_raises_provider_error(self):
        """Test an attempt over the timeout becomes a ProviderError."""
        calls = []

        async def slow():
            calls.append(1)
            await asyncio.sleep(1)
            return "late"

        with pytest.raises(ProviderError) as exc_info:
            await retry_with_backoff(slow, attempt_timeout=0.01, sleep=RecordingSleep())

        assert "timed out" in exc_info.value.message
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_fast_attempt_within_timeout(self):
        """Test attempts under the timeout return normally."""
        fn = AsyncMock(return_value="ok")

        assert await retry_with_backoff(fn, attempt_timeout=1.0) == "ok"

    @pytest.mark.asyncio
    async def test_decorator_timeout(self):
        """Test the decorator forwards the attempt timeout."""

        @rate_limited(attempt_timeout=0.01)
        async def slow():
            await asyncio.sleep(1)

        with pytest.raises(ProviderError):
            await slow()
