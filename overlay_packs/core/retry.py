"""
Rate-limit aware retry with exponential backoff.

Every phase that calls an external provider goes through retry_with_backoff.
Only rate-limit signals are retried; any other error, or exhausting the
attempt budget, propagates the original exception unchanged.
"""

import asyncio
import functools
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from overlay_packs.core.exceptions import ProviderError
from src.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

RATE_LIMIT_CODE = "rate_limit_exceeded"
RATE_LIMIT_MESSAGE_PATTERNS = ("Rate limit", "Too Many Requests", "429")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 2.0
DEFAULT_MAX_DELAY = 30.0
DEFAULT_BACKOFF_FACTOR = 2.0


def is_rate_limit_error(error: BaseException) -> bool:
    """
    Check whether an exception signals a provider rate limit.

    Recognized signals: an HTTP status of 429 (on the exception or its
    response), a ``rate_limit_exceeded`` error code, or a message containing
    "Rate limit", "Too Many Requests" or "429".
    """
    if error is None:
        return False

    if getattr(error, "status", None) == 429:
        return True
    if getattr(error, "status_code", None) == 429:
        return True

    response = getattr(error, "response", None)
    if response is not None and getattr(response, "status_code", None) == 429:
        return True

    if getattr(error, "code", None) == RATE_LIMIT_CODE:
        return True
    if getattr(error, "error_code", None) == RATE_LIMIT_CODE:
        return True

    message = getattr(error, "message", None) or str(error)
    return any(pattern in message for pattern in RATE_LIMIT_MESSAGE_PATTERNS)


def _log_before_sleep(retry_state: RetryCallState) -> None:
    """Log each rate-limited attempt before backing off."""
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else None
    logger.warning(
        "provider.rate_limited",
        attempt=retry_state.attempt_number,
        delay_seconds=delay,
        error=str(exc),
    )


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
    max_delay: float = DEFAULT_MAX_DELAY,
    attempt_timeout: Optional[float] = None,
    sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
) -> T:
    """
    Call ``fn`` and retry it on rate-limit errors.

    The delay after the n-th failed attempt (n starting at 0) is
    ``min(base_delay * backoff_factor ** n, max_delay)``.

    Args:
        fn: Zero-argument callable returning an awaitable
        max_attempts: Total number of calls, including the first
        base_delay: Delay in seconds after the first rate-limited attempt
        backoff_factor: Multiplier applied per further attempt
        max_delay: Upper bound on any single delay
        attempt_timeout: Seconds each attempt may take; None for no bound
        sleep: Awaitable sleep function (injectable for tests)

    Returns:
        Result of ``fn``.

    Raises:
        ProviderError: An attempt exceeded ``attempt_timeout``
        The last exception from ``fn`` when it is not a rate-limit signal
        or when attempts are exhausted.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_exponential(
            multiplier=base_delay,
            exp_base=backoff_factor,
            min=0,
            max=max_delay,
        ),
        retry=retry_if_exception(is_rate_limit_error),
        before_sleep=_log_before_sleep,
        sleep=sleep or asyncio.sleep,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await _bounded(fn, attempt_timeout)


async def _bounded(fn: Callable[[], Awaitable[T]], timeout: Optional[float]) -> T:
    if timeout is None:
        return await fn()
    try:
        return await asyncio.wait_for(fn(), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise ProviderError(f"Provider call timed out after {timeout}s") from e


def rate_limited(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
    max_delay: float = DEFAULT_MAX_DELAY,
    attempt_timeout: Optional[float] = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator form of retry_with_backoff for async functions.

    Example:
        @rate_limited(max_attempts=3, base_delay=1.0)
        async def call_provider(...):
            ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            async def call() -> T:
                return await func(*args, **kwargs)

            return await retry_with_backoff(
                call,
                max_attempts=max_attempts,
                base_delay=base_delay,
                backoff_factor=backoff_factor,
                max_delay=max_delay,
                attempt_timeout=attempt_timeout,
            )

        return wrapper

    return decorator
