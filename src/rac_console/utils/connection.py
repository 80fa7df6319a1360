"""Retry and polling helpers built on tenacity."""
import asyncio
import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
    before_sleep_log,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleeper = Callable[[float], Awaitable[None]]


# Socket-level failures worth another connect attempt
RETRYABLE_EXCEPTIONS = (
    ConnectionRefusedError,
    ConnectionResetError,
    TimeoutError,
    OSError,
    EOFError,
)


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
) -> Callable:
    """Decorator factory for retry logic with exponential backoff.

    Args:
        max_attempts: Maximum number of retry attempts
        min_wait: Minimum wait time between retries (seconds)
        max_wait: Maximum wait time between retries (seconds)
        exceptions: Tuple of exception types to retry on
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @retry(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
            retry=retry_if_exception_type(exceptions),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> T:
            return await func(*args, **kwargs)  # type: ignore[misc]

        @retry(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
            retry=retry_if_exception_type(exceptions),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> T:
            return func(*args, **kwargs)

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore[return-value]
        return sync_wrapper

    return decorator


@dataclass
class PollResult:
    """Result of a bounded polling loop."""
    succeeded: bool
    value: Any
    attempts: int


async def poll_until(
    action: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    delay: float,
    done: Callable[[T], bool],
    sleep: Sleeper = asyncio.sleep,
    before_sleep: Optional[Callable[[RetryCallState], None]] = None,
) -> PollResult:
    """Call ``action`` until ``done(result)`` holds or attempts run out.

    Sleeps ``delay`` seconds between attempts (never before the first or
    after the last). Exceptions raised by ``action`` are not retried and
    propagate to the caller.

    Args:
        action: Coroutine function performing one attempt
        attempts: Maximum number of calls to ``action``
        delay: Fixed wait between attempts (seconds)
        done: Predicate deciding whether a result is final
        sleep: Coroutine used for waiting (injectable for tests/cancellation)
        before_sleep: Called with the retry state before each wait
    """
    count = 0

    async def _attempt() -> T:
        nonlocal count
        count += 1
        return await action()

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(delay),
        retry=retry_if_result(lambda value: not done(value)),
        sleep=sleep,
        before_sleep=before_sleep,
        # Exhaustion hands back the last result instead of raising RetryError
        retry_error_callback=lambda state: state.outcome.result(),
    )
    value = await retrying(_attempt)
    return PollResult(succeeded=done(value), value=value, attempts=count)
