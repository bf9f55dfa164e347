"""Bounded retry with a fixed delay for network-dependent steps."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger

from alcless.core.constants import DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_DELAY
from alcless.core.exceptions import AuthenticationError, CommandError, TransientExternalError


T = TypeVar("T")

# CommandTimeoutError is a CommandError, so wrapped timeouts are retried too.
RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    CommandError,
    TransientExternalError,
)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_RETRY_ATTEMPTS,
    delay: float = DEFAULT_RETRY_DELAY,
    *,
    retry_on: tuple[type[Exception], ...] = RETRYABLE_EXCEPTIONS,
    description: str = "operation",
) -> T:
    """Invoke an async operation until it succeeds or attempts run out.

    The operation must be safe to re-invoke: nothing is rolled back between
    attempts. AuthenticationError is never retried.

    Args:
        operation: Zero-argument coroutine factory.
        max_attempts: Total invocations allowed, including the first.
        delay: Seconds to sleep between attempts.
        retry_on: Exception types that trigger another attempt.
        description: Label used in log messages.

    Returns:
        The value returned by the first successful invocation.

    Raises:
        ValueError: If max_attempts is less than 1.
        Exception: The last failure, with a note recording the attempt count.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except AuthenticationError:
            raise
        except retry_on as e:
            if attempt >= max_attempts:
                logger.error(
                    f"{description} failed after {attempt} attempts",
                    error=str(e),
                )
                e.add_note(f"gave up after {attempt} attempt(s)")
                raise
            logger.warning(
                f"{description} failed, retrying in {delay}s "
                f"({max_attempts - attempt} attempts left)",
                attempt=attempt,
                error=str(e),
            )
            await asyncio.sleep(delay)
