"""Retry with exponential backoff, jitter and error classification."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from ..exceptions import ImageGenerationError
from ..shard import constants as C

T = TypeVar("T")

# Checked first; a match wins even if a retryable keyword is also present.
NON_RETRYABLE_PATTERNS: tuple[str, ...] = (
    "content policy",
    "safety filter",
    "blocked",
    "forbidden",
    "invalid api key",
    "authentication",
    "unauthorized",
    "not found",
    "invalid request",
    "bad request",
)

RETRYABLE_PATTERNS: tuple[str, ...] = (
    "rate limit",
    "429",
    "too many requests",
    "timeout",
    "timed out",
    "network",
    "connection",
    "econnreset",
    "econnrefused",
    "socket",
    "temporarily unavailable",
    "503",
    "502",
    "500",
    "internal server error",
    "service unavailable",
    "gateway",
)


class RetryError(ImageGenerationError):
    """Raised when every attempt failed with a retryable error."""

    def __init__(self, message: str, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(message)


def is_retryable_error(error: BaseException) -> bool:
    """Classify an error by its lowercased message.

    Unrecognized messages are treated as retryable.
    """
    message = str(error).lower()
    if any(pattern in message for pattern in NON_RETRYABLE_PATTERNS):
        return False
    if any(pattern in message for pattern in RETRYABLE_PATTERNS):
        return True
    return True


def parse_retry_after(header: str | None) -> int | None:
    """Parse a ``Retry-After`` value given in whole seconds into milliseconds."""
    if not header:
        return None
    try:
        seconds = int(header.strip())
    except ValueError:
        return None
    return seconds * 1000


def compute_delay(
    attempt: int,
    *,
    base_delay_ms: int = C.RETRY_BASE_DELAY_MS,
    max_delay_ms: int = C.RETRY_MAX_DELAY_MS,
    jitter_ms: int = C.RETRY_JITTER_MS,
    retry_after_ms: int | None = None,
) -> float:
    """Delay in milliseconds before retrying after ``attempt`` (1-based)."""
    if retry_after_ms is not None:
        return min(retry_after_ms, max_delay_ms)
    exponential = base_delay_ms * 2 ** (attempt - 1)
    jitter = random.random() * jitter_ms
    return min(exponential + jitter, max_delay_ms)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    base_delay_ms: int = C.RETRY_BASE_DELAY_MS,
    max_delay_ms: int = C.RETRY_MAX_DELAY_MS,
    jitter_ms: int = C.RETRY_JITTER_MS,
    should_retry: Callable[[BaseException], bool] = is_retryable_error,
    on_retry: Callable[[int, BaseException, float], None] | None = None,
    retry_after_header: str | None = None,
) -> T:
    """Run ``operation`` up to ``max_attempts`` times.

    Two failure shapes:

    * attempts exhausted -> :class:`RetryError` with ``attempts`` and ``last_error``
    * ``should_retry`` returned False -> the original exception is re-raised

    A server supplied ``retry_after_header`` replaces the backoff for the first
    wait only.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    retry_after_ms = parse_retry_after(retry_after_header)

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if attempt == max_attempts:
                raise RetryError(f"Failed after {max_attempts} attempts: {e}", attempt, e) from e
            if not should_retry(e):
                raise

            delay_ms = compute_delay(
                attempt,
                base_delay_ms=base_delay_ms,
                max_delay_ms=max_delay_ms,
                jitter_ms=jitter_ms,
                retry_after_ms=retry_after_ms,
            )
            if on_retry is not None:
                on_retry(attempt, e, delay_ms)
            await asyncio.sleep(delay_ms / 1000)
            retry_after_ms = None

    # Unreachable: the loop either returns or raises on the last attempt
    raise AssertionError("retry loop exited without result")


__all__ = [
    "RetryError",
    "is_retryable_error",
    "parse_retry_after",
    "compute_delay",
    "with_retry",
    "NON_RETRYABLE_PATTERNS",
    "RETRYABLE_PATTERNS",
]
