"""Exponential backoff for provider calls."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from ..errors import AIAnalysisError, ProviderError, RetryExhaustedError
from ..logging import get_logger

T = TypeVar("T")
Sleep = Callable[[float], Awaitable[None]]

logger = get_logger("llm.retry")


def is_retryable(error: BaseException) -> bool:
    """Rate limits, server errors and transport failures without a status are transient."""
    if isinstance(error, AIAnalysisError):
        return error.retryable
    if isinstance(error, ProviderError):
        if error.retryable is not None:
            return error.retryable
        if error.status is None:
            return True
        return error.status == 429 or error.status >= 500
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff: ``base_delay * 2**(attempt - 1)`` capped at ``max_delay``.

    Delays are in seconds. A non-retryable failure is re-raised immediately;
    running out of attempts raises :class:`RetryExhaustedError`.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 8.0
    retryable: Callable[[BaseException], bool] = field(default=is_retryable, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays cannot be negative")

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        sleep: Optional[Sleep] = None,
    ) -> T:
        pause = sleep or asyncio.sleep
        attempt = 1
        while True:
            try:
                return await operation()
            except Exception as exc:
                if not self.retryable(exc):
                    raise
                if attempt >= self.max_attempts:
                    raise RetryExhaustedError(self.max_attempts, exc) from exc
                delay = self.delay_for(attempt)
                logger.warning("Attempt %d failed, retrying in %.2fs: %s", attempt, delay, exc)
            await pause(delay)
            attempt += 1


__all__ = ["RetryPolicy", "is_retryable"]
