"""Retry with exponential backoff and per-attempt timeouts.

Retry handles *transient* flakiness (filesystem hiccups, a collaborator
that occasionally fails) where the same operation is expected to
eventually succeed.

Each attempt is raced against ``per_attempt_timeout``; between attempts
the controller sleeps ``strategy.next_delay(attempt - 1)``. With the
default :class:`ExponentialBackoff` that is ``min(1 * 2**(n-1), 5)``
seconds: 1s, 2s, 4s, 5s, 5s, ...

Example:
    >>> from cicdgen.execution.retry import with_retry
    >>>
    >>> facts = await with_retry(
    ...     lambda: parser.parse(path),
    ...     max_attempts=2,
    ...     per_attempt_timeout=30.0,
    ...     operation="readme.parse",
    ... )
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TypeVar

from cicdgen.core.errors import RetryExhaustedError
from cicdgen.core.logging import get_logger
from cicdgen.execution.timeout import run_with_timeout

T = TypeVar("T")

logger = get_logger(__name__)


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


class RetryStrategy(ABC):
    """Abstract base for retry delay strategies."""

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Delay in seconds before the next attempt.

        Args:
            attempt: Zero-based retry number (0 = first retry)
        """
        ...


@dataclass(frozen=True)
class ExponentialBackoff(RetryStrategy):
    """Exponential backoff without jitter.

    Delay = min(base_delay * (multiplier ** attempt), max_delay)
    """

    base_delay: float = 1.0
    max_delay: float = 5.0
    multiplier: float = 2.0

    def next_delay(self, attempt: int) -> float:
        """Calculate exponential backoff delay."""
        return min(self.base_delay * (self.multiplier**attempt), self.max_delay)


@dataclass(frozen=True)
class ConstantBackoff(RetryStrategy):
    """Constant delay between retries."""

    delay: float = 0.0

    def next_delay(self, attempt: int) -> float:
        """Return constant delay."""
        return self.delay


@dataclass
class RetryContext:
    """Tracks retry state across the attempts of one call.

    Example:
        >>> ctx = RetryContext(max_attempts=3, per_attempt_timeout=10.0)
        >>> result = await ctx.run(lambda: detector.detect(facts, cwd))
        >>> ctx.attempts
        1
    """

    max_attempts: int
    per_attempt_timeout: float
    strategy: RetryStrategy = field(default_factory=ExponentialBackoff)
    operation: str = "operation"
    on_retry: Callable[[int, BaseException, float], None] | None = None
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    attempt: int = field(default=0, init=False)
    last_error: BaseException | None = field(default=None, init=False)
    started_at: datetime = field(default_factory=utcnow, init=False)
    errors: list[tuple[int, BaseException, datetime]] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.per_attempt_timeout <= 0:
            raise ValueError(f"per_attempt_timeout must be positive, got {self.per_attempt_timeout}")

    @property
    def attempts(self) -> int:
        """Number of attempts made."""
        return self.attempt

    @property
    def elapsed_seconds(self) -> float:
        """Total elapsed time since the context was created."""
        return (utcnow() - self.started_at).total_seconds()

    async def run(self, op: Callable[[], Awaitable[T]]) -> T:
        """Execute ``op`` with retry logic.

        Raises:
            RetryExhaustedError: After the final failed attempt, chained
                from the last error
        """
        while True:
            self.attempt += 1
            try:
                result = await run_with_timeout(op, self.per_attempt_timeout, operation=self.operation)
            except Exception as e:
                self.last_error = e
                self.errors.append((self.attempt, e, utcnow()))
                will_retry = self.attempt < self.max_attempts

                logger.warning(
                    "retry.attempt_failed",
                    operation=self.operation,
                    attempt=self.attempt,
                    max_attempts=self.max_attempts,
                    error=str(e),
                    will_retry=will_retry,
                )

                if not will_retry:
                    raise RetryExhaustedError(
                        f"{self.operation} failed after {self.attempt} attempt(s): {e}",
                        attempts=self.attempt,
                        cause=e,
                    ) from e

                delay = self.strategy.next_delay(self.attempt - 1)
                if self.on_retry:
                    self.on_retry(self.attempt, e, delay)
                await self.sleep(delay)
                continue

            if self.attempt > 1:
                logger.info("retry.succeeded", operation=self.operation, attempt=self.attempt)
            return result


async def with_retry(
    op: Callable[[], Awaitable[T]],
    max_attempts: int,
    per_attempt_timeout: float,
    *,
    strategy: RetryStrategy | None = None,
    operation: str = "operation",
    on_retry: Callable[[int, BaseException, float], None] | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Run ``op`` up to ``max_attempts`` times, each bounded by ``per_attempt_timeout``.

    Args:
        op: Zero-argument callable returning an awaitable
        max_attempts: Total attempts including the first
        per_attempt_timeout: Seconds each attempt may take
        strategy: Delay strategy (default: ExponentialBackoff 1s..5s)
        operation: Name used in logs and error messages
        on_retry: Called before each sleep with (attempt, error, delay)
        sleep: Awaitable sleep function (injectable for tests)

    Returns:
        The first successful result

    Raises:
        RetryExhaustedError: If every attempt failed or timed out
    """
    ctx = RetryContext(
        max_attempts=max_attempts,
        per_attempt_timeout=per_attempt_timeout,
        strategy=strategy or ExponentialBackoff(),
        operation=operation,
        on_retry=on_retry,
        sleep=sleep,
    )
    return await ctx.run(op)


__all__ = [
    "RetryStrategy",
    "ExponentialBackoff",
    "ConstantBackoff",
    "RetryContext",
    "with_retry",
]
