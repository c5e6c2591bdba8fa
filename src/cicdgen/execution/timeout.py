"""Timeout enforcement and timeout-driven fallback.

Manifesto:
    A stage that hangs must never hang the whole run:
    - **Bounded latency:** Every collaborator call races a timer
    - **Cooperative cancellation:** The abandoned task is cancelled, so a
      collaborator that honours cancellation cannot write after its
      result was replaced
    - **Degrade, don't die:** Systemic slowness or a recognised class of
      "incomplete data" errors yields a cheaper fallback result instead
      of failing the run

Architecture:
    ::

        run_with_timeout(op, 15.0)
        ┌────────────────────────────────────────────────────────────┐
        │ task = ensure_future(op())                                 │
        │ asyncio.wait({task}, timeout)                              │
        │   done     → task.result()   (value or op's exception)     │
        │   pending  → task.cancel(); raise TimeoutExpired           │
        └────────────────────────────────────────────────────────────┘

        with_timeout_fallback(op, 15.0, fallback)
        ┌────────────────────────────────────────────────────────────┐
        │ try run_with_timeout(op)                                   │
        │   TimeoutExpired            → notice(TIMEOUT) → fallback() │
        │   degradable error message  → notice(ERROR)   → fallback() │
        │   anything else             → propagate unchanged          │
        └────────────────────────────────────────────────────────────┘

Examples:
    >>> detection = await with_timeout_fallback(
    ...     lambda: detector.detect(facts, cwd),
    ...     timeout_seconds=15.0,
    ...     fallback=lambda: fallback_detection(facts),
    ...     operation="framework.detect",
    ...     on_fallback=context.record_fallback,
    ... )

Guardrails:
    - ``fallback`` is never timed out: it must be pure and fast
    - A collaborator that swallows ``CancelledError`` keeps running in the
      background; its result is discarded but its side effects are not
      undone

Tags:
    timeout, fallback, resilience, asyncio, cicdgen

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from cicdgen.core.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


class TimeoutExpired(TimeoutError):
    """Raised when an operation exceeds its deadline.

    Inherits from built-in TimeoutError for broad exception handling.

    Attributes:
        timeout: The timeout value that was exceeded
        elapsed: How long the operation ran before being abandoned
        operation: Name/description of the operation
    """

    def __init__(
        self,
        timeout: float,
        elapsed: float | None = None,
        operation: str = "operation",
    ):
        self.timeout = timeout
        self.elapsed = elapsed
        self.operation = operation

        msg = f"Operation '{operation}' timed out after {timeout}s"

        if elapsed is not None:
            msg += f" (ran for {elapsed:.2f}s)"

        super().__init__(msg)


def _discard_result(task: asyncio.Future[Any]) -> None:
    """Retrieve an abandoned task's outcome so asyncio does not warn about it."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug("timeout.abandoned_task_failed", error=str(error))


async def run_with_timeout(
    op: Callable[[], Awaitable[T]],
    timeout_seconds: float,
    operation: str = "operation",
) -> T:
    """Await ``op()`` for at most ``timeout_seconds``.

    On timeout the task is cancelled and not awaited any further.

    Raises:
        TimeoutExpired: If ``op`` did not settle in time
        ValueError: If ``timeout_seconds`` is not positive
        Exception: Whatever ``op`` raised
    """
    if timeout_seconds <= 0:
        raise ValueError(f"Timeout must be positive, got {timeout_seconds}")

    start = time.monotonic()
    task = asyncio.ensure_future(op())

    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_seconds)
    except asyncio.CancelledError:
        task.cancel()
        raise

    if task in done:
        return task.result()

    task.cancel()
    task.add_done_callback(_discard_result)
    raise TimeoutExpired(
        timeout=timeout_seconds,
        elapsed=time.monotonic() - start,
        operation=operation,
    )


# Error messages that mean "the collaborator produced incomplete data" rather
# than "the collaborator is broken". Only these degrade to a fallback.
DEGRADABLE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"timed?\s?out", re.IGNORECASE),
    re.compile(r"'NoneType' object (has no attribute|is not subscriptable|is not iterable)"),
    re.compile(r"cannot read propert(y|ies) of (undefined|null)", re.IGNORECASE),
    re.compile(r"has no len\(\)"),
    re.compile(r"reading 'length'|length of (None|null|undefined)", re.IGNORECASE),
)


def is_degradable(error: BaseException) -> bool:
    """True if ``error`` should trigger a fallback instead of propagating."""
    if isinstance(error, TimeoutError):
        return True
    message = str(error)
    return any(pattern.search(message) for pattern in DEGRADABLE_PATTERNS)


class FallbackTrigger(str, Enum):
    """Why a fallback result was used."""

    TIMEOUT = "timeout"
    ERROR = "error"
    FORCED = "forced"


@dataclass(frozen=True)
class FallbackNotice:
    """Describes one fallback activation; delivered to the warning sink."""

    operation: str
    trigger: FallbackTrigger
    reason: str

    @property
    def message(self) -> str:
        if self.trigger == FallbackTrigger.TIMEOUT:
            return f"{self.operation} timed out ({self.reason}); using fallback result"
        if self.trigger == FallbackTrigger.FORCED:
            return f"{self.operation} skipped ({self.reason}); using fallback result"
        return f"{self.operation} failed ({self.reason}); using fallback result"


async def with_timeout_fallback(
    op: Callable[[], Awaitable[T]],
    timeout_seconds: float,
    fallback: Callable[[], T],
    *,
    operation: str = "operation",
    on_fallback: Callable[[FallbackNotice], None] | None = None,
) -> T:
    """Race ``op`` against a timer and substitute ``fallback()`` on timeout.

    Args:
        op: Zero-argument callable returning an awaitable
        timeout_seconds: Seconds ``op`` may take
        fallback: Pure, fast producer of a substitute result
        operation: Name used in logs and the notice
        on_fallback: Receives a :class:`FallbackNotice` when the fallback fires

    Returns:
        ``op``'s result, or ``fallback()``'s result

    Raises:
        Exception: Any non-degradable error raised by ``op``
    """
    try:
        return await run_with_timeout(op, timeout_seconds, operation=operation)
    except TimeoutExpired as e:
        notice = FallbackNotice(operation, FallbackTrigger.TIMEOUT, f"no result after {e.timeout}s")
    except Exception as e:
        if not is_degradable(e):
            raise
        notice = FallbackNotice(operation, FallbackTrigger.ERROR, str(e))

    logger.warning(
        "fallback.triggered",
        operation=operation,
        trigger=notice.trigger.value,
        reason=notice.reason,
    )
    if on_fallback is not None:
        on_fallback(notice)
    return fallback()


__all__ = [
    "TimeoutExpired",
    "run_with_timeout",
    "DEGRADABLE_PATTERNS",
    "is_degradable",
    "FallbackTrigger",
    "FallbackNotice",
    "with_timeout_fallback",
]
