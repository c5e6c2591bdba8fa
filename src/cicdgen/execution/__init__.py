"""Execution controls: retry, timeout and timeout-driven fallback."""

from cicdgen.execution.retry import (
    ConstantBackoff,
    ExponentialBackoff,
    RetryContext,
    RetryStrategy,
    with_retry,
)
from cicdgen.execution.timeout import (
    FallbackNotice,
    FallbackTrigger,
    TimeoutExpired,
    is_degradable,
    run_with_timeout,
    with_timeout_fallback,
)

__all__ = [
    "RetryStrategy",
    "ExponentialBackoff",
    "ConstantBackoff",
    "RetryContext",
    "with_retry",
    "TimeoutExpired",
    "run_with_timeout",
    "is_degradable",
    "FallbackTrigger",
    "FallbackNotice",
    "with_timeout_fallback",
]
