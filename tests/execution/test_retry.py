"""Tests for retry strategies and with_retry."""

import asyncio

import pytest

from cicdgen.core.errors import RetryExhaustedError
from cicdgen.execution.retry import ConstantBackoff, ExponentialBackoff, RetryContext, with_retry
from cicdgen.execution.timeout import TimeoutExpired


class RecordingSleep:
    """Sleep replacement that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def flaky(failures, result="ok", error=None):
    """Return an op that raises ``failures`` times before returning ``result``."""
    state = {"calls": 0}

    async def op():
        state["calls"] += 1
        if state["calls"] <= failures:
            raise error or ValueError(f"failure {state['calls']}")
        return result

    op.state = state
    return op


class TestExponentialBackoff:
    """Tests for ExponentialBackoff strategy."""

    def test_default_delays(self):
        """Test the 1s, 2s, 4s, 5s (capped) sequence."""
        strategy = ExponentialBackoff()
        assert [strategy.next_delay(n) for n in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_custom_configuration(self):
        strategy = ExponentialBackoff(base_delay=0.5, max_delay=10.0, multiplier=3.0)
        assert strategy.next_delay(0) == 0.5
        assert strategy.next_delay(1) == 1.5
        assert strategy.next_delay(4) == 10.0


class TestConstantBackoff:
    def test_constant(self):
        strategy = ConstantBackoff(delay=0.25)
        assert strategy.next_delay(0) == strategy.next_delay(7) == 0.25


class TestRetryContext:
    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryContext(max_attempts=0, per_attempt_timeout=1.0)

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError):
            RetryContext(max_attempts=1, per_attempt_timeout=0)

    @pytest.mark.asyncio
    async def test_tracks_errors(self):
        sleep = RecordingSleep()
        ctx = RetryContext(max_attempts=3, per_attempt_timeout=1.0, sleep=sleep)
        result = await ctx.run(flaky(2))
        assert result == "ok"
        assert ctx.attempts == 3
        assert [attempt for attempt, _, _ in ctx.errors] == [1, 2]
        assert str(ctx.last_error) == "failure 2"


class TestWithRetry:
    """Tests for the with_retry helper."""

    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self):
        sleep = RecordingSleep()
        op = flaky(0)
        assert await with_retry(op, 2, 1.0, sleep=sleep) == "ok"
        assert op.state["calls"] == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failures", [0, 1, 2])
    async def test_succeeds_after_k_failures_in_k_plus_one_attempts(self, failures):
        sleep = RecordingSleep()
        op = flaky(failures)
        assert await with_retry(op, 3, 1.0, sleep=sleep) == "ok"
        assert op.state["calls"] == failures + 1

    @pytest.mark.asyncio
    async def test_backoff_delays_between_attempts(self):
        sleep = RecordingSleep()
        await with_retry(flaky(3), 4, 1.0, sleep=sleep)
        assert sleep.delays == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_exhaustion_chains_last_error(self):
        sleep = RecordingSleep()
        op = flaky(5)
        with pytest.raises(RetryExhaustedError) as exc_info:
            await with_retry(op, 2, 1.0, sleep=sleep, operation="readme.parse")
        error = exc_info.value
        assert error.attempts == 2
        assert str(error.last_error) == "failure 2"
        assert error.__cause__ is error.last_error
        assert "readme.parse" in error.message
        assert op.state["calls"] == 2

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failed_attempt(self):
        sleep = RecordingSleep()
        calls = {"n": 0}

        async def slow_then_fast():
            calls["n"] += 1
            if calls["n"] == 1:
                await asyncio.sleep(5)
            return "fast"

        assert await with_retry(slow_then_fast, 2, 0.05, sleep=sleep) == "fast"
        assert calls["n"] == 2

    @pytest.mark.asyncio
    async def test_all_attempts_time_out(self):
        async def never():
            await asyncio.sleep(5)

        with pytest.raises(RetryExhaustedError) as exc_info:
            await with_retry(never, 2, 0.02, sleep=RecordingSleep())
        assert isinstance(exc_info.value.last_error, TimeoutExpired)

    @pytest.mark.asyncio
    async def test_on_retry_callback(self):
        seen = []
        await with_retry(
            flaky(1),
            2,
            1.0,
            strategy=ConstantBackoff(0.1),
            on_retry=lambda attempt, error, delay: seen.append((attempt, str(error), delay)),
            sleep=RecordingSleep(),
        )
        assert seen == [(1, "failure 1", 0.1)]
