"""Tests for the retry and timeout strategies."""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import MagicMock

import pytest

from taskweave import (
    Retry,
    TaskTimeoutError,
    Timeout,
    leaf,
    retry,
    run,
    sequence,
    timeout,
)


def flaky(failures: int, counter: dict[str, int], key: str = "calls"):
    """A leaf function failing ``failures`` times before succeeding."""

    def fn(value):
        counter[key] = counter.get(key, 0) + 1
        if counter[key] <= failures:
            raise ValueError(f"fail {counter[key]}")
        return value + 1

    return fn


# ---------------------------------------------------------------------------
# Retry
# ---------------------------------------------------------------------------


class TestRetry:
    def test_succeeds_first_try(self):
        counter: dict[str, int] = {}
        tree = sequence("s", [leaf("f", flaky(0, counter))], retry(3))
        assert asyncio.run(run(tree, 10)) == 11
        assert counter["calls"] == 1

    def test_succeeds_after_failures(self):
        counter: dict[str, int] = {}
        tree = sequence("s", [leaf("f", flaky(2, counter))], retry(5))
        assert asyncio.run(run(tree, 10)) == 11
        assert counter["calls"] == 3

    def test_exhausts_all_attempts(self):
        counter: dict[str, int] = {}
        tree = sequence("s", [leaf("f", flaky(10, counter))], retry(3))
        with pytest.raises(ValueError, match="fail 3"):
            asyncio.run(run(tree, 10))
        assert counter["calls"] == 3

    def test_single_attempt_does_not_retry(self):
        counter: dict[str, int] = {}
        tree = sequence("s", [leaf("f", flaky(1, counter))], retry(1))
        with pytest.raises(ValueError, match="fail 1"):
            asyncio.run(run(tree, 0))
        assert counter["calls"] == 1

    def test_each_leaf_retried_independently(self):
        counter: dict[str, int] = {}
        tree = sequence(
            "s",
            [leaf("a", flaky(1, counter, "a")), leaf("b", flaky(1, counter, "b"))],
            retry(2),
        )
        assert asyncio.run(run(tree, 0)) == 2
        assert counter == {"a": 2, "b": 2}

    def test_upstream_failure_is_not_retried(self):
        counter: dict[str, int] = {}

        def upstream(value):
            counter["upstream"] = counter.get("upstream", 0) + 1
            raise RuntimeError("upstream")

        tree = sequence(
            "outer",
            [
                leaf("upstream", upstream),
                sequence("guarded", [leaf("f", flaky(0, counter))], retry(3)),
            ],
        )
        with pytest.raises(RuntimeError, match="upstream"):
            asyncio.run(run(tree, 0))
        assert counter == {"upstream": 1}

    def test_async_leaf(self):
        attempts = 0

        async def fetch(value):
            nonlocal attempts
            attempts += 1
            await asyncio.sleep(0)
            if attempts < 2:
                raise ConnectionError("reset")
            return value * 2

        tree = sequence("s", [leaf("fetch", fetch)], retry(3))
        assert asyncio.run(run(tree, 21)) == 42
        assert attempts == 2

    def test_on_retry_hook(self):
        hook = MagicMock()
        counter: dict[str, int] = {}
        tree = sequence(
            "s", [leaf("f", flaky(2, counter))], retry(3, on_retry=hook)
        )
        asyncio.run(run(tree, 0))
        assert hook.call_count == 2
        attempts = [c.args[0] for c in hook.call_args_list]
        errors = [str(c.args[1]) for c in hook.call_args_list]
        assert attempts == [1, 2]
        assert errors == ["fail 1", "fail 2"]

    def test_async_on_retry_hook(self):
        seen = []

        async def on_retry(attempt, error, delay):
            seen.append(attempt)

        counter: dict[str, int] = {}
        tree = sequence(
            "s", [leaf("f", flaky(1, counter))], retry(2, on_retry=on_retry)
        )
        asyncio.run(run(tree, 0))
        assert seen == [1]

    def test_exponential_backoff(self):
        delays = []

        def on_retry(attempt, error, delay):
            delays.append(delay)

        counter: dict[str, int] = {}
        tree = sequence(
            "s",
            [leaf("f", flaky(10, counter))],
            retry(4, backoff=0.001, exponential=True, on_retry=on_retry),
        )
        with pytest.raises(ValueError):
            asyncio.run(run(tree, 0))
        assert delays == [0.001, 0.002, 0.004]

    def test_jitter_adds_bounded_delay(self):
        r = Retry(max_attempts=3, backoff=0.01, jitter=0.005)
        for attempt in range(3):
            assert 0.01 <= r._get_delay(attempt) <= 0.015

    def test_no_backoff_means_no_delay(self):
        assert Retry(max_attempts=3, jitter=1.0)._get_delay(2) == 0

    def test_logs_final_failure(self, caplog):
        counter: dict[str, int] = {}
        tree = sequence("s", [leaf("f", flaky(5, counter))], retry(2))
        with caplog.at_level(logging.WARNING, logger="taskweave"):
            with pytest.raises(ValueError):
                asyncio.run(run(tree, 0))
        assert "failed after 2 attempts" in caplog.text

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            retry(0)

    def test_equality_and_repr(self):
        assert retry(3) == Retry(3)
        assert retry(3) != retry(4)
        assert repr(retry(3)) == "retry(max_attempts=3)"


# ---------------------------------------------------------------------------
# Timeout
# ---------------------------------------------------------------------------


class TestTimeout:
    def test_slow_leaf_times_out(self):
        async def slow(value):
            await asyncio.sleep(1)
            return value

        tree = sequence("s", [leaf("slow", slow)], timeout(0.02))
        with pytest.raises(TaskTimeoutError) as exc_info:
            asyncio.run(run(tree, "x"))
        assert exc_info.value.task_name == "slow"
        assert exc_info.value.seconds == 0.02
        assert isinstance(exc_info.value, TimeoutError)

    def test_fast_leaf_passes_value_through(self):
        async def fast(value):
            await asyncio.sleep(0)
            return value + " done"

        tree = sequence("s", [leaf("fast", fast)], timeout(1.0))
        assert asyncio.run(run(tree, "job")) == "job done"

    def test_leaf_error_propagates_unchanged(self):
        def boom(value):
            raise LookupError("missing")

        tree = sequence("s", [leaf("boom", boom)], timeout(1.0))
        with pytest.raises(LookupError, match="missing"):
            asyncio.run(run(tree, 0))

    def test_timed_out_leaf_keeps_running(self):
        finished = []

        async def slow(value):
            await asyncio.sleep(0.05)
            finished.append(value)
            return value

        tree = sequence("s", [leaf("slow", slow)], timeout(0.01))

        async def scenario():
            with pytest.raises(TaskTimeoutError):
                await run(tree, "late")
            await asyncio.sleep(0.15)

        asyncio.run(scenario())
        assert finished == ["late"]

    def test_applies_per_leaf(self):
        async def nap(value):
            await asyncio.sleep(0.03)
            return value + 1

        # Three leaves of 30ms each; the limit applies to each one separately
        tree = sequence(
            "s", [leaf("a", nap), leaf("b", nap), leaf("c", nap)], timeout(0.5)
        )
        assert asyncio.run(run(tree, 0)) == 3

    def test_inner_retry_inside_timeout_scope(self):
        counter: dict[str, int] = {}
        tree = sequence(
            "outer",
            [sequence("inner", [leaf("f", flaky(2, counter))], retry(3))],
            timeout(0.5),
        )
        assert asyncio.run(run(tree, 1)) == 2
        assert counter["calls"] == 3

    def test_rejects_non_positive_duration(self):
        with pytest.raises(ValueError):
            timeout(0)

    def test_equality_and_repr(self):
        assert timeout(1.5) == Timeout(1.5)
        assert repr(timeout(2)) == "timeout(seconds=2)"
