"""
Reference execution strategies.

A strategy is any callable ``(pending, leaf) -> awaitable``: it receives the
still-pending upstream result and the leaf to run, and owns how (and how
often) the leaf is invoked. The classes here are ordinary implementations of
that contract; users can pass their own functions anywhere a strategy is
accepted.

Example:
    async def logged(pending, leaf):
        value = await pending
        print("running", leaf.name)
        return await leaf.invoke(value)

    tree = sequence("etl", [extract, load], strategy=logged)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
from collections.abc import Awaitable
from typing import Any

from taskweave._errors import TaskTimeoutError
from taskweave._nodes import Leaf
from taskweave._types import RetryCallback

logger = logging.getLogger(__name__)


# =============================================================================
# Retry
# =============================================================================


class Retry:
    """
    Strategy that re-invokes a failing leaf with configurable backoff.

    The upstream value is awaited once; only the leaf itself is retried. On
    the first success its value is returned, otherwise the final failure is
    re-raised.

    Example:
        # Retry up to 3 times with exponential backoff
        sequence("fetch", [download], strategy=retry(3, backoff=0.5, exponential=True))

        # With observability hook
        def on_retry(attempt, error, delay):
            print(f"Retry {attempt}: {error}, waiting {delay}s")

        sequence("fetch", [download], strategy=retry(3, on_retry=on_retry))

    Args:
        max_attempts: Maximum number of attempts, at least 1 (default: 3)
        backoff: Base delay between retries in seconds (default: 0)
        exponential: Use exponential backoff (default: False)
        jitter: Random jitter to add to delay (default: 0)
        on_retry: Optional callback(attempt, error, delay), sync or async,
            called before each retry
    """

    def __init__(
        self,
        max_attempts: int = 3,
        backoff: float = 0.0,
        exponential: bool = False,
        jitter: float = 0.0,
        on_retry: RetryCallback | None = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.max_attempts = max_attempts
        self.backoff = backoff
        self.exponential = exponential
        self.jitter = jitter
        self.on_retry = on_retry

    def _get_delay(self, attempt: int) -> float:
        """Calculate delay for given attempt number."""
        if self.backoff <= 0:
            return 0

        if self.exponential:
            delay = self.backoff * (2**attempt)
        else:
            delay = self.backoff

        if self.jitter > 0:
            delay += random.uniform(0, self.jitter)

        return delay

    async def __call__(self, pending: Awaitable[Any], leaf: Leaf[Any, Any]) -> Any:
        value = await pending
        last_error: Exception | None = None

        for attempt in range(self.max_attempts):
            try:
                return await leaf.invoke(value)
            except Exception as e:
                last_error = e

            # Don't sleep after last attempt
            if attempt < self.max_attempts - 1:
                delay = self._get_delay(attempt)
                logger.debug(
                    "Task %r failed (attempt %d/%d), retrying in %.3fs: %s",
                    leaf.name,
                    attempt + 1,
                    self.max_attempts,
                    delay,
                    last_error,
                )

                # Call the retry hook if provided (supports both sync and async)
                if self.on_retry is not None:
                    result = self.on_retry(attempt + 1, last_error, delay)
                    if inspect.isawaitable(result):
                        await result

                if delay > 0:
                    await asyncio.sleep(delay)

        logger.warning(
            "Task %r failed after %d attempts: %s",
            leaf.name,
            self.max_attempts,
            last_error,
        )
        assert last_error is not None
        raise last_error

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Retry):
            return NotImplemented
        return (
            self.max_attempts == other.max_attempts
            and self.backoff == other.backoff
            and self.exponential == other.exponential
            and self.jitter == other.jitter
            and self.on_retry is other.on_retry
        )

    def __hash__(self) -> int:
        return hash((Retry, self.max_attempts, self.backoff, self.exponential))

    def __repr__(self) -> str:
        return f"retry(max_attempts={self.max_attempts})"


# =============================================================================
# Timeout
# =============================================================================


class Timeout:
    """
    Strategy that races a leaf against a timer.

    If the timer elapses first, TaskTimeoutError is raised. The leaf's own
    task is not cancelled: it keeps running in the background and its
    eventual result is discarded.

    Example:
        sequence("lookup", [query_dns], strategy=timeout(2.0))

    Args:
        seconds: Allotted duration for each leaf in scope
    """

    def __init__(self, seconds: float):
        if seconds <= 0:
            raise ValueError("seconds must be positive")
        self.seconds = seconds

    async def __call__(self, pending: Awaitable[Any], leaf: Leaf[Any, Any]) -> Any:
        value = await pending

        work = asyncio.ensure_future(leaf.invoke(value))
        done, _ = await asyncio.wait({work}, timeout=self.seconds)
        if work in done:
            return work.result()

        work.add_done_callback(_discard_result)
        logger.warning("Task %r timed out after %ss", leaf.name, self.seconds)
        raise TaskTimeoutError(leaf.name, self.seconds)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Timeout):
            return NotImplemented
        return self.seconds == other.seconds

    def __hash__(self) -> int:
        return hash((Timeout, self.seconds))

    def __repr__(self) -> str:
        return f"timeout(seconds={self.seconds})"


def _discard_result(work: asyncio.Future) -> None:
    """Consume the outcome of an abandoned leaf so it is not reported as lost."""
    if not work.cancelled() and work.exception() is not None:
        logger.debug("Abandoned task finished with error: %s", work.exception())


# =============================================================================
# Factories
# =============================================================================


def retry(
    max_attempts: int = 3,
    backoff: float = 0.0,
    exponential: bool = False,
    jitter: float = 0.0,
    on_retry: RetryCallback | None = None,
) -> Retry:
    """Create a retry strategy. See Retry."""
    return Retry(max_attempts, backoff, exponential, jitter, on_retry)


def timeout(seconds: float) -> Timeout:
    """Create a timeout strategy. See Timeout."""
    return Timeout(seconds)
