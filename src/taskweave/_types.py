"""Shared type variables, aliases, and context state."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from taskweave._tracing import TraceConfig, TraceHook

I = TypeVar("I")  # noqa: E741
O = TypeVar("O")  # noqa: E741

TaskFn = Callable[[Any], Any]
"""A leaf function: (value) -> result, or (value) -> awaitable result."""

Strategy = Callable[[Awaitable[Any], Any], Awaitable[Any]]
"""Strategy signature: (pending upstream future, leaf) -> awaitable leaf result.

The pending argument is an asyncio.Future and may be awaited any number of times."""

RetryCallback = Callable[[int, Exception, float], Any]
"""Callback signature for retry hooks: (attempt, error, delay) -> None or Coroutine"""

# Context variables for global tracing
_trace_hook: ContextVar[TraceHook | None] = ContextVar("trace_hook", default=None)
_trace_config: ContextVar[TraceConfig | None] = ContextVar(
    "trace_config", default=None
)
_trace_depth: ContextVar[int] = ContextVar("trace_depth", default=0)
