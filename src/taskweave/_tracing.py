"""Tracing hooks for observing leaf execution."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from taskweave._types import _trace_config, _trace_hook

# Optional OpenTelemetry imports - only needed if using OpenTelemetryHook
try:
    from opentelemetry.trace import (
        Status as _Status,
    )
    from opentelemetry.trace import (
        StatusCode as _StatusCode,
    )

    _HAS_OPENTELEMETRY = True
except ImportError:
    _HAS_OPENTELEMETRY = False
    _Status = None
    _StatusCode = None


@runtime_checkable
class TraceHook(Protocol):
    """
    Protocol for trace hooks.

    A hook sees every leaf invocation. When a strategy runs the same leaf
    more than once (a retry), each run is reported with its attempt number,
    starting at 1.

    Example:
        class MyHook:
            def on_enter(self, name, value, depth, attempt):
                print(f"{name} attempt {attempt}")
                return None  # span token

            def on_exit(self, span, name, duration_ms, depth):
                print(f"{name} ok")

            def on_error(self, span, name, error, duration_ms, depth):
                print(f"{name} failed: {error}")
    """

    def on_enter(self, name: str, value: Any, depth: int, attempt: int) -> Any:
        """
        Called before a leaf runs.

        Args:
            name: Name of the leaf
            value: Input the leaf receives
            depth: Number of enclosing strategy scopes and parallel groups
            attempt: 1 for the first run of this leaf, 2 for the first retry, ...

        Returns:
            Span token to pass to on_exit / on_error (can be None)
        """
        ...

    def on_exit(self, span: Any, name: str, duration_ms: float, depth: int) -> None:
        """Called after a leaf completes successfully."""
        ...

    def on_error(
        self, span: Any, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        """Called if a leaf raises. The error is re-raised afterwards."""
        ...


@dataclass
class TraceConfig:
    """
    Configuration for tracing behavior.

    Attributes:
        max_depth: Maximum depth to trace (None = unlimited)
        include_parallel: If False, skip events for parallel groups themselves
            (their branches are still traced)
    """

    max_depth: int | None = None
    include_parallel: bool = True


@contextmanager
def use_tracing(hook: TraceHook, config: TraceConfig | None = None) -> Iterator[None]:
    """
    Report every leaf run started inside the block to ``hook``.

    Chains executed in tasks created inside the block are traced as well,
    since tasks inherit the current context when they are created.

    Example:
        with use_tracing(LoggingHook(logger)):
            await run(tree, "x")
    """
    hook_token = _trace_hook.set(hook)
    config_token = _trace_config.set(config or TraceConfig())
    try:
        yield
    finally:
        _trace_config.reset(config_token)
        _trace_hook.reset(hook_token)


# =============================================================================
# Built-in Trace Hooks
# =============================================================================


class PrintHook:
    """
    Print one line per leaf start and finish, indented by scope depth.

    Example:
        with use_tracing(PrintHook()):
            await run(tree, "x")

        # Output:
        # start fetch
        #   start fetch (attempt 2)
        # ...
        # fetch failed after 0.41ms: reset
        # fetch done in 12.31ms
    """

    def __init__(self, indent: str = "  ", show_value: bool = False):
        self.indent = indent
        self.show_value = show_value

    def on_enter(self, name: str, value: Any, depth: int, attempt: int) -> int:
        line = f"{self.indent * depth}start {name}"
        if attempt > 1:
            line += f" (attempt {attempt})"
        if self.show_value:
            line += f" with {value!r}"
        print(line)
        return attempt

    def on_exit(self, span: int, name: str, duration_ms: float, depth: int) -> None:
        print(f"{self.indent * depth}{name} done in {duration_ms:.2f}ms")

    def on_error(
        self, span: int, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        print(f"{self.indent * depth}{name} failed after {duration_ms:.2f}ms: {error}")


class LoggingHook:
    """
    Log leaf runs to a standard library logger.

    Starts and successful finishes are logged at ``level``. A failed run is
    logged at WARNING, since a retry strategy may still recover from it;
    whatever finally escapes the chain is the caller's to report.

    Example:
        logger = logging.getLogger("orders")

        with use_tracing(LoggingHook(logger)):
            await run(tree, "x")
    """

    def __init__(self, logger: logging.Logger, level: int = logging.DEBUG):
        self.logger = logger
        self.level = level

    def on_enter(self, name: str, value: Any, depth: int, attempt: int) -> int:
        self.logger.log(
            self.level, "leaf %r starting (attempt %d, scope depth %d)",
            name, attempt, depth,
        )
        return attempt

    def on_exit(self, span: int, name: str, duration_ms: float, depth: int) -> None:
        self.logger.log(
            self.level, "leaf %r finished on attempt %d in %.2fms",
            name, span, duration_ms,
        )

    def on_error(
        self, span: int, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        self.logger.warning(
            "leaf %r failed on attempt %d after %.2fms: %s",
            name, span, duration_ms, error,
        )


class OpenTelemetryHook:
    """
    OpenTelemetry trace hook: one span per leaf invocation.

    Spans are passed back through the hook's span token rather than kept on
    a shared stack, so concurrent parallel branches do not interfere.

    Requires: pip install opentelemetry-api
    """

    def __init__(self, tracer, *, max_span_depth: int | None = None):
        if not _HAS_OPENTELEMETRY:
            raise ImportError(
                "OpenTelemetry is not installed. "
                "Install it with: pip install opentelemetry-api"
            )
        self.tracer = tracer
        self.max_span_depth = max_span_depth

    def on_enter(self, name: str, value: Any, depth: int, attempt: int) -> Any:
        if self.max_span_depth is not None and depth > self.max_span_depth:
            return None

        span = self.tracer.start_span(name)
        span.set_attribute("taskweave.name", name)
        span.set_attribute("taskweave.depth", depth)
        span.set_attribute("taskweave.attempt", attempt)
        return span

    def on_exit(self, span: Any, name: str, duration_ms: float, depth: int) -> None:
        if span is None:
            return

        span.set_attribute("taskweave.success", True)
        span.set_attribute("taskweave.duration_ms", duration_ms)
        span.end()

    def on_error(
        self,
        span: Any,
        name: str,
        error: Exception,
        duration_ms: float,
        depth: int,
    ) -> None:
        if span is None:
            return

        # __init__ refuses to build the hook without OpenTelemetry
        assert _Status is not None
        assert _StatusCode is not None

        span.set_attribute("taskweave.success", False)
        span.set_attribute("taskweave.duration_ms", duration_ms)
        span.record_exception(error)
        span.set_status(_Status(_StatusCode.ERROR, str(error)))
        span.end()
