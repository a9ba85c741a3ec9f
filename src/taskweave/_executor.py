"""Scoped strategy-stack executor."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable
from typing import Any

from taskweave._chain import CompiledChain, MarkerKind, ScopeMarker
from taskweave._compiler import is_parallel_leaf
from taskweave._nodes import Leaf
from taskweave._tracing import TraceConfig, TraceHook
from taskweave._types import Strategy, _trace_config, _trace_depth, _trace_hook


def _resolved(value: Any) -> asyncio.Future:
    future = asyncio.get_running_loop().create_future()
    future.set_result(value)
    return future


async def _then(pending: Awaitable[Any], item: Leaf[Any, Any]) -> Any:
    """Continue ``pending`` through a leaf with no strategy applied."""
    value = await pending
    return await item.invoke(value)


def _traced_leaf(
    item: Leaf[Any, Any], hook: TraceHook, config: TraceConfig, depth: int
) -> Leaf[Any, Any]:
    """Wrap a leaf so each invocation reports to the trace hook."""
    parallel = is_parallel_leaf(item)
    if parallel and not config.include_parallel:
        return item
    if config.max_depth is not None and depth > config.max_depth:
        return item

    attempts = 0

    async def run(value: Any) -> Any:
        nonlocal attempts
        attempts += 1
        span = hook.on_enter(item.name, value, depth, attempts)
        start = time.perf_counter()
        # Branches of a parallel group report one level below the group
        token = _trace_depth.set(depth + 1) if parallel else None
        try:
            result = await item.invoke(value)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            hook.on_error(span, item.name, e, duration_ms, depth)
            raise
        finally:
            if token is not None:
                _trace_depth.reset(token)
        duration_ms = (time.perf_counter() - start) * 1000
        hook.on_exit(span, item.name, duration_ms, depth)
        return result

    return Leaf(item.name, run)


async def execute(chain: CompiledChain, value: Any) -> Any:
    """
    Run a compiled chain against one input value.

    Walks the chain in order with a fresh strategy stack:
        START marker -> push its strategy
        END marker   -> pop
        Leaf         -> continue the pending result through the leaf, via
                        the innermost active strategy if there is one

    Each leaf step is scheduled as its own future awaiting the previous
    step, so chains of any length run without deep call stacks. If the
    caller is cancelled, the scheduled steps are cancelled with it.

    Only the top of the stack is consulted, so an inner strategy overrides
    (rather than composes with) any outer one for the leaves in its scope.

    Returns the final result, or raises the first failure that no strategy
    absorbed.

    Example:
        result = await execute(compile_tree(tree), "x")
    """
    hook = _trace_hook.get()
    config = _trace_config.get() or TraceConfig()
    base_depth = _trace_depth.get()

    stack: list[Strategy] = []
    # One scheduled future per leaf; each awaits the future before it.
    steps: list[asyncio.Future] = []
    pending: asyncio.Future = _resolved(value)

    for item in chain:
        if isinstance(item, ScopeMarker):
            if item.kind is MarkerKind.START:
                stack.append(item.strategy)
            else:
                stack.pop()
            continue

        if hook is not None:
            item = _traced_leaf(item, hook, config, base_depth + len(stack))

        if stack:
            pending = asyncio.ensure_future(stack[-1](pending, item))
        else:
            pending = asyncio.ensure_future(_then(pending, item))
        steps.append(pending)

    try:
        return await pending
    except asyncio.CancelledError:
        for step in steps:
            step.cancel()
        raise
