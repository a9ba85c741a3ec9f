"""
Taskweave - Composable Async Task Trees

A Python library for building trees of async work (leaves, ordered
sequences, and concurrent parallel groups), annotating any group with an
execution strategy such as retry or timeout, and compiling the tree into a
flat, reusable program that can be run against any number of inputs.

Building blocks:
    leaf(name, fn)                        = one unit of work
    sequence(name, children, strategy)    = output of each child feeds the next
    parallel(name, children, strategy)    = children share one input, results
                                            merged as {child.name: result}
    a >> b                                = sequence of a then b

Example:
    import asyncio
    from taskweave import leaf, parallel, retry, run, sequence

    tree = sequence("pipeline", [
        leaf("fetch", fetch_page),
        sequence("parse", [leaf("parse", parse_page)], strategy=retry(3)),
        parallel("store", [leaf("db", save_row), leaf("cache", warm_cache)]),
    ])

    result = asyncio.run(run(tree, "https://example.com"))
    # {"db": ..., "cache": ...}
"""

from __future__ import annotations

__version__ = "0.1.0"
__all__ = [
    # Nodes
    "Node",
    "Leaf",
    "Sequence",
    "Parallel",
    "LeafFactory",
    "leaf",
    "sequence",
    "parallel",
    "task",
    "task_args",
    # Compilation & execution
    "CompiledChain",
    "ScopeMarker",
    "MarkerKind",
    "ParallelBranches",
    "compile_tree",
    "execute",
    "run",
    "squash",
    # Strategies
    "Strategy",
    "Retry",
    "Timeout",
    "retry",
    "timeout",
    # Errors
    "TaskweaveError",
    "TaskTimeoutError",
    "CompilerInvariantError",
    # Tracing
    "TraceHook",
    "TraceConfig",
    "use_tracing",
    "PrintHook",
    "LoggingHook",
    "OpenTelemetryHook",
    # Explanation
    "explain",
]

from taskweave._chain import CompiledChain, MarkerKind, ScopeMarker
from taskweave._compiler import ParallelBranches, compile_tree
from taskweave._errors import (
    CompilerInvariantError,
    TaskTimeoutError,
    TaskweaveError,
)
from taskweave._executor import execute
from taskweave._explain import explain
from taskweave._nodes import (
    Leaf,
    LeafFactory,
    Node,
    Parallel,
    Sequence,
    leaf,
    parallel,
    sequence,
    task,
    task_args,
)
from taskweave._program import run, squash
from taskweave._strategies import Retry, Timeout, retry, timeout
from taskweave._tracing import (
    LoggingHook,
    OpenTelemetryHook,
    PrintHook,
    TraceConfig,
    TraceHook,
    use_tracing,
)
from taskweave._types import Strategy
