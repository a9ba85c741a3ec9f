"""
Tree-to-chain compiler.

A task tree is flattened breadth-first into a linear stream of leaves,
with each strategy-bearing node's leaves bracketed by a START/END pair of
ScopeMarkers. The work queue is treated as a cyclic sequence: popping a node
from the head and appending its expansion at the tail keeps every element in
its cyclic position, so the only bookkeeping needed is an anchor pointing at
whatever now stands where the root began. The finished queue is rotated so
the anchor comes first.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Sequence as SequenceABC
from typing import Any

from taskweave._chain import ChainElement, CompiledChain, MarkerKind, ScopeMarker
from taskweave._errors import CompilerInvariantError
from taskweave._nodes import Leaf, Node, Parallel, Sequence
from taskweave._types import Strategy

logger = logging.getLogger(__name__)


class ParallelBranches:
    """
    Function of the synthetic leaf standing in for a Parallel node.

    Given one input, runs every child's compiled chain concurrently against
    that input and merges the results into ``{child.name: result}`` in
    declaration order. The first branch failure propagates unchanged; the
    other branches are left running and their results ignored.

    Child chains are compiled on first use and reused afterwards.
    """

    def __init__(self, node: Parallel):
        self.node = node
        self._chains: tuple[CompiledChain, ...] | None = None

    @property
    def chains(self) -> tuple[CompiledChain, ...]:
        if self._chains is None:
            self._chains = tuple(compile_tree(child) for child in self.node.children)
        return self._chains

    async def __call__(self, value: Any) -> dict[str, Any]:
        from taskweave._executor import execute

        results = await asyncio.gather(*(execute(c, value) for c in self.chains))
        names = [child.name for child in self.node.children]
        if len(names) != len(results):
            raise CompilerInvariantError(
                f"Parallel {self.node.name!r}: {len(names)} branches "
                f"but {len(results)} results"
            )
        return dict(zip(names, results))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParallelBranches):
            return NotImplemented
        return self.node is other.node

    def __hash__(self) -> int:
        return id(self.node)

    def __repr__(self) -> str:
        return f"ParallelBranches({self.node.name})"


def is_parallel_leaf(item: Leaf[Any, Any]) -> bool:
    """Check if a leaf is the synthetic stand-in for a Parallel node."""
    return isinstance(item.fn, ParallelBranches)


def _expand(
    queue: deque[Node | ScopeMarker],
    body: SequenceABC[Node],
    strategy: Strategy | None,
) -> Node | ScopeMarker | None:
    """
    Append ``body`` to the queue, bracketed by markers when a strategy is set.

    Returns the first element appended, i.e. the one that now represents the
    start of the expanded node, or None if nothing was appended.
    """
    start = None
    if strategy is not None:
        start = ScopeMarker(MarkerKind.START, strategy)
        queue.append(start)

    queue.extend(body)

    if strategy is not None:
        queue.append(ScopeMarker(MarkerKind.END, strategy))

    if start is not None:
        return start
    return body[0] if body else None


def _is_terminal(item: Node | ScopeMarker) -> bool:
    return isinstance(item, (Leaf, ScopeMarker))


def compile_tree(root: Node) -> CompiledChain:
    """
    Compile a task tree into a CompiledChain.

    Deterministic and side-effect free: the tree is never modified, and
    compiling the same tree twice yields equal chains.

    Example:
        chain = compile_tree(
            sequence("etl", [extract, transform, load], strategy=retry(3))
        )
        # chain: [START retry, extract, transform, load, END retry]

    Raises:
        TypeError: If the tree contains something other than task nodes
        CompilerInvariantError: If the root's position is lost (internal fault)
    """
    queue: deque[Node | ScopeMarker] = deque([root])
    anchor: Node | ScopeMarker | None = root
    pending = 0 if _is_terminal(root) else 1

    while pending:
        item = queue.popleft()

        if _is_terminal(item):
            queue.append(item)
            continue

        if isinstance(item, Sequence):
            body: SequenceABC[Node] = item.children
        elif isinstance(item, Parallel):
            body = (Leaf(item.name, ParallelBranches(item)),)
        else:
            raise TypeError(f"Cannot compile {item!r}: not a task node")

        pending -= 1
        pending += sum(1 for child in body if not _is_terminal(child))
        first = _expand(queue, body, item.strategy)

        if item is anchor:
            # An empty, strategy-less node vanishes; its cyclic successor
            # (now at the head of the queue) takes over the root position.
            if first is not None:
                anchor = first
            else:
                anchor = queue[0] if queue else None

    if anchor is None:
        logger.debug("Compiled %r into an empty chain", root)
        return CompiledChain((), root.name)

    for index, item in enumerate(queue):
        if item is anchor:
            break
    else:
        raise CompilerInvariantError(f"Root anchor of {root.name!r} not found")

    queue.rotate(-index)
    elements: tuple[ChainElement, ...] = tuple(queue)  # type: ignore[arg-type]
    logger.debug("Compiled %r into %d elements", root, len(elements))
    return CompiledChain(elements, root.name)
