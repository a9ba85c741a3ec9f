"""Compiled chain: a flat instruction stream of leaves and scope markers."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Union, overload

from taskweave._nodes import Leaf
from taskweave._types import Strategy


class MarkerKind(enum.Enum):
    START = "start"
    END = "end"


@dataclass(frozen=True, eq=False)
class ScopeMarker:
    """
    Bracket token delimiting where a strategy is active.

    Markers are emitted in matched START/END pairs around the leaves of one
    strategy-bearing node and are compared by identity.
    """

    kind: MarkerKind
    strategy: Strategy

    def __repr__(self) -> str:
        return f"ScopeMarker({self.kind.value}, {self.strategy!r})"


ChainElement = Union[Leaf[Any, Any], ScopeMarker]


def _same_element(a: ChainElement, b: ChainElement) -> bool:
    """Structural equality of two chain elements."""
    if a is b:
        return True
    if isinstance(a, ScopeMarker) and isinstance(b, ScopeMarker):
        return a.kind is b.kind and a.strategy == b.strategy
    if isinstance(a, Leaf) and isinstance(b, Leaf):
        # Parallel synthetic leaves are rebuilt per compilation; their
        # functions compare equal when they wrap the same Parallel node.
        return a.name == b.name and a.fn == b.fn
    return False


class CompiledChain:
    """
    The flattened, reusable program produced from a task tree.

    Immutable once built. Safe to execute concurrently for independent
    inputs: every execution allocates its own strategy stack.

    Example:
        chain = compile_tree(tree)
        result = await chain.execute("input")
        result = await chain("other input")
    """

    __slots__ = ("_elements", "name")

    def __init__(self, elements: Iterable[ChainElement], name: str = "chain"):
        self._elements: tuple[ChainElement, ...] = tuple(elements)
        self.name = name

    @property
    def elements(self) -> tuple[ChainElement, ...]:
        return self._elements

    @property
    def leaves(self) -> tuple[Leaf[Any, Any], ...]:
        """The leaves of the chain in execution order, without markers."""
        return tuple(e for e in self._elements if isinstance(e, Leaf))

    async def execute(self, value: Any) -> Any:
        """Run this chain against one input value."""
        from taskweave._executor import execute

        return await execute(self, value)

    async def __call__(self, value: Any) -> Any:
        return await self.execute(value)

    def __iter__(self) -> Iterator[ChainElement]:
        return iter(self._elements)

    def __len__(self) -> int:
        return len(self._elements)

    @overload
    def __getitem__(self, index: int) -> ChainElement: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[ChainElement, ...]: ...

    def __getitem__(self, index):
        return self._elements[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CompiledChain):
            return NotImplemented
        return len(self) == len(other) and all(
            _same_element(a, b) for a, b in zip(self._elements, other._elements)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"CompiledChain({self.name}, {len(self._elements)} elements)"
