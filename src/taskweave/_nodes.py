"""Task node model: leaves, sequences, and parallel groups."""

from __future__ import annotations

import inspect
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from typing import Any, Generic

from taskweave._types import I, O, Strategy, TaskFn


class Node:
    """
    Base class for all task tree nodes.

    Nodes are immutable and compared by identity: two structurally equal
    nodes are still distinct positions in a tree.

    Composition:
        a >> b = run b on the output of a (builds a Sequence)
    """

    name: str

    def __rshift__(self, other: Node) -> Sequence:
        """a >> b = sequence of a then b."""
        if isinstance(self, Sequence) and self.strategy is None:
            children = (*self.children, other)
        else:
            children = (self, other)
        return Sequence(f"{self.name} >> {other.name}", children)


@dataclass(frozen=True, eq=False, repr=False)
class Leaf(Node, Generic[I, O]):
    """
    An indivisible unit of work: one input-to-output function.

    The function may be a plain callable or an ``async def``; an awaitable
    return value is awaited.

    Example:
        shout = Leaf("shout", str.upper)
        await shout.invoke("hi")  # "HI"
    """

    name: str
    fn: TaskFn

    async def invoke(self, value: I) -> O:
        """Apply the leaf function to one value."""
        result = self.fn(value)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"Leaf({self.name})"


@dataclass(frozen=True, eq=False, repr=False)
class Sequence(Node):
    """An ordered composition: each child's output is the next child's input."""

    name: str
    children: tuple[Node, ...] = field(default_factory=tuple)
    strategy: Strategy | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "children", tuple(self.children))

    def with_strategy(self, strategy: Strategy | None) -> Sequence:
        """Return a copy of this sequence carrying ``strategy``."""
        return replace(self, strategy=strategy)

    def __repr__(self) -> str:
        return _composite_repr(self)


@dataclass(frozen=True, eq=False, repr=False)
class Parallel(Node):
    """
    A concurrent composition: every child receives the same input.

    Results are merged into a dict keyed by child name, in declaration order.
    """

    name: str
    children: tuple[Node, ...] = field(default_factory=tuple)
    strategy: Strategy | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "children", tuple(self.children))

    def with_strategy(self, strategy: Strategy | None) -> Parallel:
        """Return a copy of this parallel group carrying ``strategy``."""
        return replace(self, strategy=strategy)

    def __repr__(self) -> str:
        return _composite_repr(self)


def _composite_repr(node: Sequence | Parallel) -> str:
    kind = type(node).__name__
    names = ", ".join(child.name for child in node.children)
    if node.strategy is not None:
        return f"{kind}({node.name}: [{names}], strategy={node.strategy!r})"
    return f"{kind}({node.name}: [{names}])"


# =============================================================================
# Constructors
# =============================================================================


def leaf(name: str, fn: Callable[[I], Any]) -> Leaf[I, Any]:
    """Create a leaf task named ``name`` running ``fn``."""
    return Leaf(name, fn)


def sequence(
    name: str, children: Iterable[Node], strategy: Strategy | None = None
) -> Sequence:
    """Create a sequence whose children run one after another."""
    return Sequence(name, tuple(children), strategy)


def parallel(
    name: str, children: Iterable[Node], strategy: Strategy | None = None
) -> Parallel:
    """Create a parallel group whose children run concurrently on one input."""
    return Parallel(name, tuple(children), strategy)


# =============================================================================
# Decorators
# =============================================================================


class LeafFactory:
    """
    A factory that creates Leaves when called with arguments.

    Used for parameterized tasks like ``append("-a")``.
    """

    def __init__(self, fn: Callable[..., Any], name: str):
        self._fn = fn
        self._name = name
        self.__name__ = name

    def __call__(self, *args: Any, **kwargs: Any) -> Leaf[Any, Any]:
        name = f"{self._name}({', '.join(map(repr, args))})"
        return Leaf(name, lambda value: self._fn(value, *args, **kwargs))

    def __repr__(self) -> str:
        return f"LeafFactory({self._name})"


def task(fn: Callable[[I], Any]) -> Leaf[I, Any]:
    """
    Decorator to create a leaf task from a single-argument function.

    Example:
        @task
        async def fetch(url: str) -> bytes:
            ...

        program = fetch >> parse

    For parameterized tasks, use @task_args instead.
    """
    return Leaf(fn.__name__, fn)


def task_args(fn: Callable[..., Any]) -> LeafFactory:
    """
    Decorator to create a parameterized leaf factory.

    Example:
        @task_args
        def append(value: str, suffix: str) -> str:
            return value + suffix

        program = append("-a") >> append("-b")
    """
    return LeafFactory(fn, fn.__name__)
