"""Tests for the task node model: constructors, decorators, and operators."""

from __future__ import annotations

import asyncio
import dataclasses

import pytest

from taskweave import (
    Leaf,
    LeafFactory,
    Parallel,
    Sequence,
    leaf,
    parallel,
    retry,
    sequence,
    task,
    task_args,
)


class TestConstructors:
    def test_leaf(self):
        node = leaf("double", lambda x: x * 2)
        assert isinstance(node, Leaf)
        assert node.name == "double"

    def test_sequence_stores_children_as_tuple(self):
        a = leaf("a", str.upper)
        b = leaf("b", str.lower)
        node = sequence("seq", [a, b])
        assert isinstance(node, Sequence)
        assert node.children == (a, b)
        assert node.strategy is None

    def test_parallel_accepts_any_iterable(self):
        a = leaf("a", str.upper)
        node = parallel("par", (child for child in [a]))
        assert isinstance(node, Parallel)
        assert node.children == (a,)

    def test_strategy_is_kept(self):
        strategy = retry(3)
        node = sequence("seq", [], strategy)
        assert node.strategy is strategy

    def test_nodes_are_immutable(self):
        node = sequence("seq", [])
        with pytest.raises(dataclasses.FrozenInstanceError):
            node.name = "other"  # type: ignore[misc]

    def test_nodes_compare_by_identity(self):
        fn = str.upper
        assert leaf("a", fn) != leaf("a", fn)
        same = leaf("a", fn)
        assert same == same

    def test_with_strategy_returns_copy(self):
        original = sequence("seq", [leaf("a", str.upper)])
        wrapped = original.with_strategy(retry(2))
        assert wrapped is not original
        assert original.strategy is None
        assert wrapped.strategy == retry(2)
        assert wrapped.children == original.children

    def test_repr(self):
        a = leaf("a", str.upper)
        assert repr(a) == "Leaf(a)"
        assert repr(sequence("s", [a])) == "Sequence(s: [a])"
        assert (
            repr(parallel("p", [a], retry(2)))
            == "Parallel(p: [a], strategy=retry(max_attempts=2))"
        )


class TestInvoke:
    def test_sync_function(self):
        node = leaf("upper", str.upper)
        assert asyncio.run(node.invoke("abc")) == "ABC"

    def test_async_function(self):
        async def fetch(x):
            await asyncio.sleep(0)
            return x + "!"

        node = leaf("fetch", fetch)
        assert asyncio.run(node.invoke("hi")) == "hi!"

    def test_exception_propagates(self):
        def boom(x):
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            asyncio.run(leaf("boom", boom).invoke(1))


class TestDecorators:
    def test_task(self):
        @task
        def shout(value: str) -> str:
            return value.upper()

        assert isinstance(shout, Leaf)
        assert shout.name == "shout"
        assert asyncio.run(shout.invoke("hey")) == "HEY"

    def test_task_args(self):
        @task_args
        def append(value: str, suffix: str) -> str:
            return value + suffix

        assert isinstance(append, LeafFactory)
        node = append("-a")
        assert node.name == "append('-a')"
        assert asyncio.run(node.invoke("x")) == "x-a"

    def test_task_args_async(self):
        @task_args
        async def add(value: int, amount: int) -> int:
            return value + amount

        assert asyncio.run(add(5).invoke(1)) == 6


class TestOperators:
    def test_rshift_builds_sequence(self):
        a = leaf("a", str.upper)
        b = leaf("b", str.lower)
        node = a >> b
        assert isinstance(node, Sequence)
        assert node.name == "a >> b"
        assert node.children == (a, b)

    def test_rshift_flattens_plain_sequences(self):
        a = leaf("a", str.upper)
        b = leaf("b", str.lower)
        c = leaf("c", str.strip)
        node = a >> b >> c
        assert node.children == (a, b, c)
        assert node.name == "a >> b >> c"

    def test_rshift_keeps_strategy_scope(self):
        a = leaf("a", str.upper)
        b = leaf("b", str.lower)
        guarded = sequence("guarded", [a], retry(2))
        node = guarded >> b
        assert node.children == (guarded, b)
