"""Compile-and-run entry points."""

from __future__ import annotations

from typing import Any

from taskweave._compiler import compile_tree
from taskweave._nodes import Leaf, Node


async def run(root: Node, value: Any) -> Any:
    """
    Compile a task tree and run it once against ``value``.

    To run the same tree many times, compile it once with compile_tree()
    and execute the chain instead.

    Example:
        result = asyncio.run(run(tree, "x"))
    """
    return await compile_tree(root).execute(value)


def squash(root: Node) -> Leaf[Any, Any]:
    """
    Turn a whole task tree into a single leaf.

    The tree is compiled once; the returned leaf runs the compiled chain.
    Useful for embedding a finished program inside another tree, where it
    behaves as one indivisible unit (an enclosing retry re-runs it whole).

    Example:
        checkout = squash(sequence("checkout", [price, tax, total]))
        orders = sequence("orders", [load, checkout, save], strategy=retry(3))
    """
    chain = compile_tree(root)
    return Leaf(root.name, chain.execute)
