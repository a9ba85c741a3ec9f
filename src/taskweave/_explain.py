"""Plain-text rendering of task trees and compiled chains."""

from __future__ import annotations

from taskweave._chain import CompiledChain, MarkerKind, ScopeMarker
from taskweave._compiler import is_parallel_leaf
from taskweave._nodes import Leaf, Node, Parallel, Sequence


def explain(target: Node | CompiledChain, indent: str = "  ") -> str:
    """
    Generate a readable outline of a task tree or a compiled chain.

    Args:
        target: A task tree root, or a chain produced by compile_tree
        indent: Indentation unit per nesting level

    Returns:
        Multi-line description string

    Example:
        tree = sequence("outer", [a, sequence("inner", [b], retry(3)), c])
        print(explain(tree))

        # Output:
        # Sequence outer, in order:
        #   • a
        #   • Sequence inner with retry(max_attempts=3), in order:
        #     • b
        #   • c

        print(explain(compile_tree(tree)))

        # Output:
        # a
        # retry(max_attempts=3) {
        #   b
        # }
        # c
    """
    if isinstance(target, CompiledChain):
        return _explain_chain(target, indent)
    return _explain_tree(target, indent)


def _explain_tree(root: Node, indent: str) -> str:
    lines: list[str] = []
    stack: list[tuple[Node, int]] = [(root, 0)]

    while stack:
        node, depth = stack.pop()
        prefix = indent * (depth - 1) + "• " if depth else ""

        if isinstance(node, (Sequence, Parallel)):
            kind = "Sequence" if isinstance(node, Sequence) else "Parallel"
            mode = "in order" if isinstance(node, Sequence) else "concurrently"
            scope = f" with {node.strategy!r}" if node.strategy is not None else ""
            if node.children:
                lines.append(f"{prefix}{kind} {node.name}{scope}, {mode}:")
            else:
                lines.append(f"{prefix}{kind} {node.name}{scope} (empty)")
            # Push in reverse so the first child is rendered first
            for child in reversed(node.children):
                stack.append((child, depth + 1))
        elif isinstance(node, Leaf):
            lines.append(f"{prefix}{node.name}")
        else:
            lines.append(f"{prefix}{node!r}")

    return "\n".join(lines)


def _explain_chain(chain: CompiledChain, indent: str) -> str:
    lines: list[str] = []
    depth = 0

    for item in chain:
        if isinstance(item, ScopeMarker):
            if item.kind is MarkerKind.START:
                lines.append(f"{indent * depth}{item.strategy!r} {{")
                depth += 1
            else:
                depth -= 1
                lines.append(f"{indent * depth}}}")
        elif is_parallel_leaf(item):
            branches = ", ".join(c.name for c in item.fn.node.children)
            lines.append(f"{indent * depth}{item.name} [parallel: {branches}]")
        else:
            lines.append(f"{indent * depth}{item.name}")

    return "\n".join(lines)
