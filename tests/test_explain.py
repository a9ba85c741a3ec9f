"""Tests for explain()."""

from taskweave import compile_tree, explain, leaf, parallel, retry, sequence


def noop(value):
    return value


class TestExplain:
    def test_single_leaf(self):
        assert explain(leaf("a", noop)) == "a"

    def test_tree(self):
        tree = sequence(
            "outer",
            [
                leaf("a", noop),
                sequence("inner", [leaf("b", noop)], retry(3)),
                parallel("fan", [leaf("x", noop), leaf("y", noop)]),
                sequence("nothing", []),
            ],
        )
        assert explain(tree) == "\n".join(
            [
                "Sequence outer, in order:",
                "• a",
                "• Sequence inner with retry(max_attempts=3), in order:",
                "  • b",
                "• Parallel fan, concurrently:",
                "  • x",
                "  • y",
                "• Sequence nothing (empty)",
            ]
        )

    def test_chain(self):
        tree = sequence(
            "outer",
            [
                leaf("a", noop),
                sequence("inner", [leaf("b", noop)], retry(3)),
                parallel("fan", [leaf("x", noop), leaf("y", noop)]),
            ],
        )
        assert explain(compile_tree(tree)) == "\n".join(
            [
                "a",
                "retry(max_attempts=3) {",
                "  b",
                "}",
                "fan [parallel: x, y]",
            ]
        )

    def test_custom_indent(self):
        tree = sequence("s", [leaf("a", noop)], retry(2))
        assert explain(compile_tree(tree), indent="....") == "\n".join(
            ["retry(max_attempts=2) {", "....a", "}"]
        )
