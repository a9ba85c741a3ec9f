"""
Example: An order-processing task tree with Taskweave

This example shows how leaves, sequences, and parallel groups compose into
one program, and how retry and timeout strategies are scoped to the part of
the tree they annotate.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, replace

from taskweave import (
    LoggingHook,
    compile_tree,
    explain,
    parallel,
    retry,
    sequence,
    squash,
    task,
    task_args,
    timeout,
    use_tracing,
)

# =============================================================================
# Domain model (frozen for immutability)
# =============================================================================


@dataclass(frozen=True)
class Order:
    items: list[str]
    subtotal: float = 0.0
    tax: float = 0.0
    total: float = 0.0


# =============================================================================
# 1. Leaves — single units of work, sync or async
# =============================================================================


@task
def calculate_subtotal(order: Order) -> Order:
    """Sum item prices (simplified: $9.99 per item)."""
    return replace(order, subtotal=round(len(order.items) * 9.99, 2))


@task_args
def apply_tax(order: Order, rate: float) -> Order:
    return replace(order, tax=round(order.subtotal * rate, 2))


@task
def compute_total(order: Order) -> Order:
    return replace(order, total=round(order.subtotal + order.tax, 2))


@task
async def reserve_stock(order: Order) -> Order:
    """Talks to a flaky inventory service."""
    await asyncio.sleep(0.01)
    if random.random() < 0.5:
        raise ConnectionError("inventory service unavailable")
    return order


@task
async def notify_customer(order: Order) -> str:
    await asyncio.sleep(0.01)
    return f"mailed receipt for ${order.total}"


@task
async def update_ledger(order: Order) -> str:
    await asyncio.sleep(0.02)
    return f"booked ${order.total}"


# =============================================================================
# 2. Sequences — each step feeds the next (>> is shorthand)
# =============================================================================

pricing = squash(calculate_subtotal >> apply_tax(0.08) >> compute_total)


# =============================================================================
# 3. Strategies — scoped to the subtree they annotate
# =============================================================================

# Only reserve_stock is retried; pricing runs once
checkout = sequence(
    "checkout",
    [
        pricing,
        sequence("reserve", [reserve_stock], strategy=retry(5, backoff=0.01)),
        # Both side effects run concurrently on the same order
        parallel(
            "side_effects",
            [notify_customer, update_ledger],
            strategy=timeout(1.0),
        ),
    ],
)


# =============================================================================
# Run examples
# =============================================================================

if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    print("=== Tree ===\n")
    print(explain(checkout))

    program = compile_tree(checkout)
    print("\n=== Compiled chain ===\n")
    print(explain(program))

    print("\n=== Run ===\n")
    with use_tracing(LoggingHook(logging.getLogger("taskweave.example"))):
        result = asyncio.run(program.execute(Order(items=["a", "b", "c"])))
    print(f"\n  result = {result}")
