"""Exception hierarchy."""

from __future__ import annotations


class TaskweaveError(Exception):
    """Base class for errors raised by taskweave itself."""


class TaskTimeoutError(TaskweaveError, TimeoutError):
    """
    A leaf did not settle within the duration allowed by a timeout strategy.

    The underlying leaf computation is not cancelled and may still be running.

    Attributes:
        task_name: Name of the leaf that timed out
        seconds: The allotted duration
    """

    def __init__(self, task_name: str, seconds: float):
        self.task_name = task_name
        self.seconds = seconds
        super().__init__(f"Task {task_name!r} timed out after {seconds}s")


class CompilerInvariantError(TaskweaveError):
    """Internal fault: the compiler produced or observed an inconsistent chain."""
