"""
Error Types

Two families of failure reach the caller:
- AppError: a known, user-facing problem (bad mesh, bad palette name, ...)
- InvariantError: a programming-level fault, raised through check()

The pipeline wraps both in a JobError so callers only handle one type.
"""


class AppError(Exception):
    """A known failure caused by the input, reported to the user as-is."""


class InvariantError(AssertionError):
    """An internal invariant did not hold."""


class JobError(Exception):
    """
    Single error channel for a voxelization job.

    Attributes:
        known: True when the cause was an AppError
        stage: Name of the stage that failed
    """

    def __init__(self, message: str, known: bool, stage: str = ""):
        super().__init__(message)
        self.known = known
        self.stage = stage


def check(condition: bool, message: str = "Invariant violated") -> None:
    """Raise InvariantError when the condition is false."""
    if not condition:
        raise InvariantError(message)
