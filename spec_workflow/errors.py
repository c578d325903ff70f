"""Exception types raised by the spec workflow engine.

Lower layers raise these; ``WorkflowManager`` converts them into structured
failure results at the operation boundary.
"""

from __future__ import annotations

from typing import List, Optional


class SpecWorkflowError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str, *, next_steps: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.next_steps = list(next_steps or [])


class NotFoundError(SpecWorkflowError, LookupError):
    """A referenced spec, task or approval does not exist."""


class ValidationError(SpecWorkflowError, ValueError):
    """A required parameter is missing or a value is out of range."""


class InvalidTransitionError(ValidationError):
    """An approval was asked to move to a state its current state forbids."""

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot transition approval from '{current}' to '{requested}'",
            next_steps=["Create a new approval request if the document changed after a final decision"],
        )
        self.current = current
        self.requested = requested
