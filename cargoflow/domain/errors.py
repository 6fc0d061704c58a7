"""Domain errors raised by the lifecycle engine.

Every ``LifecycleError`` is an expected, recoverable outcome: the caller
re-renders the valid actions, re-fetches a stale snapshot or asks the user
for a missing field. ``UnknownActionError`` is the only programming error.
"""

from __future__ import annotations


class LifecycleError(Exception):
    """Base class for all expected engine failures."""

    code = "lifecycle_error"

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class IllegalTransitionError(LifecycleError):
    """Requested status or action is not reachable from the current state."""

    code = "illegal_transition"


class ForbiddenError(LifecycleError):
    """Actor's role or ownership does not grant the capability."""

    code = "forbidden"


class InvalidStateError(LifecycleError):
    """Assignment conflicts with an active one, or cargo is not assignable."""

    code = "invalid_state"


class ConflictError(LifecycleError):
    """Optimistic-concurrency mismatch: the snapshot is stale."""

    code = "conflict"


class ValidationError(LifecycleError):
    """A required field for the action is missing or malformed."""

    code = "validation_error"


class UnknownActionError(Exception):
    """An action id outside the closed ActionId enumeration was requested."""
