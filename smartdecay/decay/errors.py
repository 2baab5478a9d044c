"""
Error taxonomy of the decay engine.

Only StateWriteFailure is fatal for a decay cycle; everything else is either
a programming error (InvalidTransition), rejected up front (SchedulerConflict)
or tolerated and logged by the caller (PersistenceFailure, ValuationUnavailable).
"""

from typing import Optional


class DecayError(Exception):
    """Base class for all decay engine errors."""


class InvalidTransition(DecayError):
    """A stage transition was requested from the terminal DELETED stage."""

    def __init__(self, stage, item_id: Optional[str] = None):
        self.stage = stage
        self.item_id = item_id
        target = f" for item {item_id}" if item_id else ""
        super().__init__(f"No transition out of stage {getattr(stage, 'value', stage)}{target}")


class PersistenceFailure(DecayError):
    """The store rejected or could not complete an operation."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Store operation '{operation}' failed{detail}")


class StateWriteFailure(DecayError):
    """The simulation state could not be persisted at the end of a decay cycle.

    The in-memory state is left at the last persisted year; the next tick
    resumes the cycle without applying capacity decay a second time.
    """


class SchedulerConflict(DecayError):
    """A manual step was attempted while the ticker runs or another cycle is in flight."""


class ValuationUnavailable(DecayError):
    """The external valuation service failed; last-known scores stay in effect."""
