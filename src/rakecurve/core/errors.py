"""Typed failures raised by the matching and reconstruction pipeline.

Every error carries enough context (hand label, timestamp, how many sessions
were considered) to track the inconsistency back to the session table or the
hand chart it came from.  None of them are recovered inside the engine.
"""

from __future__ import annotations

__all__ = [
    "AssignmentCountMismatch",
    "InconsistentTotals",
    "InvalidConfiguration",
    "InvalidInput",
    "NoCompatibleSession",
    "RakeCurveError",
]


class RakeCurveError(Exception):
    """Base class for every error the engine reports."""


class InvalidConfiguration(RakeCurveError, ValueError):
    """Rejected engine options, raised before any computation starts."""


class InvalidInput(RakeCurveError, ValueError):
    """Hand or session records that violate the input contract."""


class NoCompatibleSession(RakeCurveError):
    """A hand's timestamp falls inside no session window."""

    def __init__(self, label: int, timestamp: int, candidates: int) -> None:
        self.label = label
        self.timestamp = timestamp
        self.candidates = candidates
        super().__init__(
            f"hand {label} at {timestamp} fits no session window ({candidates} sessions considered)"
        )


class AssignmentCountMismatch(RakeCurveError):
    """Assigned hand total disagrees with the number of hands."""

    def __init__(
        self,
        assigned: int,
        expected: int,
        *,
        label: int | None = None,
        timestamp: int | None = None,
        candidates: int | None = None,
    ) -> None:
        self.assigned = assigned
        self.expected = expected
        self.label = label
        self.timestamp = timestamp
        self.candidates = candidates
        message = f"assigned {assigned} of {expected} hands"
        if label is not None:
            message += (
                f"; hand {label} at {timestamp} could not be placed within capacity"
                f" ({candidates} compatible sessions)"
            )
        super().__init__(message)


class InconsistentTotals(RakeCurveError):
    """Stake totals drifted away from the reconstructed equity curve."""

    def __init__(self, field: str, aggregate: float, curve: float) -> None:
        self.field = field
        self.aggregate = aggregate
        self.curve = curve
        super().__init__(f"stake total {field}={aggregate!r} does not match curve value {curve!r}")
