from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Final

from .errors import InvalidInput

__all__ = [
    "AdjustedHandRecord",
    "Assignment",
    "DEFAULT_SESSION_BUFFER_MS",
    "HandRecord",
    "RakeImpact",
    "SessionRecord",
    "SessionStat",
    "StakeAggregate",
    "TOTAL_LABEL",
    "validate_hands",
    "validate_sessions",
]

# Session tables list start times at minute resolution, so a session can run
# up to a minute past start + duration.
DEFAULT_SESSION_BUFFER_MS: Final = 60_000

TOTAL_LABEL: Final = "TOTAL"


@dataclass(frozen=True)
class HandRecord:
    """One point of the recorded cumulative win/loss and all-in EV series."""

    label: int
    timestamp: int
    cumulative_amount: float
    cumulative_ev: float


@dataclass(frozen=True)
class SessionRecord:
    """One sitting at a table, as listed in the session table."""

    start_timestamp: int
    end_timestamp: int
    expected_hand_count: int
    big_blind: float
    stakes_label: str
    game_type: str | None = None
    # Start time exactly as the session table displayed it, for diagnostics.
    start_label: str | None = None

    @classmethod
    def from_duration(
        cls,
        start_timestamp: int,
        duration_ms: int,
        *,
        expected_hand_count: int,
        big_blind: float,
        stakes_label: str,
        buffer_ms: int = DEFAULT_SESSION_BUFFER_MS,
        game_type: str | None = None,
        start_label: str | None = None,
    ) -> SessionRecord:
        if duration_ms < 0 or buffer_ms < 0:
            raise InvalidInput("session duration and buffer must be non-negative")
        return cls(
            start_timestamp=int(start_timestamp),
            end_timestamp=int(start_timestamp) + int(duration_ms) + int(buffer_ms),
            expected_hand_count=int(expected_hand_count),
            big_blind=float(big_blind),
            stakes_label=stakes_label,
            game_type=game_type,
            start_label=start_label,
        )

    def contains(self, timestamp: int) -> bool:
        return self.start_timestamp <= timestamp <= self.end_timestamp

    def distance_to(self, timestamp: int) -> int:
        """Distance from ``timestamp`` to the window; 0 when it lies inside."""

        if self.contains(timestamp):
            return 0
        return min(abs(timestamp - self.start_timestamp), abs(timestamp - self.end_timestamp))


@dataclass(frozen=True)
class Assignment:
    """Result of matching: which session each hand label belongs to.

    ``session_for`` maps hand labels to indices into the caller's session
    list.  ``assigned_counts`` is indexed the same way.
    """

    session_for: Mapping[int, int]
    assigned_counts: tuple[int, ...]
    fallback_labels: frozenset[int] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "session_for", MappingProxyType(dict(self.session_for)))
        object.__setattr__(self, "assigned_counts", tuple(self.assigned_counts))
        object.__setattr__(self, "fallback_labels", frozenset(self.fallback_labels))

    def session_of(self, label: int) -> int:
        try:
            return self.session_for[label]
        except KeyError as exc:
            raise KeyError(f"hand {label} has no assigned session") from exc

    def is_fallback(self, label: int) -> bool:
        return label in self.fallback_labels

    @property
    def total_assigned(self) -> int:
        return sum(self.assigned_counts)


@dataclass(frozen=True)
class AdjustedHandRecord:
    label: int
    timestamp: int
    session_index: int
    stakes_label: str
    big_blind: float
    delta_amount: float
    delta_ev: float
    rake: float
    adjusted_amount: float
    adjusted_ev: float
    cumulative_amount: float
    cumulative_ev: float
    cumulative_rake: float
    cumulative_rake_bb: float
    cumulative_bb_result: float
    fallback: bool = False


@dataclass(frozen=True)
class StakeAggregate:
    stakes_label: str
    big_blind: float | None
    hands: int
    winloss: float
    ev: float
    bb_result: float
    bb_per_100: float
    percentage: float

    @property
    def is_total(self) -> bool:
        return self.stakes_label == TOTAL_LABEL


@dataclass(frozen=True)
class SessionStat:
    """Expected versus matched hand counts for one session."""

    session_index: int
    start_label: str | None
    stakes_label: str
    expected_hands: int
    matched_hands: int

    @property
    def discrepancy(self) -> int:
        return self.matched_hands - self.expected_hands

    @property
    def discrepancy_pct(self) -> float:
        if self.expected_hands <= 0:
            return 0.0 if self.matched_hands == 0 else 100.0
        return 100.0 * abs(self.discrepancy) / self.expected_hands


@dataclass(frozen=True)
class RakeImpact:
    total_rake: float
    rake_bb: float
    rake_bb_per_100: float


def validate_hands(hands: Sequence[HandRecord]) -> None:
    """Check labels are 1..N in order and every value is finite."""

    for position, hand in enumerate(hands, start=1):
        if hand.label != position:
            raise InvalidInput(f"hand labels must be dense and ordered; expected {position}, got {hand.label}")
        if not (math.isfinite(hand.cumulative_amount) and math.isfinite(hand.cumulative_ev)):
            raise InvalidInput(f"hand {hand.label} carries a non-finite cumulative value")


def validate_sessions(sessions: Sequence[SessionRecord]) -> None:
    for index, session in enumerate(sessions):
        if not math.isfinite(session.big_blind) or session.big_blind <= 0:
            raise InvalidInput(f"session {index} has non-positive big blind {session.big_blind!r}")
        if session.expected_hand_count < 0:
            raise InvalidInput(f"session {index} has negative expected hand count")
        if session.end_timestamp < session.start_timestamp:
            raise InvalidInput(f"session {index} ends before it starts")
