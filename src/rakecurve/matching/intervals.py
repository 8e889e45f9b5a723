"""Which session windows contain a given hand.

Sessions are ordered by start time with a stable sort; start times are
bisected so only sessions that started at or before the hand are scanned.
Windows may overlap, so every earlier session still has its end checked.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Sequence

from ..core.models import HandRecord, SessionRecord

__all__ = ["IntervalIndex", "compatible_sessions"]


class IntervalIndex:
    """Start-time ordered view over a session list."""

    def __init__(self, sessions: Sequence[SessionRecord]) -> None:
        self._sessions = tuple(sessions)
        # sorted() is stable: equal start times keep input order.
        self._order: tuple[int, ...] = tuple(
            sorted(range(len(self._sessions)), key=lambda idx: self._sessions[idx].start_timestamp)
        )
        self._starts = [self._sessions[idx].start_timestamp for idx in self._order]
        self._rank = {idx: rank for rank, idx in enumerate(self._order)}

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def sessions(self) -> tuple[SessionRecord, ...]:
        return self._sessions

    @property
    def sorted_indices(self) -> tuple[int, ...]:
        return self._order

    def rank(self, session_index: int) -> int:
        """Position of ``session_index`` in start-time order."""

        return self._rank[session_index]

    def compatible_sessions(self, hand: HandRecord) -> tuple[int, ...]:
        return self.containing(hand.timestamp)

    def containing(self, timestamp: int) -> tuple[int, ...]:
        upper = bisect_right(self._starts, timestamp)
        return tuple(
            idx for idx in self._order[:upper] if timestamp <= self._sessions[idx].end_timestamp
        )


def compatible_sessions(hand: HandRecord, sessions: Sequence[SessionRecord]) -> tuple[int, ...]:
    return IntervalIndex(sessions).compatible_sessions(hand)
