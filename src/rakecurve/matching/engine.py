"""Capacity-respecting assignment of hands to sessions.

Every session is a bucket whose capacity is its expected hand count and every
hand needs exactly one bucket whose time window contains it.  This is a
capacitated bipartite matching; hands are placed one at a time:

1. hands with the fewest compatible sessions go first (ties by label);
2. a hand takes the preferred compatible session with spare room, preferring
   the highest big blind, then the most remaining room, then start order;
3. when every compatible session is full, an augmenting path shifts already
   placed hands along a chain of sessions until one with spare room absorbs
   the overflow.

Placing hands with augmenting paths one by one yields a maximum matching, so
a hand left unplaced means no capacity-respecting assignment exists.  Strict
mode reports that as :class:`AssignmentCountMismatch`; tolerant mode hands it
to the configured fallback policy and flags the hand.

The search keeps its own stack instead of recursing, so long chains do not
hit the interpreter recursion limit.  The visit order is the same as the
textbook recursive search, which keeps assignments reproducible.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from ..core.config import EngineConfig
from ..core.errors import AssignmentCountMismatch, NoCompatibleSession
from ..core.models import Assignment, HandRecord, SessionRecord, validate_hands, validate_sessions
from .fallback import resolve_strategy
from .intervals import IntervalIndex

__all__ = ["match_hands"]

logger = logging.getLogger(__name__)


@dataclass
class _Frame:
    hand: int
    sessions: Iterator[int]
    session: int | None = None
    holders: Iterator[int] | None = None


class _MatchState:
    """Assignment counters local to a single matching call."""

    def __init__(self, index: IntervalIndex) -> None:
        self._index = index
        sessions = index.sessions
        self.capacity = [session.expected_hand_count for session in sessions]
        self.big_blind = [session.big_blind for session in sessions]
        self.counts = [0] * len(sessions)
        # dicts used as insertion-ordered sets of hand labels
        self.holders: list[dict[int, None]] = [{} for _ in sessions]
        self.session_for: dict[int, int] = {}
        self.compatible: dict[int, tuple[int, ...]] = {}

    def has_room(self, session: int) -> bool:
        return self.counts[session] < self.capacity[session]

    def preferences(self, label: int) -> list[int]:
        return sorted(
            self.compatible[label],
            key=lambda s: (-self.big_blind[s], -(self.capacity[s] - self.counts[s]), self._index.rank(s)),
        )

    def move(self, label: int, session: int) -> None:
        current = self.session_for.get(label)
        if current is not None:
            del self.holders[current][label]
            self.counts[current] -= 1
        self.holders[session][label] = None
        self.counts[session] += 1
        self.session_for[label] = session

    def place_direct(self, label: int) -> bool:
        for session in self.preferences(label):
            if self.has_room(session):
                self.move(label, session)
                return True
        return False

    def augment(self, root: int) -> bool:
        visited: set[int] = set()
        stack = [_Frame(root, iter(self.preferences(root)))]
        while stack:
            frame = stack[-1]
            if frame.holders is not None:
                child = next(frame.holders, None)
                if child is not None:
                    stack.append(_Frame(child, iter(self.preferences(child))))
                    continue
                frame.session = None
                frame.holders = None

            session = next((s for s in frame.sessions if s not in visited), None)
            if session is None:
                stack.pop()
                continue
            visited.add(session)
            if self.has_room(session):
                self.move(frame.hand, session)
                stack.pop()
                depth = len(stack)
                while stack:
                    parent = stack.pop()
                    self.move(parent.hand, parent.session)
                logger.debug("augmenting path placed hand", extra={"hand": root, "path_length": depth + 1})
                return True
            frame.session = session
            frame.holders = iter(tuple(self.holders[session]))
        return False

    def force(self, label: int, session: int) -> None:
        self.move(label, session)


def match_hands(
    hands: Sequence[HandRecord],
    sessions: Sequence[SessionRecord],
    config: EngineConfig | None = None,
) -> Assignment:
    """Assign every hand to one session or raise.

    Returned indices refer to positions in ``sessions`` as given.
    """

    config = (config or EngineConfig()).validate()
    validate_hands(hands)
    validate_sessions(sessions)

    index = IntervalIndex(sessions)
    state = _MatchState(index)
    outside: list[HandRecord] = []
    for hand in hands:
        compatible = index.compatible_sessions(hand)
        if not compatible:
            if not config.tolerant:
                raise NoCompatibleSession(hand.label, hand.timestamp, len(sessions))
            outside.append(hand)
            continue
        state.compatible[hand.label] = compatible

    placeable = sorted(
        (hand for hand in hands if hand.label in state.compatible),
        key=lambda hand: (len(state.compatible[hand.label]), hand.label),
    )
    unplaced: list[HandRecord] = []
    for hand in placeable:
        if state.place_direct(hand.label) or state.augment(hand.label):
            continue
        unplaced.append(hand)

    if unplaced and not config.tolerant:
        first = min(unplaced, key=lambda hand: hand.label)
        raise AssignmentCountMismatch(
            sum(state.counts),
            len(hands),
            label=first.label,
            timestamp=first.timestamp,
            candidates=len(state.compatible[first.label]),
        )

    fallback_labels: set[int] = set()
    pending = sorted(outside + unplaced, key=lambda hand: hand.label)
    if pending:
        strategy = resolve_strategy(config.fallback_policy or "")
        for hand in pending:
            session = strategy(hand.timestamp, index)
            if session is None:
                raise NoCompatibleSession(hand.label, hand.timestamp, len(sessions))
            state.force(hand.label, session)
            fallback_labels.add(hand.label)
            logger.warning(
                "hand %s assigned by %s fallback",
                hand.label,
                config.fallback_policy,
                extra={"hand": hand.label, "timestamp": hand.timestamp, "session": session},
            )

    total = sum(state.counts)
    if total != len(hands) or len(state.session_for) != len(hands):
        raise AssignmentCountMismatch(total, len(hands))

    logger.debug(
        "matched hands to sessions",
        extra={"hands": len(hands), "sessions": len(sessions), "fallback": len(fallback_labels)},
    )
    return Assignment(
        session_for=state.session_for,
        assigned_counts=tuple(state.counts),
        fallback_labels=frozenset(fallback_labels),
    )
