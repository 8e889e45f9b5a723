from __future__ import annotations

import logging
import random

import pytest

from rakecurve.core.config import EngineConfig
from rakecurve.core.errors import AssignmentCountMismatch, NoCompatibleSession
from rakecurve.core.models import HandRecord, SessionRecord
from rakecurve.matching.engine import match_hands

STRICT = EngineConfig()


def _hands(*timestamps: int) -> list[HandRecord]:
    return [HandRecord(label, ts, 0.0, 0.0) for label, ts in enumerate(timestamps, start=1)]


def _session(start: int, end: int, capacity: int, big_blind: float = 1.0, stakes: str | None = None) -> SessionRecord:
    return SessionRecord(start, end, capacity, big_blind, stakes or f"bb{big_blind}")


def test_scenario_a_assigns_by_window_and_capacity() -> None:
    sessions = [_session(0, 200, 2), _session(300, 500, 1)]
    assignment = match_hands(_hands(100, 150, 400), sessions, STRICT)
    assert dict(assignment.session_for) == {1: 0, 2: 0, 3: 1}
    assert assignment.assigned_counts == (2, 1)
    assert not assignment.fallback_labels


def test_scenario_b_strict_reports_uncovered_hand() -> None:
    sessions = [_session(0, 100, 5), _session(300, 400, 5)]
    with pytest.raises(NoCompatibleSession) as excinfo:
        match_hands(_hands(250), sessions, STRICT)
    err = excinfo.value
    assert err.label == 1
    assert err.timestamp == 250
    assert err.candidates == 2


def test_scenario_b_tolerant_uses_nearest_session() -> None:
    sessions = [_session(0, 100, 5), _session(300, 400, 5)]
    config = EngineConfig(matching_mode="tolerant", fallback_policy="nearest")
    assignment = match_hands(_hands(250), sessions, config)
    assert assignment.session_of(1) == 1
    assert assignment.is_fallback(1)


def test_tolerant_highest_stake_policy() -> None:
    sessions = [_session(0, 100, 5, big_blind=2.0), _session(300, 400, 5, big_blind=0.5)]
    config = EngineConfig(matching_mode="tolerant", fallback_policy="highest_stake")
    assignment = match_hands(_hands(350, 250), sessions, config)
    assert assignment.session_of(1) == 1
    assert assignment.session_of(2) == 0
    assert assignment.fallback_labels == frozenset({2})


def test_scenario_e_prefers_highest_big_blind() -> None:
    sessions = [_session(0, 1_000, 5, big_blind=0.5), _session(0, 1_000, 5, big_blind=1.0)]
    assignment = match_hands(_hands(500), sessions, STRICT)
    assert assignment.session_of(1) == 1


def test_equal_stakes_prefer_most_remaining_room() -> None:
    sessions = [_session(0, 1_000, 1), _session(0, 1_000, 3)]
    assignment = match_hands(_hands(10), sessions, STRICT)
    assert assignment.session_of(1) == 1


def test_scarce_hands_are_placed_before_flexible_ones() -> None:
    # Hand 1 fits both sessions and would grab the higher stake one first if
    # hands were processed in label order.
    sessions = [_session(0, 100, 1, big_blind=2.0), _session(50, 200, 1, big_blind=1.0)]
    assignment = match_hands(_hands(60, 10), sessions, STRICT)
    assert assignment.session_of(2) == 0
    assert assignment.session_of(1) == 1


def test_augmenting_path_shifts_placed_hands() -> None:
    sessions = [
        _session(0, 100, 1, big_blind=2.0),
        _session(50, 150, 1),
        _session(120, 200, 1),
    ]
    assignment = match_hands(_hands(60, 130, 90), sessions, STRICT)
    assert dict(assignment.session_for) == {1: 1, 2: 2, 3: 0}
    assert assignment.assigned_counts == (1, 1, 1)


def test_long_augmenting_chain_does_not_recurse() -> None:
    n = 3_000
    dead = _session(-10, 0, 0)
    chain = [_session(10 * i, 10 * i + 10, 1) for i in range(n + 1)]
    sessions = [dead, *chain]
    timestamps = [10 * i + 10 for i in range(n)] + [0]
    assignment = match_hands(_hands(*timestamps), sessions, STRICT)
    assert assignment.session_of(n + 1) == 1
    assert all(assignment.session_of(i + 1) == i + 2 for i in range(n))
    assert assignment.assigned_counts[0] == 0
    assert all(count == 1 for count in assignment.assigned_counts[1:])


def test_strict_mode_reports_capacity_overflow() -> None:
    sessions = [_session(0, 100, 1)]
    with pytest.raises(AssignmentCountMismatch) as excinfo:
        match_hands(_hands(10, 20), sessions, STRICT)
    err = excinfo.value
    assert err.assigned == 1
    assert err.expected == 2
    assert err.label == 2
    assert err.candidates == 1


def test_tolerant_mode_overflows_through_fallback(caplog: pytest.LogCaptureFixture) -> None:
    sessions = [_session(0, 100, 1)]
    config = EngineConfig(matching_mode="tolerant", fallback_policy="nearest")
    with caplog.at_level(logging.WARNING, logger="rakecurve.matching.engine"):
        assignment = match_hands(_hands(10, 20), sessions, config)
    assert assignment.assigned_counts == (2,)
    assert assignment.fallback_labels == frozenset({2})
    assert any("fallback" in record.getMessage() for record in caplog.records)


def test_nearest_overflow_stays_in_containing_window() -> None:
    # hand 2 is inside the full first window but only 1ms from the second
    sessions = [_session(0, 100, 1), _session(96, 200, 0)]
    config = EngineConfig(matching_mode="tolerant", fallback_policy="nearest")
    assignment = match_hands(_hands(10, 95), sessions, config)
    assert assignment.session_of(2) == 0
    assert assignment.assigned_counts == (2, 0)
    assert assignment.fallback_labels == frozenset({2})


def test_tolerant_mode_without_sessions_still_fails() -> None:
    config = EngineConfig(matching_mode="tolerant", fallback_policy="nearest")
    with pytest.raises(NoCompatibleSession):
        match_hands(_hands(10), [], config)


def test_zero_capacity_session_never_takes_hands_directly() -> None:
    sessions = [_session(0, 100, 0, big_blind=5.0), _session(0, 100, 1)]
    assignment = match_hands(_hands(50), sessions, STRICT)
    assert assignment.session_of(1) == 1


def test_no_hands_yields_empty_assignment() -> None:
    assignment = match_hands([], [_session(0, 10, 3)], STRICT)
    assert dict(assignment.session_for) == {}
    assert assignment.assigned_counts == (0,)


def _random_case(seed: int) -> tuple[list[HandRecord], list[SessionRecord]]:
    rng = random.Random(seed)
    sessions: list[SessionRecord] = []
    timestamps: list[int] = []
    start = 0
    for _ in range(rng.randint(2, 8)):
        length = rng.randint(50, 400)
        count = rng.randint(0, 25)
        big_blind = rng.choice([0.1, 0.25, 0.5, 1.0])
        # overlap the previous window a little to create ambiguity
        start = max(0, start - rng.randint(0, 40))
        sessions.append(_session(start, start + length, count, big_blind))
        timestamps.extend(rng.randint(start, start + length) for _ in range(count))
        start += length
    timestamps.sort()
    return _hands(*timestamps), sessions


@pytest.mark.parametrize("seed", range(12))
def test_random_feasible_cases_fill_every_session_exactly(seed: int) -> None:
    hands, sessions = _random_case(seed)
    assignment = match_hands(hands, sessions, STRICT)
    assert set(assignment.session_for) == {hand.label for hand in hands}
    for hand in hands:
        assert sessions[assignment.session_of(hand.label)].contains(hand.timestamp)
    for count, session in zip(assignment.assigned_counts, sessions, strict=True):
        assert 0 <= count <= session.expected_hand_count
    assert assignment.total_assigned == len(hands)


def test_matching_is_deterministic() -> None:
    hands, sessions = _random_case(99)
    first = match_hands(hands, sessions, STRICT)
    second = match_hands(hands, sessions, STRICT)
    assert first == second
