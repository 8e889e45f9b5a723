from __future__ import annotations

import pytest

from rakecurve.core.errors import InvalidInput
from rakecurve.core.models import (
    DEFAULT_SESSION_BUFFER_MS,
    Assignment,
    HandRecord,
    SessionRecord,
    SessionStat,
    validate_hands,
    validate_sessions,
)


def test_from_duration_adds_buffer_to_end() -> None:
    session = SessionRecord.from_duration(
        1_000,
        90_000,
        expected_hand_count=12,
        big_blind=0.1,
        stakes_label="$0.05/$0.10",
    )
    assert session.end_timestamp == 1_000 + 90_000 + DEFAULT_SESSION_BUFFER_MS
    assert session.contains(1_000)
    assert session.contains(session.end_timestamp)
    assert not session.contains(999)

    exact = SessionRecord.from_duration(
        0, 500, expected_hand_count=1, big_blind=1.0, stakes_label="x", buffer_ms=0
    )
    assert exact.end_timestamp == 500

    with pytest.raises(InvalidInput):
        SessionRecord.from_duration(0, -1, expected_hand_count=1, big_blind=1.0, stakes_label="x")


def test_distance_to_is_zero_inside_window() -> None:
    session = SessionRecord(100, 200, 1, 1.0, "x")
    assert session.distance_to(90) == 10
    assert session.distance_to(260) == 60
    assert session.distance_to(150) == 0
    assert session.distance_to(100) == 0


def test_validate_hands_requires_dense_labels() -> None:
    validate_hands([HandRecord(1, 0, 0.0, 0.0), HandRecord(2, 5, 1.0, 1.0)])
    with pytest.raises(InvalidInput):
        validate_hands([HandRecord(1, 0, 0.0, 0.0), HandRecord(3, 5, 1.0, 1.0)])
    with pytest.raises(InvalidInput):
        validate_hands([HandRecord(2, 0, 0.0, 0.0)])
    with pytest.raises(InvalidInput):
        validate_hands([HandRecord(1, 0, float("nan"), 0.0)])


def test_validate_sessions_rejects_bad_records() -> None:
    validate_sessions([SessionRecord(0, 10, 0, 0.02, "a")])
    with pytest.raises(InvalidInput):
        validate_sessions([SessionRecord(0, 10, 1, 0.0, "a")])
    with pytest.raises(InvalidInput):
        validate_sessions([SessionRecord(0, 10, -1, 1.0, "a")])
    with pytest.raises(InvalidInput):
        validate_sessions([SessionRecord(10, 0, 1, 1.0, "a")])


def test_assignment_lookup() -> None:
    assignment = Assignment(session_for={1: 0, 2: 1}, assigned_counts=(1, 1), fallback_labels=frozenset({2}))
    assert assignment.session_of(2) == 1
    assert assignment.is_fallback(2)
    assert not assignment.is_fallback(1)
    assert assignment.total_assigned == 2
    with pytest.raises(KeyError):
        assignment.session_of(3)


def test_assignment_is_read_only() -> None:
    source = {1: 0, 2: 0}
    assignment = Assignment(session_for=source, assigned_counts=(2,))
    source[3] = 1
    assert dict(assignment.session_for) == {1: 0, 2: 0}
    with pytest.raises(TypeError):
        assignment.session_for[3] = 0  # type: ignore[index]


def test_session_stat_discrepancy() -> None:
    stat = SessionStat(0, "Mar 04, 03:21", "$0.05/$0.10", expected_hands=40, matched_hands=30)
    assert stat.discrepancy == -10
    assert stat.discrepancy_pct == pytest.approx(25.0)
    assert SessionStat(1, None, "x", 0, 0).discrepancy_pct == 0.0
    assert SessionStat(1, None, "x", 0, 2).discrepancy_pct == 100.0
