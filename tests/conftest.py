from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure "src" is on sys.path for imports in tests
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from rakecurve.core.models import HandRecord, SessionRecord  # noqa: E402


@pytest.fixture
def scenario_sessions() -> list[SessionRecord]:
    """Two back-to-back sittings at different stakes."""

    return [
        SessionRecord(0, 200, 2, 0.5, "$0.25/$0.50", start_label="Mar 04, 03:21"),
        SessionRecord(300, 500, 1, 1.0, "$0.50/$1", start_label="Mar 04, 05:02"),
    ]


@pytest.fixture
def scenario_hands() -> list[HandRecord]:
    # per hand: +10 and -3 at 0.50, +100 at 1.00
    return [
        HandRecord(1, 100, 10.0, 6.0),
        HandRecord(2, 150, 7.0, 3.0),
        HandRecord(3, 400, 107.0, 90.0),
    ]
