"""Hand-to-session matching and rake-adjusted equity reconstruction."""

from __future__ import annotations

from .core.config import HIGHEST_STAKE, NEAREST, STRICT, TOLERANT, EngineConfig
from .core.errors import (
    AssignmentCountMismatch,
    InconsistentTotals,
    InvalidConfiguration,
    InvalidInput,
    NoCompatibleSession,
    RakeCurveError,
)
from .core.models import HandRecord, SessionRecord
from .report.service import RakeReport, build_report, build_report_async

__all__ = [
    "AssignmentCountMismatch",
    "EngineConfig",
    "HIGHEST_STAKE",
    "HandRecord",
    "InconsistentTotals",
    "InvalidConfiguration",
    "InvalidInput",
    "NEAREST",
    "NoCompatibleSession",
    "RakeCurveError",
    "RakeReport",
    "STRICT",
    "SessionRecord",
    "TOLERANT",
    "build_report",
    "build_report_async",
]
