"""End-to-end pipeline: match hands to sessions, rebuild the curve, summarise.

:func:`build_report` either returns a fully populated :class:`RakeReport` or
raises one of the :mod:`rakecurve.core.errors` types; it never returns a
partial result.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..core.config import EngineConfig
from ..core.models import (
    AdjustedHandRecord,
    Assignment,
    HandRecord,
    RakeImpact,
    SessionRecord,
    SessionStat,
    StakeAggregate,
)
from ..equity.reconstruct import EquityCurve, reconstruct
from ..equity.stakes import StakeTable, aggregate_stakes
from ..matching.engine import match_hands
from .concurrency import run_blocking
from .schemas import (
    AdjustedHandPayload,
    RakeImpactPayload,
    ReportPayload,
    ReportRequest,
    SessionStatPayload,
    StakeAggregatePayload,
    TotalsPayload,
)

__all__ = [
    "RakeReport",
    "build_report",
    "build_report_async",
    "build_report_from_request",
    "session_stats",
]

logger = logging.getLogger(__name__)

# Expected/matched differences at or below either bound are normal noise.
_DISCREPANCY_PCT = 5.0
_DISCREPANCY_HANDS = 3


@dataclass(frozen=True)
class RakeReport:
    config: EngineConfig
    assignment: Assignment
    curve: EquityCurve
    stakes: StakeTable
    raw_stakes: StakeTable
    sessions: tuple[SessionStat, ...]
    rake_impact: RakeImpact

    @property
    def adjusted_hands(self) -> tuple[AdjustedHandRecord, ...]:
        return self.curve.hands

    def to_payload(self) -> ReportPayload:
        total = self.stakes.total
        return ReportPayload(
            adjusted_hands=[_hand_payload(hand) for hand in self.curve.hands],
            stake_aggregates=[_stake_payload(row) for row in self.stakes.all_rows()],
            raw_stake_aggregates=[_stake_payload(row) for row in self.raw_stakes.all_rows()],
            totals=TotalsPayload(
                hands=len(self.curve),
                fallback_hands=len(self.assignment.fallback_labels),
                amount=self.curve.final_amount,
                ev=self.curve.final_ev,
                raw_amount=self.raw_stakes.total.winloss,
                raw_ev=self.raw_stakes.total.ev,
                total_rake=self.curve.total_rake,
                total_rake_bb=self.curve.total_rake_bb,
                bb_result=self.curve.bb_result,
                bb_per_100=total.bb_per_100,
            ),
            session_stats=[
                SessionStatPayload(
                    session_index=stat.session_index,
                    start_label=stat.start_label,
                    stakes=stat.stakes_label,
                    expected_hands=stat.expected_hands,
                    matched_hands=stat.matched_hands,
                    discrepancy=stat.discrepancy,
                )
                for stat in self.sessions
            ],
            rake_impact=RakeImpactPayload(
                amount=self.rake_impact.total_rake,
                bb_amount=self.rake_impact.rake_bb,
                bb_per_100=self.rake_impact.rake_bb_per_100,
            ),
        )

    def to_dict(self) -> dict[str, object]:
        return self.to_payload().to_dict()


def _hand_payload(hand: AdjustedHandRecord) -> AdjustedHandPayload:
    return AdjustedHandPayload(
        label=hand.label,
        timestamp=hand.timestamp,
        session_index=hand.session_index,
        stakes=hand.stakes_label,
        big_blind=hand.big_blind,
        delta_amount=hand.delta_amount,
        delta_ev=hand.delta_ev,
        rake=hand.rake,
        adjusted_amount=hand.adjusted_amount,
        adjusted_ev=hand.adjusted_ev,
        amount=hand.cumulative_amount,
        ev=hand.cumulative_ev,
        total_rake=hand.cumulative_rake,
        total_rake_bb=hand.cumulative_rake_bb,
        bb_result=hand.cumulative_bb_result,
        fallback=hand.fallback,
    )


def _stake_payload(row: StakeAggregate) -> StakeAggregatePayload:
    return StakeAggregatePayload(
        stakes=row.stakes_label,
        big_blind=row.big_blind,
        hands=row.hands,
        winloss=row.winloss,
        ev=row.ev,
        bb_result=row.bb_result,
        bb_per_100=row.bb_per_100,
        percentage=row.percentage,
    )


def session_stats(sessions: Sequence[SessionRecord], assignment: Assignment) -> tuple[SessionStat, ...]:
    """Expected versus matched hands per session, warning on large gaps."""

    stats: list[SessionStat] = []
    for index, session in enumerate(sessions):
        stat = SessionStat(
            session_index=index,
            start_label=session.start_label,
            stakes_label=session.stakes_label,
            expected_hands=session.expected_hand_count,
            matched_hands=assignment.assigned_counts[index],
        )
        if stat.discrepancy_pct > _DISCREPANCY_PCT and abs(stat.discrepancy) > _DISCREPANCY_HANDS:
            logger.warning(
                "session %s matched %d hands but expected %d (%.1f%% difference)",
                session.start_label or index,
                stat.matched_hands,
                stat.expected_hands,
                stat.discrepancy_pct,
                extra={"session_index": index, "stakes": session.stakes_label},
            )
        stats.append(stat)
    return tuple(stats)


def build_report(
    hands: Sequence[HandRecord],
    sessions: Sequence[SessionRecord],
    config: EngineConfig | None = None,
) -> RakeReport:
    config = (config or EngineConfig()).validate()
    hand_list = tuple(hands)
    session_list = tuple(sessions)

    assignment = match_hands(hand_list, session_list, config)
    curve = reconstruct(hand_list, session_list, assignment, config)
    stakes = aggregate_stakes(curve)
    raw_stakes = aggregate_stakes(curve, adjusted=False)
    impact = RakeImpact(
        total_rake=curve.total_rake,
        rake_bb=raw_stakes.total.bb_result - stakes.total.bb_result,
        rake_bb_per_100=raw_stakes.total.bb_per_100 - stakes.total.bb_per_100,
    )
    report = RakeReport(
        config=config,
        assignment=assignment,
        curve=curve,
        stakes=stakes,
        raw_stakes=raw_stakes,
        sessions=session_stats(session_list, assignment),
        rake_impact=impact,
    )
    logger.info(
        "built rake report",
        extra={
            "hands": len(hand_list),
            "sessions": len(session_list),
            "total_rake": curve.total_rake,
            "fallback": len(assignment.fallback_labels),
        },
    )
    return report


def build_report_from_request(request: ReportRequest, config: EngineConfig | None = None) -> RakeReport:
    return build_report(request.hand_records(), request.session_records(), config)


async def build_report_async(
    hands: Sequence[HandRecord],
    sessions: Sequence[SessionRecord],
    config: EngineConfig | None = None,
) -> RakeReport:
    return await run_blocking(build_report, tuple(hands), tuple(sessions), config)
