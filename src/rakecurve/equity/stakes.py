from __future__ import annotations

import math
from dataclasses import dataclass

from ..core.errors import InconsistentTotals
from ..core.models import TOTAL_LABEL, StakeAggregate
from .reconstruct import EquityCurve

__all__ = ["StakeTable", "aggregate_stakes", "TOLERANCE"]

TOLERANCE = 1e-9


@dataclass(frozen=True)
class StakeTable:
    rows: tuple[StakeAggregate, ...]
    total: StakeAggregate

    def by_label(self) -> dict[str, StakeAggregate]:
        return {row.stakes_label: row for row in self.rows}

    def all_rows(self) -> list[StakeAggregate]:
        return [*self.rows, self.total]


@dataclass
class _Bucket:
    big_blind: float
    order: int
    hands: int = 0
    winloss: float = 0.0
    ev: float = 0.0
    bb_result: float = 0.0


def _bb_per_100(bb_result: float, hands: int) -> float:
    return bb_result / hands * 100.0 if hands else 0.0


def _check(field: str, aggregate: float, curve: float, magnitude: float) -> None:
    # Rows and curve add the same values in different orders; rounding grows
    # with the summed magnitude, not with the final value.
    abs_tol = TOLERANCE * max(1.0, magnitude)
    if not math.isclose(aggregate, curve, rel_tol=TOLERANCE, abs_tol=abs_tol):
        raise InconsistentTotals(field, aggregate, curve)


def aggregate_stakes(curve: EquityCurve, *, adjusted: bool = True) -> StakeTable:
    """Summarise the curve per stakes label, highest big blind first.

    With ``adjusted=False`` the raw (pre-rake) per-hand results are summed
    instead.  The TOTAL row is checked against the curve before returning.
    """

    buckets: dict[str, _Bucket] = {}
    magnitude = {"winloss": 0.0, "ev": 0.0, "bb_result": 0.0}
    for hand in curve.hands:
        bucket = buckets.get(hand.stakes_label)
        if bucket is None:
            bucket = _Bucket(big_blind=hand.big_blind, order=len(buckets))
            buckets[hand.stakes_label] = bucket
        amount = hand.adjusted_amount if adjusted else hand.delta_amount
        ev = hand.adjusted_ev if adjusted else hand.delta_ev
        bucket.hands += 1
        bucket.winloss += amount
        bucket.ev += ev
        bucket.bb_result += amount / hand.big_blind
        magnitude["winloss"] += abs(amount)
        magnitude["ev"] += abs(ev)
        magnitude["bb_result"] += abs(amount / hand.big_blind)

    total_hands = len(curve.hands)
    ordered = sorted(buckets.items(), key=lambda item: (-item[1].big_blind, item[1].order))
    rows = tuple(
        StakeAggregate(
            stakes_label=label,
            big_blind=bucket.big_blind,
            hands=bucket.hands,
            winloss=bucket.winloss,
            ev=bucket.ev,
            bb_result=bucket.bb_result,
            bb_per_100=_bb_per_100(bucket.bb_result, bucket.hands),
            percentage=100.0 * bucket.hands / total_hands if total_hands else 0.0,
        )
        for label, bucket in ordered
    )

    hands = sum(row.hands for row in rows)
    bb_result = sum(row.bb_result for row in rows)
    total = StakeAggregate(
        stakes_label=TOTAL_LABEL,
        big_blind=None,
        hands=hands,
        winloss=sum(row.winloss for row in rows),
        ev=sum(row.ev for row in rows),
        bb_result=bb_result,
        bb_per_100=_bb_per_100(bb_result, hands),
        percentage=sum(row.percentage for row in rows),
    )

    if hands != total_hands:
        raise InconsistentTotals("hands", hands, total_hands)
    if adjusted:
        expected = {"winloss": curve.final_amount, "ev": curve.final_ev, "bb_result": curve.bb_result}
    else:
        expected = {"winloss": curve.raw_amount, "ev": curve.raw_ev, "bb_result": curve.raw_bb_result}
    for name, value in expected.items():
        _check(name, getattr(total, name), value, magnitude[name])
    return StakeTable(rows=rows, total=total)
