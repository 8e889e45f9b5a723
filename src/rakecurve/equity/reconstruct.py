"""Rebuild the equity curve with rake taken out of every winning hand.

The source chart only stores running totals, so per-hand results are
recovered by differencing, adjusted with the rake model using the big blind
of each hand's session, and summed back up.  Output keeps input length and
order.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from ..core.config import EngineConfig
from ..core.models import AdjustedHandRecord, Assignment, HandRecord, SessionRecord
from .rake import apply_rake

__all__ = ["EquityCurve", "hand_deltas", "reconstruct"]

logger = logging.getLogger(__name__)


def hand_deltas(cumulative: Sequence[float]) -> np.ndarray:
    """Per-hand results from a running total; the first delta is the first value."""

    series = np.asarray(cumulative, dtype=np.float64)
    if series.size == 0:
        return series
    return np.diff(series, prepend=0.0)


@dataclass(frozen=True)
class EquityCurve:
    hands: tuple[AdjustedHandRecord, ...]
    raw_bb_result: float = 0.0

    def __len__(self) -> int:
        return len(self.hands)

    @property
    def final(self) -> AdjustedHandRecord | None:
        return self.hands[-1] if self.hands else None

    @property
    def final_amount(self) -> float:
        return self.hands[-1].cumulative_amount if self.hands else 0.0

    @property
    def final_ev(self) -> float:
        return self.hands[-1].cumulative_ev if self.hands else 0.0

    @property
    def total_rake(self) -> float:
        return self.hands[-1].cumulative_rake if self.hands else 0.0

    @property
    def total_rake_bb(self) -> float:
        return self.hands[-1].cumulative_rake_bb if self.hands else 0.0

    @property
    def bb_result(self) -> float:
        return self.hands[-1].cumulative_bb_result if self.hands else 0.0

    @property
    def raw_amount(self) -> float:
        return float(sum(hand.delta_amount for hand in self.hands))

    @property
    def raw_ev(self) -> float:
        return float(sum(hand.delta_ev for hand in self.hands))


def reconstruct(
    hands: Sequence[HandRecord],
    sessions: Sequence[SessionRecord],
    assignment: Assignment,
    config: EngineConfig | None = None,
) -> EquityCurve:
    config = (config or EngineConfig()).validate()
    if not hands:
        return EquityCurve(hands=())

    amount_deltas = hand_deltas([hand.cumulative_amount for hand in hands])
    ev_deltas = hand_deltas([hand.cumulative_ev for hand in hands])
    size = len(hands)
    big_blinds = np.empty(size, dtype=np.float64)
    rakes = np.empty(size, dtype=np.float64)
    adjusted_amounts = np.empty(size, dtype=np.float64)
    adjusted_evs = np.empty(size, dtype=np.float64)
    session_indices: list[int] = []

    for pos, hand in enumerate(hands):
        session_index = assignment.session_of(hand.label)
        big_blind = sessions[session_index].big_blind
        outcome = apply_rake(
            float(amount_deltas[pos]),
            float(ev_deltas[pos]),
            big_blind,
            rake_percentage=config.rake_percentage,
            rake_cap_bb=config.rake_cap_bb,
        )
        session_indices.append(session_index)
        big_blinds[pos] = big_blind
        rakes[pos] = outcome.rake
        adjusted_amounts[pos] = outcome.amount
        adjusted_evs[pos] = outcome.ev

    cumulative_amount = np.cumsum(adjusted_amounts)
    cumulative_ev = np.cumsum(adjusted_evs)
    cumulative_rake = np.cumsum(rakes)
    cumulative_rake_bb = np.cumsum(rakes / big_blinds)
    cumulative_bb = np.cumsum(adjusted_amounts / big_blinds)

    records = tuple(
        AdjustedHandRecord(
            label=hand.label,
            timestamp=hand.timestamp,
            session_index=session_indices[pos],
            stakes_label=sessions[session_indices[pos]].stakes_label,
            big_blind=float(big_blinds[pos]),
            delta_amount=float(amount_deltas[pos]),
            delta_ev=float(ev_deltas[pos]),
            rake=float(rakes[pos]),
            adjusted_amount=float(adjusted_amounts[pos]),
            adjusted_ev=float(adjusted_evs[pos]),
            cumulative_amount=float(cumulative_amount[pos]),
            cumulative_ev=float(cumulative_ev[pos]),
            cumulative_rake=float(cumulative_rake[pos]),
            cumulative_rake_bb=float(cumulative_rake_bb[pos]),
            cumulative_bb_result=float(cumulative_bb[pos]),
            fallback=assignment.is_fallback(hand.label),
        )
        for pos, hand in enumerate(hands)
    )
    raw_bb_result = float(np.sum(amount_deltas / big_blinds))
    logger.debug(
        "reconstructed rake-adjusted curve",
        extra={"hands": size, "total_rake": float(cumulative_rake[-1])},
    )
    return EquityCurve(hands=records, raw_bb_result=raw_bb_result)
