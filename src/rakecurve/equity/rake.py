"""Per-hand rake model.

Only the net result of each hand is known, so the pot is estimated as twice
the amount won and rake is a percentage of that estimate, capped at a number
of big blinds.  Both the pot estimate and the equity share used for the EV
adjustment are domain heuristics rather than derivations; change them only
together with the reference scenarios in the tests.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..core.config import DEFAULT_RAKE_CAP_BB, DEFAULT_RAKE_PERCENTAGE

__all__ = ["RakeOutcome", "apply_rake", "estimate_pot"]


@dataclass(frozen=True)
class RakeOutcome:
    rake: float
    amount: float
    ev: float


def estimate_pot(amount: float) -> float:
    return 2.0 * amount


def apply_rake(
    amount: float,
    ev: float,
    big_blind: float,
    *,
    rake_percentage: float = DEFAULT_RAKE_PERCENTAGE,
    rake_cap_bb: float = DEFAULT_RAKE_CAP_BB,
) -> RakeOutcome:
    """Return the rake withheld from one hand and its adjusted amount and EV.

    Losing and break-even hands pay no rake.  EV is only charged when it is
    positive, in proportion to the estimated equity share of the pot.
    """

    if amount <= 0:
        return RakeOutcome(rake=0.0, amount=amount, ev=ev)

    pot = estimate_pot(amount)
    rake = min(pot * rake_percentage, rake_cap_bb * big_blind)
    adjusted_ev = ev
    if ev > 0:
        equity_share = (pot / 2.0 + ev) / pot
        adjusted_ev = ev - rake * equity_share
    return RakeOutcome(rake=rake, amount=amount - rake, ev=adjusted_ev)
