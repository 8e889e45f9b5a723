"""Placement strategies for hands the capacity search cannot place.

Only used in tolerant mode, and only with a policy the caller named.  Each
strategy is a plain function ``(timestamp, index) -> session index | None``.
Remaining ties go to the session that started first.
"""

from __future__ import annotations

from collections.abc import Callable

from ..core.config import HIGHEST_STAKE, NEAREST
from .intervals import IntervalIndex

__all__ = ["FallbackStrategy", "highest_stake_session", "nearest_session", "resolve_strategy"]

FallbackStrategy = Callable[[int, IntervalIndex], int | None]


def highest_stake_session(timestamp: int, index: IntervalIndex) -> int | None:
    best: int | None = None
    for idx in index.sorted_indices:
        if best is None or index.sessions[idx].big_blind > index.sessions[best].big_blind:
            best = idx
    return best


def nearest_session(timestamp: int, index: IntervalIndex) -> int | None:
    """Session whose window is closest to ``timestamp``.

    Sessions at the same distance (including several windows containing the
    hand) are settled by highest big blind, then start order.
    """

    best: int | None = None
    best_key: tuple[int, float] = (0, 0.0)
    for idx in index.sorted_indices:
        session = index.sessions[idx]
        key = (session.distance_to(timestamp), -session.big_blind)
        if best is None or key < best_key:
            best, best_key = idx, key
    return best


_STRATEGIES: dict[str, FallbackStrategy] = {
    NEAREST: nearest_session,
    HIGHEST_STAKE: highest_stake_session,
}


def resolve_strategy(name: str) -> FallbackStrategy:
    try:
        return _STRATEGIES[name]
    except KeyError as exc:
        raise ValueError(f"Unknown fallback policy '{name}'. Options: {', '.join(sorted(_STRATEGIES))}") from exc
