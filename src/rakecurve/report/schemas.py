from __future__ import annotations

import re
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from ..core.models import DEFAULT_SESSION_BUFFER_MS, HandRecord, SessionRecord

__all__ = [
    "AdjustedHandPayload",
    "HandPayload",
    "RakeImpactPayload",
    "ReportPayload",
    "ReportRequest",
    "SessionPayload",
    "SessionStatPayload",
    "StakeAggregatePayload",
    "TotalsPayload",
    "big_blind_from_stakes",
    "parse_duration_ms",
]

# "$0.05/$0.10" -> 0.10; the last dollar amount is the big blind.
_BIG_BLIND_RE = re.compile(r"\$(\d+(?:\.\d+)?)\s*$")


def big_blind_from_stakes(stakes: str | None) -> float | None:
    if not stakes:
        return None
    match = _BIG_BLIND_RE.search(stakes.strip())
    if match is None:
        return None
    return float(match.group(1))


def parse_duration_ms(raw: str) -> int:
    """``"HH:MM:SS"`` (or ``"MM:SS"``) to milliseconds."""

    parts = raw.strip().split(":")
    if not 2 <= len(parts) <= 3:
        raise ValueError(f"unrecognised duration '{raw}'")
    try:
        values = [int(part) for part in parts]
    except ValueError as exc:
        raise ValueError(f"unrecognised duration '{raw}'") from exc
    if len(values) == 2:
        values.insert(0, 0)
    hours, minutes, seconds = values
    return (hours * 3600 + minutes * 60 + seconds) * 1000


class _APIModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class HandPayload(_APIModel):
    """One chart point.

    Accepts the flat shape and the charting library's nested
    ``{"label": 1, "data": {"timestamp": ..., "amount": ..., "ev": ...}}``.
    """

    label: int
    timestamp: int
    amount: float
    ev: float

    @model_validator(mode="before")
    @classmethod
    def _flatten(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        nested = data.get("data")
        if not isinstance(nested, dict):
            return data
        cleaned: dict[str, Any] = {key: value for key, value in data.items() if key != "data"}
        for key in ("timestamp", "amount", "ev"):
            if key in nested and key not in cleaned:
                cleaned[key] = nested[key]
        return cleaned

    def to_record(self) -> HandRecord:
        return HandRecord(
            label=self.label,
            timestamp=self.timestamp,
            cumulative_amount=self.amount,
            cumulative_ev=self.ev,
        )


class SessionPayload(_APIModel):
    start_timestamp: int = Field(validation_alias=AliasChoices("start_timestamp", "startTimestamp"))
    end_timestamp: int | None = Field(default=None, validation_alias=AliasChoices("end_timestamp", "endTimestamp"))
    duration_ms: int | None = Field(default=None, validation_alias=AliasChoices("duration_ms", "durationMs"))
    buffer_ms: int = Field(
        default=DEFAULT_SESSION_BUFFER_MS, validation_alias=AliasChoices("buffer_ms", "bufferMs")
    )
    expected_hand_count: int = Field(
        ge=0, validation_alias=AliasChoices("expected_hand_count", "expectedHandCount", "hands")
    )
    big_blind: float | None = Field(default=None, validation_alias=AliasChoices("big_blind", "bigBlind"))
    stakes: str = Field(validation_alias=AliasChoices("stakes", "stakes_label", "stakesLabel"))
    game_type: str | None = Field(default=None, validation_alias=AliasChoices("game_type", "gameType"))
    start_label: str | None = Field(default=None, validation_alias=AliasChoices("start_label", "startTime"))

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        cleaned: dict[str, Any] = dict(data)
        duration = cleaned.pop("duration", None)
        has_ms = "duration_ms" in cleaned or "durationMs" in cleaned
        if isinstance(duration, str) and duration.strip() and not has_ms:
            cleaned["duration_ms"] = parse_duration_ms(duration)
        return cleaned

    @model_validator(mode="after")
    def _resolve(self) -> SessionPayload:
        if self.big_blind is None:
            self.big_blind = big_blind_from_stakes(self.stakes)
        if self.big_blind is None or self.big_blind <= 0:
            raise ValueError(f"session '{self.stakes}' needs a positive big blind")
        if self.end_timestamp is None and self.duration_ms is None:
            raise ValueError("session needs either an end timestamp or a duration")
        return self

    def to_record(self) -> SessionRecord:
        if self.end_timestamp is not None:
            return SessionRecord(
                start_timestamp=self.start_timestamp,
                end_timestamp=self.end_timestamp,
                expected_hand_count=self.expected_hand_count,
                big_blind=float(self.big_blind),
                stakes_label=self.stakes,
                game_type=self.game_type,
                start_label=self.start_label,
            )
        return SessionRecord.from_duration(
            self.start_timestamp,
            int(self.duration_ms or 0),
            expected_hand_count=self.expected_hand_count,
            big_blind=float(self.big_blind),
            stakes_label=self.stakes,
            buffer_ms=self.buffer_ms,
            game_type=self.game_type,
            start_label=self.start_label,
        )


class ReportRequest(_APIModel):
    hands: list[HandPayload]
    sessions: list[SessionPayload]

    def hand_records(self) -> list[HandRecord]:
        return [hand.to_record() for hand in self.hands]

    def session_records(self) -> list[SessionRecord]:
        return [session.to_record() for session in self.sessions]


class AdjustedHandPayload(_APIModel):
    label: int
    timestamp: int
    session_index: int
    stakes: str
    big_blind: float
    delta_amount: float
    delta_ev: float
    rake: float
    adjusted_amount: float
    adjusted_ev: float
    amount: float
    ev: float
    total_rake: float
    total_rake_bb: float
    bb_result: float
    fallback: bool = False


class StakeAggregatePayload(_APIModel):
    stakes: str
    big_blind: float | None = None
    hands: int
    winloss: float
    ev: float
    bb_result: float
    bb_per_100: float
    percentage: float


class TotalsPayload(_APIModel):
    hands: int
    fallback_hands: int
    amount: float
    ev: float
    raw_amount: float
    raw_ev: float
    total_rake: float
    total_rake_bb: float
    bb_result: float
    bb_per_100: float


class SessionStatPayload(_APIModel):
    session_index: int
    start_label: str | None = None
    stakes: str
    expected_hands: int
    matched_hands: int
    discrepancy: int


class RakeImpactPayload(_APIModel):
    amount: float
    bb_amount: float
    bb_per_100: float


class ReportPayload(_APIModel):
    adjusted_hands: list[AdjustedHandPayload]
    stake_aggregates: list[StakeAggregatePayload]
    raw_stake_aggregates: list[StakeAggregatePayload]
    totals: TotalsPayload
    session_stats: list[SessionStatPayload]
    rake_impact: RakeImpactPayload
