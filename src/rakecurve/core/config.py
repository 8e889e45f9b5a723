"""Engine options and their environment-variable overrides.

Options live on a frozen :class:`EngineConfig`.  Hosts that cannot pass a
config object explicitly (scripts, CI hooks) can use :meth:`EngineConfig.from_env`
which reads::

    RAKECURVE_RAKE_PERCENTAGE   fraction of the estimated pot, e.g. 0.05
    RAKECURVE_RAKE_CAP_BB       cap expressed in big blinds, e.g. 3
    RAKECURVE_MATCHING_MODE     "strict" or "tolerant"
    RAKECURVE_FALLBACK          "nearest" or "highest_stake"

Values are case-insensitive.  Nothing here reads the clock.
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Final

from .errors import InvalidConfiguration

__all__ = [
    "DEFAULT_RAKE_CAP_BB",
    "DEFAULT_RAKE_PERCENTAGE",
    "EngineConfig",
    "FALLBACK_POLICIES",
    "HIGHEST_STAKE",
    "MATCHING_MODES",
    "NEAREST",
    "STRICT",
    "TOLERANT",
]

STRICT: Final = "strict"
TOLERANT: Final = "tolerant"
MATCHING_MODES: Final = frozenset({STRICT, TOLERANT})

NEAREST: Final = "nearest"
HIGHEST_STAKE: Final = "highest_stake"
FALLBACK_POLICIES: Final = frozenset({NEAREST, HIGHEST_STAKE})

DEFAULT_RAKE_PERCENTAGE: Final = 0.05
DEFAULT_RAKE_CAP_BB: Final = 3.0

_ENV_PREFIX: Final = "RAKECURVE_"
_ENV_FIELDS: Final = {
    "RAKE_PERCENTAGE": "rake_percentage",
    "RAKE_CAP_BB": "rake_cap_bb",
    "MATCHING_MODE": "matching_mode",
    "FALLBACK": "fallback_policy",
}


def _normalise(value: str) -> str:
    return value.strip().lower().replace("-", "_")


@dataclass(frozen=True)
class EngineConfig:
    """Options recognised by the matching engine and the rake model."""

    rake_percentage: float = DEFAULT_RAKE_PERCENTAGE
    rake_cap_bb: float = DEFAULT_RAKE_CAP_BB
    matching_mode: str = STRICT
    # Required in tolerant mode; there is deliberately no implicit default.
    fallback_policy: str | None = None

    @property
    def tolerant(self) -> bool:
        return self.matching_mode == TOLERANT

    def validate(self) -> EngineConfig:
        """Return a normalised copy or raise :class:`InvalidConfiguration`."""

        try:
            pct = float(self.rake_percentage)
            cap = float(self.rake_cap_bb)
        except (TypeError, ValueError) as exc:
            raise InvalidConfiguration(f"rake options must be numeric: {exc}") from exc
        if not math.isfinite(pct) or not 0.0 <= pct <= 1.0:
            raise InvalidConfiguration(f"rake_percentage must be within [0, 1], got {self.rake_percentage!r}")
        if not math.isfinite(cap) or cap < 0.0:
            raise InvalidConfiguration(f"rake_cap_bb must be a finite value >= 0, got {self.rake_cap_bb!r}")

        mode = _normalise(str(self.matching_mode or ""))
        if mode not in MATCHING_MODES:
            options = ", ".join(sorted(MATCHING_MODES))
            raise InvalidConfiguration(f"Unknown matching_mode '{self.matching_mode}'. Options: {options}")

        policy = _normalise(self.fallback_policy) if self.fallback_policy else None
        if policy is not None and policy not in FALLBACK_POLICIES:
            options = ", ".join(sorted(FALLBACK_POLICIES))
            raise InvalidConfiguration(f"Unknown fallback_policy '{self.fallback_policy}'. Options: {options}")
        if mode == TOLERANT and policy is None:
            raise InvalidConfiguration("tolerant matching requires an explicit fallback_policy")

        return replace(self, rake_percentage=pct, rake_cap_bb=cap, matching_mode=mode, fallback_policy=policy)

    @classmethod
    def env_values(cls, environ: Mapping[str, str] | None = None) -> dict[str, str]:
        """Raw ``RAKECURVE_*`` settings keyed by field name, not yet validated.

        Callers that layer their own overrides merge them into this mapping
        and validate once, so an override can replace a bad variable.
        """

        env = os.environ if environ is None else environ
        values: dict[str, str] = {}
        for name, field_name in _ENV_FIELDS.items():
            value = env.get(f"{_ENV_PREFIX}{name}")
            if value is not None and value.strip():
                values[field_name] = value.strip()
        return values

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """Build a validated config from ``RAKECURVE_*`` variables."""

        return cls(**cls.env_values(environ)).validate()
