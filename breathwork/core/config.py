"""Breathing protocol parameters, their limits and pace presets."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, NamedTuple


logger = logging.getLogger(__name__)


class InvalidConfiguration(ValueError):
    """Raised when a protocol parameter violates its constraint."""


class Limit(NamedTuple):
    min: float
    max: float


@dataclass(frozen=True)
class BreathConfig:
    rounds: int = 3
    breaths_per_round: int = 30
    inhale_sec: float = 2.0
    exhale_sec: float = 2.0
    hold_goal_sec: float = 60.0
    recovery_goal_sec: float = 15.0

    @property
    def round_duration_sec(self) -> float:
        breaths = self.breaths_per_round * (self.inhale_sec + self.exhale_sec)
        return breaths + self.hold_goal_sec + self.recovery_goal_sec

    def validate(self) -> None:
        for name in ("rounds", "breaths_per_round"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidConfiguration(f"{name} must be an integer, got {value!r}")
        for name in ("inhale_sec", "exhale_sec", "hold_goal_sec", "recovery_goal_sec"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise InvalidConfiguration(f"{name} must be a finite number, got {value!r}")
        if self.rounds < 1:
            raise InvalidConfiguration(f"rounds must be >= 1, got {self.rounds}")
        if self.breaths_per_round < 1:
            raise InvalidConfiguration(f"breaths_per_round must be >= 1, got {self.breaths_per_round}")
        if self.inhale_sec <= 0:
            raise InvalidConfiguration(f"inhale_sec must be positive, got {self.inhale_sec}")
        if self.exhale_sec <= 0:
            raise InvalidConfiguration(f"exhale_sec must be positive, got {self.exhale_sec}")
        if self.hold_goal_sec < 0:
            raise InvalidConfiguration(f"hold_goal_sec must be >= 0, got {self.hold_goal_sec}")
        if self.recovery_goal_sec < 0:
            raise InvalidConfiguration(f"recovery_goal_sec must be >= 0, got {self.recovery_goal_sec}")


DEFAULT_CONFIG = BreathConfig()

LIMITS: dict[str, Limit] = {
    "rounds": Limit(1, 8),
    "breaths_per_round": Limit(10, 60),
    "inhale_sec": Limit(1, 4),
    "exhale_sec": Limit(1, 4),
    "hold_goal_sec": Limit(0, 180),
    "recovery_goal_sec": Limit(5, 30),
}

_INT_FIELDS = {"rounds", "breaths_per_round"}


class BreathingPace(str, Enum):
    SLOW = "slow"
    STANDARD = "standard"
    FAST = "fast"


PACE_PRESETS: dict[BreathingPace, tuple[float, float]] = {
    BreathingPace.SLOW: (3.0, 3.0),
    BreathingPace.STANDARD: (2.0, 2.0),
    BreathingPace.FAST: (1.5, 1.5),
}


def clamp_value(value: float, limit: Limit) -> float:
    return min(limit.max, max(limit.min, value))


def clamp_config(config: BreathConfig) -> BreathConfig:
    """Pull every field of ``config`` into ``LIMITS``; used by the settings layer."""
    clamped: dict[str, Any] = {}
    for name, limit in LIMITS.items():
        raw = getattr(config, name)
        value = clamp_value(raw, limit)
        if value != raw:
            logger.debug("Clamped %s from %s to %s", name, raw, value)
        clamped[name] = int(value) if name in _INT_FIELDS else float(value)
    return replace(config, **clamped)


def merge_config(base: BreathConfig | None = None, **overrides: Any) -> BreathConfig:
    """Return ``base`` (or the defaults) with the non-``None`` overrides applied."""
    known = {f.name for f in fields(BreathConfig)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise InvalidConfiguration(f"Unknown configuration fields: {', '.join(unknown)}")
    updates = {key: value for key, value in overrides.items() if value is not None}
    return replace(base or DEFAULT_CONFIG, **updates)


def config_for_pace(pace: BreathingPace | str, base: BreathConfig | None = None) -> BreathConfig:
    try:
        preset = PACE_PRESETS[BreathingPace(pace)]
    except ValueError as exc:
        raise InvalidConfiguration(f"Unknown breathing pace: {pace!r}") from exc
    inhale_sec, exhale_sec = preset
    return replace(base or DEFAULT_CONFIG, inhale_sec=inhale_sec, exhale_sec=exhale_sec)
