from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Union

from breathwork.core.config import BreathConfig


class PhaseKind(str, Enum):
    INHALE = "inhale"
    EXHALE = "exhale"
    HOLD = "hold"
    RECOVERY = "recovery"


HOLD_KINDS = frozenset({PhaseKind.HOLD, PhaseKind.RECOVERY})

PhaseKey = tuple[PhaseKind, int, Union[int, None]]


@dataclass(frozen=True)
class BreathPhase:
    kind: PhaseKind
    duration_sec: float
    round_index: int
    breath_index: int

    is_hold = False

    @property
    def key(self) -> PhaseKey:
        return (self.kind, self.round_index, self.breath_index)


@dataclass(frozen=True)
class HoldPhase:
    kind: PhaseKind
    duration_sec: float
    round_index: int
    hold_goal_sec: float

    is_hold = True

    @property
    def key(self) -> PhaseKey:
        return (self.kind, self.round_index, None)


Phase = Union[BreathPhase, HoldPhase]


@dataclass(frozen=True)
class Timeline:
    phases: tuple[Phase, ...]
    total_duration_sec: float
    total_rounds: int
    breaths_per_round: int
    hold_goal_sec: float
    recovery_goal_sec: float


@dataclass(frozen=True)
class Snapshot:
    current_phase: Phase
    phase_index: int
    next_phase: Phase | None
    phase_elapsed_sec: float
    phase_remaining_sec: float
    global_elapsed_sec: float
    total_duration_sec: float
    total_rounds: int
    total_breaths: int
    is_complete: bool

    @property
    def round_index(self) -> int:
        return self.current_phase.round_index

    @property
    def breath_index(self) -> int | None:
        return getattr(self.current_phase, "breath_index", None)

    @property
    def progress(self) -> float:
        if self.total_duration_sec <= 0:
            return 1.0 if self.is_complete else 0.0
        return max(0.0, min(1.0, self.global_elapsed_sec / self.total_duration_sec))


@dataclass(frozen=True)
class SessionStats:
    rounds_completed: int
    longest_hold_sec: int
    total_duration_sec: int


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def build_timeline(config: BreathConfig) -> Timeline:
    """Expand ``config`` into the ordered phases of a whole session.

    Each round is ``breaths_per_round`` inhale/exhale pairs followed by one
    hold and one recovery phase whose durations equal their goals.

    Raises:
        InvalidConfiguration: if ``config`` violates a constraint.
    """
    config.validate()
    phases: list[Phase] = []
    for round_index in range(1, config.rounds + 1):
        for breath_index in range(1, config.breaths_per_round + 1):
            phases.append(BreathPhase(PhaseKind.INHALE, config.inhale_sec, round_index, breath_index))
            phases.append(BreathPhase(PhaseKind.EXHALE, config.exhale_sec, round_index, breath_index))
        phases.append(HoldPhase(PhaseKind.HOLD, config.hold_goal_sec, round_index, config.hold_goal_sec))
        phases.append(
            HoldPhase(PhaseKind.RECOVERY, config.recovery_goal_sec, round_index, config.recovery_goal_sec)
        )

    return Timeline(
        phases=tuple(phases),
        total_duration_sec=sum(phase.duration_sec for phase in phases),
        total_rounds=config.rounds,
        breaths_per_round=config.breaths_per_round,
        hold_goal_sec=config.hold_goal_sec,
        recovery_goal_sec=config.recovery_goal_sec,
    )


def resolve_snapshot(timeline: Timeline, elapsed_ms: float) -> Snapshot:
    """Locate ``elapsed_ms`` within ``timeline``.

    A remainder exactly on a phase boundary belongs to the phase starting
    there. Values past the end resolve to the last phase, fully elapsed.
    """
    elapsed_sec = max(0.0, elapsed_ms / 1000.0)
    capped = min(elapsed_sec, timeline.total_duration_sec)
    is_complete = elapsed_sec >= timeline.total_duration_sec
    last = len(timeline.phases) - 1

    remaining = capped
    for index, phase in enumerate(timeline.phases):
        if remaining < phase.duration_sec or index == last:
            phase_elapsed = max(0.0, min(remaining, phase.duration_sec))
            return Snapshot(
                current_phase=phase,
                phase_index=index,
                next_phase=timeline.phases[index + 1] if index < last else None,
                phase_elapsed_sec=phase_elapsed,
                phase_remaining_sec=max(0.0, phase.duration_sec - phase_elapsed),
                global_elapsed_sec=capped,
                total_duration_sec=timeline.total_duration_sec,
                total_rounds=timeline.total_rounds,
                total_breaths=timeline.breaths_per_round,
                is_complete=is_complete,
            )
        remaining -= phase.duration_sec

    raise ValueError("Timeline has no phases")


def aggregate_stats(timeline: Timeline, elapsed_ms: float) -> SessionStats:
    """Rounds completed, longest hold and elapsed time at ``elapsed_ms``."""
    elapsed_sec = max(0.0, min(timeline.total_duration_sec, elapsed_ms / 1000.0))
    remaining = elapsed_sec
    rounds_completed = 0
    longest_hold = 0.0

    for phase in timeline.phases:
        time_in_phase = min(remaining, phase.duration_sec)
        if phase.is_hold:
            longest_hold = max(longest_hold, time_in_phase)
        if phase.kind == PhaseKind.RECOVERY and remaining >= phase.duration_sec:
            rounds_completed = max(rounds_completed, phase.round_index)
        remaining -= phase.duration_sec
        if remaining <= 0:
            break

    return SessionStats(
        rounds_completed=rounds_completed,
        longest_hold_sec=round_half_up(longest_hold),
        total_duration_sec=round_half_up(elapsed_sec),
    )
