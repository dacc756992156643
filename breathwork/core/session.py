from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from breathwork.core.config import BreathConfig, merge_config
from breathwork.core.timeline import (
    PhaseKey,
    SessionStats,
    Snapshot,
    Timeline,
    aggregate_stats,
    build_timeline,
    resolve_snapshot,
)


logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


@dataclass(frozen=True)
class SessionResult:
    config: BreathConfig
    stats: SessionStats
    started_at: float
    ended_at: float
    completed: bool


class BreathingSession:
    """Breathwork session lifecycle driven by caller-supplied timestamps.

    Timestamps are seconds on any clock the caller likes; elapsed time is
    banked in milliseconds across pauses.
    """

    def __init__(self) -> None:
        self._config: BreathConfig | None = None
        self._status = SessionStatus.IDLE
        self._timeline: Timeline | None = None
        self._snapshot: Snapshot | None = None
        self._result: SessionResult | None = None
        self._started_at: float | None = None
        self._clock_anchor: float | None = None
        self._accumulated_elapsed_ms = 0.0
        self._hold_phase_key: PhaseKey | None = None
        self._hold_phase_start_elapsed_sec: float | None = None
        self._hold_elapsed_sec = 0.0
        self._goal_reached = False
        self._is_hold_phase = False

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_active(self) -> bool:
        return self._status in {SessionStatus.RUNNING, SessionStatus.PAUSED}

    @property
    def config(self) -> BreathConfig | None:
        return self._config

    @property
    def timeline(self) -> Timeline | None:
        return self._timeline

    @property
    def snapshot(self) -> Snapshot | None:
        return self._snapshot

    @property
    def result(self) -> SessionResult | None:
        return self._result

    @property
    def started_at(self) -> float | None:
        return self._started_at

    @property
    def clock_anchor(self) -> float | None:
        return self._clock_anchor

    @property
    def accumulated_elapsed_ms(self) -> float:
        return self._accumulated_elapsed_ms

    @property
    def hold_phase_start_elapsed_sec(self) -> float | None:
        return self._hold_phase_start_elapsed_sec

    @property
    def hold_elapsed_sec(self) -> float:
        return self._hold_elapsed_sec

    @property
    def goal_reached(self) -> bool:
        return self._goal_reached

    @property
    def is_hold_phase(self) -> bool:
        return self._is_hold_phase

    def elapsed_ms(self, now: float) -> float:
        elapsed = self._accumulated_elapsed_ms
        if self._status == SessionStatus.RUNNING and self._clock_anchor is not None:
            elapsed += max(0.0, now - self._clock_anchor) * 1000.0
        return elapsed

    def start(self, now: float, config: BreathConfig | None = None, **overrides: Any) -> Snapshot:
        """Begin a fresh session from any state.

        Raises:
            InvalidConfiguration: the merged config is rejected; state is untouched.
        """
        next_config = merge_config(config, **overrides)
        timeline = build_timeline(next_config)

        self._config = next_config
        self._timeline = timeline
        self._status = SessionStatus.RUNNING
        self._started_at = now
        self._clock_anchor = now
        self._accumulated_elapsed_ms = 0.0
        self._result = None
        self._clear_hold_tracking()
        self._snapshot = resolve_snapshot(timeline, 0)
        logger.info(
            "Session started: %d rounds x %d breaths, %.1fs total",
            timeline.total_rounds,
            timeline.breaths_per_round,
            timeline.total_duration_sec,
        )
        return self._snapshot

    def tick(self, now: float) -> Snapshot | None:
        if self._status != SessionStatus.RUNNING or self._timeline is None:
            return self._snapshot

        elapsed_ms = self.elapsed_ms(now)
        snapshot = resolve_snapshot(self._timeline, elapsed_ms)

        if snapshot.is_complete:
            self._finish(now, elapsed_ms, snapshot, completed=True)
            return snapshot

        self._track_hold(snapshot, elapsed_ms / 1000.0)
        self._snapshot = snapshot
        return snapshot

    def pause(self, now: float) -> None:
        if self._status != SessionStatus.RUNNING:
            logger.debug("pause ignored in state %s", self._status.value)
            return
        self._accumulated_elapsed_ms = self.elapsed_ms(now)
        self._clock_anchor = None
        self._status = SessionStatus.PAUSED

    def resume(self, now: float) -> None:
        if self._status != SessionStatus.PAUSED:
            logger.debug("resume ignored in state %s", self._status.value)
            return
        self._clock_anchor = now
        self._status = SessionStatus.RUNNING

    def advance_from_hold(self, now: float) -> Snapshot | None:
        """Skip the rest of the current hold or recovery phase."""
        snapshot = self._snapshot
        if self._status != SessionStatus.RUNNING or self._timeline is None or snapshot is None:
            logger.debug("advance_from_hold ignored in state %s", self._status.value)
            return snapshot
        if not snapshot.current_phase.is_hold:
            logger.debug("advance_from_hold ignored during %s", snapshot.current_phase.kind.value)
            return snapshot

        if snapshot.next_phase is None:
            self.stop(now)
            return self._snapshot

        # the displayed phase is the one being skipped, even if its end has already passed
        boundary_sec = sum(phase.duration_sec for phase in self._timeline.phases[: snapshot.phase_index + 1])
        elapsed_ms = max(self.elapsed_ms(now), boundary_sec * 1000.0)
        self._accumulated_elapsed_ms = elapsed_ms
        self._clock_anchor = now
        self._clear_hold_tracking()
        self._snapshot = resolve_snapshot(self._timeline, elapsed_ms)
        self._is_hold_phase = self._snapshot.current_phase.is_hold
        return self._snapshot

    def stop(self, now: float) -> SessionResult | None:
        if not self.is_active or self._timeline is None:
            logger.debug("stop ignored in state %s", self._status.value)
            return None
        elapsed_ms = self.elapsed_ms(now)
        snapshot = resolve_snapshot(self._timeline, elapsed_ms)
        self._finish(now, elapsed_ms, snapshot, completed=False)
        return self._result

    def reset(self) -> None:
        self._timeline = None
        self._snapshot = None
        self._result = None
        self._started_at = None
        self._clock_anchor = None
        self._accumulated_elapsed_ms = 0.0
        self._status = SessionStatus.IDLE
        self._clear_hold_tracking()

    def _finish(self, now: float, elapsed_ms: float, snapshot: Snapshot, completed: bool) -> None:
        assert self._timeline is not None and self._config is not None
        stats = aggregate_stats(self._timeline, elapsed_ms)
        self._snapshot = snapshot
        self._status = SessionStatus.COMPLETED
        self._clock_anchor = None
        self._accumulated_elapsed_ms = elapsed_ms
        self._clear_hold_tracking()
        self._result = SessionResult(
            config=self._config,
            stats=stats,
            started_at=self._started_at if self._started_at is not None else now - elapsed_ms / 1000.0,
            ended_at=now,
            completed=completed,
        )
        logger.info(
            "Session %s after %ss, %d rounds completed",
            "completed" if completed else "stopped",
            stats.total_duration_sec,
            stats.rounds_completed,
        )

    def _track_hold(self, snapshot: Snapshot, elapsed_sec: float) -> None:
        phase = snapshot.current_phase
        if not phase.is_hold:
            self._clear_hold_tracking()
            return
        if self._hold_phase_start_elapsed_sec is None or self._hold_phase_key != phase.key:
            self._hold_phase_key = phase.key
            self._hold_phase_start_elapsed_sec = elapsed_sec - snapshot.phase_elapsed_sec
        self._hold_elapsed_sec = elapsed_sec - self._hold_phase_start_elapsed_sec
        self._goal_reached = self._hold_elapsed_sec >= phase.hold_goal_sec
        self._is_hold_phase = True

    def _clear_hold_tracking(self) -> None:
        self._hold_phase_key = None
        self._hold_phase_start_elapsed_sec = None
        self._hold_elapsed_sec = 0.0
        self._goal_reached = False
        self._is_hold_phase = False
