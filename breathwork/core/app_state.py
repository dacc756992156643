from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Any, Callable

from PyQt6.QtCore import QObject, pyqtSignal

from breathwork.core.config import (
    DEFAULT_CONFIG,
    BreathConfig,
    BreathingPace,
    InvalidConfiguration,
    clamp_config,
    config_for_pace,
    merge_config,
)
from breathwork.core.history import HistoryStats, SessionEntry, compute_history_stats
from breathwork.core.session import BreathingSession, SessionResult, SessionStatus
from breathwork.core.timeline import Phase, PhaseKey, Snapshot


logger = logging.getLogger(__name__)

TICK_INTERVAL_MS = 250

DEFAULT_SETTINGS: dict[str, Any] = {
    "breathing_pace": BreathingPace.STANDARD.value,
    "cues_enabled": True,
}


class AppState(QObject):
    """Owns the breathwork session, user settings and finished-session history.

    Consecutive snapshots are compared so listeners get ``phase_changed`` once
    per phase and ``goal_reached`` once per hold.
    """

    state_changed = pyqtSignal()
    status_changed = pyqtSignal(str)
    phase_changed = pyqtSignal(object)
    goal_reached = pyqtSignal(object)
    session_finished = pyqtSignal(object)
    settings_changed = pyqtSignal(str, object)

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        super().__init__()
        self._clock = clock
        self.session = BreathingSession()
        self.defaults: BreathConfig = DEFAULT_CONFIG
        self.settings: dict[str, Any] = dict(DEFAULT_SETTINGS)
        self.history: list[SessionEntry] = []
        self._last_status = self.session.status
        self._last_phase: Phase | None = None
        self._goal_phase_key: PhaseKey | None = None

    @property
    def status(self) -> SessionStatus:
        return self.session.status

    @property
    def snapshot(self) -> Snapshot | None:
        return self.session.snapshot

    @property
    def result(self) -> SessionResult | None:
        return self.session.result

    def save_setting(self, key: str, value: Any) -> None:
        self.settings[key] = value
        self.settings_changed.emit(key, value)
        self.state_changed.emit()

    def update_defaults(self, **fields: Any) -> bool:
        try:
            self.defaults = clamp_config(merge_config(self.defaults, **fields))
        except InvalidConfiguration as exc:
            logger.warning("Rejected settings update: %s", exc)
            return False
        self.settings_changed.emit("defaults", self.defaults)
        self.state_changed.emit()
        return True

    def set_breathing_pace(self, pace: BreathingPace | str) -> bool:
        try:
            self.defaults = config_for_pace(pace, self.defaults)
        except InvalidConfiguration as exc:
            logger.warning("Rejected breathing pace: %s", exc)
            return False
        self.save_setting("breathing_pace", BreathingPace(pace).value)
        return True

    def set_hold_goal(self, seconds: float) -> None:
        self.update_defaults(hold_goal_sec=seconds)

    def set_recovery_goal(self, seconds: float) -> None:
        self.update_defaults(recovery_goal_sec=seconds)

    def start_session(self, **overrides: Any) -> bool:
        try:
            self.session.start(self._clock(), self.defaults, **overrides)
        except InvalidConfiguration as exc:
            logger.warning("Session not started: %s", exc)
            return False
        self._last_phase = None
        self._goal_phase_key = None
        self._publish()
        return True

    def tick(self) -> Snapshot | None:
        snapshot = self.session.tick(self._clock())
        self._publish()
        return snapshot

    def pause_session(self) -> None:
        self.session.pause(self._clock())
        self._publish()

    def resume_session(self) -> None:
        self.session.resume(self._clock())
        self._publish()

    def advance_from_hold(self) -> None:
        self.session.advance_from_hold(self._clock())
        self._publish(skipped_hold=True)

    def stop_session(self) -> None:
        self.session.stop(self._clock())
        self._publish()

    def reset_session(self) -> None:
        self.session.reset()
        self._last_phase = None
        self._goal_phase_key = None
        self._publish()

    def rate_last_session(self, rating: int | None, notes: str | None = None) -> bool:
        if not self.history:
            return False
        clean_notes = notes.strip() if notes else None
        self.history[-1] = replace(self.history[-1], rating=rating, notes=clean_notes or None)
        self.state_changed.emit()
        return True

    def history_stats(self) -> HistoryStats:
        return compute_history_stats(self.history)

    def _publish(self, skipped_hold: bool = False) -> None:
        status = self.session.status
        snapshot = self.session.snapshot

        if snapshot is not None and status != SessionStatus.IDLE:
            phase = snapshot.current_phase
            last = self._last_phase
            if last is None or phase.key != last.key:
                # a hold that ran out on its own has met its goal
                if last is not None and last.is_hold and not skipped_hold:
                    self._emit_goal(last)
                self._last_phase = phase
                self.phase_changed.emit(snapshot)
            if self.session.goal_reached:
                self._emit_goal(phase)

        if status != self._last_status:
            self._last_status = status
            self.status_changed.emit(status.value)
            result = self.session.result
            if status == SessionStatus.COMPLETED and result is not None:
                if result.completed and snapshot is not None and snapshot.current_phase.is_hold:
                    self._emit_goal(snapshot.current_phase)
                self.history.append(SessionEntry.from_result(result))
                self.session_finished.emit(result)

        self.state_changed.emit()

    def _emit_goal(self, phase: Phase) -> None:
        if phase.key == self._goal_phase_key:
            return
        self._goal_phase_key = phase.key
        self.goal_reached.emit(phase)
