"""Headless entry point: runs one guided breathwork session on the Qt event loop.

A ``QTimer`` ticks the application state every 250 ms and phase changes are
written to the log, standing in for the audio and haptic cue layer.
"""

from __future__ import annotations

import argparse
import logging
import sys

from PyQt6.QtCore import QCoreApplication, QTimer

from breathwork.core.app_state import TICK_INTERVAL_MS, AppState
from breathwork.core.config import BreathingPace, LIMITS
from breathwork.core.session import SessionResult
from breathwork.core.timeline import HoldPhase, Snapshot


logger = logging.getLogger("breathwork")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a guided breathwork session")
    parser.add_argument("--rounds", type=int, help=f"Rounds ({LIMITS['rounds'].min:g}-{LIMITS['rounds'].max:g})")
    parser.add_argument("--breaths", type=int, help="Breaths per round")
    parser.add_argument("--pace", choices=[p.value for p in BreathingPace], default=BreathingPace.STANDARD.value)
    parser.add_argument("--hold", type=float, help="Empty-lung hold goal in seconds")
    parser.add_argument("--recovery", type=float, help="Recovery hold goal in seconds")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def describe(snapshot: Snapshot) -> str:
    phase = snapshot.current_phase
    text = f"Round {snapshot.round_index}/{snapshot.total_rounds} {phase.kind.value}"
    if snapshot.breath_index is not None:
        text += f" {snapshot.breath_index}/{snapshot.total_breaths}"
    return f"{text} ({phase.duration_sec:g}s)"


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QCoreApplication(sys.argv)
    app_state = AppState()
    app_state.set_breathing_pace(args.pace)
    app_state.update_defaults(
        rounds=args.rounds,
        breaths_per_round=args.breaths,
        hold_goal_sec=args.hold,
        recovery_goal_sec=args.recovery,
    )

    timer = QTimer()
    timer.setInterval(TICK_INTERVAL_MS)
    timer.timeout.connect(app_state.tick)

    def on_phase(snapshot: Snapshot) -> None:
        if app_state.settings.get("cues_enabled", True):
            logger.info(describe(snapshot))

    def on_goal(phase: HoldPhase) -> None:
        logger.info("%s goal of %gs reached", phase.kind.value.capitalize(), phase.hold_goal_sec)

    def on_finished(result: SessionResult) -> None:
        timer.stop()
        stats = result.stats
        logger.info(
            "Finished: %d rounds, longest hold %ds, %ds total",
            stats.rounds_completed,
            stats.longest_hold_sec,
            stats.total_duration_sec,
        )
        app.quit()

    app_state.phase_changed.connect(on_phase)
    app_state.goal_reached.connect(on_goal)
    app_state.session_finished.connect(on_finished)

    if not app_state.start_session():
        return 1
    timer.start()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
