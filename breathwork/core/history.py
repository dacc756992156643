"""Aggregates over finished sessions: totals, weekly time and day streaks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable

from breathwork.core.session import SessionResult


class SessionType(str, Enum):
    BREATHWORK = "breathwork"
    COLD = "cold"


@dataclass(frozen=True)
class SessionEntry:
    session_type: SessionType
    started_at: datetime
    ended_at: datetime
    duration_sec: int
    completed: bool
    rounds_completed: int | None = None
    longest_hold_sec: int | None = None
    rating: int | None = None
    notes: str | None = None

    @classmethod
    def from_result(
        cls, result: SessionResult, rating: int | None = None, notes: str | None = None
    ) -> "SessionEntry":
        """Convert a breathwork result whose timestamps are epoch seconds."""
        return cls(
            session_type=SessionType.BREATHWORK,
            started_at=datetime.fromtimestamp(result.started_at),
            ended_at=datetime.fromtimestamp(result.ended_at),
            duration_sec=result.stats.total_duration_sec,
            completed=result.completed,
            rounds_completed=result.stats.rounds_completed,
            longest_hold_sec=result.stats.longest_hold_sec,
            rating=rating,
            notes=notes,
        )


@dataclass(frozen=True)
class HistoryStats:
    total_sessions: int = 0
    breathwork_sessions: int = 0
    cold_sessions: int = 0
    current_streak: int = 0
    last_session_day: str | None = None
    total_duration_sec: int = 0
    longest_hold_sec: int = 0
    this_week_duration_sec: int = 0


def _streak_days(days: list[date]) -> int:
    """Count consecutive days backwards from the newest entry of ``days``."""
    if not days:
        return 0
    streak = 1
    for newer, older in zip(days, days[1:]):
        if newer - older != timedelta(days=1):
            break
        streak += 1
    return streak


def compute_history_stats(entries: Iterable[SessionEntry], now: datetime | None = None) -> HistoryStats:
    rows = list(entries)
    if not rows:
        return HistoryStats()
    if now is None:
        now = datetime.now()

    week_start = now - timedelta(days=7)
    days = sorted({row.ended_at.date() for row in rows}, reverse=True)

    return HistoryStats(
        total_sessions=len(rows),
        breathwork_sessions=sum(1 for r in rows if r.session_type == SessionType.BREATHWORK),
        cold_sessions=sum(1 for r in rows if r.session_type == SessionType.COLD),
        current_streak=_streak_days(days),
        last_session_day=days[0].isoformat(),
        total_duration_sec=sum(r.duration_sec for r in rows),
        longest_hold_sec=max(
            (r.longest_hold_sec or 0 for r in rows if r.session_type == SessionType.BREATHWORK),
            default=0,
        ),
        this_week_duration_sec=sum(r.duration_sec for r in rows if r.ended_at >= week_start),
    )
