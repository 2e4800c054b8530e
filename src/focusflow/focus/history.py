"""Completed focus sessions summarised over a trailing window."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable

from focusflow.core.errors import ValidationError
from focusflow.habits.models import FocusSession


@dataclass
class FocusHistory:
    """Completed sessions in the ``days`` days ending at ``end`` (inclusive)."""

    start: date
    end: date
    days: int
    sessions: list[FocusSession] = field(default_factory=list)

    @property
    def total_minutes(self) -> int:
        return sum(s.duration_minutes for s in self.sessions)

    @property
    def session_count(self) -> int:
        return len(self.sessions)

    @property
    def average_per_day(self) -> int:
        """Minutes per calendar day of the window, rounded half-up."""
        return int(math.floor(self.total_minutes / self.days + 0.5))

    def by_day(self) -> dict[date, list[FocusSession]]:
        """Sessions grouped by start date, newest day first."""
        grouped: dict[date, list[FocusSession]] = {}
        for session in sorted(self.sessions, key=lambda s: s.started_at, reverse=True):
            grouped.setdefault(session.started_at.date(), []).append(session)
        return grouped

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "days": self.days,
            "total_minutes": self.total_minutes,
            "session_count": self.session_count,
            "average_per_day": self.average_per_day,
            "by_day": {
                day.isoformat(): [s.duration_minutes for s in sessions]
                for day, sessions in self.by_day().items()
            },
        }


def history_window(days: int, today: date) -> tuple[date, date]:
    """First and last day of a ``days``-long window ending at ``today``."""
    if days < 1:
        raise ValidationError(f"days must be at least 1, got {days}")
    return today - timedelta(days=days - 1), today


def focus_history(sessions: Iterable[FocusSession], days: int, today: date) -> FocusHistory:
    """Summarise completed sessions that started inside the window."""
    start, end = history_window(days, today)
    kept = [
        s for s in sessions
        if s.completed and start <= s.started_at.date() <= end
    ]
    return FocusHistory(start=start, end=end, days=days, sessions=kept)
