"""Day-bucketed completion rates for weekly charts and trend reports."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable

from focusflow.core.errors import ValidationError
from focusflow.habits.models import Habit, HabitCompletion


@dataclass
class DayStat:
    """Completion rate for one day across all habits."""

    day: date
    completed: int
    total: int

    @property
    def label(self) -> str:
        """Short weekday name (Mon, Tue, ...)."""
        return self.day.strftime("%a")

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 0
        return _round_half_up(self.completed / self.total * 100)

    def to_dict(self) -> dict[str, Any]:
        return {
            "day": self.label,
            "date": self.day.isoformat(),
            "completed": self.completed,
            "total": self.total,
            "percentage": self.percentage,
        }


@dataclass
class PeriodStats:
    """Trailing-window statistics with a two-bucket trend signal."""

    days: list[DayStat] = field(default_factory=list)

    @property
    def total_possible(self) -> int:
        return sum(d.total for d in self.days)

    @property
    def total_completed(self) -> int:
        return sum(d.completed for d in self.days)

    @property
    def average_rate(self) -> int:
        if not self.days:
            return 0
        return _round_half_up(sum(d.percentage for d in self.days) / len(self.days))

    @property
    def perfect_days(self) -> int:
        return sum(1 for d in self.days if d.percentage == 100)

    @property
    def trend(self) -> float:
        """Average rate of the second half minus that of the first half."""
        midpoint = len(self.days) // 2
        return _mean_rate(self.days[midpoint:]) - _mean_rate(self.days[:midpoint])

    def to_dict(self) -> dict[str, Any]:
        return {
            "days": [d.to_dict() for d in self.days],
            "total_possible": self.total_possible,
            "total_completed": self.total_completed,
            "average_rate": self.average_rate,
            "perfect_days": self.perfect_days,
            "trend": self.trend,
        }


def week_start_for(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def day_stat(habits: list[Habit], counts: dict[tuple[str, date], int], day: date) -> DayStat:
    completed = 0
    total = 0
    for habit in habits:
        total += habit.target_per_day
        count = max(0, counts.get((habit.id, day), 0))
        completed += min(count, habit.target_per_day)
    return DayStat(day=day, completed=completed, total=total)


def weekly_stats(
    habits: list[Habit],
    completions: Iterable[HabitCompletion],
    week_start: date,
) -> list[DayStat]:
    """Per-day stats for the Monday-based week containing ``week_start``."""
    monday = week_start_for(week_start)
    counts = _index(completions)
    return [day_stat(habits, counts, monday + timedelta(days=i)) for i in range(7)]


def period_stats(
    habits: list[Habit],
    completions: Iterable[HabitCompletion],
    days: int,
    today: date,
) -> PeriodStats:
    """Per-day stats for the ``days`` days ending at ``today`` (inclusive)."""
    if days < 1:
        raise ValidationError(f"days must be at least 1, got {days}")

    counts = _index(completions)
    start = today - timedelta(days=days - 1)
    return PeriodStats(
        days=[day_stat(habits, counts, start + timedelta(days=i)) for i in range(days)]
    )


def _index(completions: Iterable[HabitCompletion]) -> dict[tuple[str, date], int]:
    counts: dict[tuple[str, date], int] = {}
    for c in completions:
        key = (c.habit_id, c.date)
        counts[key] = counts.get(key, 0) + max(0, c.count)
    return counts


def _mean_rate(days: list[DayStat]) -> float:
    if not days:
        return 0.0
    return sum(d.percentage for d in days) / len(days)


def _round_half_up(value: float) -> int:
    # round() uses banker's rounding; 12.5% should display as 13%
    return int(math.floor(value + 0.5))
