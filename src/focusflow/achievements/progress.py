"""Progress snapshot fed to the achievement engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from focusflow.habits.models import Habit, HabitCompletion
from focusflow.habits.stats import week_start_for


@dataclass(frozen=True)
class ProgressSnapshot:
    """Derived progress values; recomputed on every data change, never stored."""
    overall_streak: int = 0
    total_completions: int = 0
    total_focus_minutes: int = 0
    habit_count: int = 0
    had_perfect_day: bool = False


def build_snapshot(
    habits: list[Habit],
    completions: Iterable[HabitCompletion],
    today: date,
    focus_minutes: int,
    overall_streak: int,
) -> ProgressSnapshot:
    """Derive a snapshot from the loaded habits and completion window.

    ``total_completions`` sums the counts of the Monday-based week containing
    ``today``; older completions in ``completions`` are ignored. A perfect day
    needs at least one habit, and every habit at target today.
    """
    habit_ids = {h.id for h in habits}
    monday = week_start_for(today)
    sunday = monday + timedelta(days=6)
    total = 0
    today_counts: dict[str, int] = {}
    for c in completions:
        if c.habit_id not in habit_ids:
            continue
        if monday <= c.date <= sunday:
            total += max(0, c.count)
        if c.date == today:
            today_counts[c.habit_id] = today_counts.get(c.habit_id, 0) + c.count

    perfect = bool(habits) and all(
        today_counts.get(h.id, 0) >= h.target_per_day for h in habits
    )

    return ProgressSnapshot(
        overall_streak=overall_streak,
        total_completions=total,
        total_focus_minutes=focus_minutes,
        habit_count=len(habits),
        had_perfect_day=perfect,
    )
