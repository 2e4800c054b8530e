"""Consecutive-day streaks derived from completion history."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

from focusflow.habits.models import Habit, HabitCompletion

# Backward scan limit; longer streaks report as 365
MAX_LOOKBACK_DAYS = 365


class StreakCalculator:
    """Computes per-habit and all-habit streaks ending at ``today``.

    Today is allowed to be incomplete: a streak still in progress counts
    from yesterday backwards. Any earlier missed day ends the streak.

    Usage:
        calc = StreakCalculator(completions, today=date.today())
        calc.habit_streak(habit)
        calc.overall_streak(habits)
    """

    def __init__(
        self,
        completions: Iterable[HabitCompletion],
        today: date,
        lookback_days: int = MAX_LOOKBACK_DAYS,
    ):
        self.today = today
        self.lookback_days = lookback_days
        self._counts: dict[tuple[str, date], int] = {}
        for completion in completions:
            key = (completion.habit_id, completion.date)
            self._counts[key] = self._counts.get(key, 0) + max(0, completion.count)

    def count_on(self, habit_id: str, day: date) -> int:
        return self._counts.get((habit_id, day), 0)

    def met_target(self, habit: Habit, day: date) -> bool:
        return self.count_on(habit.id, day) >= habit.target_per_day

    def habit_streak(self, habit: Habit) -> int:
        """Consecutive days the habit met its target."""
        return self._scan(lambda day: self.met_target(habit, day))

    def overall_streak(self, habits: list[Habit]) -> int:
        """Consecutive days on which every habit met its target."""
        if not habits:
            return 0
        return self._scan(lambda day: all(self.met_target(h, day) for h in habits))

    def longest_streak(self, habit: Habit) -> int:
        """Longest run of qualifying days inside the lookback window."""
        longest = 0
        run = 0
        for offset in range(self.lookback_days - 1, -1, -1):
            if self.met_target(habit, self.today - timedelta(days=offset)):
                run += 1
                longest = max(longest, run)
            else:
                run = 0
        return longest

    def _scan(self, qualifies) -> int:
        streak = 0
        for offset in range(self.lookback_days):
            if qualifies(self.today - timedelta(days=offset)):
                streak += 1
            elif offset > 0:
                break
        return streak
