"""Habit records, completion toggling, streaks and statistics."""

from focusflow.habits.models import Habit, HabitCategory, HabitCompletion, FocusSession, parse_category
from focusflow.habits.completion import CompletionEngine, ToggleResult, next_count
from focusflow.habits.streaks import StreakCalculator, MAX_LOOKBACK_DAYS
from focusflow.habits.stats import DayStat, PeriodStats, weekly_stats, period_stats
from focusflow.habits.templates import HABIT_TEMPLATES, HabitTemplate, get_template, templates_for

__all__ = [
    "Habit",
    "HabitCategory",
    "parse_category",
    "HabitCompletion",
    "FocusSession",
    "CompletionEngine",
    "ToggleResult",
    "next_count",
    "StreakCalculator",
    "MAX_LOOKBACK_DAYS",
    "DayStat",
    "PeriodStats",
    "weekly_stats",
    "period_stats",
    "HABIT_TEMPLATES",
    "HabitTemplate",
    "get_template",
    "templates_for",
]
