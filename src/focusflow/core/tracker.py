"""Coordinates the engines and keeps derived progress up to date."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Awaitable, Callable

from focusflow.achievements.catalog import Achievement
from focusflow.achievements.engine import AchievementEngine, UnlockStore
from focusflow.achievements.progress import ProgressSnapshot, build_snapshot
from focusflow.core.config import Config, get_config
from focusflow.focus.history import FocusHistory, focus_history, history_window
from focusflow.focus.reminders import ReminderScheduler
from focusflow.focus.timer import FocusTimer, TickScheduler
from focusflow.habits.completion import CompletionEngine, ToggleResult
from focusflow.habits.models import Habit, HabitCompletion
from focusflow.habits.stats import DayStat, PeriodStats, period_stats, week_start_for, weekly_stats
from focusflow.habits.templates import get_template
from focusflow.habits.streaks import MAX_LOOKBACK_DAYS, StreakCalculator
from focusflow.storage.database import Database, init_database
from focusflow.storage.local_state import LocalStateStore
from focusflow.storage.repository import HabitRepository
from focusflow.storage.sqlite_repository import SqliteHabitRepository

logger = logging.getLogger(__name__)


@dataclass
class HabitProgress:
    """A habit with today's count and its streaks."""
    habit: Habit
    today_count: int
    streak: int
    longest_streak: int

    @property
    def is_complete_today(self) -> bool:
        return self.today_count >= self.habit.target_per_day

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.habit.id,
            "title": self.habit.title,
            "category": self.habit.category.value,
            "target_per_day": self.habit.target_per_day,
            "today_count": self.today_count,
            "streak": self.streak,
            "longest_streak": self.longest_streak,
        }


class HabitTracker:
    """Presentation-facing facade over the habit, achievement and timer engines.

    Every mutation re-derives the progress snapshot and feeds it to the
    achievement engine.

    Usage:
        tracker = HabitTracker(repository, LocalStateStore(state_dir))
        await tracker.start()
        result = await tracker.toggle(habit_id)
    """

    def __init__(
        self,
        repository: HabitRepository,
        state_store: UnlockStore,
        config: Config | None = None,
        scheduler: TickScheduler | None = None,
        clock: Callable[[], date] = date.today,
    ):
        self.config = config or get_config()
        self.repository = repository
        self._clock = clock

        self.completions = CompletionEngine(repository)
        self.achievements = AchievementEngine(state_store)
        self.timer = FocusTimer(repository, self.config.timer, scheduler=scheduler, clock=clock)
        self.timer.on_focus_minutes = self._on_focus_minutes

        self._snapshot = ProgressSnapshot()
        self._refresh_lock = asyncio.Lock()

        # Fired when a toggle lands a habit on its daily target
        self.on_target_reached: Callable[[ToggleResult], Awaitable[None] | None] | None = None

    @property
    def snapshot(self) -> ProgressSnapshot:
        return self._snapshot

    @property
    def today(self) -> date:
        return self._clock()

    async def start(self) -> None:
        """Load persisted state and compute the initial snapshot."""
        await self.achievements.load()
        await self.timer.refresh_today()
        await self.refresh()

    async def stop(self) -> None:
        await self.timer.shutdown()

    # Habits

    async def create_habit(self, title: str, **fields: Any) -> Habit:
        defaults = self.config.habits
        target = fields.get("target_per_day")
        habit = await self.repository.create_habit(
            title,
            description=fields.get("description"),
            color=fields.get("color") or defaults.color,
            category=fields.get("category") or defaults.category,
            target_per_day=defaults.target_per_day if target is None else target,
        )
        await self.refresh()
        return habit

    async def create_from_template(self, template_ref: str, **overrides: Any) -> Habit:
        """Create a habit from a preset; non-None ``overrides`` win over the preset."""
        template = get_template(template_ref)
        fields = {**template.habit_fields(), **{k: v for k, v in overrides.items() if v is not None}}
        title = fields.pop("title", None) or template.title
        return await self.create_habit(title, **fields)

    async def update_habit(self, habit_id: str, **changes: Any) -> Habit:
        habit = await self.repository.update_habit(habit_id, **changes)
        await self.refresh()
        return habit

    async def delete_habit(self, habit_id: str) -> None:
        await self.repository.delete_habit(habit_id)
        await self.refresh()

    async def toggle(self, habit_id: str) -> ToggleResult:
        """Toggle today's completion and re-derive progress."""
        result = await self.completions.toggle(habit_id, self.today)
        if result.reached_target and self.on_target_reached:
            try:
                cb = self.on_target_reached(result)
                if asyncio.iscoroutine(cb):
                    await cb
            except Exception as e:
                logger.error(f"Error in on_target_reached callback: {e}")
        await self.refresh()
        return result

    # Derived views

    async def load_window(self, days: int = MAX_LOOKBACK_DAYS) -> tuple[list[Habit], list[HabitCompletion]]:
        today = self.today
        habits = await self.repository.list_habits()
        completions = await self.repository.list_completions(today - timedelta(days=days - 1), today)
        return habits, completions

    async def habit_progress(self) -> list[HabitProgress]:
        habits, completions = await self.load_window()
        calc = StreakCalculator(completions, self.today)
        return [
            HabitProgress(
                habit=h,
                today_count=calc.count_on(h.id, self.today),
                streak=calc.habit_streak(h),
                longest_streak=calc.longest_streak(h),
            )
            for h in habits
        ]

    async def overall_streak(self) -> int:
        habits, completions = await self.load_window()
        return StreakCalculator(completions, self.today).overall_streak(habits)

    async def weekly(self, week_of: date | None = None) -> list[DayStat]:
        monday = week_start_for(week_of or self.today)
        habits = await self.repository.list_habits()
        completions = await self.repository.list_completions(monday, monday + timedelta(days=6))
        return weekly_stats(habits, completions, monday)

    async def period(self, days: int | None = None) -> PeriodStats:
        days = days or self.config.stats.report_days
        habits, completions = await self.load_window(days)
        return period_stats(habits, completions, days, self.today)

    async def focus_history(self, days: int = 7) -> FocusHistory:
        start, end = history_window(days, self.today)
        sessions = await self.repository.list_completed_focus_sessions(start, end)
        return focus_history(sessions, days, self.today)

    async def report(self) -> dict[str, Any]:
        """Everything the dashboards show, as plain data for export."""
        return {
            "date": self.today.isoformat(),
            "overall_streak": await self.overall_streak(),
            "habits": [p.to_dict() for p in await self.habit_progress()],
            "week": [d.to_dict() for d in await self.weekly()],
            "period": (await self.period()).to_dict(),
            "focus": (await self.focus_history()).to_dict(),
            "achievements": [a.to_dict() for a in self.achievement_list()],
        }

    def achievement_list(self) -> list[Achievement]:
        return self.achievements.achievements()

    async def refresh(self) -> ProgressSnapshot:
        """Recompute the progress snapshot and evaluate achievements."""
        async with self._refresh_lock:
            habits, completions = await self.load_window()
            streak = StreakCalculator(completions, self.today).overall_streak(habits)
            self._snapshot = build_snapshot(
                habits,
                completions,
                self.today,
                focus_minutes=self.timer.focus_minutes_today,
                overall_streak=streak,
            )
            await self.achievements.evaluate(self._snapshot)
            return self._snapshot

    async def _on_focus_minutes(self, total: int) -> None:
        logger.debug(f"Focus minutes today: {total}")
        await self.refresh()


@dataclass
class LocalApp:
    """Tracker wired to the local SQLite database and state directory."""
    db: Database
    tracker: HabitTracker
    reminders: ReminderScheduler

    async def close(self) -> None:
        await self.tracker.stop()
        await self.db.close()


async def open_local_app(config: Config | None = None, scheduler: TickScheduler | None = None) -> LocalApp:
    """Open the database and local state, and start a tracker."""
    config = config or get_config()
    config.ensure_directories()

    db = await init_database(config.db_path)
    repository = SqliteHabitRepository(db, user_id=config.user_id)
    store = LocalStateStore(config.state_dir)

    tracker = HabitTracker(repository, store, config=config, scheduler=scheduler)
    reminders = ReminderScheduler(store)
    await reminders.load()
    await tracker.start()
    return LocalApp(db=db, tracker=tracker, reminders=reminders)
