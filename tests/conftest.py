"""Shared fixtures: in-memory repository, manual tick scheduler, memory stores."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any

import pytest

from focusflow.core.config import Config, TimerConfig
from focusflow.core.errors import NotFound, StorageError
from focusflow.habits.models import (
    DEFAULT_CATEGORY,
    DEFAULT_COLOR,
    FocusSession,
    Habit,
    HabitCompletion,
    validate_target,
)
from focusflow.storage.local_state import ReminderPreferences, UnlockRecord

TODAY = date(2026, 3, 18)  # a Wednesday


class InMemoryRepository:
    """Dict-backed repository with failure injection."""

    def __init__(self) -> None:
        self.habits: dict[str, Habit] = {}
        self.completions: dict[str, HabitCompletion] = {}
        self.sessions: dict[str, FocusSession] = {}
        self.writes: list[tuple[str, Any]] = []
        self.fail_writes = False
        self.fail_create_session = False
        self.create_session_error: Exception | None = None
        self.create_session_gate: asyncio.Event | None = None

    def _write(self, op: str, arg: Any) -> None:
        if self.fail_writes:
            raise StorageError(f"{op} failed")
        self.writes.append((op, arg))

    # Habits
    async def list_habits(self) -> list[Habit]:
        return list(self.habits.values())

    async def get_habit(self, habit_id: str) -> Habit | None:
        return self.habits.get(habit_id)

    async def create_habit(self, title, description=None, color=None, category=None, target_per_day=1) -> Habit:
        validate_target(target_per_day)
        self._write("create_habit", title)
        habit = Habit(id=str(uuid.uuid4()), title=title, description=description, color=color or DEFAULT_COLOR,
                      target_per_day=target_per_day, category=category or DEFAULT_CATEGORY)
        self.habits[habit.id] = habit
        return habit

    async def update_habit(self, habit_id: str, **changes: Any) -> Habit:
        if habit_id not in self.habits:
            raise NotFound(habit_id)
        self._write("update_habit", habit_id)
        self.habits[habit_id] = replace(self.habits[habit_id], **changes)
        return self.habits[habit_id]

    async def delete_habit(self, habit_id: str) -> None:
        if habit_id not in self.habits:
            raise NotFound(habit_id)
        self._write("delete_habit", habit_id)
        del self.habits[habit_id]
        self.completions = {k: c for k, c in self.completions.items() if c.habit_id != habit_id}

    # Completions
    async def list_completions(self, start: date, end: date) -> list[HabitCompletion]:
        return [c for c in self.completions.values() if start <= c.date <= end]

    async def get_completion(self, habit_id: str, day: date) -> HabitCompletion | None:
        for c in self.completions.values():
            if c.habit_id == habit_id and c.date == day:
                return c
        return None

    async def upsert_completion(self, habit_id: str, day: date, count: int) -> HabitCompletion:
        self._write("upsert_completion", (habit_id, day, count))
        existing = await self.get_completion(habit_id, day)
        if existing:
            existing.count = count
            return existing
        completion = HabitCompletion(id=str(uuid.uuid4()), habit_id=habit_id, date=day, count=count)
        self.completions[completion.id] = completion
        return completion

    async def delete_completion(self, completion_id: str) -> None:
        self._write("delete_completion", completion_id)
        if completion_id not in self.completions:
            raise NotFound(completion_id)
        del self.completions[completion_id]

    # Focus sessions
    async def create_focus_session(self, duration_minutes: int) -> str:
        if self.create_session_gate is not None:
            await self.create_session_gate.wait()
        if self.fail_create_session:
            raise StorageError("create_focus_session failed")
        if self.create_session_error is not None:
            raise self.create_session_error
        self._write("create_focus_session", duration_minutes)
        self.sessions = {k: s for k, s in self.sessions.items() if s.completed}
        session = FocusSession(id=str(uuid.uuid4()), duration_minutes=duration_minutes,
                               started_at=datetime.combine(TODAY, datetime.min.time()) + timedelta(hours=9))
        self.sessions[session.id] = session
        return session.id

    async def complete_focus_session(self, session_id: str) -> None:
        self._write("complete_focus_session", session_id)
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFound(session_id)
        session.completed = True
        session.completed_at = datetime.now()

    async def delete_focus_session(self, session_id: str) -> None:
        self._write("delete_focus_session", session_id)
        session = self.sessions.get(session_id)
        if session is not None and not session.completed:
            del self.sessions[session_id]

    async def list_today_focus_sessions(self, today: date) -> list[FocusSession]:
        return [s for s in self.sessions.values() if s.started_at.date() == today]

    async def list_completed_focus_sessions(self, start: date, end: date) -> list[FocusSession]:
        kept = [s for s in self.sessions.values() if s.completed and start <= s.started_at.date() <= end]
        return sorted(kept, key=lambda s: s.started_at, reverse=True)

    # Test helpers
    def add_habit(self, title: str = "Read", target: int = 1, habit_id: str | None = None) -> Habit:
        habit = Habit(id=habit_id or str(uuid.uuid4()), title=title, target_per_day=target)
        self.habits[habit.id] = habit
        return habit

    def set_count(self, habit: Habit, day: date, count: int) -> HabitCompletion:
        completion = HabitCompletion(id=str(uuid.uuid4()), habit_id=habit.id, date=day, count=count)
        self.completions[completion.id] = completion
        return completion

    def add_session(self, day: date, minutes: int = 25, completed: bool = True, hour: int = 9) -> FocusSession:
        started = datetime.combine(day, datetime.min.time()) + timedelta(hours=hour)
        session = FocusSession(id=str(uuid.uuid4()), duration_minutes=minutes, completed=completed,
                               started_at=started, completed_at=started + timedelta(minutes=minutes) if completed else None)
        self.sessions[session.id] = session
        return session


class ManualHandle:
    def __init__(self, callback):
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Tick scheduler driven explicitly by tests."""

    def __init__(self) -> None:
        self.handles: list[ManualHandle] = []

    def every(self, interval: float, callback) -> ManualHandle:
        handle = ManualHandle(callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self) -> ManualHandle | None:
        live = [h for h in self.handles if not h.cancelled]
        return live[-1] if live else None

    async def advance(self, ticks: int) -> None:
        for _ in range(ticks):
            handle = self.active
            if handle is None:
                return
            await handle.callback()


class MemoryStateStore:
    """Unlock and reminder store kept in memory."""

    def __init__(self, record: UnlockRecord | None = None) -> None:
        self.record = record or UnlockRecord()
        self.reminders = ReminderPreferences()
        self.saves: list[UnlockRecord] = []
        self.fail_saves = False

    async def load_unlocks(self) -> UnlockRecord:
        return self.record

    async def save_unlocks(self, record: UnlockRecord) -> None:
        if self.fail_saves:
            raise StorageError("disk full")
        self.saves.append(record)
        self.record = record

    async def load_reminders(self) -> ReminderPreferences:
        return self.reminders

    async def save_reminders(self, prefs: ReminderPreferences) -> None:
        if self.fail_saves:
            raise StorageError("disk full")
        self.reminders = prefs


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def repo() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def state_store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        data_dir=tmp_path / "data",
        log_dir=tmp_path / "logs",
        config_dir=tmp_path / "config",
        timer=TimerConfig(focus_minutes=25, break_minutes=5, breaks_enabled=True),
    )
