"""Repository interface consumed by the engines and the focus timer.

Implementations are bound to a single user when constructed. Every method
raises ``StorageError`` when the underlying store fails and ``NotFound`` when
an id does not resolve.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Protocol

from focusflow.habits.models import FocusSession, Habit, HabitCategory, HabitCompletion


class HabitRepository(Protocol):
    """Durable store of habits, per-day completions and focus sessions."""

    # Habits
    async def list_habits(self) -> list[Habit]: ...

    async def get_habit(self, habit_id: str) -> Habit | None: ...

    async def create_habit(
        self,
        title: str,
        description: str | None = None,
        color: str | None = None,
        category: HabitCategory | str | None = None,
        target_per_day: int = 1,
    ) -> Habit: ...

    async def update_habit(self, habit_id: str, **changes: Any) -> Habit: ...

    async def delete_habit(self, habit_id: str) -> None: ...

    # Completions
    async def list_completions(self, start: date, end: date) -> list[HabitCompletion]: ...

    async def get_completion(self, habit_id: str, day: date) -> HabitCompletion | None: ...

    async def upsert_completion(self, habit_id: str, day: date, count: int) -> HabitCompletion: ...

    async def delete_completion(self, completion_id: str) -> None: ...

    # Focus sessions
    async def create_focus_session(self, duration_minutes: int) -> str:
        """Open a new session, discarding any this user left open before."""
        ...

    async def complete_focus_session(self, session_id: str) -> None: ...

    async def delete_focus_session(self, session_id: str) -> None: ...

    async def list_today_focus_sessions(self, today: date) -> list[FocusSession]: ...

    async def list_completed_focus_sessions(self, start: date, end: date) -> list[FocusSession]:
        """Completed sessions started between ``start`` and ``end`` (inclusive), newest first."""
        ...