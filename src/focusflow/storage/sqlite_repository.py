"""SQLite-backed ``HabitRepository`` for local, single-user use."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, time
from typing import Any

from focusflow.core.errors import NotFound, ValidationError
from focusflow.habits.models import (
    DEFAULT_CATEGORY,
    DEFAULT_COLOR,
    FocusSession,
    Habit,
    HabitCategory,
    HabitCompletion,
    parse_category,
    validate_target,
)
from focusflow.storage.database import Database

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = {"title", "description", "color", "category", "target_per_day"}


class SqliteHabitRepository:
    """Repository bound to one user id on top of ``Database``.

    Usage:
        db = await init_database(config.db_path)
        repo = SqliteHabitRepository(db, user_id="local")
        habit = await repo.create_habit("Read", target_per_day=1)
    """

    def __init__(self, db: Database, user_id: str):
        self.db = db
        self.user_id = user_id

    # Habits
    async def list_habits(self) -> list[Habit]:
        rows = await self.db.fetch_all(
            "SELECT * FROM habits WHERE user_id = ? ORDER BY created_at DESC",
            (self.user_id,),
        )
        return [Habit.from_db_row(row) for row in rows]

    async def get_habit(self, habit_id: str) -> Habit | None:
        row = await self.db.fetch_one(
            "SELECT * FROM habits WHERE id = ? AND user_id = ?",
            (habit_id, self.user_id),
        )
        return Habit.from_db_row(row) if row else None

    async def create_habit(
        self,
        title: str,
        description: str | None = None,
        color: str | None = None,
        category: HabitCategory | str | None = None,
        target_per_day: int = 1,
    ) -> Habit:
        if not title.strip():
            raise ValidationError("Habit title cannot be empty")

        habit = Habit(
            id=str(uuid.uuid4()),
            title=title.strip(),
            description=description or None,
            color=color or DEFAULT_COLOR,
            category=category or DEFAULT_CATEGORY,
            target_per_day=target_per_day,
        )
        await self.db.insert("habits", {**habit.to_db_dict(), "user_id": self.user_id})
        logger.info(f"Created habit: {habit.title}")
        return habit

    async def update_habit(self, habit_id: str, **changes: Any) -> Habit:
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if "target_per_day" in changes:
            validate_target(changes["target_per_day"])
        if "category" in changes:
            changes["category"] = parse_category(changes["category"]).value

        if changes:
            sets = ", ".join(f"{k} = ?" for k in changes)
            updated = await self.db.execute(
                f"UPDATE habits SET {sets} WHERE id = ? AND user_id = ?",
                (*changes.values(), habit_id, self.user_id),
            )
            if not updated:
                raise NotFound(f"Habit not found: {habit_id}")

        habit = await self.get_habit(habit_id)
        if habit is None:
            raise NotFound(f"Habit not found: {habit_id}")
        return habit

    async def delete_habit(self, habit_id: str) -> None:
        # Completions go with it via ON DELETE CASCADE
        deleted = await self.db.execute(
            "DELETE FROM habits WHERE id = ? AND user_id = ?",
            (habit_id, self.user_id),
        )
        if not deleted:
            raise NotFound(f"Habit not found: {habit_id}")
        logger.info(f"Deleted habit {habit_id}")

    # Completions
    async def list_completions(self, start: date, end: date) -> list[HabitCompletion]:
        rows = await self.db.fetch_all(
            """SELECT * FROM habit_completions
               WHERE user_id = ? AND date >= ? AND date <= ?
               ORDER BY date""",
            (self.user_id, start.isoformat(), end.isoformat()),
        )
        return [HabitCompletion.from_db_row(row) for row in rows]

    async def get_completion(self, habit_id: str, day: date) -> HabitCompletion | None:
        row = await self.db.fetch_one(
            "SELECT * FROM habit_completions WHERE habit_id = ? AND date = ? AND user_id = ?",
            (habit_id, day.isoformat(), self.user_id),
        )
        return HabitCompletion.from_db_row(row) if row else None

    async def upsert_completion(self, habit_id: str, day: date, count: int) -> HabitCompletion:
        if count < 0:
            raise ValidationError(f"count cannot be negative, got {count}")

        await self.db.execute(
            """INSERT INTO habit_completions (id, habit_id, user_id, date, count)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(habit_id, date) DO UPDATE SET count = excluded.count""",
            (str(uuid.uuid4()), habit_id, self.user_id, day.isoformat(), count),
        )
        completion = await self.get_completion(habit_id, day)
        if completion is None:
            raise NotFound(f"Completion for habit {habit_id} on {day} disappeared")
        return completion

    async def delete_completion(self, completion_id: str) -> None:
        deleted = await self.db.execute(
            "DELETE FROM habit_completions WHERE id = ? AND user_id = ?",
            (completion_id, self.user_id),
        )
        if not deleted:
            raise NotFound(f"Completion not found: {completion_id}")

    # Focus sessions
    async def create_focus_session(self, duration_minutes: int) -> str:
        # A session left open by a crash or a failed reset would block the
        # one-open-session index forever
        stale = await self.db.execute(
            "DELETE FROM focus_sessions WHERE user_id = ? AND completed = 0",
            (self.user_id,),
        )
        if stale:
            logger.warning(f"Discarded {stale} abandoned focus session(s)")

        session = FocusSession(id=str(uuid.uuid4()), duration_minutes=duration_minutes)
        await self.db.insert("focus_sessions", {**session.to_db_dict(), "user_id": self.user_id})
        return session.id

    async def complete_focus_session(self, session_id: str) -> None:
        updated = await self.db.execute(
            """UPDATE focus_sessions SET completed = 1, completed_at = ?
               WHERE id = ? AND user_id = ?""",
            (datetime.now().isoformat(), session_id, self.user_id),
        )
        if not updated:
            raise NotFound(f"Focus session not found: {session_id}")

    async def delete_focus_session(self, session_id: str) -> None:
        # Only abandoned sessions are removed; completed ones stay
        await self.db.execute(
            "DELETE FROM focus_sessions WHERE id = ? AND user_id = ? AND completed = 0",
            (session_id, self.user_id),
        )

    async def list_today_focus_sessions(self, today: date) -> list[FocusSession]:
        rows = await self.db.fetch_all(
            """SELECT * FROM focus_sessions
               WHERE user_id = ? AND started_at >= ? AND started_at <= ?
               ORDER BY started_at DESC""",
            (
                self.user_id,
                datetime.combine(today, time.min).isoformat(),
                datetime.combine(today, time.max).isoformat(),
            ),
        )
        return [FocusSession.from_db_row(row) for row in rows]

    async def list_completed_focus_sessions(self, start: date, end: date) -> list[FocusSession]:
        rows = await self.db.fetch_all(
            """SELECT * FROM focus_sessions
               WHERE user_id = ? AND completed = 1 AND started_at >= ? AND started_at <= ?
               ORDER BY started_at DESC""",
            (
                self.user_id,
                datetime.combine(start, time.min).isoformat(),
                datetime.combine(end, time.max).isoformat(),
            ),
        )
        return [FocusSession.from_db_row(row) for row in rows]
