"""Habit, completion and focus session records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from focusflow.core.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#8B5CF6"


class HabitCategory(str, Enum):
    """Fixed set of habit categories."""
    HEALTH = "health"
    WORK = "work"
    PERSONAL = "personal"
    LEARNING = "learning"
    FITNESS = "fitness"
    MINDFULNESS = "mindfulness"

    @property
    def label(self) -> str:
        return self.value.title()


DEFAULT_CATEGORY = HabitCategory.PERSONAL


def parse_category(value: HabitCategory | str) -> HabitCategory:
    """Resolve a category name, case-insensitively.

    Raises:
        ValidationError: the name is not one of the known categories
    """
    if isinstance(value, HabitCategory):
        return value
    try:
        return HabitCategory(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(c.value for c in HabitCategory)
        raise ValidationError(f"Unknown category {value!r}, expected one of: {choices}") from None


@dataclass
class Habit:
    """A recurring habit with a daily target.

    Example:
        habit = Habit(
            id="b1c7...",
            title="Drink water",
            target_per_day=8,
            category=HabitCategory.HEALTH,
        )
    """
    id: str = ""
    title: str = ""
    description: str | None = None
    color: str = DEFAULT_COLOR
    category: HabitCategory = DEFAULT_CATEGORY
    target_per_day: int = 1
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        validate_target(self.target_per_day)
        self.category = parse_category(self.category)

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Habit:
        """Create from database row."""
        return cls(
            id=row["id"],
            title=row.get("title", ""),
            description=row.get("description"),
            color=row.get("color") or DEFAULT_COLOR,
            category=_stored_category(row.get("category")),
            target_per_day=row.get("target_per_day", 1),
            created_at=datetime.fromisoformat(row["created_at"]) if row.get("created_at") else datetime.now(),
        )

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dictionary for database storage."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "color": self.color,
            "category": self.category.value,
            "target_per_day": self.target_per_day,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class HabitCompletion:
    """Completion count for one habit on one calendar day.

    There is at most one row per (habit_id, date).
    """
    id: str = ""
    habit_id: str = ""
    date: date = field(default_factory=date.today)
    count: int = 0

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> HabitCompletion:
        """Create from database row."""
        return cls(
            id=row["id"],
            habit_id=row["habit_id"],
            date=date.fromisoformat(row["date"]),
            count=row.get("count", 0),
        )


@dataclass
class FocusSession:
    """A focus timer session.

    ``duration_minutes`` is the planned duration, fixed when the session starts.
    """
    id: str = ""
    duration_minutes: int = 25
    completed: bool = False
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> FocusSession:
        """Create from database row."""
        return cls(
            id=row["id"],
            duration_minutes=row.get("duration_minutes", 25),
            completed=bool(row.get("completed", False)),
            started_at=datetime.fromisoformat(row["started_at"]) if row.get("started_at") else datetime.now(),
            completed_at=datetime.fromisoformat(row["completed_at"]) if row.get("completed_at") else None,
        )

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dictionary for database storage."""
        return {
            "id": self.id,
            "duration_minutes": self.duration_minutes,
            "completed": self.completed,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


def validate_target(target_per_day: int) -> None:
    """Reject daily targets below one."""
    if target_per_day < 1:
        raise ValidationError(f"target_per_day must be at least 1, got {target_per_day}")


def _stored_category(value: str | None) -> HabitCategory:
    # Rows written before categories were fixed fall back to personal
    try:
        return parse_category(value or DEFAULT_CATEGORY)
    except ValidationError:
        logger.debug(f"Unknown stored category {value!r}, using {DEFAULT_CATEGORY.value}")
        return DEFAULT_CATEGORY
