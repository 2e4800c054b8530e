"""Static achievement catalog."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class AchievementType(str, Enum):
    """Which progress field an achievement is measured against."""
    STREAK = "streak"
    COMPLETION = "completion"
    FOCUS = "focus"
    SPECIAL = "special"


@dataclass(frozen=True)
class AchievementDefinition:
    """Immutable catalog entry."""
    id: str
    title: str
    description: str
    icon: str
    type: AchievementType
    threshold: int


@dataclass(frozen=True)
class Achievement:
    """A catalog entry joined with its unlock status."""
    definition: AchievementDefinition
    unlocked: bool = False
    unlocked_at: datetime | None = None

    @property
    def id(self) -> str:
        return self.definition.id

    @property
    def title(self) -> str:
        return self.definition.title

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.definition.id,
            "title": self.definition.title,
            "description": self.definition.description,
            "icon": self.definition.icon,
            "type": self.definition.type.value,
            "threshold": self.definition.threshold,
            "unlocked": self.unlocked,
            "unlocked_at": self.unlocked_at.isoformat() if self.unlocked_at else None,
        }


# Evaluation order matters: when several unlock at once, the last one wins
ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    # Streaks
    AchievementDefinition("streak_3", "Getting Started", "3 day streak", "🌱", AchievementType.STREAK, 3),
    AchievementDefinition("streak_7", "Week Warrior", "7 day streak", "🔥", AchievementType.STREAK, 7),
    AchievementDefinition("streak_14", "Fortnight Fighter", "14 day streak", "💪", AchievementType.STREAK, 14),
    AchievementDefinition("streak_30", "Monthly Master", "30 day streak", "⭐", AchievementType.STREAK, 30),
    AchievementDefinition("streak_60", "Two Month Titan", "60 day streak", "🏆", AchievementType.STREAK, 60),
    AchievementDefinition("streak_100", "Century Club", "100 day streak", "💎", AchievementType.STREAK, 100),
    AchievementDefinition("streak_365", "Year of Growth", "365 day streak", "👑", AchievementType.STREAK, 365),
    # Completions
    AchievementDefinition("complete_10", "First Steps", "10 habits completed", "✨", AchievementType.COMPLETION, 10),
    AchievementDefinition("complete_50", "Habit Builder", "50 habits completed", "🎯", AchievementType.COMPLETION, 50),
    AchievementDefinition("complete_100", "Century Maker", "100 habits completed", "💯", AchievementType.COMPLETION, 100),
    AchievementDefinition("complete_500", "Habit Hero", "500 habits completed", "🦸", AchievementType.COMPLETION, 500),
    AchievementDefinition("complete_1000", "Legendary", "1000 habits completed", "🌟", AchievementType.COMPLETION, 1000),
    # Focus minutes
    AchievementDefinition("focus_60", "First Hour", "60 min focused", "⏰", AchievementType.FOCUS, 60),
    AchievementDefinition("focus_300", "Deep Worker", "5 hours focused", "🧠", AchievementType.FOCUS, 300),
    AchievementDefinition("focus_600", "Flow State", "10 hours focused", "🌊", AchievementType.FOCUS, 600),
    AchievementDefinition("focus_1500", "Focus Master", "25 hours focused", "🎖️", AchievementType.FOCUS, 1500),
    # Special
    AchievementDefinition("first_habit", "New Journey", "Create first habit", "🚀", AchievementType.SPECIAL, 1),
    AchievementDefinition("five_habits", "Multi-Tasker", "5 active habits", "📋", AchievementType.SPECIAL, 5),
    AchievementDefinition("perfect_day", "Perfect Day", "Complete all habits", "🎉", AchievementType.SPECIAL, 1),
)

ACHIEVEMENTS_BY_ID: dict[str, AchievementDefinition] = {a.id: a for a in ACHIEVEMENTS}
