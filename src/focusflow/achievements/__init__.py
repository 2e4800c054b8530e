"""Achievement catalog, progress snapshots and unlock tracking."""

from focusflow.achievements.catalog import (
    ACHIEVEMENTS,
    Achievement,
    AchievementDefinition,
    AchievementType,
)
from focusflow.achievements.engine import AchievementEngine, UnlockStore, is_earned
from focusflow.achievements.progress import ProgressSnapshot, build_snapshot

__all__ = [
    "ACHIEVEMENTS",
    "Achievement",
    "AchievementDefinition",
    "AchievementType",
    "AchievementEngine",
    "UnlockStore",
    "is_earned",
    "ProgressSnapshot",
    "build_snapshot",
]
