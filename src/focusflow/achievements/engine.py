"""Achievement unlocking against progress snapshots."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Protocol

from focusflow.achievements.catalog import (
    ACHIEVEMENTS,
    Achievement,
    AchievementDefinition,
    AchievementType,
)
from focusflow.achievements.progress import ProgressSnapshot
from focusflow.core.errors import StorageError
from focusflow.storage.local_state import UnlockRecord

logger = logging.getLogger(__name__)


class UnlockStore(Protocol):
    """Load/save capability for the persisted unlock set."""

    async def load_unlocks(self) -> UnlockRecord: ...

    async def save_unlocks(self, record: UnlockRecord) -> None: ...


_SPECIAL_PREDICATES: dict[str, Callable[[ProgressSnapshot], bool]] = {
    "first_habit": lambda s: s.habit_count >= 1,
    "five_habits": lambda s: s.habit_count >= 5,
    "perfect_day": lambda s: s.had_perfect_day,
}


def _special(definition: AchievementDefinition, snapshot: ProgressSnapshot) -> bool:
    predicate = _SPECIAL_PREDICATES.get(definition.id)
    if predicate is None:
        logger.debug(f"No predicate for special achievement {definition.id}")
        return False
    return predicate(snapshot)


_PREDICATES: dict[AchievementType, Callable[[AchievementDefinition, ProgressSnapshot], bool]] = {
    AchievementType.STREAK: lambda d, s: s.overall_streak >= d.threshold,
    AchievementType.COMPLETION: lambda d, s: s.total_completions >= d.threshold,
    AchievementType.FOCUS: lambda d, s: s.total_focus_minutes >= d.threshold,
    AchievementType.SPECIAL: _special,
}


def is_earned(definition: AchievementDefinition, snapshot: ProgressSnapshot) -> bool:
    """Whether ``snapshot`` satisfies the achievement's threshold."""
    return _PREDICATES[definition.type](definition, snapshot)


class AchievementEngine:
    """Tracks which achievements are unlocked.

    Unlocks are permanent: an id that has been unlocked is never evaluated
    again, even if later progress falls below its threshold.

    Usage:
        engine = AchievementEngine(LocalStateStore(state_dir))
        await engine.load()
        engine.on_unlock = lambda a: print(f"Unlocked {a.title}")
        newest = await engine.evaluate(snapshot)
    """

    def __init__(
        self,
        store: UnlockStore,
        catalog: tuple[AchievementDefinition, ...] = ACHIEVEMENTS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.catalog = catalog
        self._clock = clock
        self._unlocked: dict[str, datetime | None] = {}
        self._lock = asyncio.Lock()

        self.on_unlock: Callable[[Achievement], Awaitable[None] | None] | None = None

    @property
    def unlocked_ids(self) -> frozenset[str]:
        return frozenset(self._unlocked)

    @property
    def unlocked_count(self) -> int:
        return len(self._unlocked)

    async def load(self) -> None:
        """Read the persisted unlock set. Call once at startup."""
        record = await self.store.load_unlocks()
        async with self._lock:
            for achievement_id in record.unlocked_ids:
                self._unlocked.setdefault(achievement_id, record.unlocked_at.get(achievement_id))
        logger.info(f"Loaded {len(self._unlocked)} unlocked achievements")

    def achievements(self) -> list[Achievement]:
        """Catalog joined with unlock status, in catalog order."""
        return [
            Achievement(
                definition=d,
                unlocked=d.id in self._unlocked,
                unlocked_at=self._unlocked.get(d.id),
            )
            for d in self.catalog
        ]

    async def evaluate(self, snapshot: ProgressSnapshot) -> Achievement | None:
        """Unlock every achievement newly satisfied by ``snapshot``.

        Only the last newly unlocked achievement (in catalog order) is returned
        and announced through ``on_unlock``; earlier ones from the same pass
        are unlocked silently.
        """
        async with self._lock:
            newest: Achievement | None = None
            now = self._clock()

            for definition in self.catalog:
                if definition.id in self._unlocked:
                    continue
                if is_earned(definition, snapshot):
                    self._unlocked[definition.id] = now
                    newest = Achievement(definition=definition, unlocked=True, unlocked_at=now)
                    logger.info(f"Achievement unlocked: {definition.id}")

            if newest is None:
                return None

            await self._persist(now)

        await self._notify(newest)
        return newest

    async def _persist(self, now: datetime) -> None:
        record = UnlockRecord(
            unlocked_ids=list(self._unlocked),
            saved_at=now,
            unlocked_at={k: v for k, v in self._unlocked.items() if v is not None},
        )
        try:
            await self.store.save_unlocks(record)
        except (StorageError, OSError) as e:
            # The unlock stays in memory so it is not announced twice
            logger.error(f"Failed to persist achievement unlocks: {e}")

    async def _notify(self, achievement: Achievement) -> None:
        if not self.on_unlock:
            return
        try:
            result = self.on_unlock(achievement)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(f"Error in on_unlock callback: {e}")
