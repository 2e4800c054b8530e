"""Daily completion toggling with a cyclic counter.

Each toggle advances today's count for a habit by one until the daily target
is reached; the next toggle wraps back to zero by deleting the row:

    0 -> 1 -> ... -> target -> 0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from focusflow.core.errors import Busy, NotFound

if TYPE_CHECKING:
    from focusflow.storage.repository import HabitRepository

logger = logging.getLogger(__name__)


def next_count(count: int, target: int) -> int:
    """Return the count that follows ``count`` in the 0..target cycle."""
    count = max(0, count)
    if count >= target:
        return 0
    return count + 1


@dataclass(frozen=True)
class ToggleResult:
    """Outcome of a single toggle."""
    habit_id: str
    day: date
    previous_count: int
    count: int
    target: int

    @property
    def reached_target(self) -> bool:
        """True only when this toggle moved the habit onto its target."""
        return self.previous_count < self.target and self.count == self.target

    @property
    def is_complete(self) -> bool:
        return self.count >= self.target


class CompletionEngine:
    """Mutates today's completion count for a habit.

    Usage:
        engine = CompletionEngine(repository)
        result = await engine.toggle(habit.id, date.today())
        if result.reached_target:
            celebrate()
    """

    def __init__(self, repository: HabitRepository):
        self.repository = repository
        self._in_flight: set[str] = set()

    def is_busy(self, habit_id: str) -> bool:
        return habit_id in self._in_flight

    async def toggle(self, habit_id: str, today: date) -> ToggleResult:
        """Advance the habit's count for ``today`` by one step of the cycle.

        Args:
            habit_id: Existing habit id
            today: Current date, supplied by the caller

        Returns:
            ToggleResult describing the transition

        Raises:
            Busy: another toggle for this habit has not resolved yet
            NotFound: the habit does not exist
            StorageError: the repository read or write failed
        """
        if habit_id in self._in_flight:
            raise Busy(habit_id)

        self._in_flight.add(habit_id)
        try:
            habit = await self.repository.get_habit(habit_id)
            if habit is None:
                raise NotFound(f"Habit not found: {habit_id}")

            existing = await self.repository.get_completion(habit_id, today)
            previous = existing.count if existing else 0
            count = next_count(previous, habit.target_per_day)

            if count == 0 and existing is not None:
                await self.repository.delete_completion(existing.id)
            else:
                await self.repository.upsert_completion(habit_id, today, count)

            result = ToggleResult(
                habit_id=habit_id,
                day=today,
                previous_count=previous,
                count=count,
                target=habit.target_per_day,
            )
            logger.debug(f"Toggled {habit.title}: {previous} -> {count}/{habit.target_per_day}")
            return result
        finally:
            self._in_flight.discard(habit_id)

    async def today_count(self, habit_id: str, today: date) -> int:
        """Current count for the habit on ``today`` (0 when there is no row)."""
        completion = await self.repository.get_completion(habit_id, today)
        return completion.count if completion else 0
