"""Daily reminder scheduling decision.

Only decides whether a reminder is due; showing it is up to the caller.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Protocol

from pydantic import ValidationError as SchemaError

from focusflow.core.errors import ValidationError
from focusflow.storage.local_state import ReminderPreferences

logger = logging.getLogger(__name__)


class ReminderStore(Protocol):
    async def load_reminders(self) -> ReminderPreferences: ...

    async def save_reminders(self, prefs: ReminderPreferences) -> None: ...


class ReminderScheduler:
    """Holds reminder preferences and answers "is it reminder time".

    Usage:
        reminders = ReminderScheduler(LocalStateStore(state_dir))
        await reminders.load()
        if await reminders.check(datetime.now()):
            notify("Time to build habits!")
    """

    def __init__(self, store: ReminderStore):
        self.store = store
        self._prefs = ReminderPreferences()

    @property
    def preferences(self) -> ReminderPreferences:
        return self._prefs

    async def load(self) -> ReminderPreferences:
        self._prefs = await self.store.load_reminders()
        return self._prefs

    async def set_enabled(self, enabled: bool) -> None:
        await self._save(self._prefs.model_copy(update={"enabled": enabled}))
        logger.info(f"Reminders {'enabled' if enabled else 'disabled'}")

    async def set_time(self, time: str) -> None:
        """Set the daily reminder time (``HH:MM``, 24-hour)."""
        try:
            prefs = ReminderPreferences.model_validate({**self._prefs.model_dump(), "time": time})
        except SchemaError as e:
            raise ValidationError(f"Invalid reminder time {time!r}, expected HH:MM") from e
        await self._save(prefs)

    def is_due(self, now: datetime) -> bool:
        """True when reminders are on, the clock shows the configured minute,
        and no reminder has been shown today."""
        if not self._prefs.enabled:
            return False
        if now.strftime("%H:%M") != self._prefs.time:
            return False
        return self._prefs.last_shown != now.date()

    async def mark_shown(self, day: date) -> None:
        await self._save(self._prefs.model_copy(update={"last_shown": day}))

    async def check(self, now: datetime) -> bool:
        """Return whether a reminder is due now and record it as shown."""
        if not self.is_due(now):
            return False
        await self.mark_shown(now.date())
        return True

    async def _save(self, prefs: ReminderPreferences) -> None:
        await self.store.save_reminders(prefs)
        self._prefs = prefs
