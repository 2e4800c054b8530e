"""Device-local state: achievement unlocks and reminder preferences.

Each record lives in its own JSON file under the state directory. Records are
read once at startup and rewritten on every mutation. A missing, corrupt or
unparseable file loads as the empty record instead of failing.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from datetime import date, datetime
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from focusflow.core.errors import StorageError

logger = logging.getLogger(__name__)

UNLOCKS_FILE = "achievements.json"
REMINDERS_FILE = "reminders.json"


class UnlockRecord(BaseModel):
    """Persisted achievement unlock set."""

    model_config = ConfigDict(populate_by_name=True)

    unlocked_ids: list[str] = Field(default_factory=list, alias="unlockedIds")
    saved_at: datetime | None = Field(default=None, alias="savedAt")
    unlocked_at: dict[str, datetime] = Field(default_factory=dict, alias="unlockedAt")


class ReminderPreferences(BaseModel):
    """Daily reminder settings."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    time: str = Field(default="09:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    last_shown: date | None = Field(default=None, alias="lastShown")


RecordT = TypeVar("RecordT", bound=BaseModel)


class LocalStateStore:
    """JSON-file store for small device-local records.

    Usage:
        store = LocalStateStore(config.state_dir)
        record = await store.load_unlocks()
        await store.save_unlocks(record)
    """

    def __init__(self, state_dir: Path):
        self.state_dir = state_dir

    async def load_unlocks(self) -> UnlockRecord:
        return await asyncio.to_thread(self._read, UNLOCKS_FILE, UnlockRecord)

    async def save_unlocks(self, record: UnlockRecord) -> None:
        await asyncio.to_thread(self._write, UNLOCKS_FILE, record)

    async def load_reminders(self) -> ReminderPreferences:
        return await asyncio.to_thread(self._read, REMINDERS_FILE, ReminderPreferences)

    async def save_reminders(self, prefs: ReminderPreferences) -> None:
        await asyncio.to_thread(self._write, REMINDERS_FILE, prefs)

    def _read(self, name: str, model: type[RecordT]) -> RecordT:
        path = self.state_dir / name
        if not path.exists():
            return model()

        try:
            with open(path) as f:
                data = json.load(f)
            return model.model_validate(data)
        except (OSError, json.JSONDecodeError, SchemaError) as e:
            logger.warning(f"Ignoring unreadable local state {path}: {e}")
            return model()

    def _write(self, name: str, record: BaseModel) -> None:
        path = self.state_dir / name
        tmp_path = path.with_suffix(".tmp")
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w") as f:
                f.write(record.model_dump_json(by_alias=True, exclude_none=True))
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e
