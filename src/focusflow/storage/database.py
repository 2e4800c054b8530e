"""SQLite database management with WAL mode."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Any

import aiosqlite

from focusflow.core.errors import StorageError

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS habits (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    color TEXT NOT NULL,
    category TEXT NOT NULL,
    target_per_day INTEGER NOT NULL CHECK (target_per_day >= 1),
    created_at DATETIME NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_habits_user ON habits(user_id, created_at);

-- One row per habit per day
CREATE TABLE IF NOT EXISTS habit_completions (
    id TEXT PRIMARY KEY,
    habit_id TEXT NOT NULL REFERENCES habits(id) ON DELETE CASCADE,
    user_id TEXT NOT NULL,
    date DATE NOT NULL,
    count INTEGER NOT NULL CHECK (count >= 0),
    UNIQUE (habit_id, date)
);

CREATE INDEX IF NOT EXISTS idx_completions_user_date ON habit_completions(user_id, date);

CREATE TABLE IF NOT EXISTS focus_sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    duration_minutes INTEGER NOT NULL CHECK (duration_minutes >= 1),
    completed BOOLEAN NOT NULL DEFAULT FALSE,
    started_at DATETIME NOT NULL,
    completed_at DATETIME
);

CREATE INDEX IF NOT EXISTS idx_focus_started ON focus_sessions(user_id, started_at);

-- At most one incomplete session per user
CREATE UNIQUE INDEX IF NOT EXISTS idx_focus_one_open
    ON focus_sessions(user_id) WHERE completed = 0;
"""


class Database:
    """SQLite database manager with WAL mode.

    Every query error surfaces as ``StorageError``.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = db_path
        self._connection: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        """Initialize database connection with WAL mode."""
        if self._connection is not None:
            return

        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._connection = await aiosqlite.connect(
                self.db_path,
                isolation_level=None,  # Autocommit mode
            )

            await self._connection.execute("PRAGMA journal_mode=WAL")
            await self._connection.execute("PRAGMA synchronous=NORMAL")
            await self._connection.execute("PRAGMA foreign_keys=ON")
            await self._connection.execute("PRAGMA busy_timeout=5000")

            self._connection.row_factory = aiosqlite.Row

            await self._init_schema()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to open database {self.db_path}: {e}") from e

        logger.info(f"Database connected: {self.db_path}")

    async def _init_schema(self) -> None:
        """Initialize database schema."""
        conn = self._require_connection()

        await conn.executescript(SCHEMA)

        async with conn.execute("SELECT MAX(version) FROM schema_version") as cursor:
            row = await cursor.fetchone()
            current_version = row[0] if row and row[0] else 0

        if current_version < SCHEMA_VERSION:
            await conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            logger.info(f"Schema updated to version {SCHEMA_VERSION}")

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.info("Database connection closed")

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise StorageError("Database not connected")
        return self._connection

    async def execute(self, query: str, params: tuple[Any, ...] = ()) -> int:
        """Execute a query and return the number of affected rows."""
        conn = self._require_connection()

        try:
            async with self._lock:
                cursor = await conn.execute(query, params)
                return cursor.rowcount
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e

    async def fetch_one(self, query: str, params: tuple[Any, ...] = ()) -> dict[str, Any] | None:
        """Fetch a single row."""
        conn = self._require_connection()

        try:
            async with conn.execute(query, params) as cursor:
                row = await cursor.fetchone()
                if row:
                    return dict(row)
                return None
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e

    async def fetch_all(self, query: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        """Fetch all rows."""
        conn = self._require_connection()

        try:
            async with conn.execute(query, params) as cursor:
                rows = await cursor.fetchall()
                return [dict(row) for row in rows]
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e

    async def insert(self, table: str, data: dict[str, Any]) -> int:
        """Insert a row into a table."""
        columns = ", ".join(data.keys())
        placeholders = ", ".join("?" * len(data))
        query = f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"
        return await self.execute(query, tuple(data.values()))


async def init_database(db_path: Path | str) -> Database:
    """Create and connect a database."""
    db = Database(db_path)
    await db.connect()
    return db
