"""SQLite database connection manager with schema migration."""

from __future__ import annotations

from pathlib import Path

import aiosqlite

from lumen_assistant.log import get_logger

logger = get_logger(__name__)

_NOW = "(strftime('%Y-%m-%dT%H:%M:%f','now'))"
_NEW_ID = "(lower(hex(randomblob(16))))"

SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS users (
    id              TEXT PRIMARY KEY,
    first_name      TEXT,
    last_name       TEXT,
    email           TEXT,
    department      TEXT,
    status          TEXT,
    created_at      TEXT NOT NULL DEFAULT {_NOW}
);

CREATE TABLE IF NOT EXISTS tasks (
    id                      TEXT PRIMARY KEY DEFAULT {_NEW_ID},
    user_id                 TEXT    NOT NULL,
    title                   TEXT    NOT NULL,
    description             TEXT,
    due_date                TEXT,
    start_time              TEXT,
    end_time                TEXT,
    priority                TEXT    NOT NULL DEFAULT 'Medium',
    status                  TEXT    NOT NULL DEFAULT 'Todo',
    reminder_enabled        INTEGER NOT NULL DEFAULT 0,
    reminder_days_before    INTEGER NOT NULL DEFAULT 0,
    reminder_hours_before   INTEGER NOT NULL DEFAULT 0,
    created_at              TEXT    NOT NULL DEFAULT {_NOW},
    updated_at              TEXT    NOT NULL DEFAULT {_NOW}
);

CREATE INDEX IF NOT EXISTS idx_tasks_user ON tasks(user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_tasks_due ON tasks(user_id, due_date);

CREATE TABLE IF NOT EXISTS notes (
    id              TEXT PRIMARY KEY DEFAULT {_NEW_ID},
    user_id         TEXT NOT NULL,
    title           TEXT NOT NULL,
    content         TEXT,
    category        TEXT,
    created_at      TEXT NOT NULL DEFAULT {_NOW},
    updated_at      TEXT NOT NULL DEFAULT {_NOW}
);

CREATE TABLE IF NOT EXISTS projects (
    id              TEXT PRIMARY KEY DEFAULT {_NEW_ID},
    user_id         TEXT NOT NULL,
    name            TEXT NOT NULL,
    description     TEXT,
    start_date      TEXT,
    end_date        TEXT,
    status          TEXT NOT NULL DEFAULT 'Active',
    created_at      TEXT NOT NULL DEFAULT {_NOW}
);

CREATE TABLE IF NOT EXISTS timesheets (
    id              TEXT PRIMARY KEY DEFAULT {_NEW_ID},
    user_id         TEXT NOT NULL,
    date            TEXT NOT NULL,
    hours           REAL NOT NULL DEFAULT 0,
    clock_in        TEXT,
    clock_out       TEXT,
    created_at      TEXT NOT NULL DEFAULT {_NOW}
);

CREATE INDEX IF NOT EXISTS idx_timesheets_user ON timesheets(user_id, date);

CREATE TABLE IF NOT EXISTS student_tasks (
    id              TEXT PRIMARY KEY DEFAULT {_NEW_ID},
    user_id         TEXT NOT NULL,
    title           TEXT NOT NULL,
    status          TEXT NOT NULL DEFAULT 'Todo',
    priority        TEXT NOT NULL DEFAULT 'Medium',
    due_date        TEXT,
    created_at      TEXT NOT NULL DEFAULT {_NOW}
);

CREATE TABLE IF NOT EXISTS student_classes (
    id              TEXT PRIMARY KEY DEFAULT {_NEW_ID},
    user_id         TEXT    NOT NULL,
    name            TEXT    NOT NULL,
    instructor      TEXT,
    location        TEXT,
    day_of_week     INTEGER NOT NULL CHECK(day_of_week BETWEEN 0 AND 6),
    start_time      TEXT    NOT NULL,
    end_time        TEXT    NOT NULL,
    color           TEXT,
    created_at      TEXT    NOT NULL DEFAULT {_NOW}
);

CREATE TABLE IF NOT EXISTS student_assignments (
    id              TEXT PRIMARY KEY DEFAULT {_NEW_ID},
    user_id         TEXT NOT NULL,
    title           TEXT NOT NULL,
    type            TEXT NOT NULL DEFAULT 'assignment',
    status          TEXT NOT NULL DEFAULT 'pending',
    due_date        TEXT,
    created_at      TEXT NOT NULL DEFAULT {_NOW}
);

CREATE TABLE IF NOT EXISTS student_profiles (
    id              TEXT PRIMARY KEY DEFAULT {_NEW_ID},
    user_id         TEXT NOT NULL UNIQUE,
    school_name     TEXT,
    major           TEXT,
    year            TEXT,
    created_at      TEXT NOT NULL DEFAULT {_NOW}
);

CREATE TABLE IF NOT EXISTS work_profiles (
    id              TEXT PRIMARY KEY DEFAULT {_NEW_ID},
    user_id         TEXT NOT NULL UNIQUE,
    company_name    TEXT,
    job_title       TEXT,
    department      TEXT,
    created_at      TEXT NOT NULL DEFAULT {_NOW}
);

CREATE TABLE IF NOT EXISTS student_files (
    id              TEXT PRIMARY KEY DEFAULT {_NEW_ID},
    user_id         TEXT NOT NULL,
    file_name       TEXT NOT NULL,
    file_type       TEXT,
    tags            TEXT,
    class_id        TEXT,
    assignment_id   TEXT,
    created_at      TEXT NOT NULL DEFAULT {_NOW}
);

CREATE TABLE IF NOT EXISTS work_files (
    id              TEXT PRIMARY KEY DEFAULT {_NEW_ID},
    user_id         TEXT NOT NULL,
    file_name       TEXT NOT NULL,
    file_type       TEXT,
    tags            TEXT,
    project_id      TEXT,
    created_at      TEXT NOT NULL DEFAULT {_NOW}
);

CREATE TABLE IF NOT EXISTS ai_usage_log (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id         TEXT    NOT NULL,
    action          TEXT    NOT NULL,
    token_count     INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT    NOT NULL DEFAULT {_NOW}
);

CREATE INDEX IF NOT EXISTS idx_usage_user_time ON ai_usage_log(user_id, created_at);
"""


class Database:
    """Async SQLite database manager."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open connection and run migrations."""
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.execute("PRAGMA foreign_keys=ON")
        await self._conn.executescript(SCHEMA_SQL)
        await self._conn.commit()
        logger.info("database_initialized", path=self._db_path)

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._conn

    async def ping(self) -> bool:
        """Return True if a trivial query succeeds."""
        if self._conn is None:
            return False
        try:
            cursor = await self._conn.execute("SELECT 1")
            await cursor.fetchone()
        except Exception as e:
            logger.warning("database_ping_failed", error=str(e))
            return False
        return True

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None
            logger.info("database_closed")
