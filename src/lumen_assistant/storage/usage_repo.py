"""Append-only access to the AI usage table."""

from __future__ import annotations

from datetime import datetime

from lumen_assistant.log import get_logger
from lumen_assistant.storage.database import Database
from lumen_assistant.storage.models import UsageRecord, to_db_timestamp

logger = get_logger(__name__)


class UsageRepository:
    """Counts and appends usage rows. Rows are never updated or deleted."""

    def __init__(self, db: Database):
        self._db = db

    async def append(self, record: UsageRecord) -> int:
        """Insert a usage row and return its ID."""
        cursor = await self._db.conn.execute(
            """INSERT INTO ai_usage_log (user_id, action, token_count, created_at)
               VALUES (?, ?, ?, ?)""",
            (
                record.user_id,
                record.action,
                record.token_count,
                to_db_timestamp(record.created_at),
            ),
        )
        await self._db.conn.commit()
        return cursor.lastrowid  # type: ignore[return-value]

    async def count_since(self, user_id: str, since: datetime) -> int:
        """Number of rows for *user_id* created at or after *since*."""
        cursor = await self._db.conn.execute(
            "SELECT COUNT(*) FROM ai_usage_log WHERE user_id = ? AND created_at >= ?",
            (user_id, to_db_timestamp(since)),
        )
        row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def list_for_user(self, user_id: str, limit: int = 100) -> list[UsageRecord]:
        cursor = await self._db.conn.execute(
            """SELECT * FROM ai_usage_log
               WHERE user_id = ?
               ORDER BY created_at DESC, id DESC
               LIMIT ?""",
            (user_id, limit),
        )
        rows = await cursor.fetchall()
        return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _row_to_record(row) -> UsageRecord:
        return UsageRecord(
            id=row["id"],
            user_id=row["user_id"],
            action=row["action"],
            token_count=row["token_count"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
