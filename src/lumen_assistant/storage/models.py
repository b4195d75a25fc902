"""Data models for storage layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_db_timestamp(value: datetime) -> str:
    """Format a datetime the way SQLite's created_at defaults are written (naive UTC)."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]


@dataclass
class UsageRecord:
    user_id: str
    action: str
    token_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    id: Optional[int] = None
