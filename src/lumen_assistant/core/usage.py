"""Best-effort usage logging."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from lumen_assistant.log import get_logger
from lumen_assistant.storage.models import UsageRecord, utcnow
from lumen_assistant.storage.usage_repo import UsageRepository

logger = get_logger(__name__)


class UsageLogger:
    """Appends one usage row per successful request. Never raises."""

    def __init__(self, usage_repo: UsageRepository, clock: Callable[[], datetime] = utcnow):
        self._repo = usage_repo
        self._clock = clock

    async def log(self, user_id: str, action: str, token_count: int = 0) -> None:
        record = UsageRecord(
            user_id=user_id,
            action=action,
            token_count=max(0, int(token_count or 0)),
            created_at=self._clock(),
        )
        try:
            await self._repo.append(record)
        except Exception as e:
            logger.error("usage_log_failed", action=action, error=str(e))
