"""Trailing-window request limit computed from the usage table."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable

from lumen_assistant.config import GatewayConfig
from lumen_assistant.errors import RateLimited
from lumen_assistant.log import get_logger
from lumen_assistant.storage.models import utcnow
from lumen_assistant.storage.usage_repo import UsageRepository

logger = get_logger(__name__)


class RateLimiter:
    """Rejects a caller whose usage rows in the window reach the limit.

    The count is queried on every request; there is no in-process cache.
    """

    def __init__(
        self,
        usage_repo: UsageRepository,
        config: GatewayConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._repo = usage_repo
        self._max_requests = config.rate_limit_max_requests
        self._window = timedelta(seconds=config.rate_limit_window_seconds)
        self._clock = clock

    async def check(self, user_id: str) -> int:
        """Raise RateLimited if over the limit; otherwise return the current count."""
        since = self._clock() - self._window
        try:
            count = await self._repo.count_since(user_id, since)
        except Exception as e:
            # Counter unavailable: let the request through
            logger.error("rate_limit_check_error", error=str(e))
            return 0

        if count >= self._max_requests:
            logger.warning("rate_limit_exceeded", count=count, limit=self._max_requests)
            raise RateLimited("gateway", max_requests=self._max_requests)

        logger.debug("rate_limit_passed", count=count, limit=self._max_requests)
        return count
