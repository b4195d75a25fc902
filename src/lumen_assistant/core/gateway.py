"""Request gateway: authenticate, rate limit, sanitize and screen, then dispatch."""

from __future__ import annotations

import json
import uuid
from typing import TYPE_CHECKING, Any, Optional

import structlog

from lumen_assistant.config import GatewayConfig
from lumen_assistant.core.identity import IdentityVerifier
from lumen_assistant.core.rate_limit import RateLimiter
from lumen_assistant.core.security import detect_prompt_injection, sanitize_text
from lumen_assistant.core.types import Action
from lumen_assistant.core.usage import UsageLogger
from lumen_assistant.errors import InvalidRequest
from lumen_assistant.log import get_logger

if TYPE_CHECKING:
    from lumen_assistant.ai.handler import ActionHandler

logger = get_logger(__name__)


def parse_envelope(raw: bytes | str) -> tuple[Action, dict[str, Any]]:
    """Decode ``{"action": ..., "data": {...}}``. Anything else is InvalidRequest."""
    try:
        body = json.loads(raw or b"null")
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidRequest() from e
    if not isinstance(body, dict):
        raise InvalidRequest()

    try:
        action = Action(body.get("action"))
    except ValueError as e:
        logger.warning("unknown_action", action=str(body.get("action"))[:64])
        raise InvalidRequest() from e

    data = body.get("data")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidRequest()
    return action, data


class RequestGateway:
    """Every request passes here before any model or data-store work happens."""

    def __init__(
        self,
        verifier: IdentityVerifier,
        rate_limiter: RateLimiter,
        usage_logger: UsageLogger,
        handler: ActionHandler,
        config: GatewayConfig,
    ):
        self._verifier = verifier
        self._rate_limiter = rate_limiter
        self._usage = usage_logger
        self._handler = handler
        self._max_text_length = config.max_text_length

    def secure_data(self, data: dict[str, Any], user_id: str) -> dict[str, Any]:
        """Sanitize and screen top-level text fields and pin ``userId`` to the caller."""
        secured = dict(data)
        for key, value in data.items():
            if key == "userId" or not isinstance(value, str):
                continue
            cleaned = sanitize_text(value, self._max_text_length)
            if detect_prompt_injection(cleaned):
                logger.warning("prompt_injection_detected", field=key)
                raise InvalidRequest("Invalid request detected")
            secured[key] = cleaned

        if data.get("userId") not in (None, user_id):
            logger.warning("user_id_overridden")
        secured["userId"] = user_id
        return secured

    async def handle(self, authorization: Optional[str], raw_body: bytes | str) -> dict[str, Any]:
        identity = await self._verifier.verify(authorization)
        structlog.contextvars.bind_contextvars(request_id=uuid.uuid4().hex[:12], user_id=identity.user_id)
        try:
            await self._rate_limiter.check(identity.user_id)
            action, data = parse_envelope(raw_body)
            secured = self.secure_data(data, identity.user_id)

            result = await self._handler.handle(action, secured, identity.user_id)
            await self._usage.log(identity.user_id, str(action), result.token_count)
            return result.payload
        finally:
            structlog.contextvars.unbind_contextvars("request_id", "user_id")
