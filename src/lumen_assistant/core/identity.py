"""Bearer credential verification."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import jwt

from lumen_assistant.config import AuthConfig
from lumen_assistant.errors import Unauthorized
from lumen_assistant.log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Identity:
    user_id: str
    email: Optional[str] = None
    role: Optional[str] = None


class IdentityVerifier:
    """Verifies signed session tokens issued by the identity service."""

    def __init__(self, config: AuthConfig):
        self._secret = config.jwt_secret
        self._algorithms = config.jwt_algorithms
        self._audience = config.audience
        self._leeway = config.leeway_seconds

    async def verify(self, authorization: Optional[str]) -> Identity:
        """Return the caller's identity or raise Unauthorized."""
        if not authorization:
            logger.warning("auth_missing_header")
            raise Unauthorized()

        scheme, _, token = authorization.partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            logger.warning("auth_malformed_header")
            raise Unauthorized()

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=self._algorithms,
                audience=self._audience,
                leeway=self._leeway,
                options={"require": ["sub", "exp"], "verify_aud": self._audience is not None},
            )
        except jwt.PyJWTError as e:
            logger.warning("auth_invalid_token", error=type(e).__name__)
            raise Unauthorized() from e

        user_id = str(claims.get("sub") or "")
        if not user_id:
            raise Unauthorized()
        return Identity(user_id=user_id, email=claims.get("email"), role=claims.get("role"))
