"""Shared fixtures: a temporary database, a scripted model and signed tokens."""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Sequence
from zoneinfo import ZoneInfo

import jwt
import pytest

from lumen_assistant.ai.client import AIClient, AIResponse
from lumen_assistant.app import AssistantApp
from lumen_assistant.config import AppConfig

JWT_SECRET = "test-secret-0123456789abcdef0123456789abcdef"
USER_ID = "user-1"
OTHER_USER_ID = "user-2"
NOW = datetime(2025, 9, 18, 10, 0, tzinfo=ZoneInfo("UTC"))


class ScriptedAIClient(AIClient):
    """Returns queued responses in order and records every prompt it receives."""

    def __init__(self) -> None:
        self.responses: list[AIResponse | Exception] = []
        self.calls: list[dict[str, Any]] = []

    @property
    def model_name(self) -> str:
        return "scripted"

    def queue(self, *responses: AIResponse | Exception) -> None:
        self.responses.extend(responses)

    async def generate(
        self,
        prompt: str,
        *,
        files: Sequence[Any] = (),
        tools: Sequence[Any] | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        system: str = "",
    ) -> AIResponse:
        self.calls.append(
            {
                "prompt": prompt,
                "files": list(files),
                "tools": [t.name for t in tools or ()],
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        if not self.responses:
            return AIResponse(text="")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        data_dir=str(tmp_path),
        auth={"jwt_secret": JWT_SECRET},
        gemini={"api_key": "test-key"},
        storage={"db_path": str(tmp_path / "assistant.db")},
    )


@pytest.fixture
def ai_client() -> ScriptedAIClient:
    return ScriptedAIClient()


@pytest.fixture
async def assistant(config, ai_client):
    app = AssistantApp(config, ai_client=ai_client)
    await app.start()
    yield app
    await app.stop()


@pytest.fixture
def context(assistant):
    return assistant.handler.build_context(USER_ID, now=NOW)


@pytest.fixture
def other_context(assistant):
    return assistant.handler.build_context(OTHER_USER_ID, now=NOW)


@pytest.fixture
def make_token():
    def _make(sub: str = USER_ID, expires_in: int = 3600, secret: str = JWT_SECRET, **claims: Any) -> str:
        payload = {"sub": sub, "exp": int(time.time()) + expires_in, "aud": "authenticated", **claims}
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make
