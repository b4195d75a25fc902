"""AI client abstraction with Gemini REST and Anthropic API backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Sequence

import anthropic
import httpx

from lumen_assistant.ai.conversation import InlineFile, to_anthropic_blocks, to_gemini_parts
from lumen_assistant.config import AnthropicConfig, GeminiConfig
from lumen_assistant.errors import RateLimited, UpstreamError
from lumen_assistant.log import get_logger

if TYPE_CHECKING:
    from lumen_assistant.ai.tools.base import Tool

logger = get_logger(__name__)


@dataclass
class ToolCall:
    """One tool invocation requested by the model."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass
class AIResponse:
    """Unified response from any AI backend."""

    text: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0
    raw: Any = None  # Backend-specific raw response

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class AIClient(ABC):
    """Abstract base class for hosted model backends.

    A call is made exactly once. A 429 from the provider raises
    ``RateLimited("upstream")``; any other failure raises ``UpstreamError``.
    """

    @property
    @abstractmethod
    def model_name(self) -> str:
        ...

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        files: Sequence[InlineFile] = (),
        tools: Sequence[Tool] | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        system: str = "",
    ) -> AIResponse:
        """Send one prompt (plus optional inline files and tool catalog) to the model."""
        ...

    async def close(self) -> None:
        return None


class GeminiClient(AIClient):
    """Google Generative Language REST backend."""

    def __init__(
        self,
        config: GeminiConfig,
        model: str,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = config.api_key
        self._base_url = config.base_url.rstrip("/")
        self._model = model
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout)

    @property
    def model_name(self) -> str:
        return self._model

    async def generate(
        self,
        prompt: str,
        *,
        files: Sequence[InlineFile] = (),
        tools: Sequence[Tool] | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        system: str = "",
    ) -> AIResponse:
        body: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}, *to_gemini_parts(files)]}],
            "generationConfig": {"temperature": temperature, "maxOutputTokens": max_tokens},
        }
        if system:
            body["systemInstruction"] = {"parts": [{"text": system}]}
        if tools:
            body["tools"] = [{"functionDeclarations": [t.to_function_declaration() for t in tools]}]

        url = f"{self._base_url}/models/{self._model}:generateContent"
        logger.debug("api_request", model=self._model, file_count=len(files), tool_count=len(tools or ()))
        try:
            response = await self._http.post(url, params={"key": self._api_key}, json=body)
        except httpx.HTTPError as e:
            logger.error("api_transport_error", model=self._model, error=type(e).__name__)
            raise UpstreamError() from e

        if response.status_code == 429:
            logger.warning("api_rate_limited", model=self._model)
            raise RateLimited("upstream")
        if not response.is_success:
            logger.error("api_error", model=self._model, status=response.status_code, body=response.text[:500])
            raise UpstreamError(status=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError("Invalid response from AI") from e
        return self._parse_response(data)

    def _parse_response(self, data: dict[str, Any]) -> AIResponse:
        candidates = data.get("candidates") or []
        if not candidates:
            logger.error("api_unexpected_response", keys=sorted(data.keys()))
            raise UpstreamError("Invalid response from AI")

        parts = (candidates[0].get("content") or {}).get("parts") or []
        texts: list[str] = []
        calls: list[ToolCall] = []
        for part in parts:
            if part.get("text"):
                texts.append(part["text"])
            call = part.get("functionCall")
            if call and call.get("name"):
                args = call.get("args")
                calls.append(ToolCall(name=call["name"], arguments=args if isinstance(args, dict) else {}))

        usage = data.get("usageMetadata") or {}
        response = AIResponse(
            text="".join(texts),
            tool_calls=calls,
            input_tokens=int(usage.get("promptTokenCount") or 0),
            output_tokens=int(usage.get("candidatesTokenCount") or 0),
            raw=data,
        )
        logger.debug(
            "api_response",
            model=self._model,
            tool_calls=[c.name for c in calls],
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
        )
        return response

    async def close(self) -> None:
        if self._owns_client:
            await self._http.aclose()


class AnthropicClient(AIClient):
    """Anthropic API backend using the official SDK."""

    def __init__(self, config: AnthropicConfig, model: str):
        self._client = anthropic.AsyncAnthropic(
            api_key=config.api_key,
            base_url=config.base_url,
            max_retries=config.max_retries,
            timeout=config.timeout,
        )
        self._model = model

    @property
    def model_name(self) -> str:
        return self._model

    async def generate(
        self,
        prompt: str,
        *,
        files: Sequence[InlineFile] = (),
        tools: Sequence[Tool] | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        system: str = "",
    ) -> AIResponse:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "messages": [
                {"role": "user", "content": [{"type": "text", "text": prompt}, *to_anthropic_blocks(files)]}
            ],
            "temperature": temperature,
        }
        if system:
            kwargs["system"] = system
        if tools:
            kwargs["tools"] = [t.to_api_dict() for t in tools]

        logger.debug("api_request", model=self._model, file_count=len(files))
        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.RateLimitError as e:
            logger.warning("api_rate_limited", model=self._model)
            raise RateLimited("upstream") from e
        except anthropic.APIStatusError as e:
            logger.error("api_error", model=self._model, status=e.status_code)
            raise UpstreamError(status=e.status_code) from e
        except anthropic.APIError as e:
            logger.error("api_transport_error", model=self._model, error=type(e).__name__)
            raise UpstreamError() from e

        texts = [b.text for b in response.content if b.type == "text"]
        calls = [
            ToolCall(name=b.name, arguments=b.input if isinstance(b.input, dict) else {})
            for b in response.content
            if b.type == "tool_use"
        ]
        logger.debug(
            "api_response",
            model=self._model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            stop_reason=response.stop_reason,
        )
        return AIResponse(
            text="\n".join(texts),
            tool_calls=calls,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            raw=response,
        )

    async def close(self) -> None:
        await self._client.close()
