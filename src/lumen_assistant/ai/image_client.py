"""Client for the hosted image-generation API (OpenAI-compatible chat completions)."""

from __future__ import annotations

from typing import Any

import httpx

from lumen_assistant.config import ImageConfig
from lumen_assistant.errors import RateLimited, UpstreamError
from lumen_assistant.log import get_logger

logger = get_logger(__name__)


class ImageGenerator:
    def __init__(self, config: ImageConfig, http_client: httpx.AsyncClient | None = None):
        self._config = config
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout)

    @property
    def configured(self) -> bool:
        return bool(self._config.api_key)

    async def generate(self, prompt: str) -> str:
        """Generate one image for *prompt* and return its URL (often a data URL)."""
        if not self.configured:
            raise UpstreamError("Image generation is not configured")

        body: dict[str, Any] = {
            "model": self._config.model,
            "messages": [{"role": "user", "content": prompt}],
            "modalities": ["image", "text"],
        }
        url = f"{self._config.base_url.rstrip('/')}/chat/completions"
        logger.debug("image_request", model=self._config.model, prompt_length=len(prompt))
        try:
            response = await self._http.post(
                url,
                json=body,
                headers={"Authorization": f"Bearer {self._config.api_key}"},
            )
        except httpx.HTTPError as e:
            logger.error("image_transport_error", error=type(e).__name__)
            raise UpstreamError("Failed to generate image") from e

        if response.status_code == 429:
            logger.warning("image_rate_limited")
            raise RateLimited("upstream")
        if not response.is_success:
            logger.error("image_api_error", status=response.status_code, body=response.text[:500])
            raise UpstreamError("Failed to generate image", status=response.status_code)

        try:
            data = response.json()
            image_url = data["choices"][0]["message"]["images"][0]["image_url"]["url"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("image_missing_data")
            raise UpstreamError("No image data in response") from e

        if not image_url:
            raise UpstreamError("No image data in response")
        logger.info("image_generated", model=self._config.model)
        return image_url

    async def close(self) -> None:
        if self._owns_client:
            await self._http.aclose()
