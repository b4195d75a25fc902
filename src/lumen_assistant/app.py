"""Application orchestrator - wires all components and manages lifecycle."""

from __future__ import annotations

from typing import Optional

from lumen_assistant.ai.client import AIClient, AnthropicClient, GeminiClient
from lumen_assistant.ai.dispatcher import IntentDispatcher
from lumen_assistant.ai.handler import ActionHandler
from lumen_assistant.ai.image_client import ImageGenerator
from lumen_assistant.ai.tools.registry import ToolRegistry
from lumen_assistant.config import AppConfig
from lumen_assistant.core.gateway import RequestGateway
from lumen_assistant.core.identity import IdentityVerifier
from lumen_assistant.core.rate_limit import RateLimiter
from lumen_assistant.core.usage import UsageLogger
from lumen_assistant.log import get_logger
from lumen_assistant.storage.database import Database
from lumen_assistant.storage.tables import DataStore
from lumen_assistant.storage.usage_repo import UsageRepository

logger = get_logger(__name__)


def create_ai_client(config: AppConfig) -> AIClient:
    """Create an AI client based on the configured backend."""
    match config.ai.backend:
        case "gemini":
            if not config.gemini:
                raise ValueError("ai.backend is 'gemini' but no 'gemini' section in config")
            return GeminiClient(config.gemini, config.ai.model)
        case "anthropic":
            if not config.anthropic:
                raise ValueError("ai.backend is 'anthropic' but no 'anthropic' section in config")
            return AnthropicClient(config.anthropic, config.ai.model)
        case _:
            raise ValueError(f"Unknown AI backend: {config.ai.backend}")


class AssistantApp:
    """Top-level application orchestrator."""

    def __init__(
        self,
        config: AppConfig,
        ai_client: Optional[AIClient] = None,
        image_generator: Optional[ImageGenerator] = None,
    ):
        self.config = config
        self.db = Database(config.storage.db_path)
        self.data_store = DataStore(self.db)
        self.usage_repo = UsageRepository(self.db)
        self.ai_client = ai_client or create_ai_client(config)
        self.image_generator = image_generator or ImageGenerator(config.image)
        self.tool_registry = ToolRegistry()
        self.dispatcher = IntentDispatcher(self.ai_client, self.tool_registry, config)
        self.handler = ActionHandler(
            config=config,
            ai_client=self.ai_client,
            dispatcher=self.dispatcher,
            image_generator=self.image_generator,
            data_store=self.data_store,
        )
        self.gateway = RequestGateway(
            verifier=IdentityVerifier(config.auth),
            rate_limiter=RateLimiter(self.usage_repo, config.gateway),
            usage_logger=UsageLogger(self.usage_repo),
            handler=self.handler,
            config=config.gateway,
        )

    async def start(self) -> None:
        """Initialize and start all components."""
        await self.db.initialize()
        if not len(self.tool_registry):
            self.tool_registry.discover_and_register(self.ai_client, self.image_generator, self.config.ai)
        logger.info(
            "lumen_assistant_started",
            backend=self.config.ai.backend,
            model=self.ai_client.model_name,
            tools=len(self.tool_registry),
            image_generation=self.image_generator.configured,
        )

    async def stop(self) -> None:
        """Gracefully shut down all components."""
        for closer in (self.ai_client.close, self.image_generator.close):
            try:
                await closer()
            except Exception as e:
                logger.error("client_close_error", error=str(e))
        await self.db.close()
        logger.info("lumen_assistant_stopped")
