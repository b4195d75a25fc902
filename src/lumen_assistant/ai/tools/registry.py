"""Tool registry for discovering and managing available tools."""

from __future__ import annotations

from typing import TYPE_CHECKING

from lumen_assistant.ai.tools.base import Tool
from lumen_assistant.log import get_logger

if TYPE_CHECKING:
    from lumen_assistant.ai.client import AIClient
    from lumen_assistant.ai.image_client import ImageGenerator
    from lumen_assistant.config import AIConfig

logger = get_logger(__name__)


class ToolRegistry:
    """Registry of all available tools, keyed by name."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool
        logger.debug("tool_registered", tool_name=tool.name)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def all_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def discover_and_register(
        self,
        ai_client: AIClient,
        image_generator: ImageGenerator,
        ai_config: AIConfig,
    ) -> None:
        """Import and register all built-in tools."""
        from lumen_assistant.ai.tools import calendar, generative, student, work

        for tool in (
            *work.build_tools(),
            *calendar.build_tools(),
            *student.build_tools(),
            *generative.build_tools(ai_client, image_generator, ai_config),
        ):
            self.register(tool)
        logger.info("tools_registered", count=len(self._tools))
