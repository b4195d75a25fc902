"""Intent dispatcher: one model call with the tool catalog, then tool execution."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from lumen_assistant.ai.client import AIClient
from lumen_assistant.ai.conversation import InlineFile, render_history
from lumen_assistant.ai.prompts import build_chat_prompt
from lumen_assistant.ai.tool_runner import run_tool_calls
from lumen_assistant.ai.tools.base import ToolContext
from lumen_assistant.ai.tools.registry import ToolRegistry
from lumen_assistant.config import AppConfig
from lumen_assistant.core.models import ChatRequest
from lumen_assistant.core.security import FileRejected, validate_upload
from lumen_assistant.errors import InvalidRequest
from lumen_assistant.log import get_logger

logger = get_logger(__name__)

FILE_REJECTED_MESSAGE = "File upload failed. Please check file type and size."
EMPTY_REPLY = "I'm not sure how to help with that. Could you rephrase?"


@dataclass
class ChatReply:
    message: str
    created_items: list[dict[str, Any]] = field(default_factory=list)
    token_count: int = 0

    @property
    def type(self) -> str:
        return "creation_complete" if self.created_items else "general"

    def to_response(self) -> dict[str, Any]:
        return {"type": self.type, "message": self.message, "created_items": self.created_items}


class IntentDispatcher:
    def __init__(self, ai_client: AIClient, tool_registry: ToolRegistry, config: AppConfig):
        self._ai = ai_client
        self._tools = tool_registry
        self._config = config

    def validate_files(self, request: ChatRequest) -> list[InlineFile]:
        """Validate every upload; a single bad file rejects the whole batch."""
        for upload in request.files:
            try:
                validate_upload(upload)
            except FileRejected as e:
                error_id = str(uuid.uuid4())
                logger.warning(
                    "file_rejected",
                    error_id=error_id,
                    filename=upload.filename[:255],
                    mime_type=upload.mime_type,
                    reason=str(e),
                )
                raise InvalidRequest(FILE_REJECTED_MESSAGE) from e
        return [InlineFile.from_upload(f) for f in request.files]

    def build_prompt(self, request: ChatRequest, context: ToolContext) -> str:
        ai = self._config.ai
        defaults = self._config.defaults
        return build_chat_prompt(
            now=context.now,
            history=render_history(request.conversation_history, ai.history_turns, ai.history_chars),
            message=request.message,
            assistant_name=ai.assistant_name,
            product_name=ai.product_name,
            default_priority=defaults.priority,
            due_date_today=defaults.due_date_today,
            reminder_enabled=defaults.reminder_enabled,
        )

    async def chat(self, request: ChatRequest, context: ToolContext) -> ChatReply:
        files = self.validate_files(request)
        prompt = self.build_prompt(request, context)

        logger.info(
            "chat_dispatch",
            message_length=len(request.message),
            history_turns=len(request.conversation_history),
            file_count=len(files),
        )
        response = await self._ai.generate(
            prompt,
            files=files,
            tools=self._tools.all_tools(),
            temperature=self._config.ai.chat_temperature,
            max_tokens=self._config.ai.chat_max_tokens,
        )

        if not response.tool_calls:
            return ChatReply(message=response.text.strip() or EMPTY_REPLY, token_count=response.total_tokens)

        batch = await run_tool_calls(self._tools, response.tool_calls, context)
        return ChatReply(
            message=batch.reply,
            created_items=batch.created_items,
            token_count=response.total_tokens,
        )
