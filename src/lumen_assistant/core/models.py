"""Request-scoped models supplied by the caller. None of these are persisted."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lumen_assistant.core.types import Sender


class UploadedFile(BaseModel):
    """A file attached to a chat message, carried inline as base64."""

    model_config = ConfigDict(populate_by_name=True)

    mime_type: str = Field(default="", alias="type")
    data: str = ""
    filename: str = Field(default="", alias="name")

    @property
    def base64_payload(self) -> str:
        """The base64 body with any ``data:<mime>;base64,`` prefix removed."""
        if "," in self.data:
            return self.data.split(",", 1)[1]
        return self.data

    @property
    def estimated_size(self) -> int:
        """Approximate decoded size in bytes."""
        return int(len(self.base64_payload) * 0.75)


class ConversationTurn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sender: Sender = Sender.USER
    text: str = ""
    attachments: Optional[list[Any]] = None

    @field_validator("sender", mode="before")
    @classmethod
    def _normalize_sender(cls, value: Any) -> Any:
        if value is None:
            return Sender.USER
        return str(value).strip().lower()

    @field_validator("text", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        return "" if value is None else str(value)


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    message: str = ""
    user_id: str = Field(alias="userId")
    conversation_history: list[ConversationTurn] = Field(
        default_factory=list, alias="conversationHistory"
    )
    files: list[UploadedFile] = Field(default_factory=list)

    @field_validator("conversation_history", "files", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value
