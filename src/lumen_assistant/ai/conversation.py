"""Render conversation history and uploaded files for the model request."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Sequence

from lumen_assistant.core.models import ConversationTurn, UploadedFile

_TEXT_PREFIXES = ("text/",)
_TEXT_TYPES = frozenset({
    "application/json", "application/xml", "application/x-yaml", "application/csv",
})
_ANTHROPIC_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})


def _is_text_media_type(media_type: str) -> bool:
    """Return True if the media type represents a human-readable text format."""
    return media_type.startswith(_TEXT_PREFIXES) or media_type in _TEXT_TYPES


@dataclass(frozen=True)
class InlineFile:
    """A validated upload ready to be attached to a model request."""

    mime_type: str
    data: str  # base64, no data-URL prefix
    filename: str

    @classmethod
    def from_upload(cls, upload: UploadedFile) -> InlineFile:
        mime_type = "image/jpeg" if upload.mime_type == "image/jpg" else upload.mime_type
        return cls(mime_type=mime_type, data=upload.base64_payload, filename=upload.filename)


def render_history(turns: Sequence[ConversationTurn], max_turns: int = 20, max_chars: int = 500) -> str:
    """Render the most recent turns as ``"sender": "text"`` lines.

    Both fields are JSON-quoted so caller-supplied text cannot break out of
    its line in the prompt.
    """
    recent = list(turns)[-max_turns:] if max_turns > 0 else []
    return "\n".join(
        f"{json.dumps(turn.sender)}: {json.dumps(turn.text[:max_chars])}" for turn in recent
    )


def to_gemini_parts(files: Sequence[InlineFile]) -> list[dict[str, Any]]:
    return [{"inlineData": {"mimeType": f.mime_type, "data": f.data}} for f in files if f.data]


def to_anthropic_blocks(files: Sequence[InlineFile]) -> list[dict[str, Any]]:
    """Convert inline files to Anthropic content blocks based on media type."""
    blocks: list[dict[str, Any]] = []
    for f in files:
        if not f.data:
            continue
        if f.mime_type in _ANTHROPIC_IMAGE_TYPES:
            blocks.append(
                {
                    "type": "image",
                    "source": {"type": "base64", "media_type": f.mime_type, "data": f.data},
                }
            )
        elif f.mime_type == "application/pdf":
            blocks.append(
                {
                    "type": "document",
                    "source": {"type": "base64", "media_type": "application/pdf", "data": f.data},
                }
            )
        elif _is_text_media_type(f.mime_type):
            try:
                text_content = base64.b64decode(f.data).decode("utf-8", errors="replace")
            except (binascii.Error, ValueError):
                text_content = ""
            blocks.append({"type": "text", "text": f"[File: {f.filename}]\n{text_content}"})
        else:
            # Binary office formats: metadata only
            size_kb = len(f.data) * 0.75 / 1024
            blocks.append(
                {
                    "type": "text",
                    "text": f"[File: {f.filename} ({f.mime_type}, {size_kb:.1f} KB), binary file, content not shown]",
                }
            )
    return blocks
