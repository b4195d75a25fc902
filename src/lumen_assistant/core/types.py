"""Shared types and enumerations."""

from __future__ import annotations

from enum import StrEnum


class Action(StrEnum):
    PARSE_NATURAL_LANGUAGE = "parse_natural_language"
    GENERATE_PROGRESS_NUDGE = "generate_progress_nudge"
    SUGGEST_NEXT_TASK = "suggest_next_task"
    ANALYZE_PRODUCTIVITY = "analyze_productivity"
    LUMEN_CHAT = "lumen_chat"
    GENERATE_IMAGE = "generate_image"


class Sender(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


class ResultType(StrEnum):
    TASK = "task"
    NOTE = "note"
    PROJECT = "project"
    CALENDAR_EVENT = "calendar_event"
    CLASS = "class"
    IMAGE = "image"
    DOCUMENT = "document"
