"""Abstract tool interface for model tool calls."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, ClassVar, Literal, Optional, get_args, get_origin

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from lumen_assistant.config import DefaultsConfig
from lumen_assistant.core.types import ResultType
from lumen_assistant.errors import ToolExecutionError
from lumen_assistant.storage.tables import UserScope

FALLBACK_MESSAGE = "I had trouble with that request. Please try again."

_SCHEMA_KEYS = ("type", "enum", "items", "description")


@dataclass
class ToolContext:
    """Per-request state handed to every tool call."""

    user_id: str
    store: UserScope
    now: datetime  # timezone-aware, in the configured timezone
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)

    @property
    def today(self) -> date:
        return self.now.date()


@dataclass
class ToolResult:
    """Structured payload for the caller's UI, tagged with the entity type."""

    type: ResultType
    item: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"type": str(self.type), "item": self.item}


@dataclass
class ToolOutput:
    message: str
    result: Optional[ToolResult] = None


class ToolArguments(BaseModel):
    """Base for tool argument models. Unknown keys from the model are dropped."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    @model_validator(mode="before")
    @classmethod
    def _canonicalize_choices(cls, data: Any) -> Any:
        """Map "high" or "in_progress" onto the declared "High" / "In Progress"."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for field_name, info in cls.model_fields.items():
            value = data.get(field_name)
            if not isinstance(value, str):
                continue
            key = _choice_key(value)
            for choice in _literal_choices(info.annotation):
                if isinstance(choice, str) and _choice_key(choice) == key:
                    data[field_name] = choice
                    break
        return data


def _choice_key(value: str) -> str:
    return " ".join(value.replace("_", " ").replace("-", " ").split()).lower()


def _literal_choices(annotation: Any) -> tuple[Any, ...]:
    if get_origin(annotation) is Literal:
        return get_args(annotation)
    for arg in get_args(annotation):
        if get_origin(arg) is Literal:
            return get_args(arg)
    return ()


def function_schema(model: type[BaseModel]) -> dict[str, Any]:
    """Derive a flat JSON schema (the subset both backends accept) from *model*."""
    raw = model.model_json_schema()
    properties: dict[str, Any] = {}
    for prop_name, prop in raw.get("properties", {}).items():
        variants = [v for v in prop.get("anyOf", []) if v.get("type") != "null"]
        merged = {**variants[0], **prop} if variants else dict(prop)
        if "enum" in merged and "type" not in merged:
            merged["type"] = "string"
        properties[prop_name] = {k: merged[k] for k in _SCHEMA_KEYS if k in merged}

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if raw.get("required"):
        schema["required"] = list(raw["required"])
    return schema


class Tool(ABC):
    """Base class for all model-callable tools.

    Subclasses declare ``arguments_model``; the schema advertised to the model
    is derived from it and the same model re-validates the arguments the
    model sends back before ``execute`` runs.
    """

    arguments_model: ClassVar[type[ToolArguments]] = ToolArguments

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique tool name sent to the model."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description for the model."""
        ...

    @property
    def input_schema(self) -> dict[str, Any]:
        return function_schema(self.arguments_model)

    @abstractmethod
    async def execute(self, args: Any, context: ToolContext) -> ToolOutput:
        """Run the tool with validated arguments."""
        ...

    async def run(self, arguments: dict[str, Any], context: ToolContext) -> ToolOutput:
        """Validate *arguments* and execute. Any failure becomes ToolExecutionError."""
        try:
            args = self.arguments_model.model_validate(arguments or {})
        except ValidationError as e:
            raise ToolExecutionError(self.name, f"invalid arguments: {e.error_count()} error(s)") from e
        try:
            return await self.execute(args, context)
        except ToolExecutionError:
            raise
        except Exception as e:
            raise ToolExecutionError(self.name, f"{type(e).__name__}: {e}") from e

    def to_api_dict(self) -> dict[str, Any]:
        """Serialize to the Anthropic API tool definition format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }

    def to_function_declaration(self) -> dict[str, Any]:
        """Serialize to the Gemini ``functionDeclarations`` entry format."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.input_schema,
        }


def plural(count: int, singular: str, plural_form: Optional[str] = None) -> str:
    return singular if count == 1 else (plural_form or f"{singular}s")


def with_remainder(lines: list[str], total: int, limit: int, empty: str) -> str:
    """Join the first *limit* lines and append an "...and N more" suffix if truncated."""
    if not lines:
        return empty
    text = "\n".join(lines[:limit])
    if total > limit:
        text += f"\n\n...and {total - limit} more"
    return text
