"""Generative tools: images, documents, conversions and source lists.

These make a second hosted-model call and package the output; they never
touch the data store.
"""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any, Literal

from pydantic import Field, field_validator

from lumen_assistant.ai import prompts
from lumen_assistant.ai.tools.base import Tool, ToolArguments, ToolContext, ToolOutput, ToolResult
from lumen_assistant.core.types import ResultType
from lumen_assistant.log import get_logger

if TYPE_CHECKING:
    from lumen_assistant.ai.client import AIClient
    from lumen_assistant.ai.image_client import ImageGenerator
    from lumen_assistant.config import AIConfig

logger = get_logger(__name__)

# Formats become file extensions, so only short alphanumeric names are accepted
FORMAT_PATTERN = r"^[a-z0-9]{1,10}$"
_MIME_BY_EXTENSION = {"csv": "text/csv", "md": "text/markdown", "json": "application/json", "html": "text/html"}
# Text output cannot be a real binary office file, so those targets become text formats
_EXTENSION_BY_TARGET = {"excel": "csv", "xlsx": "csv", "xls": "csv", "docx": "md", "doc": "md", "pdf": "md"}


def package_document(content: str, stem: str, extension: str, context: ToolContext) -> dict[str, Any]:
    """Build the downloadable document payload returned to the caller."""
    mime_type = _MIME_BY_EXTENSION.get(extension, "text/plain")
    encoded = base64.b64encode(content.encode("utf-8")).decode("ascii")
    return {
        "content": content,
        "download": f"data:{mime_type};base64,{encoded}",
        "filename": f"{stem}_{int(context.now.timestamp() * 1000)}.{extension}",
        "mime_type": mime_type,
    }


class GenerateImageArgs(ToolArguments):
    prompt: str = Field(min_length=1, description="Detailed description of the image")


class GenerateImageTool(Tool):
    arguments_model = GenerateImageArgs

    def __init__(self, image_generator: ImageGenerator):
        self._images = image_generator

    @property
    def name(self) -> str:
        return "generate_image"

    @property
    def description(self) -> str:
        return "Generate an image based on a detailed text description"

    async def execute(self, args: GenerateImageArgs, context: ToolContext) -> ToolOutput:
        url = await self._images.generate(args.prompt)
        return ToolOutput("✅ Image generated successfully!", ToolResult(ResultType.IMAGE, {"url": url}))


class GenerateDocumentArgs(ToolArguments):
    type: Literal["essay", "report", "excel", "spreadsheet", "document"] = Field(description="Document type")
    prompt: str = Field(min_length=1, description="What the document should contain")


class GenerateDocumentTool(Tool):
    arguments_model = GenerateDocumentArgs

    def __init__(self, ai_client: AIClient, ai_config: AIConfig):
        self._ai = ai_client
        self._config = ai_config

    @property
    def name(self) -> str:
        return "generate_document"

    @property
    def description(self) -> str:
        return "Generate essays, reports, or Excel spreadsheets (as CSV)"

    async def execute(self, args: GenerateDocumentArgs, context: ToolContext) -> ToolOutput:
        response = await self._ai.generate(
            prompts.build_document_prompt(args.type, args.prompt),
            temperature=self._config.document_temperature,
            max_tokens=self._config.document_max_tokens,
        )
        content = response.text.strip()
        if not content:
            raise ValueError("No content generated")

        extension = "csv" if prompts.document_format(args.type) == "CSV" else "md"
        document = package_document(content, "document", extension, context)
        logger.info("document_generated", doc_type=args.type, length=len(content))
        return ToolOutput(
            f"✅ {args.type.capitalize()} generated! You can download it.",
            ToolResult(ResultType.DOCUMENT, document),
        )


class ConvertDocumentArgs(ToolArguments):
    source_format: str = Field(pattern=FORMAT_PATTERN, description="Source format (pdf, docx, excel, csv, md)")
    target_format: str = Field(pattern=FORMAT_PATTERN, description="Target format (pdf, docx, excel, csv, md)")
    content: str = Field(min_length=1, description="Content or description of what to convert")

    @field_validator("source_format", "target_format", mode="before")
    @classmethod
    def _normalize_format(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower().lstrip(".")
        return value


class ConvertDocumentTool(Tool):
    arguments_model = ConvertDocumentArgs

    def __init__(self, ai_client: AIClient, ai_config: AIConfig):
        self._ai = ai_client
        self._config = ai_config

    @property
    def name(self) -> str:
        return "convert_document"

    @property
    def description(self) -> str:
        return "Convert documents between formats (PDF to Excel, Word to PDF, etc.)"

    async def execute(self, args: ConvertDocumentArgs, context: ToolContext) -> ToolOutput:
        response = await self._ai.generate(
            prompts.build_conversion_prompt(args.source_format, args.target_format, args.content),
            temperature=self._config.conversion_temperature,
            max_tokens=self._config.document_max_tokens,
        )
        content = response.text.strip()
        if not content:
            raise ValueError("No content generated")

        extension = _EXTENSION_BY_TARGET.get(args.target_format, args.target_format)
        document = package_document(content, "converted", extension, context)
        return ToolOutput(
            f"✅ Document converted from {args.source_format} to {args.target_format}!",
            ToolResult(ResultType.DOCUMENT, document),
        )


class FindSourcesArgs(ToolArguments):
    topic: str = Field(min_length=1, description="Topic to research")


class FindSourcesTool(Tool):
    arguments_model = FindSourcesArgs

    def __init__(self, ai_client: AIClient, ai_config: AIConfig):
        self._ai = ai_client
        self._config = ai_config

    @property
    def name(self) -> str:
        return "find_sources"

    @property
    def description(self) -> str:
        return "Research a topic and suggest credible sources"

    async def execute(self, args: FindSourcesArgs, context: ToolContext) -> ToolOutput:
        response = await self._ai.generate(
            prompts.build_sources_prompt(args.topic),
            temperature=self._config.structured_temperature,
            max_tokens=self._config.sources_max_tokens,
        )
        sources = response.text.strip()
        if not sources:
            raise ValueError("No sources returned")
        return ToolOutput(f'Here are credible sources for "{args.topic}":\n\n{sources}')


def build_tools(ai_client: AIClient, image_generator: ImageGenerator, ai_config: AIConfig) -> list[Tool]:
    return [
        GenerateImageTool(image_generator),
        GenerateDocumentTool(ai_client, ai_config),
        ConvertDocumentTool(ai_client, ai_config),
        FindSourcesTool(ai_client, ai_config),
    ]
