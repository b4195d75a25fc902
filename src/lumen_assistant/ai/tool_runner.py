"""Sequential execution of the tool calls returned by one model response."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from lumen_assistant.ai.client import ToolCall
from lumen_assistant.ai.tools.base import FALLBACK_MESSAGE, ToolContext
from lumen_assistant.ai.tools.registry import ToolRegistry
from lumen_assistant.errors import ToolExecutionError
from lumen_assistant.log import get_logger

logger = get_logger(__name__)


@dataclass
class ToolBatchResult:
    messages: list[str] = field(default_factory=list)
    created_items: list[dict[str, Any]] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def reply(self) -> str:
        return "\n\n".join(self.messages)


async def run_tool_calls(
    tool_registry: ToolRegistry,
    calls: Sequence[ToolCall],
    context: ToolContext,
) -> ToolBatchResult:
    """Run *calls* one after another in the order the model returned them.

    Each call commits on its own. A failed call contributes the fallback
    message and the batch moves on; earlier effects are not rolled back.
    """
    batch = ToolBatchResult()

    for index, call in enumerate(calls):
        tool = tool_registry.get(call.name)
        if tool is None:
            logger.warning("tool_unknown", tool=call.name, position=index)
            batch.messages.append(FALLBACK_MESSAGE)
            batch.failed.append(call.name)
            continue

        logger.info("tool_execute", tool=call.name, position=index, arg_keys=sorted(call.arguments))
        try:
            output = await tool.run(call.arguments, context)
        except ToolExecutionError as e:
            logger.error("tool_execution_error", tool=e.tool_name, error=e.reason)
            batch.messages.append(FALLBACK_MESSAGE)
            batch.failed.append(call.name)
            continue

        batch.messages.append(output.message)
        if output.result is not None:
            batch.created_items.append(output.result.to_dict())

    logger.debug(
        "tool_batch_done",
        total=len(calls),
        failed=len(batch.failed),
        created=len(batch.created_items),
    )
    return batch
