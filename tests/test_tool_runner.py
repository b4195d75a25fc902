"""Tests for sequential tool-call execution."""

from lumen_assistant.ai.client import ToolCall
from lumen_assistant.ai.tool_runner import run_tool_calls
from lumen_assistant.ai.tools.base import FALLBACK_MESSAGE
from lumen_assistant.storage.tables import Table


class TestRunToolCalls:
    async def test_messages_joined_in_call_order(self, assistant, context):
        batch = await run_tool_calls(
            assistant.tool_registry,
            [
                ToolCall("create_task", {"title": "Buy milk"}),
                ToolCall("create_note", {"title": "Shopping", "content": "milk, eggs"}),
            ],
            context,
        )

        assert len(batch.messages) == 2
        assert batch.messages[0].startswith('✅ Task created: "Buy milk"')
        assert batch.messages[1].startswith('✅ Note created: "Shopping"')
        assert batch.reply == "\n\n".join(batch.messages)
        assert [item["type"] for item in batch.created_items] == ["task", "note"]
        assert batch.failed == []

    async def test_failure_does_not_stop_later_calls(self, assistant, context, monkeypatch):
        real_insert = Table.insert

        async def failing_insert(self, row):
            if self.name == "projects":
                raise RuntimeError("disk full")
            return await real_insert(self, row)

        monkeypatch.setattr(Table, "insert", failing_insert)

        batch = await run_tool_calls(
            assistant.tool_registry,
            [
                ToolCall("create_project", {"name": "Website"}),
                ToolCall("create_task", {"title": "Draft homepage"}),
            ],
            context,
        )

        assert batch.messages[0] == FALLBACK_MESSAGE
        assert batch.messages[1].startswith('✅ Task created: "Draft homepage"')
        assert batch.failed == ["create_project"]
        assert [item["type"] for item in batch.created_items] == ["task"]
        assert await context.store.table("tasks").select().count() == 1
        assert await context.store.table("projects").select().count() == 0

    async def test_earlier_effects_survive_later_failure(self, assistant, context):
        batch = await run_tool_calls(
            assistant.tool_registry,
            [
                ToolCall("create_task", {"title": "Kept"}),
                ToolCall("create_task", {}),
            ],
            context,
        )

        assert batch.messages[1] == FALLBACK_MESSAGE
        assert await context.store.table("tasks").select().count() == 1

    async def test_unknown_tool(self, assistant, context):
        batch = await run_tool_calls(assistant.tool_registry, [ToolCall("delete_everything", {})], context)

        assert batch.messages == [FALLBACK_MESSAGE]
        assert batch.failed == ["delete_everything"]
        assert batch.created_items == []

    async def test_read_only_calls_create_nothing(self, assistant, context):
        batch = await run_tool_calls(
            assistant.tool_registry, [ToolCall("get_tasks", {"count_only": True})], context
        )

        assert batch.reply == "You have 0 tasks."
        assert batch.created_items == []
