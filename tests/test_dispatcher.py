"""Tests for the chat dispatcher: prompt assembly, file checks and reply shaping."""

import pytest

from lumen_assistant.ai.client import AIResponse, ToolCall
from lumen_assistant.ai.dispatcher import EMPTY_REPLY, FILE_REJECTED_MESSAGE
from lumen_assistant.core.models import ChatRequest
from lumen_assistant.errors import InvalidRequest

from .conftest import USER_ID


def _request(message="hello", files=None, history=None) -> ChatRequest:
    return ChatRequest.model_validate(
        {
            "message": message,
            "userId": USER_ID,
            "files": files or [],
            "conversationHistory": history or [],
        }
    )


class TestFileValidation:
    @pytest.mark.parametrize(
        "upload",
        [
            {"type": "application/zip", "data": "UEsDBA==", "name": "archive.zip"},
            {"type": "image/png", "data": "A" * (34 * 1024 * 1024), "name": "huge.png"},
            {"type": "image/png", "data": "aGVsbG8=", "name": "bad;name.png"},
        ],
    )
    async def test_rejects_before_model_call(self, assistant, context, ai_client, upload):
        with pytest.raises(InvalidRequest) as exc_info:
            await assistant.dispatcher.chat(_request(files=[upload]), context)

        assert exc_info.value.error == FILE_REJECTED_MESSAGE
        assert ai_client.calls == []

    async def test_one_bad_file_rejects_all(self, assistant, context, ai_client):
        files = [
            {"type": "image/png", "data": "aGVsbG8=", "name": "ok.png"},
            {"type": "application/zip", "data": "UEsDBA==", "name": "archive.zip"},
        ]

        with pytest.raises(InvalidRequest):
            await assistant.dispatcher.chat(_request(files=files), context)

        assert ai_client.calls == []

    async def test_valid_files_are_forwarded(self, assistant, context, ai_client):
        ai_client.queue(AIResponse(text="Nice photo!"))
        upload = {"type": "image/jpg", "data": "data:image/jpeg;base64,aGVsbG8=", "name": "photo.jpg"}

        await assistant.dispatcher.chat(_request(message="what is this?", files=[upload]), context)

        (forwarded,) = ai_client.calls[0]["files"]
        assert forwarded.mime_type == "image/jpeg"
        assert forwarded.data == "aGVsbG8="


class TestChat:
    async def test_plain_text_reply(self, assistant, context, ai_client):
        ai_client.queue(AIResponse(text="  Hi there!  ", input_tokens=10, output_tokens=5))

        reply = await assistant.dispatcher.chat(_request(), context)

        assert reply.to_response() == {"type": "general", "message": "Hi there!", "created_items": []}
        assert reply.token_count == 15

    async def test_empty_reply_gets_fallback_text(self, assistant, context, ai_client):
        ai_client.queue(AIResponse(text=""))

        reply = await assistant.dispatcher.chat(_request(), context)

        assert reply.message == EMPTY_REPLY

    async def test_tool_calls_produce_creation_complete(self, assistant, context, ai_client):
        ai_client.queue(
            AIResponse(
                text="Sure, creating it now.",
                tool_calls=[ToolCall("create_task", {"title": "Call client", "priority": "High"})],
                input_tokens=100,
                output_tokens=20,
            )
        )

        reply = await assistant.dispatcher.chat(_request("remind me to call the client"), context)
        response = reply.to_response()

        assert response["type"] == "creation_complete"
        assert response["message"].startswith('✅ Task created: "Call client"')
        assert response["created_items"][0]["item"]["priority"] == "High"
        assert reply.token_count == 120

    async def test_single_model_call_with_full_catalog(self, assistant, context, ai_client):
        ai_client.queue(AIResponse(text="", tool_calls=[ToolCall("get_tasks", {"count_only": True})]))

        reply = await assistant.dispatcher.chat(_request("how many tasks do I have?"), context)

        assert len(ai_client.calls) == 1
        assert len(ai_client.calls[0]["tools"]) == len(assistant.tool_registry)
        assert reply.to_response() == {"type": "general", "message": "You have 0 tasks.", "created_items": []}

    async def test_prompt_contains_date_history_and_message(self, assistant, context, ai_client):
        history = [
            {"sender": "user", "text": "Hi"},
            {"sender": "assistant", "text": "Hello! How can I help?"},
        ]

        await assistant.dispatcher.chat(_request("add milk to my list", history=history), context)

        prompt = ai_client.calls[0]["prompt"]
        assert "2025-09-18" in prompt
        assert '"assistant": "Hello! How can I help?"' in prompt
        assert "add milk to my list" in prompt

    async def test_history_is_windowed(self, assistant, context, ai_client):
        history = [{"sender": "user", "text": f"turn {i}"} for i in range(30)]

        await assistant.dispatcher.chat(_request(history=history), context)

        prompt = ai_client.calls[0]["prompt"]
        assert '"turn 29"' in prompt
        assert '"turn 10"' in prompt
        assert '"turn 9"' not in prompt
