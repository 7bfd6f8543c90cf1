"""Tests for chat request validation and the Chat Relay Agent."""

import json

import httpx
import openai
import pytest

from fakes import GATEWAY_URL, FakeChatClient, FakeStream, status_error
from storyboard_swarm.agents.chat_relay import (
    MAX_CONTENT_CHARS,
    RATE_LIMIT_MESSAGE,
    SYSTEM_PROMPT,
    UNAVAILABLE_MESSAGE,
    USAGE_LIMIT_MESSAGE,
    ChatRelayAgent,
    ChatRelayInput,
    ChatValidationError,
    UpstreamError,
    sanitize_content,
    validate_chat_request,
)


def user_turn(content: str = "What is a gradient?"):
    return {"messages": [{"role": "user", "content": content}]}


async def collect(stream):
    return [frame async for frame in stream]


@pytest.mark.unit
class TestValidateChatRequest:
    @pytest.mark.parametrize("body,message", [
        (None, "Invalid request body"),
        ([], "Invalid request body"),
        ({}, "Messages must be an array"),
        ({"messages": "hi"}, "Messages must be an array"),
        ({"messages": []}, "Messages array cannot be empty"),
        ({"messages": ["hi"]}, "Message at index 0 is invalid"),
        ({"messages": [{"role": "robot", "content": "hi"}]}, "Invalid role at message 0"),
        ({"messages": [{"role": "user", "content": 5}]}, "Content must be a string at message 0"),
        ({"messages": [{"role": "user", "content": "   "}]}, "Empty content at message 0"),
    ])
    def test_rejections(self, body, message):
        with pytest.raises(ChatValidationError) as exc_info:
            validate_chat_request(body)

        assert str(exc_info.value) == message

    def test_fifty_messages_allowed(self):
        body = {"messages": [{"role": "user", "content": "hi"}] * 50}

        assert len(validate_chat_request(body).messages) == 50

    def test_fifty_one_messages_rejected(self):
        body = {"messages": [{"role": "user", "content": "hi"}] * 51}

        with pytest.raises(ChatValidationError, match=r"Too many messages \(max 50\)"):
            validate_chat_request(body)

    def test_error_index_points_at_offending_message(self):
        body = {"messages": [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
            {"role": "user", "content": "<script>alert(1)</script>"},
        ]}

        with pytest.raises(ChatValidationError, match="Empty content at message 2"):
            validate_chat_request(body)

    def test_content_is_sanitized(self):
        request = validate_chat_request(user_turn("  Explain <script>steal()</script>this  "))

        assert request.messages[0].content == "Explain this"


@pytest.mark.unit
class TestSanitizeContent:
    def test_script_tags_case_insensitive(self):
        assert sanitize_content("a<SCRIPT type='x'>evil()</SCRIPT>b") == "ab"

    def test_truncates_before_trimming(self):
        content = "a" * (MAX_CONTENT_CHARS + 500)

        assert len(sanitize_content(content)) == MAX_CONTENT_CHARS

    def test_trailing_whitespace_past_limit_is_trimmed(self):
        content = "a" * (MAX_CONTENT_CHARS - 2) + "   tail"

        assert sanitize_content(content) == "a" * (MAX_CONTENT_CHARS - 2)


@pytest.mark.unit
class TestChatRelayAgent:
    async def test_streams_chunks_then_done(self):
        client = FakeChatClient(FakeStream(["Hel", "lo"]))

        stream = await ChatRelayAgent(client, "gemini-2.5-flash").execute(ChatRelayInput(user_turn()))
        frames = await collect(stream)

        assert frames[-1] == "data: [DONE]\n\n"
        assert all(frame.startswith("data: ") and frame.endswith("\n\n") for frame in frames)
        contents = [json.loads(f[len("data: "):])["choices"][0]["delta"]["content"] for f in frames[:-1]]
        assert contents == ["Hel", "lo"]

    async def test_system_prompt_is_prepended(self):
        client = FakeChatClient(FakeStream([]))

        await ChatRelayAgent(client, "gemini-2.5-flash").execute(ChatRelayInput(user_turn()))

        request = client.completions.requests[0]
        assert request["model"] == "gemini-2.5-flash"
        assert request["stream"] is True
        assert request["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert request["messages"][1] == {"role": "user", "content": "What is a gradient?"}

    async def test_invalid_request_never_reaches_gateway(self):
        client = FakeChatClient(FakeStream([]))

        with pytest.raises(ChatValidationError):
            await ChatRelayAgent(client, "m").execute(ChatRelayInput({"messages": []}))

        assert client.completions.requests == []

    @pytest.mark.parametrize("upstream_status,status_code,message", [
        (429, 429, RATE_LIMIT_MESSAGE),
        (402, 402, USAGE_LIMIT_MESSAGE),
        (500, 500, UNAVAILABLE_MESSAGE),
        (503, 500, UNAVAILABLE_MESSAGE),
        (400, 500, UNAVAILABLE_MESSAGE),
    ])
    async def test_upstream_status_mapping(self, upstream_status, status_code, message):
        client = FakeChatClient(status_error(upstream_status))

        with pytest.raises(UpstreamError) as exc_info:
            await ChatRelayAgent(client, "m").execute(ChatRelayInput(user_turn()))

        assert exc_info.value.status_code == status_code
        assert exc_info.value.message == message

    async def test_connection_error_maps_to_unavailable(self):
        error = openai.APIConnectionError(request=httpx.Request("POST", GATEWAY_URL))

        with pytest.raises(UpstreamError) as exc_info:
            await ChatRelayAgent(FakeChatClient(error), "m").execute(ChatRelayInput(user_turn()))

        assert exc_info.value.status_code == 500

    async def test_interrupted_stream_ends_without_done(self):
        error = openai.APIConnectionError(request=httpx.Request("POST", GATEWAY_URL))
        client = FakeChatClient(FakeStream(["partial"], error=error))

        stream = await ChatRelayAgent(client, "m").execute(ChatRelayInput(user_turn()))
        frames = await collect(stream)

        assert len(frames) == 1
        assert "partial" in frames[0]
