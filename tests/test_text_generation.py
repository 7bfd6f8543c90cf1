"""Tests for the text generation client: retry count, backoff and empty fallback."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, call, patch

import httpx
import openai
import pytest

from storyboard_swarm.agents.text_generation import TextGenerationClient, build_document_content

GATEWAY_URL = "https://gateway.example/v1/chat/completions"


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def server_error(status_code: int = 500) -> openai.APIStatusError:
    response = httpx.Response(status_code, request=httpx.Request("POST", GATEWAY_URL))
    return openai.APIStatusError("gateway failure", response=response, body=None)


def make_client(side_effect, max_attempts: int = 3) -> TextGenerationClient:
    create = AsyncMock(side_effect=side_effect)
    sdk = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return TextGenerationClient(
        api_key="test-key",
        base_url="https://gateway.example/v1",
        model="google/gemini-2.5-flash",
        max_attempts=max_attempts,
        client=sdk
    )


def create_mock(client: TextGenerationClient) -> AsyncMock:
    return client.client.chat.completions.create


@pytest.mark.unit
class TestGenerate:
    async def test_returns_first_choice_content(self):
        client = make_client([completion('{"ok": true}')])

        assert await client.generate("system", "user") == '{"ok": true}'

    async def test_sends_system_and_user_messages(self):
        client = make_client([completion("hi")])

        await client.generate("You are a tester", "Say hi")

        kwargs = create_mock(client).call_args.kwargs
        assert kwargs["model"] == "google/gemini-2.5-flash"
        assert kwargs["messages"] == [
            {"role": "system", "content": "You are a tester"},
            {"role": "user", "content": "Say hi"},
        ]

    async def test_missing_content_yields_empty_string(self):
        client = make_client([completion(None)])

        assert await client.generate("system", "user") == ""

    async def test_no_choices_yields_empty_string(self):
        client = make_client([SimpleNamespace(choices=[])])

        assert await client.generate("system", "user") == ""

    @patch("storyboard_swarm.agents.text_generation.asyncio.sleep", new_callable=AsyncMock)
    async def test_exhausted_attempts_return_empty_string(self, mock_sleep):
        """Three HTTP 500s: exactly three requests, then an empty completion."""
        client = make_client([server_error(), server_error(), server_error()])

        assert await client.generate("system", "user") == ""
        assert create_mock(client).await_count == 3

    @patch("storyboard_swarm.agents.text_generation.asyncio.sleep", new_callable=AsyncMock)
    async def test_linear_backoff_between_attempts_only(self, mock_sleep):
        client = make_client([server_error(), server_error(), server_error()])

        await client.generate("system", "user")

        # 1s after the first failure, 2s after the second, none after the last
        assert mock_sleep.await_args_list == [call(1.0), call(2.0)]

    @patch("storyboard_swarm.agents.text_generation.asyncio.sleep", new_callable=AsyncMock)
    async def test_recovers_after_transient_failure(self, mock_sleep):
        client = make_client([server_error(503), completion("recovered")])

        assert await client.generate("system", "user") == "recovered"
        assert create_mock(client).await_count == 2
        mock_sleep.assert_awaited_once_with(1.0)

    @patch("storyboard_swarm.agents.text_generation.asyncio.sleep", new_callable=AsyncMock)
    async def test_client_errors_are_retried_too(self, mock_sleep):
        client = make_client([server_error(400), server_error(400), completion("ok")])

        assert await client.generate("system", "user") == "ok"
        assert create_mock(client).await_count == 3

    @patch("storyboard_swarm.agents.text_generation.asyncio.sleep", new_callable=AsyncMock)
    async def test_connection_errors_are_retried(self, mock_sleep):
        connection_error = openai.APIConnectionError(request=httpx.Request("POST", GATEWAY_URL))
        client = make_client([connection_error, completion("ok")])

        assert await client.generate("system", "user") == "ok"

    @patch("storyboard_swarm.agents.text_generation.asyncio.sleep", new_callable=AsyncMock)
    async def test_attempt_override(self, mock_sleep):
        client = make_client([server_error()] * 5)

        assert await client.generate("system", "user", max_attempts=1) == ""
        assert create_mock(client).await_count == 1
        mock_sleep.assert_not_awaited()

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            make_client([], max_attempts=0)


@pytest.mark.unit
class TestBuildDocumentContent:
    def test_embeds_pdf_as_data_url(self):
        parts = build_document_content("Read this", "QUJD", "paper.pdf")

        assert parts[0] == {"type": "text", "text": "Read this"}
        assert parts[1]["type"] == "file"
        assert parts[1]["file"]["filename"] == "paper.pdf"
        assert parts[1]["file"]["file_data"] == "data:application/pdf;base64,QUJD"
