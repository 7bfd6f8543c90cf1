"""Tests for the document-level agents: Global Context and Page Extractor."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import openai
import pytest

from fakes import GLOBAL_CONTEXT, PAGE_EXTRACTOR, FakeTextClient, pages_reply
from storyboard_swarm.agents.base import AgentExecutionError
from storyboard_swarm.agents.global_context import (
    DEFAULT_MAIN_GOAL,
    DEFAULT_TARGET_AUDIENCE,
    DEFAULT_THEMES,
    GlobalContextAgent,
    title_from_filename,
)
from storyboard_swarm.agents.page_extractor import SINGLE_PAGE_PLACEHOLDER, DocumentInput, PageExtractorAgent
from storyboard_swarm.agents.text_generation import TextGenerationClient


def document(name: str = "attention.pdf") -> DocumentInput:
    return DocumentInput("JVBERi0xLjQK", name)


@pytest.mark.unit
class TestGlobalContextAgent:
    async def test_parses_full_packet(self):
        client = FakeTextClient({GLOBAL_CONTEXT: json.dumps({
            "paper_title": "Attention Is All You Need",
            "main_goal": "Replace recurrence with attention",
            "themes": ["transformers"],
            "key_terminology": ["attention", "attention", "encoder"],
            "target_audience": "ML students"
        })})

        packet = await GlobalContextAgent(client).execute(document())

        assert packet.paper_title == "Attention Is All You Need"
        assert packet.themes == ["transformers"]
        assert packet.key_terminology == ["attention", "encoder"]
        assert packet.total_pages == 0

    async def test_sends_document_as_file_part(self):
        client = FakeTextClient()

        await GlobalContextAgent(client).execute(document("paper.pdf"))

        _, user_content = client.calls_for(GLOBAL_CONTEXT)[0]
        assert user_content[1]["file"]["file_data"] == "data:application/pdf;base64,JVBERi0xLjQK"
        assert "paper.pdf" in user_content[0]["text"]

    async def test_empty_reply_uses_defaults(self):
        packet = await GlobalContextAgent(FakeTextClient()).execute(document("Lecture Notes.PDF"))

        assert packet.paper_title == "Lecture Notes"
        assert packet.main_goal == DEFAULT_MAIN_GOAL
        assert packet.themes == DEFAULT_THEMES
        assert packet.key_terminology == []
        assert packet.target_audience == DEFAULT_TARGET_AUDIENCE

    async def test_partial_reply_defaults_missing_fields(self):
        client = FakeTextClient({GLOBAL_CONTEXT: '{"paper_title": "Only a title", "themes": []}'})

        packet = await GlobalContextAgent(client).execute(document())

        assert packet.paper_title == "Only a title"
        assert packet.themes == DEFAULT_THEMES
        assert packet.main_goal == DEFAULT_MAIN_GOAL

    @patch("storyboard_swarm.agents.text_generation.asyncio.sleep", new_callable=AsyncMock)
    async def test_gateway_failure_yields_defaults_after_three_attempts(self, mock_sleep):
        response = httpx.Response(500, request=httpx.Request("POST", "https://gateway.example/v1/chat/completions"))
        create = AsyncMock(side_effect=openai.InternalServerError("boom", response=response, body=None))
        text_client = TextGenerationClient(
            api_key="k",
            base_url="https://gateway.example/v1",
            model="m",
            client=SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
        )

        packet = await GlobalContextAgent(text_client).execute(document("paper.pdf"))

        assert create.await_count == 3
        assert packet.paper_title == "paper"
        assert packet.themes == ["academic", "research"]
        assert packet.target_audience == "Students and researchers"

    async def test_rejects_wrong_input(self):
        with pytest.raises(AgentExecutionError) as exc_info:
            await GlobalContextAgent(FakeTextClient()).execute("paper.pdf")

        assert exc_info.value.error_code == "INVALID_INPUT"

    @pytest.mark.parametrize("name,expected", [
        ("paper.pdf", "paper"),
        ("paper.PDF", "paper"),
        ("notes.txt", "notes.txt"),
        ("archive.pdf.pdf", "archive.pdf"),
    ])
    def test_title_from_filename(self, name, expected):
        assert title_from_filename(name) == expected


@pytest.mark.unit
class TestPageExtractorAgent:
    async def test_pages_are_numbered_in_order(self):
        client = FakeTextClient({PAGE_EXTRACTOR: pages_reply(3)})

        pages = await PageExtractorAgent(client).execute(document())

        assert [p.page for p in pages] == [1, 2, 3]
        assert pages[0].content.startswith("Content of page 1")

    async def test_out_of_order_pages_are_sorted_by_declared_number(self):
        reply = json.dumps({"pages": [
            {"page": 3, "content": "third"},
            {"page": 1, "content": "first"},
            {"page": 2, "content": "second"},
        ]})

        pages = await PageExtractorAgent(FakeTextClient({PAGE_EXTRACTOR: reply})).execute(document())

        assert [(p.page, p.content) for p in pages] == [(1, "first"), (2, "second"), (3, "third")]

    async def test_missing_content_gets_placeholder(self):
        reply = json.dumps({"pages": [{"page": 1, "content": "text"}, {"page": 2}]})

        pages = await PageExtractorAgent(FakeTextClient({PAGE_EXTRACTOR: reply})).execute(document())

        assert pages[1].content == "Page 2 content"

    async def test_no_pages_yields_single_placeholder_page(self):
        pages = await PageExtractorAgent(FakeTextClient({PAGE_EXTRACTOR: "I cannot read this"})).execute(document())

        assert len(pages) == 1
        assert pages[0].page == 1
        assert pages[0].content == SINGLE_PAGE_PLACEHOLDER

    async def test_empty_pages_array_yields_placeholder(self):
        pages = await PageExtractorAgent(FakeTextClient({PAGE_EXTRACTOR: '{"pages": []}'})).execute(document())

        assert [p.content for p in pages] == [SINGLE_PAGE_PLACEHOLDER]

    async def test_page_cap(self):
        client = FakeTextClient({PAGE_EXTRACTOR: pages_reply(25)})

        pages = await PageExtractorAgent(client, max_pages=20).execute(document())

        assert len(pages) == 20
        assert pages[-1].page == 20
        assert "up to 20 pages" in client.calls_for(PAGE_EXTRACTOR)[0][0]

    async def test_non_numeric_page_keeps_position(self):
        reply = json.dumps({"pages": [
            {"page": "two", "content": "a"},
            {"page": True, "content": "b"},
            {"page": "1", "content": "c"},
        ]})

        pages = await PageExtractorAgent(FakeTextClient({PAGE_EXTRACTOR: reply})).execute(document())

        # Positions 1 and 2 keep their place; "1" sorts with position 1 but after it
        assert [p.content for p in pages] == ["a", "c", "b"]
        assert [p.page for p in pages] == [1, 2, 3]

    async def test_non_finite_page_keeps_position(self):
        reply = json.dumps({"pages": [
            {"page": "NaN", "content": "a"},
            {"page": "inf", "content": "b"},
            {"page": 3, "content": "c"},
            {"page": 1, "content": "d"},
        ]})

        pages = await PageExtractorAgent(FakeTextClient({PAGE_EXTRACTOR: reply})).execute(document())

        assert [p.content for p in pages] == ["a", "d", "b", "c"]
