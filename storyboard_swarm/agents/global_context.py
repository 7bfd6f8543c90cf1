"""Global Context Agent

Performs a single document-level scan and produces the ContextPacket that
grounds every later page-level call. Each field has its own default, so the
agent always returns a fully populated packet even when the gateway fails.
"""

import logging
from typing import Any, List

from storyboard_swarm.agents.base import Agent, AgentExecutionError, AgentInput
from storyboard_swarm.agents.json_sanitizer import extract_json
from storyboard_swarm.agents.page_extractor import DocumentInput
from storyboard_swarm.agents.text_generation import TextGenerationClient, build_document_content
from storyboard_swarm.schemas.context import ContextPacket

logger = logging.getLogger(__name__)


DEFAULT_MAIN_GOAL = "Explore and explain the concepts in this document"
DEFAULT_THEMES = ["academic", "research"]
DEFAULT_TARGET_AUDIENCE = "Students and researchers"

SYSTEM_PROMPT = """You are the Global Context Analyzer. Your job is to perform a quick scan of an academic document and extract high-level metadata that will guide all subsequent page-level analysis.

You MUST respond with a JSON object containing:
{
  "paper_title": "The exact title of the paper",
  "main_goal": "One sentence describing what this paper aims to achieve",
  "themes": ["theme1", "theme2", "theme3"],
  "key_terminology": ["term1", "term2", "term3", "term4", "term5"],
  "target_audience": "Who would benefit from understanding this paper"
}"""


def title_from_filename(document_name: str) -> str:
    """Strip a trailing ``.pdf`` extension (case-insensitive)."""
    if document_name.lower().endswith(".pdf"):
        return document_name[:-4]
    return document_name


def _text_field(parsed: dict, key: str, default: str) -> str:
    value = parsed.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


class GlobalContextAgent(Agent):
    """Agent responsible for document-level metadata"""

    def __init__(self, text_client: TextGenerationClient):
        self.text_client = text_client

    async def execute(self, input_data: DocumentInput) -> ContextPacket:
        """Generate the context packet.

        Args:
            input_data: DocumentInput with the encoded PDF

        Returns:
            ContextPacket with ``total_pages`` left at 0
        """
        if not self.validate_input(input_data):
            raise AgentExecutionError(
                "INVALID_INPUT",
                "Input must be DocumentInput with base64 content and a document name",
                {"input_type": type(input_data).__name__}
            )

        logger.info("Global context: generating context packet")

        user_content = build_document_content(
            f"Analyze this PDF and extract the global context. PDF Name: {input_data.document_name}",
            input_data.document_base64,
            input_data.document_name
        )
        response = await self.text_client.generate(SYSTEM_PROMPT, user_content)
        parsed = extract_json(response, {})

        themes = _string_list(parsed.get("themes"))

        return ContextPacket(
            paper_title=_text_field(parsed, "paper_title", title_from_filename(input_data.document_name)),
            main_goal=_text_field(parsed, "main_goal", DEFAULT_MAIN_GOAL),
            themes=themes or list(DEFAULT_THEMES),
            key_terminology=_string_list(parsed.get("key_terminology")),
            target_audience=_text_field(parsed, "target_audience", DEFAULT_TARGET_AUDIENCE),
            total_pages=0
        )

    def validate_input(self, input_data: AgentInput) -> bool:
        if not isinstance(input_data, DocumentInput):
            return False
        return bool(input_data.document_base64) and bool(input_data.document_name)
