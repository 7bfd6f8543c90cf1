"""Fact Extractor Agent

Extracts factual claims, definitions, equations and data points from one
page. Facts are the unit that gets persisted to the fact table.
"""

import logging
from typing import List

from storyboard_swarm.agents.base import Agent, AgentExecutionError, AgentInput
from storyboard_swarm.agents.json_sanitizer import (
    FACT_LIST_KEYS,
    coerce_facts,
    extract_json,
    pick_list,
)
from storyboard_swarm.agents.page_input import PageAnalysisInput, is_page_analysis_input
from storyboard_swarm.agents.text_generation import TextGenerationClient
from storyboard_swarm.schemas.page import ExtractedFact

logger = logging.getLogger(__name__)


class FactAgent(Agent):
    """Agent responsible for per-page fact extraction"""

    # Larger than the concept agent's prefix: facts need surrounding context
    CONTENT_PREFIX_CHARS = 4000

    def __init__(self, text_client: TextGenerationClient):
        self.text_client = text_client

    async def execute(self, input_data: PageAnalysisInput) -> List[ExtractedFact]:
        if not self.validate_input(input_data):
            raise AgentExecutionError(
                "INVALID_INPUT",
                "Input must be PageAnalysisInput with page content and context",
                {"input_type": type(input_data).__name__}
            )

        page_number = input_data.page_number
        context = input_data.context
        logger.info(f"Fact agent: extracting facts from page {page_number}")

        system_prompt = f"""You are the Fact Extractor for page {page_number} of "{context.paper_title}".
Paper Goal: {context.main_goal}

Extract all factual claims, definitions, equations, and data points from this page.

Respond with JSON:
{{
  "facts": [
    {{
      "fact": "The exact factual claim or data point",
      "category": "definition|equation|data|claim|method|result",
      "confidence_score": 0.95
    }}
  ]
}}"""

        response = await self.text_client.generate(
            system_prompt,
            f"Extract facts from this page:\n\n{input_data.page.prefix(self.CONTENT_PREFIX_CHARS)}"
        )
        parsed = extract_json(response, {"facts": []})
        return coerce_facts(pick_list(parsed, FACT_LIST_KEYS))

    def validate_input(self, input_data: AgentInput) -> bool:
        return is_page_analysis_input(input_data)
