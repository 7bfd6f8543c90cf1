"""Concept Simplifier Agent

Scans one page for terms a beginner would not understand and pairs each with
a technical definition and a simple analogy.
"""

import logging
from typing import List

from storyboard_swarm.agents.base import Agent, AgentExecutionError, AgentInput
from storyboard_swarm.agents.json_sanitizer import (
    CONCEPT_LIST_KEYS,
    coerce_concepts,
    extract_json,
    pick_list,
)
from storyboard_swarm.agents.page_input import PageAnalysisInput, is_page_analysis_input
from storyboard_swarm.agents.text_generation import TextGenerationClient
from storyboard_swarm.schemas.page import ConceptExplanation

logger = logging.getLogger(__name__)


class ConceptAgent(Agent):
    """Agent responsible for beginner-facing concept explanations"""

    # Page text sent to the model is capped to bound token cost
    CONTENT_PREFIX_CHARS = 3000

    def __init__(self, text_client: TextGenerationClient):
        self.text_client = text_client

    async def execute(self, input_data: PageAnalysisInput) -> List[ConceptExplanation]:
        if not self.validate_input(input_data):
            raise AgentExecutionError(
                "INVALID_INPUT",
                "Input must be PageAnalysisInput with page content and context",
                {"input_type": type(input_data).__name__}
            )

        page_number = input_data.page_number
        context = input_data.context
        logger.info(f"Concept agent: scanning page {page_number} for confusing concepts")

        system_prompt = f"""You are the Concept Simplifier - an AI that identifies concepts a beginner wouldn't understand.

CONTEXT: You are analyzing page {page_number} of "{context.paper_title}".
Paper Goal: {context.main_goal}
Key Themes: {", ".join(context.themes)}

For each complex term or concept, provide a simple analogy that a 5-year-old could understand.

Respond with JSON:
{{
  "concepts": [
    {{
      "term": "complex term here",
      "definition": "technical definition",
      "beginner_analogy": "Simple analogy like: 'It's like when you...'",
      "difficulty": "easy|medium|hard"
    }}
  ]
}}"""

        response = await self.text_client.generate(
            system_prompt,
            "Analyze this page content and identify confusing concepts:\n\n"
            f"{input_data.page.prefix(self.CONTENT_PREFIX_CHARS)}"
        )
        parsed = extract_json(response, {"concepts": []})
        return coerce_concepts(pick_list(parsed, CONCEPT_LIST_KEYS))

    def validate_input(self, input_data: AgentInput) -> bool:
        return is_page_analysis_input(input_data)
