"""Narrative Agent

Writes the voiceover for one page from that page's concepts and facts. Raw
page text is never sent; only the top concepts and facts are, which caps the
prompt size.
"""

import json
import logging

from storyboard_swarm.agents.base import Agent, AgentExecutionError, AgentInput
from storyboard_swarm.agents.json_sanitizer import extract_json
from storyboard_swarm.agents.page_input import PageAnalysisInput, is_page_analysis_input
from storyboard_swarm.agents.text_generation import TextGenerationClient

logger = logging.getLogger(__name__)


class NarrativeAgent(Agent):
    """Agent responsible for the per-page voiceover script"""

    MAX_CONCEPTS = 5
    MAX_FACTS = 8

    def __init__(self, text_client: TextGenerationClient):
        self.text_client = text_client

    async def execute(self, input_data: PageAnalysisInput) -> str:
        """Generate the voiceover.

        Returns:
            Voiceover text; a one-line default naming the page and title when
            the model returns nothing usable
        """
        if not self.validate_input(input_data):
            raise AgentExecutionError(
                "INVALID_INPUT",
                "Input must be PageAnalysisInput with page content and context",
                {"input_type": type(input_data).__name__}
            )

        page_number = input_data.page_number
        context = input_data.context
        logger.info(f"Narrative agent: generating voiceover for page {page_number}")

        system_prompt = f"""You are the Narrative Director for page {page_number} of "{context.paper_title}".
Paper Goal: {context.main_goal}
Target Audience: {context.target_audience}

Write a Kurzgesagt-style voiceover script for this page. Make it engaging, educational, and use the beginner analogies provided.

Keep the voiceover between 30-60 seconds when read aloud (roughly 75-150 words).

Respond with JSON:
{{
  "voiceover": "The script text here..."
}}"""

        payload = {
            "concepts": [c.model_dump() for c in input_data.concepts[:self.MAX_CONCEPTS]],
            "facts": [f.model_dump() for f in input_data.facts[:self.MAX_FACTS]]
        }

        response = await self.text_client.generate(
            system_prompt,
            f"Create a voiceover for this page:\n\n{json.dumps(payload, indent=2)}"
        )
        parsed = extract_json(response, {"voiceover": ""})
        voiceover = parsed.get("voiceover")

        if isinstance(voiceover, str) and voiceover.strip():
            return voiceover.strip()
        return f"Page {page_number} explores concepts from {context.paper_title}."

    def validate_input(self, input_data: AgentInput) -> bool:
        return is_page_analysis_input(input_data)
