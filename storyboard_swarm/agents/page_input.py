"""Input shared by the per-page analysis agents."""

from typing import List, Optional

from storyboard_swarm.agents.base import AgentInput
from storyboard_swarm.schemas.context import ContextPacket
from storyboard_swarm.schemas.page import ConceptExplanation, ExtractedFact, PageContent


class PageAnalysisInput(AgentInput):
    """Input for the per-page agents

    Attributes:
        page: Extracted page content
        context: Document-level context packet
        concepts: Concepts from the concept agent (used by later stages)
        facts: Facts from the fact agent (used by later stages)
    """

    def __init__(
        self,
        page: PageContent,
        context: ContextPacket,
        concepts: Optional[List[ConceptExplanation]] = None,
        facts: Optional[List[ExtractedFact]] = None
    ):
        self.page = page
        self.context = context
        self.concepts = list(concepts or [])
        self.facts = list(facts or [])

    @property
    def page_number(self) -> int:
        return self.page.page


def is_page_analysis_input(input_data: AgentInput) -> bool:
    """Schema check shared by the per-page agents' validate_input()."""
    if not isinstance(input_data, PageAnalysisInput):
        return False
    if not isinstance(input_data.page, PageContent):
        return False
    return isinstance(input_data.context, ContextPacket)
