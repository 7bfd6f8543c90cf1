"""Page Worker for running the per-page agent pipeline.

Each page goes through concept simplification, fact extraction, then voiceover
and scene generation concurrently. A page either succeeds as a whole or falls
back as a whole: partial agent output is discarded on failure.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from storyboard_swarm.agents.animation_generator import AnimationCodeGeneratorAgent, failed_page_scene
from storyboard_swarm.agents.concept import ConceptAgent
from storyboard_swarm.agents.facts import FactAgent
from storyboard_swarm.agents.narrative import NarrativeAgent
from storyboard_swarm.agents.page_input import PageAnalysisInput
from storyboard_swarm.orchestrator.logger import StructuredJSONLogger
from storyboard_swarm.schemas.context import ContextPacket
from storyboard_swarm.schemas.page import PageContent, PageResult, PageStatus

logger = logging.getLogger(__name__)


class PageState(str, Enum):
    PENDING = "pending"
    CONCEPTS_DONE = "concepts-done"
    FACTS_DONE = "facts-done"
    RENDERING_ASSETS = "rendering-assets"
    SUCCESS = "success"
    FALLBACK = "fallback"


def fallback_voiceover(page_number: int) -> str:
    return (
        f"Page {page_number} of this document is still being analyzed. "
        "Let's continue with the next section."
    )


def fallback_result(page_number: int, error: str) -> PageResult:
    """Result for a page whose pipeline raised."""
    return PageResult(
        page=page_number,
        concepts=[],
        facts=[],
        animation_code=failed_page_scene(page_number),
        voiceover=fallback_voiceover(page_number),
        status=PageStatus.FALLBACK,
        error=error
    )


class PageWorker:
    """Runs the four per-page agents for one page.

    The worker:
    - Runs the concept agent, then the fact agent
    - Runs the narrative and animation agents concurrently with both results
    - Turns any exception into a fallback PageResult; nothing propagates
    """

    def __init__(
        self,
        concept_agent: ConceptAgent,
        fact_agent: FactAgent,
        narrative_agent: NarrativeAgent,
        animation_agent: AnimationCodeGeneratorAgent,
        structured_logger: Optional[StructuredJSONLogger] = None
    ):
        self.concept_agent = concept_agent
        self.fact_agent = fact_agent
        self.narrative_agent = narrative_agent
        self.animation_agent = animation_agent
        self.structured_logger = structured_logger

    async def process(self, page: PageContent, context: ContextPacket) -> PageResult:
        """Process one page.

        Args:
            page: Extracted page content
            context: Document-level context packet

        Returns:
            PageResult with status success, or the fallback result
        """
        state = PageState.PENDING
        logger.info(f"Processing page {page.page}")

        try:
            concepts = await self.concept_agent.execute(PageAnalysisInput(page, context))
            state = PageState.CONCEPTS_DONE

            facts = await self.fact_agent.execute(PageAnalysisInput(page, context))
            state = PageState.FACTS_DONE

            analysis = PageAnalysisInput(page, context, concepts=concepts, facts=facts)
            state = PageState.RENDERING_ASSETS
            voiceover, animation_code = await self._render_assets(analysis)

            result = PageResult(
                page=page.page,
                concepts=concepts,
                facts=facts,
                animation_code=animation_code,
                voiceover=voiceover,
                status=PageStatus.SUCCESS
            )
        except Exception as e:
            logger.debug(f"Page {page.page} failed in state {state.value}", exc_info=True)
            if self.structured_logger:
                self.structured_logger.log_page_fallback(page.page, str(e))
            else:
                logger.error(f"Page {page.page} failed, using fallback: {e}")
            return fallback_result(page.page, str(e))

        if self.structured_logger:
            self.structured_logger.log_page_complete(page.page, len(concepts), len(facts))
        else:
            logger.info(f"Page {page.page} completed: {len(concepts)} concepts, {len(facts)} facts")
        return result

    async def _render_assets(self, analysis: PageAnalysisInput):
        """Run the narrative and animation agents concurrently.

        If either raises, the other is cancelled and awaited before the error
        propagates.
        """
        tasks = [
            asyncio.ensure_future(self.narrative_agent.execute(analysis)),
            asyncio.ensure_future(self.animation_agent.execute(analysis)),
        ]
        try:
            voiceover, animation_code = await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return voiceover, animation_code
