"""PDF Page Extractor Agent

Splits a PDF into per-page text by asking the language model to read the
attached document and return a ``{"pages": [{"page", "content"}]}`` object.

Pages are re-sorted by the page number the model declares before being
renumbered 1..N, so a model that answers out of order cannot scramble the
storyboard. If nothing usable comes back, the document is treated as a single
placeholder page so that the job can still proceed.
"""

import logging
import math
from typing import Any, List, Tuple

from storyboard_swarm.agents.base import Agent, AgentExecutionError, AgentInput
from storyboard_swarm.agents.json_sanitizer import extract_json, pick_list
from storyboard_swarm.agents.text_generation import TextGenerationClient, build_document_content
from storyboard_swarm.schemas.page import PageContent

logger = logging.getLogger(__name__)


SINGLE_PAGE_PLACEHOLDER = "Full document content extracted as single page"


class DocumentInput(AgentInput):
    """Input for agents that read the whole document

    Attributes:
        document_base64: Base64-encoded PDF bytes
        document_name: Original file name
    """

    def __init__(self, document_base64: str, document_name: str):
        self.document_base64 = document_base64
        self.document_name = document_name


class PageExtractorAgent(Agent):
    """Agent responsible for splitting a document into ordered page texts"""

    def __init__(self, text_client: TextGenerationClient, max_pages: int = 20):
        """Initialize the extractor.

        Args:
            text_client: Client used to reach the language model
            max_pages: Maximum number of pages requested from and kept from the model
        """
        self.text_client = text_client
        self.max_pages = max_pages

    async def execute(self, input_data: DocumentInput) -> List[PageContent]:
        """Extract per-page text.

        Args:
            input_data: DocumentInput with the encoded PDF

        Returns:
            Non-empty list of PageContent numbered 1..N
        """
        if not self.validate_input(input_data):
            raise AgentExecutionError(
                "INVALID_INPUT",
                "Input must be DocumentInput with base64 content and a document name",
                {"input_type": type(input_data).__name__}
            )

        logger.info(f"Extracting page content from {input_data.document_name}")

        system_prompt = f"""You are a PDF content extractor. Analyze this PDF and extract the text content of each page separately.

Respond with JSON:
{{
  "pages": [
    {{ "page": 1, "content": "Full text content of page 1..." }},
    {{ "page": 2, "content": "Full text content of page 2..." }}
  ]
}}

Extract up to {self.max_pages} pages. Include all text, equations (in LaTeX format), tables, and figure captions."""

        user_content = build_document_content(
            f"Extract the text content from each page of this PDF: {input_data.document_name}",
            input_data.document_base64,
            input_data.document_name
        )

        response = await self.text_client.generate(system_prompt, user_content)
        parsed = extract_json(response, {"pages": []})
        raw_pages = [p for p in pick_list(parsed, ("pages",)) if isinstance(p, dict)]

        if not raw_pages:
            logger.warning("Could not extract individual pages, treating as single document")
            return [PageContent(page=1, content=SINGLE_PAGE_PLACEHOLDER)]

        ordered = self._order_by_declared_page(raw_pages)[:self.max_pages]
        pages = []
        for index, raw_page in enumerate(ordered, start=1):
            content = raw_page.get("content")
            if not isinstance(content, str) or not content.strip():
                content = f"Page {index} content"
            pages.append(PageContent(page=index, content=content))

        logger.info(f"Extracted {len(pages)} pages from PDF")
        return pages

    def _order_by_declared_page(self, raw_pages: List[dict]) -> List[dict]:
        """Stable sort by the model's declared page number.

        Entries without a usable page number keep the position they were
        returned in.
        """
        def sort_key(indexed: Tuple[int, dict]) -> Tuple[float, int]:
            position, raw_page = indexed
            declared = self._declared_page(raw_page.get("page"))
            return (declared if declared is not None else position + 1, position)

        return [raw_page for _, raw_page in sorted(enumerate(raw_pages), key=sort_key)]

    @staticmethod
    def _declared_page(value: Any):
        if isinstance(value, bool):
            return None
        try:
            declared = float(value)
        except (TypeError, ValueError):
            return None
        return declared if math.isfinite(declared) else None

    def validate_input(self, input_data: AgentInput) -> bool:
        if not isinstance(input_data, DocumentInput):
            return False
        return bool(input_data.document_base64) and bool(input_data.document_name)
