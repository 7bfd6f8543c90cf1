"""Swarm Orchestrator for PDF to storyboard conversion.

This module implements the orchestrator that runs one document job end to
end: Validation → Global Context → Page Extraction → Batch Scheduling →
Statistics → Persistence → Focus Score.

The orchestrator handles:
- Sequencing of the document-level stages with explicit handoffs
- Abort logic for invalid input and missing configuration
- Bounded-concurrency page processing through the Batch Scheduler
- Best-effort persistence of extracted facts
- Structured logging at each stage

Error Handling Strategy:
- **Abort**: Input validation and configuration errors terminate the job
  immediately and produce the error-shaped response
- **Retry**: Gateway failures are retried inside the text generation client
  with linear backoff; an exhausted call yields an empty completion, which
  each agent maps to its defaults
- **Continue**: Page-level failures are isolated by the Page Worker;
  persistence failures are logged and the response is still returned
"""

import base64
import logging
import math
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from storyboard_swarm.agents.animation_generator import AnimationCodeGeneratorAgent
from storyboard_swarm.agents.base import Agent, AgentInput
from storyboard_swarm.agents.concept import ConceptAgent
from storyboard_swarm.agents.facts import FactAgent
from storyboard_swarm.agents.global_context import GlobalContextAgent
from storyboard_swarm.agents.narrative import NarrativeAgent
from storyboard_swarm.agents.page_extractor import DocumentInput, PageExtractorAgent
from storyboard_swarm.agents.persistence import PersistenceAgent, PersistenceInput, SupabaseFactStore
from storyboard_swarm.agents.text_generation import TextGenerationClient
from storyboard_swarm.agents.validation import UploadInput, UploadValidationError, ValidationAgent
from storyboard_swarm.config import Settings, get_settings
from storyboard_swarm.orchestrator.batch_scheduler import BatchScheduler
from storyboard_swarm.orchestrator.logger import StructuredJSONLogger, run_log_directory
from storyboard_swarm.orchestrator.page_worker import PageWorker
from storyboard_swarm.schemas.context import ContextPacket
from storyboard_swarm.schemas.page import PageResult, PageStatus
from storyboard_swarm.schemas.storyboard import SwarmResponse


logger = logging.getLogger(__name__)


# Error codes caused by the caller's input rather than by the service
INPUT_ERROR_CODES = frozenset({
    "MISSING_DOCUMENT",
    "MISSING_OWNER_ID",
    "INVALID_MIME_TYPE",
    "INVALID_FILE_SIZE",
    "CORRUPTED_PDF",
    "ENCRYPTED_PDF",
})

FOCUS_TARGET_VOICEOVER_CHARS = 200
FOCUS_PENALTY_DIVISOR = 4
# Average used when there are no pages, which scores 75
EMPTY_STORYBOARD_AVERAGE = 100


def compute_focus_score(results: List[PageResult]) -> int:
    """Score how close the average voiceover length is to the target.

    ``max(0, min(100, 100 - |avg - 200| / 4))``, rounded half up.
    """
    if results:
        average = sum(len(r.voiceover) for r in results) / len(results)
    else:
        average = EMPTY_STORYBOARD_AVERAGE
    score = 100 - abs(average - FOCUS_TARGET_VOICEOVER_CHARS) / FOCUS_PENALTY_DIVISOR
    return int(math.floor(max(0, min(100, score)) + 0.5))


@dataclass
class PipelineConfig:
    """Configuration for swarm execution.

    Attributes:
        max_concurrent_pages: Batch size of the scheduler
        max_extracted_pages: Page cap applied to the extractor output
        log_directory: Base directory for per-run pipeline.log files
    """
    max_concurrent_pages: int = 5
    max_extracted_pages: int = 20
    log_directory: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "PipelineConfig":
        return cls(
            max_concurrent_pages=settings.max_concurrent_pages,
            max_extracted_pages=settings.max_extracted_pages,
            log_directory=str(settings.log_directory) if settings.log_directory else None
        )


class PipelineAbortError(Exception):
    """Exception raised when a job must abort.

    Attributes:
        stage: Stage where abort occurred
        error_code: Machine-readable error code
        message: Human-readable error message
        context: Additional context about the failure
    """

    def __init__(self, stage: str, error_code: str, message: str, context: Optional[Dict[str, Any]] = None):
        self.stage = stage
        self.error_code = error_code
        self.message = message
        self.context = context or {}
        super().__init__(f"Pipeline aborted at {stage}: [{error_code}] {message}")


class Orchestrator:
    """Main orchestrator for the storyboard swarm.

    The orchestrator runs:
    1. Validation Agent - Verify document and owner id
    2. Global Context Agent - Document-level metadata
    3. Page Extractor Agent - Ordered per-page text
    4. Batch Scheduler - Page Workers in groups of ``max_concurrent_pages``
    5. Persistence Agent - Fact rows with the storyboard snapshot

    and assembles the SwarmResponse. ``run`` never raises: aborts become the
    error-shaped response.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        text_client: Optional[TextGenerationClient] = None,
        fact_store: Optional[SupabaseFactStore] = None,
        config: Optional[PipelineConfig] = None
    ):
        """Initialize the orchestrator.

        Args:
            settings: Service settings (loaded from the environment if not provided)
            text_client: Gateway client (built from settings if not provided)
            fact_store: Fact store (built from settings if not provided)
            config: Pipeline tunables (derived from settings if not provided)
        """
        self.settings = settings or get_settings()
        self.config = config or PipelineConfig.from_settings(self.settings)

        if text_client is None and self.settings.gateway_configured:
            text_client = TextGenerationClient(
                api_key=self.settings.ai_gateway_api_key,
                base_url=self.settings.ai_gateway_url,
                model=self.settings.ai_model,
                max_attempts=self.settings.max_agent_retries,
                base_delay_seconds=self.settings.retry_base_delay_seconds,
                timeout_seconds=self.settings.request_timeout_seconds
            )
        if fact_store is None and self.settings.store_configured:
            fact_store = SupabaseFactStore(
                url=self.settings.supabase_url,
                service_key=self.settings.supabase_service_role_key,
                table=self.settings.facts_table,
                bucket=self.settings.videos_bucket
            )

        self.text_client = text_client
        self.fact_store = fact_store

        self.validation_agent = ValidationAgent()
        self.global_context_agent = GlobalContextAgent(text_client)
        self.page_extractor_agent = PageExtractorAgent(text_client, max_pages=self.config.max_extracted_pages)
        self.concept_agent = ConceptAgent(text_client)
        self.fact_agent = FactAgent(text_client)
        self.narrative_agent = NarrativeAgent(text_client)
        self.animation_agent = AnimationCodeGeneratorAgent(text_client)
        self.persistence_agent = PersistenceAgent(fact_store)

    async def run(
        self,
        document_bytes: Optional[bytes],
        document_name: Optional[str],
        owner_id: Optional[str],
        project_id: Optional[str] = None
    ) -> SwarmResponse:
        """Run the swarm for one uploaded document.

        Args:
            document_bytes: Uploaded PDF bytes
            document_name: Original file name
            owner_id: Owning user id
            project_id: Optional project id

        Returns:
            SwarmResponse; the error-shaped variant when the job aborted
        """
        pipeline_start_time = time.time()
        document_name = document_name or "document.pdf"
        structured_logger = self._create_structured_logger(document_name)

        try:
            structured_logger.log_pipeline_start(
                document_name=document_name,
                owner_id=owner_id or "",
                config=asdict(self.config)
            )

            # Step 1: Validation
            upload = UploadInput(document_bytes, document_name, owner_id, project_id)
            validated = await self._execute_agent(self.validation_agent, upload, "Validation", structured_logger)
            if isinstance(validated, UploadValidationError):
                raise PipelineAbortError(
                    stage="Validation",
                    error_code=validated.error_code,
                    message=validated.reason,
                    context={"document_name": document_name}
                )

            self._check_configuration()

            # Step 2: Encode once for both document-level agents
            document = DocumentInput(
                base64.b64encode(document_bytes).decode("ascii"),
                document_name
            )

            # Step 3: Global context
            context: ContextPacket = await self._execute_agent(
                self.global_context_agent, document, "GlobalContext", structured_logger
            )

            # Step 4: Page extraction
            pages = await self._execute_agent(
                self.page_extractor_agent, document, "PageExtraction", structured_logger
            )
            context = context.model_copy(update={"total_pages": len(pages)})
            if len(pages) != validated.page_count:
                logger.info(
                    f"Extractor returned {len(pages)} pages; the document has {validated.page_count}"
                )

            # Step 5-6: Batch scheduling, sorted by page
            results = await self._run_batches(pages, context, structured_logger)

            # Step 7: Statistics
            pages_processed = sum(1 for r in results if r.status == PageStatus.SUCCESS.value)
            pages_failed = len(results) - pages_processed
            facts_extracted = sum(len(r.facts) for r in results)
            concepts_extracted = sum(len(r.concepts) for r in results)

            # Step 8: Persistence
            facts_saved = await self._run_persistence(
                PersistenceInput(results, context, owner_id, document_name, project_id),
                facts_extracted,
                structured_logger
            )

            # Step 9-10: Focus score and response
            response = SwarmResponse(
                storyboard=results,
                context=context,
                focus_score=compute_focus_score(results),
                facts_extracted=facts_extracted,
                concepts_extracted=concepts_extracted,
                facts_saved=facts_saved,
                pages_processed=pages_processed,
                pages_failed=pages_failed
            )

            structured_logger.log_pipeline_complete(
                duration_seconds=time.time() - pipeline_start_time,
                statistics={
                    "pages_processed": pages_processed,
                    "pages_failed": pages_failed,
                    "facts_extracted": facts_extracted,
                    "concepts_extracted": concepts_extracted,
                    "facts_saved": facts_saved,
                    "focus_score": response.focus_score
                }
            )
            return response

        except PipelineAbortError as e:
            structured_logger.log_pipeline_error(
                error_type="PipelineAbortError",
                error_message=e.message,
                stage=e.stage,
                error_code=e.error_code
            )
            return SwarmResponse.failed(e.message, e.error_code)
        except Exception as e:
            logger.error(f"Swarm failed with unexpected error: {e}", exc_info=True)
            structured_logger.log_pipeline_error(
                error_type=type(e).__name__,
                error_message=str(e)
            )
            return SwarmResponse.failed(str(e) or "Unknown error", "UNEXPECTED_ERROR")
        finally:
            structured_logger.close()

    async def aclose(self) -> None:
        """Release the store's connection pool."""
        if self.fact_store is not None:
            await self.fact_store.aclose()

    def _check_configuration(self) -> None:
        missing = []
        if self.text_client is None:
            missing.append("AI gateway API key")
        if self.fact_store is None:
            missing.append("Supabase URL and service role key")
        if missing:
            raise PipelineAbortError(
                stage="Configuration",
                error_code="MISSING_CONFIGURATION",
                message=f"Service is not configured: missing {', '.join(missing)}"
            )

    def _create_structured_logger(self, document_name: str) -> StructuredJSONLogger:
        if not self.config.log_directory:
            return StructuredJSONLogger(output_directory=None)
        return StructuredJSONLogger(run_log_directory(self.config.log_directory, document_name))

    async def _run_batches(
        self,
        pages,
        context: ContextPacket,
        structured_logger: StructuredJSONLogger
    ) -> List[PageResult]:
        worker = PageWorker(
            self.concept_agent,
            self.fact_agent,
            self.narrative_agent,
            self.animation_agent,
            structured_logger=structured_logger
        )
        scheduler = BatchScheduler(worker, group_size=self.config.max_concurrent_pages)

        structured_logger.log_stage_start("BatchScheduling", f"{len(pages)} pages")
        start_time = time.time()
        results = await scheduler.run_all(pages, context)
        structured_logger.log_stage_complete(
            "BatchScheduling",
            (time.time() - start_time) * 1000,
            f"{len(results)} page results"
        )

        # Storyboard order is by page number, never by completion order
        return sorted(results, key=lambda r: r.page)

    async def _run_persistence(
        self,
        input_data: PersistenceInput,
        facts_extracted: int,
        structured_logger: StructuredJSONLogger
    ) -> int:
        if facts_extracted == 0:
            logger.info("No facts extracted; skipping persistence")
            return 0

        # Never aborts: the in-memory response is returned even if nothing is saved
        structured_logger.log_stage_start("Persistence", f"{facts_extracted} facts")
        start_time = time.time()
        try:
            saved = await self.persistence_agent.execute(input_data)
        except Exception as e:
            logger.error(f"Persistence failed: {e}", exc_info=True)
            saved = 0
        structured_logger.log_stage_complete("Persistence", (time.time() - start_time) * 1000, str(saved))

        if saved < facts_extracted:
            structured_logger.log_persistence_failure(
                f"store acknowledged {saved} of {facts_extracted} facts",
                facts_extracted
            )
        return saved

    async def _execute_agent(
        self,
        agent: Agent,
        input_data: AgentInput,
        stage_name: str,
        structured_logger: StructuredJSONLogger
    ) -> Any:
        """Execute one stage agent.

        Raises:
            PipelineAbortError: If the agent raises
        """
        structured_logger.log_stage_start(stage_name, type(input_data).__name__)
        start_time = time.time()

        try:
            result = await agent.execute(input_data)
        except Exception as e:
            raise PipelineAbortError(
                stage=stage_name,
                error_code=getattr(e, 'error_code', 'UNEXPECTED_ERROR'),
                message=str(e),
                context={"error_type": type(e).__name__}
            ) from e

        structured_logger.log_stage_complete(
            stage_name,
            (time.time() - start_time) * 1000,
            self._summarize_output(result)
        )
        return result

    @staticmethod
    def _summarize_output(output_data: Any) -> str:
        if isinstance(output_data, list):
            return f"{len(output_data)} items"
        if isinstance(output_data, int):
            return str(output_data)
        return type(output_data).__name__
