"""Persistence for extracted facts and rendered videos.

This module is responsible for:
- Flattening per-page facts into fact-table rows, each carrying the
  document's storyboard snapshot
- Bulk-inserting those rows (best-effort: failures are logged, never raised
  to the orchestrator)
- Updating in-flight rows when the renderer reports completion
- Uploading rendered videos to object storage
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import httpx
from supabase import AsyncClient, PostgrestAPIError, StorageException, acreate_client

from storyboard_swarm.agents.base import Agent, AgentExecutionError, AgentInput, RetryPolicy
from storyboard_swarm.schemas.context import ContextPacket
from storyboard_swarm.schemas.page import PageResult
from storyboard_swarm.schemas.storyboard import FactRecord, StoryboardSnapshot

logger = logging.getLogger(__name__)


RENDERING_STATUS = "rendering"
VIDEO_CONTENT_TYPE = "video/mp4"

# Errors the Supabase client raises for rejected requests, unreachable hosts
# and reply bodies that are not JSON
STORE_ERRORS = (PostgrestAPIError, StorageException, httpx.HTTPError, ValueError)


class PersistenceError(Exception):
    """Raised when the store rejects a request or cannot be reached

    Attributes:
        operation: Store operation that failed
        code: Error code reported by the store, if any
    """

    def __init__(self, operation: str, message: str, code: Optional[str] = None):
        self.operation = operation
        self.code = code
        super().__init__(f"{operation} failed: {message}")


class SupabaseFactStore:
    """Fact table and video bucket on Supabase.

    Rows are appended to ``table``; videos are written to ``bucket``. The
    async client is created on first use unless one is supplied.
    """

    def __init__(
        self,
        url: str,
        service_key: str,
        table: str = "knowledge_base",
        bucket: str = "videos",
        client: Optional[AsyncClient] = None
    ):
        self.url = url
        self.table = table
        self.bucket = bucket
        self._service_key = service_key
        self._client = client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.postgrest.aclose()

    async def insert_facts(self, rows: List[Dict[str, Any]]) -> int:
        """Bulk-insert fact rows.

        Returns:
            Number of rows the store acknowledged
        """
        if not rows:
            return 0
        async with self._operation("insert_facts") as client:
            response = await client.table(self.table).insert(rows).execute()
        return len(response.data or [])

    async def update_render_status(
        self,
        pdf_name: str,
        user_id: str,
        values: Dict[str, Any]
    ) -> int:
        """Update every in-flight row of a document for one owner.

        Only rows still marked ``rendering`` are touched.

        Returns:
            Number of rows updated
        """
        async with self._operation("update_render_status") as client:
            response = await (
                client.table(self.table)
                .update(values)
                .eq("pdf_name", pdf_name)
                .eq("user_id", user_id)
                .eq("render_status", RENDERING_STATUS)
                .execute()
            )
        return len(response.data or [])

    async def upload_video(self, path: str, data: bytes) -> str:
        """Upload an MP4 and return its public URL."""
        async with self._operation("upload_video") as client:
            bucket = client.storage.from_(self.bucket)
            await bucket.upload(path, data, {"content-type": VIDEO_CONTENT_TYPE, "upsert": "true"})
            return await bucket.get_public_url(path)

    async def _get_client(self) -> AsyncClient:
        if self._client is None:
            self._client = await acreate_client(self.url, self._service_key)
        return self._client

    @asynccontextmanager
    async def _operation(self, operation: str):
        try:
            yield await self._get_client()
        except PostgrestAPIError as e:
            raise PersistenceError(operation, e.message or str(e), e.code) from e
        except STORE_ERRORS as e:
            raise PersistenceError(operation, str(e) or type(e).__name__) from e


class PersistenceInput(AgentInput):
    """Input to the Persistence Agent

    Attributes:
        results: Page results sorted by page number
        context: Context packet with total_pages stamped
        owner_id: Owning user id
        project_id: Optional project id
        document_name: Source document name
    """

    def __init__(
        self,
        results: List[PageResult],
        context: ContextPacket,
        owner_id: str,
        document_name: str,
        project_id: Optional[str] = None
    ):
        self.results = results
        self.context = context
        self.owner_id = owner_id
        self.document_name = document_name
        self.project_id = project_id


class PersistenceAgent(Agent):
    """
    Persistence Agent writes extracted facts to the fact table.

    Responsibilities:
    - Build one FactRecord per fact across all pages
    - Attach the full storyboard snapshot to every record
    - Insert in one request, without retry
    - Log and swallow store failures: the in-memory response is the
      primary deliverable
    """

    def __init__(self, store: SupabaseFactStore):
        self.store = store

    async def execute(self, input_data: PersistenceInput) -> int:
        """Persist facts.

        Returns:
            Number of rows saved (0 when there was nothing to save or the
            insert failed)
        """
        if not self.validate_input(input_data):
            raise AgentExecutionError(
                "INVALID_INPUT",
                "Input must be PersistenceInput",
                {"input_type": type(input_data).__name__}
            )

        records = self.build_records(input_data)
        if not records:
            logger.info("No facts to persist")
            return 0

        logger.info(f"Inserting {len(records)} facts into {self.store.table}")
        try:
            saved = await self.store.insert_facts([r.model_dump(mode="json") for r in records])
        except PersistenceError as e:
            logger.error(f"DATABASE_SAVE_FAILURE: {e}")
            return 0

        logger.info(f"Saved {saved} facts with storyboard")
        return saved

    def build_records(self, input_data: PersistenceInput) -> List[FactRecord]:
        """Flatten all page facts into fact rows."""
        snapshot = StoryboardSnapshot.from_results(input_data.context, input_data.results)
        snapshot_json = snapshot.model_dump(mode="json")

        return [
            FactRecord(
                user_id=input_data.owner_id,
                project_id=input_data.project_id or None,
                pdf_name=input_data.document_name,
                fact=fact.fact,
                page_number=result.page,
                category=fact.category,
                confidence_score=fact.confidence_score,
                storyboard_json=snapshot_json,
                render_status=RENDERING_STATUS
            )
            for result in input_data.results
            for fact in result.facts
        ]

    def validate_input(self, input_data: AgentInput) -> bool:
        if not isinstance(input_data, PersistenceInput):
            return False
        if not isinstance(input_data.context, ContextPacket):
            return False
        return bool(input_data.owner_id) and bool(input_data.document_name)

    def get_retry_policy(self) -> RetryPolicy:
        """Fact inserts are not retried."""
        return RetryPolicy(max_attempts=1)
