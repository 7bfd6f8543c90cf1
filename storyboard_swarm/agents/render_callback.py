"""Render Callback Agent

Receives the external renderer's completion report. Inline video bytes are
uploaded to object storage first; then every fact row of the document that is
still marked ``rendering`` for that owner is moved to the terminal status.
"""

import base64
import binascii
import logging
import re
import time
from typing import Any, Callable, Dict

from storyboard_swarm.agents.base import Agent, AgentExecutionError, AgentInput
from storyboard_swarm.agents.persistence import PersistenceError, SupabaseFactStore
from storyboard_swarm.schemas.render import RenderCallbackPayload, RenderCallbackResult

logger = logging.getLogger(__name__)


class RenderCallbackError(Exception):
    """Raised when the callback cannot be applied."""


def sanitize_document_name(document_name: str) -> str:
    """Replace every non-alphanumeric character with an underscore."""
    return re.sub(r"[^a-zA-Z0-9]", "_", document_name)


def video_object_path(user_id: str, document_name: str, timestamp_ms: int) -> str:
    return f"{user_id}/{sanitize_document_name(document_name)}_{timestamp_ms}.mp4"


class RenderCallbackInput(AgentInput):
    def __init__(self, payload: RenderCallbackPayload):
        self.payload = payload


class RenderCallbackAgent(Agent):
    """Agent responsible for applying render completion reports"""

    def __init__(self, store: SupabaseFactStore, clock: Callable[[], float] = time.time):
        """Initialize the agent.

        Args:
            store: Fact table and video bucket client
            clock: Returns seconds since the epoch; used for object names
        """
        self.store = store
        self.clock = clock

    async def execute(self, input_data: RenderCallbackInput) -> RenderCallbackResult:
        """Apply a render callback.

        Returns:
            RenderCallbackResult with the number of rows updated and the final URL

        Raises:
            RenderCallbackError: If the upload or the row update fails
        """
        if not self.validate_input(input_data):
            raise AgentExecutionError(
                "INVALID_INPUT",
                "Input must be RenderCallbackInput",
                {"input_type": type(input_data).__name__}
            )

        payload = input_data.payload
        logger.info(
            f"Render callback received: job_id={payload.job_id} status={payload.status} "
            f"pdf_name={payload.pdf_name} user_id={payload.user_id} "
            f"has_video_url={bool(payload.video_url)} has_video_data={bool(payload.video_data)}"
        )

        final_url = payload.video_url

        if payload.status == "complete" and payload.video_data and not payload.video_url:
            final_url = await self._upload_inline_video(payload)

        update: Dict[str, Any] = {"render_status": payload.status}
        if payload.status == "complete" and final_url:
            update["video_url"] = final_url

        if payload.status == "error" and payload.error:
            logger.error(f"Render error for job {payload.job_id}: {payload.error}")

        try:
            updated = await self.store.update_render_status(payload.pdf_name, payload.user_id, update)
        except PersistenceError as e:
            raise RenderCallbackError(f"Database update failed: {e}") from e

        logger.info(f"Updated {updated} fact rows for {payload.pdf_name}")
        return RenderCallbackResult(success=True, updated_count=updated, video_url=final_url)

    async def _upload_inline_video(self, payload: RenderCallbackPayload) -> str:
        try:
            video_bytes = base64.b64decode(payload.video_data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise RenderCallbackError(f"Video data is not valid base64: {e}") from e

        path = video_object_path(payload.user_id, payload.pdf_name, int(self.clock() * 1000))
        logger.info(f"Uploading video to storage at {path}")
        try:
            url = await self.store.upload_video(path, video_bytes)
        except PersistenceError as e:
            raise RenderCallbackError(f"Video upload failed: {e}") from e

        logger.info(f"Video uploaded successfully: {url}")
        return url

    def validate_input(self, input_data: AgentInput) -> bool:
        return isinstance(input_data, RenderCallbackInput) and isinstance(
            input_data.payload, RenderCallbackPayload
        )
