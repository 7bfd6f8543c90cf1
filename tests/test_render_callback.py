"""Tests for the Render Callback Agent."""

import base64

import pytest

from fakes import FakeFactStore, public_video_url
from storyboard_swarm.agents.base import AgentExecutionError
from storyboard_swarm.agents.persistence import PersistenceError
from storyboard_swarm.agents.render_callback import (
    RenderCallbackAgent,
    RenderCallbackError,
    RenderCallbackInput,
    sanitize_document_name,
    video_object_path,
)
from storyboard_swarm.schemas.render import RenderCallbackPayload

FIXED_CLOCK = 1700000000.0


def payload(**overrides) -> RenderCallbackPayload:
    fields = {
        "job_id": "job-1",
        "status": "complete",
        "pdf_name": "My Paper (v2).pdf",
        "user_id": "user-1",
    }
    fields.update(overrides)
    return RenderCallbackPayload(**fields)


def build_agent(store) -> RenderCallbackAgent:
    return RenderCallbackAgent(store, clock=lambda: FIXED_CLOCK)


class FailingUploadStore(FakeFactStore):
    async def upload_video(self, path, data):
        raise PersistenceError("upload_video", "Bucket not found")


class FailingUpdateStore(FakeFactStore):
    async def update_render_status(self, pdf_name, user_id, values):
        raise PersistenceError("update_render_status", "timeout")


@pytest.mark.unit
class TestObjectNaming:
    def test_sanitize_document_name(self):
        assert sanitize_document_name("My Paper (v2).pdf") == "My_Paper__v2__pdf"

    def test_video_object_path(self):
        assert video_object_path("u", "a.pdf", 42) == "u/a_pdf_42.mp4"


@pytest.mark.unit
class TestRenderCallbackAgent:
    async def test_complete_with_url(self):
        store = FakeFactStore(updated_count=4)

        result = await build_agent(store).execute(
            RenderCallbackInput(payload(video_url="https://cdn.example/v.mp4"))
        )

        assert result.success is True
        assert result.updated_count == 4
        assert result.video_url == "https://cdn.example/v.mp4"
        assert store.uploads == []
        assert store.updates == [(
            "My Paper (v2).pdf",
            "user-1",
            {"render_status": "complete", "video_url": "https://cdn.example/v.mp4"},
        )]

    async def test_inline_video_is_uploaded(self):
        store = FakeFactStore(updated_count=2)
        video = b"\x00\x00\x00\x18ftypmp42"
        encoded = base64.b64encode(video).decode()

        result = await build_agent(store).execute(RenderCallbackInput(payload(video_data=encoded)))

        expected_path = "user-1/My_Paper__v2__pdf_1700000000000.mp4"
        assert store.uploads == [(expected_path, video)]
        assert result.video_url == public_video_url("videos", expected_path)
        assert store.updates[0][2] == {"render_status": "complete", "video_url": result.video_url}

    async def test_url_takes_precedence_over_inline_data(self):
        store = FakeFactStore()
        encoded = base64.b64encode(b"video").decode()

        result = await build_agent(store).execute(
            RenderCallbackInput(payload(video_url="https://cdn.example/v.mp4", video_data=encoded))
        )

        assert store.uploads == []
        assert result.video_url == "https://cdn.example/v.mp4"

    async def test_error_status_sets_status_only(self):
        store = FakeFactStore(updated_count=3)

        result = await build_agent(store).execute(
            RenderCallbackInput(payload(status="error", error="ffmpeg crashed"))
        )

        assert result.video_url is None
        assert store.updates[0][2] == {"render_status": "error"}

    async def test_complete_without_video(self):
        store = FakeFactStore()

        await build_agent(store).execute(RenderCallbackInput(payload()))

        assert store.updates[0][2] == {"render_status": "complete"}

    async def test_no_matching_rows_still_succeeds(self):
        result = await build_agent(FakeFactStore(updated_count=0)).execute(RenderCallbackInput(payload()))

        assert result.success is True
        assert result.updated_count == 0

    async def test_invalid_base64(self):
        store = FakeFactStore()

        with pytest.raises(RenderCallbackError, match="not valid base64"):
            await build_agent(store).execute(RenderCallbackInput(payload(video_data="@@not base64@@")))

        assert store.updates == []

    async def test_upload_failure(self):
        store = FailingUploadStore()
        encoded = base64.b64encode(b"video").decode()

        with pytest.raises(RenderCallbackError, match="Video upload failed"):
            await build_agent(store).execute(RenderCallbackInput(payload(video_data=encoded)))

        assert store.updates == []

    async def test_update_failure(self):
        with pytest.raises(RenderCallbackError, match="Database update failed"):
            await build_agent(FailingUpdateStore()).execute(RenderCallbackInput(payload()))

    async def test_rejects_raw_dict(self):
        with pytest.raises(AgentExecutionError):
            await build_agent(FakeFactStore()).execute({"status": "complete"})
