"""Schemas for the render completion callback."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class RenderCallbackPayload(BaseModel):
    """Payload posted by the external video-rendering service."""

    job_id: str = Field(..., description="Render job identifier")
    status: Literal["complete", "error"] = Field(..., description="Terminal render status")
    video_url: Optional[str] = Field(None, description="Direct URL of the rendered video")
    video_data: Optional[str] = Field(None, description="Base64-encoded video bytes")
    pdf_name: str = Field(..., description="Source document name")
    user_id: str = Field(..., description="Owning user id")
    error: Optional[str] = Field(None, description="Renderer error message")


class RenderCallbackResult(BaseModel):
    success: bool = True
    updated_count: int = 0
    video_url: Optional[str] = None
