"""Storyboard schemas: the swarm response, the persisted snapshot and fact rows."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storyboard_swarm.schemas.context import ContextPacket
from storyboard_swarm.schemas.page import ConceptExplanation, PageResult


class StoryboardPage(BaseModel):
    """Page entry in the storyboard snapshot attached to every fact row."""

    page: int = Field(..., ge=1)
    concepts: List[ConceptExplanation] = Field(default_factory=list)
    animation_code: str
    voiceover: str
    status: str


class StoryboardSnapshot(BaseModel):
    """Denormalized copy of a document's storyboard, stored alongside its facts."""

    context: ContextPacket
    pages: List[StoryboardPage] = Field(default_factory=list)

    @classmethod
    def from_results(cls, context: ContextPacket, results: List[PageResult]) -> "StoryboardSnapshot":
        """Build a snapshot from ordered page results."""
        return cls(
            context=context,
            pages=[
                StoryboardPage(
                    page=result.page,
                    concepts=list(result.concepts),
                    animation_code=result.animation_code,
                    voiceover=result.voiceover,
                    status=result.status
                )
                for result in results
            ]
        )


class FactRecord(BaseModel):
    """
    One row of the append-only fact table.

    Keyed by (user_id, project_id, pdf_name, page_number). The storyboard is
    denormalized onto every row for read convenience.
    """

    user_id: str = Field(..., description="Owning user id")
    project_id: Optional[str] = Field(None, description="Optional project id")
    pdf_name: str = Field(..., description="Source document name")
    fact: str = Field(..., description="Fact text")
    page_number: int = Field(..., ge=1, description="Originating page number")
    line_reference: Optional[str] = Field(None, description="Not populated by the swarm")
    category: str = Field(..., description="Fact category")
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    storyboard_json: Dict[str, Any] = Field(..., description="Storyboard snapshot")
    render_status: str = Field("rendering", description="Render status marker")


class SwarmResponse(BaseModel):
    """
    Terminal output of the orchestrator.

    ``storyboard`` is sorted ascending by page number. The error-shaped
    variant has an empty storyboard, a null context and zero counts.
    """

    storyboard: List[PageResult] = Field(default_factory=list)
    context: Optional[ContextPacket] = None
    focus_score: int = Field(0, ge=0, le=100)
    facts_extracted: int = Field(0, ge=0)
    concepts_extracted: int = Field(0, ge=0)
    facts_saved: int = Field(0, ge=0)
    pages_processed: int = Field(0, ge=0, description="Pages that succeeded")
    pages_failed: int = Field(0, ge=0, description="Pages that fell back")
    error: Optional[str] = None
    error_code: Optional[str] = None

    @field_validator('storyboard')
    @classmethod
    def validate_page_order(cls, v: List[PageResult]) -> List[PageResult]:
        """Ensure pages are strictly ascending."""
        pages = [result.page for result in v]
        if pages != sorted(set(pages)):
            raise ValueError(f"storyboard pages must be strictly ascending, got {pages}")
        return v

    @classmethod
    def failed(cls, message: str, error_code: Optional[str] = None) -> "SwarmResponse":
        """Build the error-shaped response."""
        return cls(error=message, error_code=error_code)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "storyboard": [
                    {
                        "page": 1,
                        "concepts": [],
                        "facts": [],
                        "animation_code": "export const Page1Scene = ...",
                        "voiceover": "Page 1 explores ...",
                        "status": "success"
                    }
                ],
                "context": ContextPacket.model_config["json_schema_extra"]["example"],
                "focus_score": 92,
                "facts_extracted": 0,
                "concepts_extracted": 0,
                "facts_saved": 0,
                "pages_processed": 1,
                "pages_failed": 0
            }
        }
    )
