"""Per-page schemas: extracted content, agent outputs and the page result."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class FactCategory(str, Enum):
    DEFINITION = "definition"
    EQUATION = "equation"
    DATA = "data"
    CLAIM = "claim"
    METHOD = "method"
    RESULT = "result"
    GENERAL = "general"


class PageStatus(str, Enum):
    SUCCESS = "success"
    FALLBACK = "fallback"


class PageContent(BaseModel):
    """Raw text extracted for one page of the document."""

    page: int = Field(..., ge=1, description="1-based page number")
    content: str = Field(..., description="Extracted text (equations in LaTeX)")

    def prefix(self, limit: int) -> str:
        """Return the bounded prefix sent to an agent."""
        return self.content[:limit]


class ConceptExplanation(BaseModel):
    """A confusing concept found on a page, with a beginner-friendly analogy."""

    term: str = Field(..., description="The complex term")
    definition: str = Field("", description="Technical definition")
    beginner_analogy: str = Field("", description="Simple analogy for a beginner")
    difficulty: Difficulty = Field(Difficulty.MEDIUM, description="easy|medium|hard")

    @field_validator('term')
    @classmethod
    def validate_term(cls, v: str) -> str:
        """Ensure term is not empty."""
        if not v or not v.strip():
            raise ValueError("term cannot be empty")
        return v

    model_config = ConfigDict(frozen=True, use_enum_values=True)


class ExtractedFact(BaseModel):
    """A factual claim, definition, equation or data point found on a page."""

    fact: str = Field(..., description="The factual claim or data point")
    category: FactCategory = Field(FactCategory.GENERAL, description="Fact category")
    confidence_score: float = Field(0.9, ge=0.0, le=1.0, description="Model confidence")

    model_config = ConfigDict(frozen=True, use_enum_values=True)


class PageResult(BaseModel):
    """
    Per-page aggregate produced by the Page Worker.

    Exactly one PageResult exists per input page. A fallback result always has
    empty concept and fact lists with the designated fallback scene and
    voiceover.
    """

    page: int = Field(..., ge=1, description="1-based page number")
    concepts: List[ConceptExplanation] = Field(default_factory=list)
    facts: List[ExtractedFact] = Field(default_factory=list)
    animation_code: str = Field(..., description="Generated scene definition")
    voiceover: str = Field(..., description="Voiceover script")
    status: PageStatus = Field(..., description="success|fallback")
    error: Optional[str] = Field(None, description="Captured error for fallback pages")

    @field_validator('animation_code', 'voiceover')
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Every page must carry a scene and a voiceover."""
        if not v or not v.strip():
            raise ValueError("animation_code and voiceover cannot be empty")
        return v

    model_config = ConfigDict(frozen=True, use_enum_values=True)
