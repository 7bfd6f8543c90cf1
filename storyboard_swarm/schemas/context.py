"""Document-level context packet produced by the Global Context Agent."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ContextPacket(BaseModel):
    """
    High-level metadata about a document.

    Created once per document and read by every per-page agent. The model is
    frozen; the orchestrator stamps ``total_pages`` with ``model_copy`` once
    page extraction has finished.
    """

    paper_title: str = Field(..., description="Title of the document")
    main_goal: str = Field(..., description="One sentence describing what the document aims to achieve")
    themes: List[str] = Field(..., description="Ordered list of themes")
    key_terminology: List[str] = Field(
        default_factory=list,
        description="Key terms, de-duplicated with first occurrence kept"
    )
    target_audience: str = Field(..., description="Who would benefit from the document")
    total_pages: int = Field(
        0,
        ge=0,
        description="Number of extracted pages (0 until extraction has run)"
    )

    @field_validator('key_terminology')
    @classmethod
    def deduplicate_terminology(cls, v: List[str]) -> List[str]:
        """Drop repeated terms while keeping the first occurrence."""
        seen = set()
        unique = []
        for term in v:
            if term not in seen:
                seen.add(term)
                unique.append(term)
        return unique

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "paper_title": "Attention Is All You Need",
                "main_goal": "Introduce a sequence model built only on attention",
                "themes": ["transformers", "attention"],
                "key_terminology": ["self-attention", "positional encoding"],
                "target_audience": "Machine learning students",
                "total_pages": 12
            }
        }
    )
