"""Pydantic schemas for data contracts between agents."""

from storyboard_swarm.schemas.chat import ChatMessage, ChatRequest
from storyboard_swarm.schemas.context import ContextPacket
from storyboard_swarm.schemas.page import (
    ConceptExplanation,
    Difficulty,
    ExtractedFact,
    FactCategory,
    PageContent,
    PageResult,
    PageStatus,
)
from storyboard_swarm.schemas.render import RenderCallbackPayload, RenderCallbackResult
from storyboard_swarm.schemas.storyboard import (
    FactRecord,
    StoryboardPage,
    StoryboardSnapshot,
    SwarmResponse,
)

__all__ = [
    # Context
    "ContextPacket",
    # Page
    "PageContent",
    "ConceptExplanation",
    "ExtractedFact",
    "PageResult",
    "Difficulty",
    "FactCategory",
    "PageStatus",
    # Storyboard
    "StoryboardPage",
    "StoryboardSnapshot",
    "FactRecord",
    "SwarmResponse",
    # Render callback
    "RenderCallbackPayload",
    "RenderCallbackResult",
    # Chat
    "ChatMessage",
    "ChatRequest",
]
