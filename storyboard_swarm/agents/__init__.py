"""Agent implementations for the storyboard swarm"""

from .base import Agent, AgentExecutionError, AgentInput, AgentOutput, RetryPolicy
from .text_generation import TextGenerationClient
from .page_extractor import DocumentInput, PageExtractorAgent
from .global_context import GlobalContextAgent
from .page_input import PageAnalysisInput
from .concept import ConceptAgent
from .facts import FactAgent
from .narrative import NarrativeAgent
from .animation_generator import AnimationCodeGeneratorAgent
from .validation import UploadInput, UploadValidationError, ValidationAgent
from .persistence import PersistenceAgent, PersistenceError, PersistenceInput, SupabaseFactStore
from .render_callback import RenderCallbackAgent, RenderCallbackError, RenderCallbackInput
from .chat_relay import ChatRelayAgent, ChatRelayInput, ChatValidationError, UpstreamError

__all__ = [
    "Agent",
    "AgentExecutionError",
    "AgentInput",
    "AgentOutput",
    "RetryPolicy",
    "TextGenerationClient",
    "DocumentInput",
    "PageExtractorAgent",
    "GlobalContextAgent",
    "PageAnalysisInput",
    "ConceptAgent",
    "FactAgent",
    "NarrativeAgent",
    "AnimationCodeGeneratorAgent",
    "UploadInput",
    "UploadValidationError",
    "ValidationAgent",
    "PersistenceAgent",
    "PersistenceError",
    "PersistenceInput",
    "SupabaseFactStore",
    "RenderCallbackAgent",
    "RenderCallbackError",
    "RenderCallbackInput",
    "ChatRelayAgent",
    "ChatRelayInput",
    "ChatValidationError",
    "UpstreamError",
]
