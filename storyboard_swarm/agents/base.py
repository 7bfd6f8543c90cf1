"""Agent contract shared by every stage of the storyboard swarm

An agent owns one step of turning an uploaded document into a storyboard:
validating the upload, reading context, extracting pages, analyzing a page,
persisting facts, or handling the renderer's callback. Most of them call
the text-generation gateway, so ``execute`` is a coroutine.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class RetryPolicy:
    """How often an agent's remote call may be attempted

    Attributes:
        max_attempts: Attempt cap, the first attempt included
        base_delay_seconds: Wait after the first failure; later waits grow linearly
        max_delay_seconds: Ceiling on any single wait
    """
    max_attempts: int = 1
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 60.0


class AgentInput(ABC):
    """Marker base for the objects an agent accepts."""


class AgentOutput(ABC):
    """Marker base for the non-pydantic objects an agent returns."""


class AgentExecutionError(Exception):
    """Raised when an agent cannot do its job at all

    Attributes:
        error_code: Machine-readable code, e.g. ``INVALID_INPUT``
        message: Human-readable description
        context: Extra details for the run log
    """

    def __init__(self, error_code: str, message: str, context: Optional[Dict[str, Any]] = None):
        self.error_code = error_code
        self.message = message
        self.context = context or {}
        super().__init__(f"[{error_code}] {message}")


class Agent(ABC):
    """One step of the swarm.

    Subclasses implement ``execute`` and ``validate_input``. Gateway retries
    live in the TextGenerationClient, so the default policy is a single
    attempt.
    """

    @abstractmethod
    async def execute(self, input_data: AgentInput) -> Any:
        """Run the step.

        Raises:
            AgentExecutionError: When the input has the wrong shape
        """

    def validate_input(self, input_data: AgentInput) -> bool:
        """Cheap type and shape check run before ``execute`` does any work."""
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement validate_input()"
        )

    def get_retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_attempts=1)
