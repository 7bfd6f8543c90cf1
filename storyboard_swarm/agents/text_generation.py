"""Text Generation Client for the OpenAI-compatible AI gateway

Every agent in the swarm reaches the language model through this client. A
request is a system prompt plus user content, where the user content is either
plain text or a list of content parts (text parts and an embedded PDF file
part). The client owns retrying: on any gateway failure it waits with linear
backoff and tries again, and once the attempts are exhausted it returns an
empty string instead of raising. Callers treat ``""`` as "the agent produced
nothing" and apply their own fallback.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Union

import openai

from storyboard_swarm.orchestrator import retry_policy as retries

logger = logging.getLogger(__name__)


UserContent = Union[str, List[Dict[str, Any]]]


def build_document_content(prompt: str, document_base64: str, document_name: str) -> List[Dict[str, Any]]:
    """Build a multi-part user message carrying a PDF as a data URL.

    Args:
        prompt: Instruction text sent alongside the document
        document_base64: Base64-encoded PDF bytes
        document_name: File name reported to the model

    Returns:
        List of content parts (one text part, one file part)
    """
    return [
        {"type": "text", "text": prompt},
        {
            "type": "file",
            "file": {
                "filename": document_name,
                "file_data": f"data:application/pdf;base64,{document_base64}"
            }
        }
    ]


class TextGenerationClient:
    """Thin prompt-completion wrapper with bounded retry and linear backoff.

    The SDK's own retry loop is disabled so that this class is the single
    place where attempts are counted: at most ``max_attempts`` requests are
    issued per ``generate`` call.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        max_attempts: int = 3,
        base_delay_seconds: float = 1.0,
        timeout_seconds: float = 120.0,
        client: Optional[Any] = None
    ):
        """Initialize the client.

        Args:
            api_key: Gateway bearer token
            base_url: Gateway base URL (OpenAI-compatible, e.g. ``.../v1``)
            model: Model identifier sent with every request
            max_attempts: Default attempt cap per ``generate`` call
            base_delay_seconds: Base delay for linear backoff
            timeout_seconds: Per-request timeout
            client: Pre-built ``AsyncOpenAI``-like client (used by tests)
        """
        self.model = model
        self.retry_policy = retries.create_gateway_retry_policy(max_attempts, base_delay_seconds)
        if client is not None:
            self.client = client
        else:
            self.client = openai.AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout_seconds,
                max_retries=0
            )

    async def generate(
        self,
        system_prompt: str,
        user_content: UserContent,
        max_attempts: Optional[int] = None
    ) -> str:
        """Request a completion, retrying failures up to the attempt cap.

        Args:
            system_prompt: Role-specific system prompt
            user_content: Plain text or a list of content parts
            max_attempts: Override for the default attempt cap

        Returns:
            The first completion's text, or ``""`` when the field is absent
            or every attempt failed
        """
        attempts = max_attempts if max_attempts is not None else self.retry_policy.max_attempts
        attempts = max(1, attempts)

        for attempt in range(attempts):
            try:
                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_content}
                    ]
                )
                return self._first_completion_text(response)
            except openai.APIStatusError as e:
                logger.error(
                    f"AI call attempt {attempt + 1}/{attempts} failed with HTTP {e.status_code}: {e.message}"
                )
            except openai.APIError as e:
                logger.error(f"AI call attempt {attempt + 1}/{attempts} error: {e}")

            if attempt < attempts - 1:
                delay = retries.calculate_backoff_delay(
                    attempt,
                    self.retry_policy.base_delay_seconds,
                    self.retry_policy.max_delay_seconds
                )
                await asyncio.sleep(delay)

        logger.warning(f"AI call gave up after {attempts} attempts; returning empty completion")
        return ""

    @staticmethod
    def _first_completion_text(response: Any) -> str:
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        message = getattr(choices[0], "message", None)
        return getattr(message, "content", None) or ""
