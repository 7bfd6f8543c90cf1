"""Chat Relay Agent

Validates a conversation sent by the tutoring sidebar, forwards it to the
gateway behind a fixed system prompt, and relays the streamed completion back
as server-sent events. Upstream failures are mapped to a small set of
user-facing messages; their details only reach the log.
"""

import logging
import re
from typing import Any, AsyncIterator, List

import openai

from storyboard_swarm.agents.base import Agent, AgentExecutionError, AgentInput
from storyboard_swarm.schemas.chat import ChatMessage, ChatRequest

logger = logging.getLogger(__name__)


MAX_MESSAGES = 50
MAX_CONTENT_CHARS = 10000
VALID_ROLES = ("user", "assistant", "system")

SCRIPT_TAG_PATTERN = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)

SYSTEM_PROMPT = """You are the Viserch Learning Assistant. Your goal is to help neurodivergent students.

**Core Principles:**
- Be concise and direct - no fluff
- Use bullet points for clarity
- Explain complex terms from the very base level
- Break down information into digestible chunks
- Use analogies that connect to everyday experiences
- Highlight key takeaways clearly
- If something is important, say it upfront

**Style:**
Mirror the user's register: acknowledge casual slang briefly and pivot back to
the lesson, or match formal language when the user writes formally. Always
prioritize a high information-to-word ratio.

**Formatting:**
- Use **bold** for key terms and important concepts
- Use *italics* for emphasis or when introducing new vocabulary
- Keep paragraphs short (2-3 sentences max)"""

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again in a moment."
USAGE_LIMIT_MESSAGE = "Usage limit reached. Please add credits to continue."
UNAVAILABLE_MESSAGE = "AI service temporarily unavailable"


class ChatValidationError(Exception):
    """Raised for malformed chat requests; the message is safe to show."""


class UpstreamError(Exception):
    """Gateway failure mapped to the status and message returned to the caller

    Attributes:
        status_code: HTTP status to respond with
        message: User-facing message
    """

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{status_code}] {message}")


def sanitize_content(content: str) -> str:
    """Strip script-tag payloads, cap the length, and trim whitespace."""
    return SCRIPT_TAG_PATTERN.sub("", content)[:MAX_CONTENT_CHARS].strip()


def validate_chat_request(body: Any) -> ChatRequest:
    """Validate and sanitize a raw chat request body.

    Raises:
        ChatValidationError: With a message naming the violated constraint
    """
    if not isinstance(body, dict):
        raise ChatValidationError("Invalid request body")

    messages = body.get("messages")
    if not isinstance(messages, list):
        raise ChatValidationError("Messages must be an array")
    if not messages:
        raise ChatValidationError("Messages array cannot be empty")
    if len(messages) > MAX_MESSAGES:
        raise ChatValidationError(f"Too many messages (max {MAX_MESSAGES})")

    validated: List[ChatMessage] = []
    for index, message in enumerate(messages):
        if not isinstance(message, dict):
            raise ChatValidationError(f"Message at index {index} is invalid")

        role = message.get("role")
        if not isinstance(role, str) or role not in VALID_ROLES:
            raise ChatValidationError(f"Invalid role at message {index}")

        content = message.get("content")
        if not isinstance(content, str):
            raise ChatValidationError(f"Content must be a string at message {index}")

        sanitized = sanitize_content(content)
        if not sanitized:
            raise ChatValidationError(f"Empty content at message {index}")

        validated.append(ChatMessage(role=role, content=sanitized))

    return ChatRequest(messages=validated)


class ChatRelayInput(AgentInput):
    def __init__(self, body: Any):
        self.body = body


class ChatRelayAgent(Agent):
    """Agent responsible for relaying chat turns to the gateway"""

    def __init__(self, client: Any, model: str):
        """Initialize the relay.

        Args:
            client: ``AsyncOpenAI``-like client pointed at the gateway
            model: Model identifier
        """
        self.client = client
        self.model = model

    async def execute(self, input_data: ChatRelayInput) -> AsyncIterator[str]:
        """Validate the request and open the upstream stream.

        The upstream request is made before this coroutine returns, so status
        errors surface here rather than halfway through a response.

        Returns:
            Async iterator of server-sent event frames

        Raises:
            ChatValidationError: For malformed requests
            UpstreamError: For gateway failures
        """
        if not self.validate_input(input_data):
            raise AgentExecutionError(
                "INVALID_INPUT",
                "Input must be ChatRelayInput",
                {"input_type": type(input_data).__name__}
            )

        request = validate_chat_request(input_data.body)
        logger.info(f"Processing chat request with {len(request.messages)} messages")

        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        messages.extend(m.model_dump() for m in request.messages)

        try:
            stream = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                stream=True
            )
        except openai.APIStatusError as e:
            if e.status_code == 429:
                logger.error("Rate limit exceeded")
                raise UpstreamError(429, RATE_LIMIT_MESSAGE) from e
            if e.status_code == 402:
                logger.error("Usage limit reached")
                raise UpstreamError(402, USAGE_LIMIT_MESSAGE) from e
            logger.error(f"AI gateway error: {e.status_code} {e.message}")
            raise UpstreamError(500, UNAVAILABLE_MESSAGE) from e
        except openai.APIError as e:
            logger.error(f"AI gateway error: {e}")
            raise UpstreamError(500, UNAVAILABLE_MESSAGE) from e

        return self._relay(stream)

    async def _relay(self, stream: Any) -> AsyncIterator[str]:
        try:
            async for chunk in stream:
                yield f"data: {chunk.model_dump_json(exclude_none=True)}\n\n"
        except openai.APIError as e:
            # Headers are already sent; the client sees a stream without [DONE]
            logger.error(f"AI gateway stream interrupted: {e}")
            return
        yield "data: [DONE]\n\n"

    def validate_input(self, input_data: AgentInput) -> bool:
        return isinstance(input_data, ChatRelayInput)
