"""Protocol definitions for LLM providers."""

from enum import Enum
from typing import Any, Protocol, runtime_checkable
from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    """Role of a message in a conversation."""

    USER = "user"
    MODEL = "model"


class Capability(str, Enum):
    """Server-side tools a provider can enable for a request."""

    WEB_SEARCH = "web_search"
    MAP_LOOKUP = "map_lookup"


class Attachment(BaseModel):
    """Inline binary content (images) sent alongside a message."""

    data: str  # base64-encoded payload
    mime_type: str = "image/jpeg"


class Message(BaseModel):
    """A message in a conversation."""

    role: MessageRole
    content: str
    attachments: list[Attachment] = Field(default_factory=list)


class GenerationResult(BaseModel):
    """Text of a completion plus the raw response envelope.

    Grounding metadata travels out-of-band from the text, so the envelope is
    kept in normalised form:
    ``candidates[0].grounding_metadata.grounding_chunks[*].web.{title,uri}``.
    """

    text: str = ""
    raw: dict[str, Any] = Field(default_factory=dict)


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol for LLM providers.

    Implement this protocol to add support for new LLM APIs.
    """

    async def generate(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        system_prompt: str | None = None,
        tools: tuple[Capability, ...] = (),
        response_schema: dict | None = None,
        temperature: float | None = None,
    ) -> GenerationResult:
        """
        Generate the next model turn for a conversation.

        Args:
            messages: Conversation so far, ending with the new user turn
            model: Model to use. Defaults to the provider's default model.
            system_prompt: Optional system instruction
            tools: Capabilities to enable (web search, map lookup)
            response_schema: Optional JSON schema; requests structured output
            temperature: Sampling temperature

        Returns:
            GenerationResult with text and normalised raw envelope
        """
        ...
