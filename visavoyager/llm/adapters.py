"""Adapter implementations for LLM providers."""

import base64
import logging
from typing import Any

from google import genai
from google.genai import types
from openai import AsyncOpenAI

from ..settings import (
    CLIENT_MAX_RETRIES,
    GEMINI_API_KEY,
    GEMINI_DEFAULT_MODEL,
    OPENROUTER_API_KEY,
    OPENROUTER_BASE_URL,
    OPENROUTER_DEFAULT_MODEL,
    REQUEST_TIMEOUT_SECONDS,
)
from .grounding import grounding_envelope
from .protocols import (
    Capability,
    GenerationResult,
    LLMProvider,
    Message,
    MessageRole,
)

logger = logging.getLogger(__name__)


class GeminiAdapter(LLMProvider):
    """
    Adapter for the Google GenAI (Gemini) API.

    Supports Google Search and Google Maps grounding, JSON-schema constrained
    output and inline image parts.

    Usage:
        async with GeminiAdapter() as llm:
            result = await llm.generate([Message(role=MessageRole.USER, content="Hi")])
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ):
        """
        Initialize the Gemini adapter.

        Args:
            api_key: Optional API key. If not provided, uses GEMINI_API_KEY env var.
            model: Default model. Defaults to GEMINI_DEFAULT_MODEL.
        """
        self.api_key = api_key or GEMINI_API_KEY
        self.model = model or GEMINI_DEFAULT_MODEL
        self._client: genai.Client | None = None

        if not self.api_key:
            raise ValueError("Gemini API key required. Set GEMINI_API_KEY in .env")

        logger.info(f"Gemini adapter initialized with model: {self.model}")

    async def __aenter__(self) -> "GeminiAdapter":
        self._client = genai.Client(
            api_key=self.api_key,
            http_options=types.HttpOptions(timeout=int(REQUEST_TIMEOUT_SECONDS * 1000)),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aio.aclose()
            self._client = None

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with' context manager."
            )
        return self._client

    @staticmethod
    def _to_content(message: Message) -> types.Content:
        parts = [
            types.Part.from_bytes(
                data=base64.b64decode(attachment.data),
                mime_type=attachment.mime_type,
            )
            for attachment in message.attachments
        ]
        parts.append(types.Part.from_text(text=message.content))
        return types.Content(role=message.role.value, parts=parts)

    @staticmethod
    def _to_tools(tools: tuple[Capability, ...]) -> list[types.Tool] | None:
        converted = []
        for capability in tools:
            if capability == Capability.WEB_SEARCH:
                converted.append(types.Tool(google_search=types.GoogleSearch()))
            elif capability == Capability.MAP_LOOKUP:
                converted.append(types.Tool(google_maps=types.GoogleMaps()))
        return converted or None

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
        """Generate the next model turn."""
        model = model or self.model
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            tools=self._to_tools(tools),
            temperature=temperature,
        )
        if response_schema is not None:
            config.response_mime_type = "application/json"
            config.response_json_schema = response_schema

        logger.info(
            f"Generating with {model} ({len(messages)} messages, "
            f"tools={[t.value for t in tools]}, structured={response_schema is not None})"
        )

        response = await self.client.aio.models.generate_content(
            model=model,
            contents=[self._to_content(m) for m in messages],
            config=config,
        )

        text = response.text or ""
        logger.info(f"Completion received ({len(text)} chars)")
        logger.debug(f"Usage: {response.usage_metadata}")

        return GenerationResult(
            text=text,
            raw=response.model_dump(mode="json", exclude_none=True),
        )


class OpenRouterAdapter(LLMProvider):
    """
    Adapter for OpenRouter API.

    OpenRouter provides access to many LLMs through an OpenAI-compatible API.
    Web search is enabled through the ``web`` plugin; its ``url_citation``
    annotations are rewritten into grounding chunks.

    Usage:
        async with OpenRouterAdapter() as llm:
            result = await llm.generate([Message(role=MessageRole.USER, content="Hi")])
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
    ):
        """
        Initialize the OpenRouter adapter.

        Args:
            api_key: Optional API key. If not provided, uses OPENROUTER_API_KEY env var.
            model: Model to use. Defaults to OPENROUTER_DEFAULT_MODEL.
            base_url: API base URL. Defaults to OPENROUTER_BASE_URL.
        """
        self.api_key = api_key or OPENROUTER_API_KEY
        self.model = model or OPENROUTER_DEFAULT_MODEL
        self.base_url = base_url or OPENROUTER_BASE_URL
        self._client: AsyncOpenAI | None = None

        if not self.api_key:
            raise ValueError(
                "OpenRouter API key required. Set OPENROUTER_API_KEY in .env"
            )

        logger.info(f"OpenRouter adapter initialized with model: {self.model}")

    async def __aenter__(self) -> "OpenRouterAdapter":
        self._client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            max_retries=CLIENT_MAX_RETRIES,
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.close()
            self._client = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with' context manager."
            )
        return self._client

    @staticmethod
    def _format_message(message: Message) -> dict[str, Any]:
        role = "assistant" if message.role == MessageRole.MODEL else "user"
        if not message.attachments:
            return {"role": role, "content": message.content}

        content: list[dict[str, Any]] = [
            {
                "type": "image_url",
                "image_url": {"url": f"data:{a.mime_type};base64,{a.data}"},
            }
            for a in message.attachments
        ]
        content.append({"type": "text", "text": message.content})
        return {"role": role, "content": content}

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
        """Generate the next model turn."""
        model = model or self.model
        formatted: list[dict[str, Any]] = []

        if system_prompt:
            formatted.append({"role": "system", "content": system_prompt})

        formatted.extend(self._format_message(m) for m in messages)

        kwargs: dict[str, Any] = {}
        if temperature is not None:
            kwargs["temperature"] = temperature
        if response_schema is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "response", "schema": response_schema},
            }
        if Capability.WEB_SEARCH in tools:
            kwargs["extra_body"] = {"plugins": [{"id": "web"}]}
        if Capability.MAP_LOOKUP in tools:
            logger.debug("Map lookup is not available through OpenRouter, ignoring")

        logger.info(f"Completing {len(messages)} messages with {model}")

        response = await self.client.chat.completions.create(
            model=model,
            messages=formatted,
            **kwargs,
        )

        message = response.choices[0].message
        text = message.content or ""
        logger.info(f"Completion received ({len(text)} chars)")
        logger.debug(f"Usage: {response.usage}")

        citations = [
            (a.url_citation.title, a.url_citation.url)
            for a in (message.annotations or [])
            if a.type == "url_citation"
        ]
        return GenerationResult(
            text=text,
            raw=grounding_envelope(citations, extra={"id": response.id, "model": response.model}),
        )
