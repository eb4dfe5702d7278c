"""Factory functions to create backends from configuration."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable, Union

from ..llm.grounding import grounding_envelope
from ..llm.protocols import Capability, GenerationResult, Message

if TYPE_CHECKING:
    from ..agents.personas import PersonaRegistry
    from ..llm.protocols import LLMProvider
    from ..orchestration.evaluator import Evaluator
    from ..orchestration.search_loop import SelfCorrectingSearch
    from ..orchestration.voyager import VisaVoyager
    from .loader import EvaluatorConfig, PersonasConfig, ProfileConfig, ProviderConfig, SearchLoopConfig


@dataclass
class MockReply:
    """Scripted reply: response text plus grounding citations."""

    text: str
    sources: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class MockRequest:
    """What the mock provider was asked."""

    messages: list[Message]
    model: str | None
    system_prompt: str | None
    tools: tuple[Capability, ...]
    response_schema: dict | None

    @property
    def prompt(self) -> str:
        return self.messages[-1].content if self.messages else ""


MockScript = Union[str, MockReply, Exception]


class MockLLMProvider:
    """
    Mock LLM provider for testing and offline runs.

    Replies come from, in order: the scripted queue, the ``responder``
    callable, then an empty default of the requested shape. An Exception in
    the script is raised instead of returned.
    """

    def __init__(
        self,
        replies: Iterable[MockScript] | None = None,
        responder: Callable[[MockRequest], MockScript] | None = None,
    ):
        self._replies: deque[MockScript] = deque(replies or [])
        self._responder = responder
        self.calls: list[MockRequest] = []

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
        """Return the next scripted reply."""
        request = MockRequest(
            messages=list(messages),
            model=model,
            system_prompt=system_prompt,
            tools=tuple(tools),
            response_schema=response_schema,
        )
        self.calls.append(request)

        if self._replies:
            reply = self._replies.popleft()
        elif self._responder is not None:
            reply = self._responder(request)
        else:
            reply = self._default_reply(request)

        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, str):
            reply = MockReply(text=reply)

        return GenerationResult(text=reply.text, raw=grounding_envelope(reply.sources))

    @staticmethod
    def _default_reply(request: MockRequest) -> str:
        if request.response_schema is None:
            return f"[Mock response to: {request.prompt[:50]}...]"
        return "[]" if request.response_schema.get("type") == "array" else "{}"

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


def create_provider(config: ProviderConfig) -> LLMProvider:
    """Create an LLM provider from configuration.

    A missing ``api_key`` is resolved by the adapter from settings
    (GEMINI_API_KEY or GOOGLE_API_KEY, OPENROUTER_API_KEY).

    Args:
        config: Provider configuration

    Returns:
        LLMProvider instance (GeminiAdapter, OpenRouterAdapter, or Mock)

    Raises:
        ValueError: If backend type is not supported or no key is available
    """
    if config.backend == "gemini":
        from ..llm import GeminiAdapter

        return GeminiAdapter(api_key=config.api_key, model=config.model)

    elif config.backend == "openrouter":
        from ..llm import OpenRouterAdapter

        return OpenRouterAdapter(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
        )

    elif config.backend == "mock":
        return MockLLMProvider()

    else:
        raise ValueError(f"Unsupported provider backend: {config.backend}")


def create_personas(
    provider: LLMProvider,
    config: PersonasConfig | None = None,
) -> PersonaRegistry:
    """Create the persona registry."""
    from ..agents.personas import create_personas as _create_personas

    return _create_personas(provider, config)


def create_evaluator(
    provider: LLMProvider,
    config: EvaluatorConfig | None = None,
) -> Evaluator:
    """Create the output auditor."""
    from ..orchestration.evaluator import Evaluator

    return Evaluator(provider, config)


def create_search_loop(
    personas: PersonaRegistry,
    evaluator: Evaluator,
    config: SearchLoopConfig | None = None,
) -> SelfCorrectingSearch:
    """Create a self-correcting search bound to the consultant persona."""
    from ..orchestration.search_loop import SelfCorrectingSearch

    return SelfCorrectingSearch(personas.consultant, evaluator, config)


def create_from_profile(
    profile: ProfileConfig,
    provider: LLMProvider | None = None,
) -> VisaVoyager:
    """Create the full orchestration context from a profile.

    Args:
        profile: Profile configuration
        provider: Optional provider overriding ``profile.provider``
                  (tests inject a scripted MockLLMProvider here)

    Returns:
        VisaVoyager ready to be entered with ``async with``
    """
    from ..orchestration.voyager import VisaVoyager

    provider = provider or create_provider(profile.provider)
    personas = create_personas(provider, profile.personas)
    evaluator = create_evaluator(provider, profile.evaluator)

    return VisaVoyager(
        provider=provider,
        personas=personas,
        evaluator=evaluator,
        config=profile,
        search_loop=create_search_loop(personas, evaluator, profile.search_loop),
    )
