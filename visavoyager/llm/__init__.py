"""LLM provider integrations with protocol-based adapter pattern."""

from .protocols import (
    Attachment,
    Capability,
    GenerationResult,
    LLMProvider,
    Message,
    MessageRole,
)
from .adapters import GeminiAdapter, OpenRouterAdapter
from .grounding import grounding_envelope

__all__ = [
    # Protocols
    "Attachment",
    "Capability",
    "GenerationResult",
    "LLMProvider",
    "Message",
    "MessageRole",
    # Adapters
    "GeminiAdapter",
    "OpenRouterAdapter",
    # Helpers
    "grounding_envelope",
]
