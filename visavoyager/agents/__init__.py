"""Persona sessions wrapping the generative service."""

from .session import AgentSession
from .personas import (
    ADVISOR_INSTRUCTION,
    CONSULTANT_INSTRUCTION,
    DRAFTER_INSTRUCTION,
    PersonaRegistry,
    create_personas,
)

__all__ = [
    "AgentSession",
    "PersonaRegistry",
    "create_personas",
    "CONSULTANT_INSTRUCTION",
    "ADVISOR_INSTRUCTION",
    "DRAFTER_INSTRUCTION",
]
