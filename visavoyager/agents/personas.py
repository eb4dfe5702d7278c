"""The fixed persona set used by the orchestrators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..llm.protocols import Capability
from .session import AgentSession

if TYPE_CHECKING:
    from ..config.loader import PersonasConfig
    from ..llm.protocols import LLMProvider

CONSULTANT_INSTRUCTION = (
    "You are an expert Visa Consultant. Your goal is to find the most accurate, "
    "up-to-date visa policies. You MUST use Google Search to verify facts before "
    "asserting them. You can use Google Maps to check embassy locations if relevant."
)

ADVISOR_INSTRUCTION = (
    "You are a local cultural expert. You provide safety tips and cultural "
    "etiquette advice for travelers."
)

DRAFTER_INSTRUCTION = (
    "You are a professional legal document drafter for immigration purposes. "
    "You are precise, formal and consistent."
)


@dataclass(frozen=True)
class PersonaRegistry:
    """Closed set of sessions, one per role.

    - consultant: search + map grounded policy research
    - advisor: search grounded safety/etiquette tips, independent history
    - drafter: no tools; checklists and documents share its tone
    """

    consultant: AgentSession
    advisor: AgentSession
    drafter: AgentSession

    def reset_all(self) -> None:
        """Clear every persona's history."""
        for session in (self.consultant, self.advisor, self.drafter):
            session.reset()


def create_personas(
    provider: LLMProvider,
    config: PersonasConfig | None = None,
) -> PersonaRegistry:
    """
    Build the persona registry.

    Args:
        provider: LLM provider shared by all sessions
        config: Per-persona model/temperature overrides

    Returns:
        PersonaRegistry with fresh sessions
    """
    if config is None:
        from ..config.loader import PersonasConfig
        config = PersonasConfig()

    return PersonaRegistry(
        consultant=AgentSession(
            provider,
            name="consultant",
            system_instruction=CONSULTANT_INSTRUCTION,
            capabilities=(Capability.WEB_SEARCH, Capability.MAP_LOOKUP),
            model=config.consultant.model,
            temperature=config.consultant.temperature,
        ),
        advisor=AgentSession(
            provider,
            name="advisor",
            system_instruction=ADVISOR_INSTRUCTION,
            capabilities=(Capability.WEB_SEARCH,),
            model=config.advisor.model,
            temperature=config.advisor.temperature,
        ),
        drafter=AgentSession(
            provider,
            name="drafter",
            system_instruction=DRAFTER_INSTRUCTION,
            model=config.drafter.model,
            temperature=config.drafter.temperature,
        ),
    )
