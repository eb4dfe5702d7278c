"""Stateful wrapper around a generative completion service."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..llm.protocols import Capability, GenerationResult, Message, MessageRole

if TYPE_CHECKING:
    from ..llm.protocols import LLMProvider

logger = logging.getLogger(__name__)


class AgentSession:
    """
    A persona's conversation with the model.

    Owns the system instruction, enabled capabilities and ordered history.
    History changes only through ``run`` (append) and ``reset`` (clear).
    Retries are not handled here; provider errors propagate unchanged.

    Usage:
        session = AgentSession(llm, name="consultant", system_instruction="...")
        session.reset()
        result = await session.run("Suggest purposes", output_schema=PURPOSES_SCHEMA)
    """

    def __init__(
        self,
        provider: LLMProvider,
        name: str,
        system_instruction: str,
        capabilities: tuple[Capability, ...] = (),
        model: str | None = None,
        temperature: float | None = None,
    ):
        """
        Initialize the session.

        Args:
            provider: LLM provider that executes each turn
            name: Persona name (used in logs)
            system_instruction: Fixed persona instruction
            capabilities: Tools enabled for every turn
            model: Model override; the provider default is used when None
            temperature: Sampling temperature override
        """
        self.provider = provider
        self.name = name
        self.system_instruction = system_instruction
        self.capabilities = tuple(capabilities)
        self.model = model
        self.temperature = temperature
        self._history: list[Message] = []

    @property
    def history(self) -> tuple[Message, ...]:
        """Turns exchanged since the last reset."""
        return tuple(self._history)

    def reset(self) -> None:
        """Clear history before a logically independent task."""
        if self._history:
            logger.debug(f"[{self.name}] Clearing {len(self._history)} history turns")
        self._history = []

    async def run(
        self,
        prompt: str,
        output_schema: dict | None = None,
    ) -> GenerationResult:
        """
        Send ``prompt`` as the next user turn.

        Args:
            prompt: User turn text
            output_schema: Optional JSON schema; requests structured output

        Returns:
            GenerationResult with response text and raw envelope
        """
        user_turn = Message(role=MessageRole.USER, content=prompt)
        logger.info(f"[{self.name}] Running turn ({len(prompt)} chars)")
        logger.debug(f"[{self.name}] History length before turn: {len(self._history)}")

        result = await self.provider.generate(
            [*self._history, user_turn],
            model=self.model,
            system_prompt=self.system_instruction,
            tools=self.capabilities,
            response_schema=output_schema,
            temperature=self.temperature,
        )

        self._history.append(user_turn)
        self._history.append(Message(role=MessageRole.MODEL, content=result.text))
        logger.info(f"[{self.name}] Response received ({len(result.text)} chars)")

        return result
