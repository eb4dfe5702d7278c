"""VisaVoyager: the orchestration boundary used by callers."""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import TYPE_CHECKING, Callable

from .evaluator import Evaluator
from .models import (
    DocTemplate,
    DocumentItem,
    PassportDetails,
    SafetyTip,
    VisaPolicy,
    VisaPurpose,
)
from .search_loop import ProgressObserver, SelfCorrectingSearch
from . import tasks

if TYPE_CHECKING:
    from ..agents.personas import PersonaRegistry
    from ..config.loader import ProfileConfig
    from ..llm.protocols import LLMProvider

logger = logging.getLogger(__name__)


class VisaVoyager:
    """
    Context object holding the personas, the auditor and the provider.

    Each operation resets the persona it uses, so independent tasks never
    share history. The search and the travel advisory use different
    personas and may run concurrently (see ``search_with_advisory``).

    Usage:
        async with create_from_profile(load_config()) as voyager:
            policy = await voyager.search_visa_info("Canada", "Canada", "Japan", "Tourism")
    """

    def __init__(
        self,
        provider: LLMProvider,
        personas: PersonaRegistry,
        evaluator: Evaluator,
        config: ProfileConfig,
        search_loop: SelfCorrectingSearch | None = None,
    ):
        """
        Initialize the context.

        Args:
            provider: LLM provider shared by personas and stateless calls
            personas: Consultant, advisor and drafter sessions
            evaluator: Output auditor
            config: Profile configuration
            search_loop: Search bound to the consultant; built from config if None
        """
        self.provider = provider
        self.personas = personas
        self.evaluator = evaluator
        self.config = config
        self.search_loop = search_loop or SelfCorrectingSearch(
            consultant=personas.consultant,
            evaluator=evaluator,
            config=config.search_loop,
        )

    async def __aenter__(self) -> VisaVoyager:
        if hasattr(self.provider, "__aenter__"):
            await self.provider.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if hasattr(self.provider, "__aexit__"):
            await self.provider.__aexit__(exc_type, exc_val, exc_tb)

    async def suggest_purposes(self, citizenship: str, destination: str) -> list[VisaPurpose]:
        return await tasks.suggest_purposes(self.personas.consultant, citizenship, destination)

    async def travel_advisory(self, destination: str) -> list[SafetyTip]:
        return await tasks.get_travel_advisory(self.personas.advisor, destination)

    async def search_visa_info(
        self,
        citizenship: str,
        residency: str,
        destination: str,
        purpose: str,
        on_progress: ProgressObserver | Callable[[str], None] | None = None,
    ) -> VisaPolicy:
        """Run the self-correcting search. See ``SelfCorrectingSearch.search``."""
        return await self.search_loop.search(
            citizenship, residency, destination, purpose, on_progress=on_progress
        )

    async def search_with_advisory(
        self,
        citizenship: str,
        residency: str,
        destination: str,
        purpose: str,
        on_progress: ProgressObserver | Callable[[str], None] | None = None,
    ) -> VisaPolicy:
        """
        Run the visa search and the travel advisory concurrently.

        If either call fails the other is cancelled before the error
        propagates, so no request outlives the provider.

        Returns:
            The search's policy with ``travel_tips`` attached
        """
        search = asyncio.create_task(
            self.search_visa_info(
                citizenship, residency, destination, purpose, on_progress=on_progress
            )
        )
        advisory = asyncio.create_task(self.travel_advisory(destination))
        try:
            policy, tips = await asyncio.gather(search, advisory)
        except BaseException:
            for task in (search, advisory):
                task.cancel()
            await asyncio.gather(search, advisory, return_exceptions=True)
            raise
        return policy.model_copy(update={"travel_tips": tips})

    async def generate_checklist(self, policy: VisaPolicy) -> list[DocumentItem]:
        return await tasks.generate_checklist(self.personas.drafter, policy)

    async def generate_document(
        self,
        template: DocTemplate | str,
        fields: dict[str, str],
    ) -> str:
        return await tasks.generate_document(
            self.personas.drafter, DocTemplate(template), fields
        )

    async def extract_passport_fields(
        self,
        image: bytes | str,
        mime_type: str = "image/jpeg",
    ) -> PassportDetails:
        """
        Read identity fields from a passport image.

        Args:
            image: Raw image bytes or an already base64-encoded string
            mime_type: Image MIME type
        """
        if isinstance(image, bytes):
            image = base64.b64encode(image).decode("ascii")
        return await tasks.extract_passport_fields(
            self.provider,
            image,
            mime_type=mime_type,
            model=self.config.vision.model,
        )
