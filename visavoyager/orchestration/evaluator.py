"""
Evaluator: an independent auditor call that scores structured output.

The auditor is stateless: every evaluation is a fresh single-turn request,
never part of a persona's history.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from ..llm.protocols import Message, MessageRole
from .models import Verification
from .parsing import Malformed, parse_json
from .schemas import EVALUATION_SCHEMA

if TYPE_CHECKING:
    from ..config.loader import EvaluatorConfig
    from ..llm.protocols import LLMProvider

logger = logging.getLogger(__name__)

AUDIT_PROMPT = """You are an AI Output Auditor.

Task: Evaluate the quality of the following JSON data based on these criteria: "{criteria}".

Data to Evaluate:
{content}

Return JSON with:
- score: number (1-10, where 10 is perfect)
- pass: boolean (true if usable, false if hallucinated or broken)
- reasoning: string (brief explanation)"""


class Evaluator:
    """
    Scores candidate content against a natural-language rubric.

    Parse failures of the auditor's own output never raise: they produce
    ``Verification.failed()`` (score 0, pass false). Transport errors from
    the provider propagate.
    """

    def __init__(
        self,
        provider: LLMProvider,
        config: EvaluatorConfig | None = None,
    ):
        """
        Initialize the evaluator.

        Args:
            provider: LLM provider for the audit call
            config: Evaluator configuration
        """
        self.provider = provider

        if config is None:
            from ..config.loader import EvaluatorConfig
            config = EvaluatorConfig()

        self.model = config.model
        self.temperature = config.temperature
        self.max_content_chars = config.max_content_chars

    def build_prompt(self, content: str, criteria: str) -> str:
        return AUDIT_PROMPT.format(
            criteria=criteria,
            content=content[: self.max_content_chars],
        )

    async def evaluate(self, content: str, criteria: str) -> Verification:
        """
        Score ``content`` against ``criteria``.

        Args:
            content: Candidate structured content, as text
            criteria: Rubric describing what "good" means

        Returns:
            Verification with score, pass flag and reasoning
        """
        result = await self.provider.generate(
            [Message(role=MessageRole.USER, content=self.build_prompt(content, criteria))],
            model=self.model,
            response_schema=EVALUATION_SCHEMA,
            temperature=self.temperature,
        )

        parsed = parse_json(result.text, {})
        if isinstance(parsed, Malformed):
            logger.warning(f"Auditor returned malformed JSON: {parsed.error}")
            return Verification.failed()

        try:
            verification = Verification.model_validate(parsed.value)
        except ValidationError as e:
            logger.warning(f"Auditor output failed validation: {e.error_count()} errors")
            return Verification.failed()

        logger.info(
            f"Audit: score={verification.score}, pass={verification.passed}"
        )
        return verification
