"""
Self-correcting visa search.

Each attempt:
1. Ask the consultant persona for structured policy data
2. Reconcile explicit citations with grounding metadata
3. Audit the result and apply the missing-source guardrail
4. Accept (parseable, score at or above threshold) or retry with the critique injected

Attempt 0 uses the research prompt; later attempts quote the previous
critique verbatim so the model searches for what was missing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Protocol

from .errors import MalformedResponseError
from .models import SourceCitation, Verification, VisaPolicy, VisaStatus, VisaStep
from .parsing import Malformed, parse_json, strip_code_fences, unwrap_or
from .reconciler import reconcile_sources
from .schemas import VISA_POLICY_SCHEMA

if TYPE_CHECKING:
    from ..agents.session import AgentSession
    from ..config.loader import SearchLoopConfig
    from .evaluator import Evaluator

logger = logging.getLogger(__name__)

SEARCH_RUBRIC = (
    "Does the data contain a definitive visa status? Is the timeline specific? "
    "CRITICAL: Does the 'sources' array contain at least one valid URL?"
)

MISSING_SOURCES_NOTE = "Missing official source links."
MALFORMED_NOTE = "Response was not valid JSON."

SUMMARY_PLACEHOLDER = "Summary not available"
TIMELINE_PLACEHOLDER = "Check official sources"

# Progress stage labels
STAGE_CONSULTING = "Consulting Official Sources..."
STAGE_RECONCILING = "Cross-checking Sources..."
STAGE_VERIFYING = "Verifying Accuracy (AI Auditor)..."
STAGE_ACCEPTED = "Verified"
STAGE_EXHAUSTED = "Retry budget exhausted"
STAGE_DONE = "Completed"


def stage_self_correcting(attempt: int) -> str:
    """Label for a retry; ``attempt`` is zero-based."""
    return f"Self-Correcting (Attempt {attempt + 1})..."


class ProgressObserver(Protocol):
    """Receives one-line stage labels as the search advances."""

    def __call__(self, stage: str) -> None: ...


def _ignore_progress(stage: str) -> None:
    pass


@dataclass
class SearchAttempt:
    """Everything one attempt produced."""

    index: int
    prompt: str
    data: dict[str, Any]
    sources: list[SourceCitation]
    verification: Verification
    malformed: bool = False


def build_research_prompt(
    citizenship: str,
    residency: str,
    destination: str,
    purpose: str,
    year: int | None = None,
) -> str:
    """Initial prompt for attempt 0."""
    year = year or datetime.now().year
    return f"""Find current visa requirements for:
- Citizen of: {citizenship}
- Residing in: {residency}
- Destination: {destination}
- Purpose: {purpose}

I need a structured JSON response with status, summary, steps, timeline, requirements, and sources.
Use Google Search to ensure data is current for {year}.
IMPORTANT: The 'sources' array is MANDATORY. Extract URLs from search results."""


def build_correction_prompt(critique: str) -> str:
    """Retry prompt quoting the previous attempt's critique verbatim."""
    return f"""The previous answer was insufficient. Critique: "{critique}".
Please fix this. Search specifically for the missing information (especially official sources) and update the JSON."""


class SelfCorrectingSearch:
    """
    Runs the request, reconcile, evaluate, retry loop for one visa search.

    Retries are only for low-quality but parseable results. Transport errors
    abort the whole search and are re-raised after logging.
    """

    def __init__(
        self,
        consultant: AgentSession,
        evaluator: Evaluator,
        config: SearchLoopConfig | None = None,
    ):
        """
        Initialize the search loop.

        Args:
            consultant: Search-grounded persona session
            evaluator: Auditor for each attempt
            config: Retry budget, thresholds and exhaustion strategy
        """
        self.consultant = consultant
        self.evaluator = evaluator

        if config is None:
            from ..config.loader import SearchLoopConfig
            config = SearchLoopConfig()

        self.max_retries = config.max_retries
        self.accept_score = config.accept_score
        self.missing_source_cap = config.missing_source_cap
        self.score_floor = config.score_floor
        self.score_ceiling = config.score_ceiling
        self.exhaustion_strategy = config.exhaustion_strategy

    def apply_guardrail(
        self,
        verification: Verification,
        sources: list[SourceCitation],
    ) -> Verification:
        """
        Clamp the auditor's score and penalise results without sources.

        A result with no citations can never rate above ``missing_source_cap``
        and never passes, whatever the auditor concluded.
        """
        score = min(max(verification.score, self.score_floor), self.score_ceiling)
        passed = verification.passed
        reasoning = verification.reasoning

        if not sources:
            logger.warning(
                f"No sources found, capping score {score} at {self.missing_source_cap}"
            )
            score = min(score, self.missing_source_cap)
            passed = False
            reasoning = f"{reasoning} {MISSING_SOURCES_NOTE}".strip()

        return Verification(score=score, passed=passed, reasoning=reasoning)

    async def run_attempt(
        self,
        index: int,
        prompt: str,
        notify: Callable[[str], None] = _ignore_progress,
    ) -> SearchAttempt:
        """Request, reconcile and evaluate a single attempt."""
        result = await self.consultant.run(prompt, VISA_POLICY_SCHEMA)

        parsed = parse_json(strip_code_fences(result.text or ""), {})
        malformed = isinstance(parsed, Malformed)
        if malformed:
            logger.warning(f"Attempt {index + 1}: malformed structured output ({parsed.error})")
        data = unwrap_or(parsed, {})

        notify(STAGE_RECONCILING)
        sources = reconcile_sources(data, result.raw)

        notify(STAGE_VERIFYING)
        verification = await self.evaluator.evaluate(result.text, SEARCH_RUBRIC)
        verification = self.apply_guardrail(verification, sources)

        logger.info(
            f"Attempt {index + 1}: score={verification.score}, "
            f"pass={verification.passed}, sources={len(sources)}"
        )

        return SearchAttempt(
            index=index,
            prompt=prompt,
            data=data,
            sources=sources,
            verification=verification,
            malformed=malformed,
        )

    async def search(
        self,
        citizenship: str,
        residency: str,
        destination: str,
        purpose: str,
        on_progress: ProgressObserver | Callable[[str], None] | None = None,
    ) -> VisaPolicy:
        """
        Research visa requirements with self-correction.

        Args:
            citizenship: Traveller's citizenship
            residency: Country of residence
            destination: Destination country
            purpose: Travel purpose label
            on_progress: Optional observer for stage labels

        Returns:
            VisaPolicy built from the selected attempt

        Raises:
            MalformedResponseError: If every attempt returned unparseable JSON
        """
        notify = on_progress or _ignore_progress
        try:
            self.consultant.reset()
            attempts: list[SearchAttempt] = []

            for index in range(self.max_retries + 1):
                if index == 0:
                    notify(STAGE_CONSULTING)
                    prompt = build_research_prompt(citizenship, residency, destination, purpose)
                else:
                    notify(stage_self_correcting(index))
                    previous = attempts[-1]
                    critique = previous.verification.reasoning
                    if previous.malformed:
                        critique = f"{MALFORMED_NOTE} {critique}".strip()
                    prompt = build_correction_prompt(critique)

                attempt = await self.run_attempt(index, prompt, notify)
                attempts.append(attempt)

                if not attempt.malformed and attempt.verification.score >= self.accept_score:
                    logger.info(f"Accepted attempt {index + 1} for {destination}")
                    notify(STAGE_ACCEPTED)
                    break

                if index < self.max_retries:
                    reason = (
                        "was malformed"
                        if attempt.malformed
                        else f"scored {attempt.verification.score} (< {self.accept_score})"
                    )
                    logger.warning(f"Attempt {index + 1} {reason}, retrying with critique")
            else:
                notify(STAGE_EXHAUSTED)

            if all(a.malformed for a in attempts):
                raise MalformedResponseError(
                    f"All {len(attempts)} attempts returned malformed JSON for {destination}"
                )

            chosen = self._select([a for a in attempts if not a.malformed])
            policy = self._build_policy(chosen, citizenship, residency, destination, purpose)
            notify(STAGE_DONE)
            return policy

        except Exception as e:
            logger.error(f"Visa search failed for {citizenship} -> {destination}: {e}")
            raise

    def _select(self, attempts: list[SearchAttempt]) -> SearchAttempt:
        """Pick the attempt to return.

        ``attempts`` holds only the parseable attempts.

        "last" returns the most recently corrected attempt even when an
        earlier one scored higher. "best" returns the highest score, earliest
        on ties.
        """
        if self.exhaustion_strategy == "best":
            return max(attempts, key=lambda a: (a.verification.score, -a.index))
        return attempts[-1]

    @staticmethod
    def _build_policy(
        attempt: SearchAttempt,
        citizenship: str,
        residency: str,
        destination: str,
        purpose: str,
    ) -> VisaPolicy:
        data = attempt.data

        summary = data.get("summary")
        timeline = data.get("timeline")
        steps = data.get("whatsNext")
        requirements = data.get("requirements")

        return VisaPolicy(
            country=destination,
            citizenship=citizenship,
            residency=residency,
            purpose=purpose,
            visa_status=VisaStatus.parse(data.get("visaStatus")),
            summary=summary if isinstance(summary, str) and summary else SUMMARY_PLACEHOLDER,
            whats_next=[
                VisaStep(
                    title=str(step.get("title") or ""),
                    description=str(step.get("description") or ""),
                )
                for step in (steps if isinstance(steps, list) else [])
                if isinstance(step, dict)
            ],
            timeline=timeline if isinstance(timeline, str) and timeline else TIMELINE_PLACEHOLDER,
            requirements=[
                str(item)
                for item in (requirements if isinstance(requirements, list) else [])
                if item not in (None, "")
            ],
            sources=attempt.sources,
            verification=attempt.verification,
        )
