"""One-shot orchestrators: a single schema-constrained request per call."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from ..llm.protocols import Attachment, Message, MessageRole
from .errors import PassportExtractionError
from .models import (
    DocTemplate,
    DocumentItem,
    PassportDetails,
    SafetyTip,
    VisaPolicy,
    VisaPurpose,
    VisaStatus,
)
from .parsing import Malformed, parse_json, strip_code_fences, unwrap_or
from .schemas import CHECKLIST_SCHEMA, PASSPORT_SCHEMA, PURPOSES_SCHEMA, SAFETY_TIPS_SCHEMA

if TYPE_CHECKING:
    from ..agents.session import AgentSession
    from ..llm.protocols import LLMProvider

logger = logging.getLogger(__name__)

MAX_PURPOSES = 5
MAX_TIPS = 3

PASSPORT_PROMPT = """Analyze this image of a passport or identification document.
Extract the following information into a strict JSON object:
- fullName
- passportNumber
- citizenship
- dateOfBirth (YYYY-MM-DD)
- passportExpiry (YYYY-MM-DD)

If a field is not visible or cannot be read, return null.
Do not be strict about document validity; extract any text that looks like the requested fields."""


def _parse_items(text: str, model: type[BaseModel], label: str) -> list[Any]:
    """Parse a JSON array into ``model`` records, skipping unusable entries.

    Entries without an ``id`` get their 1-based position instead.
    """
    parsed = parse_json(text, [])
    if isinstance(parsed, Malformed):
        logger.warning(f"Malformed {label} response: {parsed.error}")
    items = []
    for position, entry in enumerate(unwrap_or(parsed, []), 1):
        if (
            isinstance(entry, dict)
            and "id" in model.model_fields
            and entry.get("id") in (None, "")
        ):
            entry = {**entry, "id": str(position)}
        try:
            items.append(model.model_validate(entry))
        except ValidationError:
            logger.debug(f"Skipping invalid {label} entry: {entry!r}")
    return items


async def suggest_purposes(
    consultant: AgentSession,
    citizenship: str,
    destination: str,
) -> list[VisaPurpose]:
    """
    Suggest common travel purposes for a citizenship/destination pair.

    Args:
        consultant: Consultant persona (reset before use)
        citizenship: Traveller's citizenship
        destination: Destination country

    Returns:
        Up to 5 purposes
    """
    consultant.reset()
    result = await consultant.run(
        f"Suggest {MAX_PURPOSES} common visa purposes for a {citizenship} citizen "
        f"visiting {destination}. Return JSON only.",
        PURPOSES_SCHEMA,
    )
    return _parse_items(result.text, VisaPurpose, "purposes")[:MAX_PURPOSES]


async def get_travel_advisory(
    advisor: AgentSession,
    destination: str,
) -> list[SafetyTip]:
    """
    Fetch safety and etiquette tips for a destination.

    Independent of the consultant's history, so it may run concurrently
    with a visa search.
    """
    advisor.reset()
    result = await advisor.run(
        f"Give me {MAX_TIPS} critical safety or cultural etiquette tips for a "
        f"tourist visiting {destination}.",
        SAFETY_TIPS_SCHEMA,
    )
    return _parse_items(result.text, SafetyTip, "advisory")[:MAX_TIPS]


def build_checklist_prompt(policy: VisaPolicy) -> str:
    if policy.visa_status == VisaStatus.VISA_FREE:
        scope = "Only entry docs (Passport, Ticket)."
    else:
        scope = "Full visa application docs."
    return (
        f"Generate a JSON checklist for {policy.country}. "
        f"Status: {policy.visa_status.value}. Purpose: {policy.purpose}. "
        f"Citizen of: {policy.citizenship}. Residing in: {policy.residency}.\n"
        f"{scope}"
    )


async def generate_checklist(
    drafter: AgentSession,
    policy: VisaPolicy,
) -> list[DocumentItem]:
    """
    Generate the document checklist for a finalized policy.

    Starts a new policy context on the drafter. Every item comes back with
    ``completed=False`` whatever the model emitted.
    """
    drafter.reset()
    result = await drafter.run(build_checklist_prompt(policy), CHECKLIST_SCHEMA)

    items = [
        item.model_copy(update={"completed": False})
        for item in _parse_items(result.text, DocumentItem, "checklist")
    ]
    logger.info(f"Generated {len(items)} checklist items for {policy.country}")
    return items


async def generate_document(
    drafter: AgentSession,
    template: DocTemplate,
    fields: dict[str, str],
) -> str:
    """
    Draft a document as free text.

    Continues the drafter's current policy context (no reset) so tone stays
    consistent with the checklist.
    """
    destination = fields.get("destination", "the destination country")
    result = await drafter.run(
        f"Write a {template.value} for {destination}.\n"
        f"Details: {json.dumps(fields, ensure_ascii=False)}.\n"
        "Format: Professional, formal tone.\n"
        "IMPORTANT: Do NOT include the top formal letter header block "
        "(Sender Name/Address, Phone, Email, Date, Recipient Address).\n"
        "Start directly with the Subject Line or Salutation."
    )
    return result.text


async def extract_passport_fields(
    provider: LLMProvider,
    image_base64: str,
    mime_type: str = "image/jpeg",
    model: str | None = None,
) -> PassportDetails:
    """
    Read identity fields from a passport image.

    Args:
        provider: LLM provider with vision support
        image_base64: Base64-encoded image
        mime_type: Image MIME type
        model: Optional vision model override

    Returns:
        PassportDetails; individual fields may be None

    Raises:
        PassportExtractionError: If neither name nor passport number was read
    """
    message = Message(
        role=MessageRole.USER,
        content=PASSPORT_PROMPT,
        attachments=[Attachment(data=image_base64, mime_type=mime_type)],
    )
    result = await provider.generate(
        [message],
        model=model,
        response_schema=PASSPORT_SCHEMA,
    )

    parsed = parse_json(strip_code_fences(result.text or ""), {})
    if isinstance(parsed, Malformed):
        logger.warning(f"Malformed passport response: {parsed.error}")

    data = unwrap_or(parsed, {})
    details = PassportDetails.model_validate(
        {key: data.get(key) for key in PASSPORT_SCHEMA["properties"]}
    )

    if not details.full_name and not details.passport_number:
        raise PassportExtractionError(
            "Could not extract passport details. The image might be too blurry or obscure."
        )

    logger.info("Extracted passport details from image")
    return details
