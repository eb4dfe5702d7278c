"""
One-Shot Task Tests

Purposes, travel advisory, checklist, document drafting and passport
extraction, plus the combined search + advisory run.
"""

import asyncio
import base64
import json

import pytest

from visavoyager.agents import ADVISOR_INSTRUCTION, CONSULTANT_INSTRUCTION, create_personas
from visavoyager.config import MockLLMProvider, MockReply, ProfileConfig, ProviderConfig, create_from_profile
from visavoyager.llm import Capability
from visavoyager.orchestration import (
    ConfidenceTier,
    DocTemplate,
    PassportDetails,
    PassportExtractionError,
    UserProfile,
    Verification,
    VisaPolicy,
    VisaStatus,
)
from visavoyager.orchestration import tasks
from visavoyager.orchestration.parsing import Malformed, Ok, parse_json, strip_code_fences


def make_policy(status=VisaStatus.VISA_REQUIRED) -> VisaPolicy:
    return VisaPolicy(
        country="Germany",
        citizenship="India",
        residency="United Arab Emirates",
        purpose="Business",
        visa_status=status,
        summary="Schengen C visa required.",
        timeline="15 days",
        verification=Verification(score=9, passed=True, reasoning="ok"),
    )


def make_voyager(provider):
    return create_from_profile(ProfileConfig(provider=ProviderConfig(backend="mock")), provider=provider)


async def test_suggest_purposes_caps_at_five():
    purposes = [{"id": f"p{i}", "label": f"Purpose {i}", "description": "..."} for i in range(8)]
    provider = MockLLMProvider([json.dumps(purposes)])
    personas = create_personas(provider)

    result = await tasks.suggest_purposes(personas.consultant, "Canada", "Japan")

    assert [p.id for p in result] == ["p0", "p1", "p2", "p3", "p4"]
    assert provider.calls[0].tools == (Capability.WEB_SEARCH, Capability.MAP_LOOKUP)
    assert "Canada" in provider.calls[0].prompt


async def test_suggest_purposes_degrades_to_empty():
    provider = MockLLMProvider(["Tourism, Business, Study", "", json.dumps([{"id": "no-label"}])])
    personas = create_personas(provider)

    assert await tasks.suggest_purposes(personas.consultant, "Canada", "Japan") == []
    assert await tasks.suggest_purposes(personas.consultant, "Canada", "Japan") == []
    assert await tasks.suggest_purposes(personas.consultant, "Canada", "Japan") == []


async def test_travel_advisory_caps_at_three():
    tips = [{"category": "Etiquette", "tip": f"Tip {i}"} for i in range(5)]
    provider = MockLLMProvider([json.dumps(tips)])
    personas = create_personas(provider)

    result = await tasks.get_travel_advisory(personas.advisor, "Japan")

    assert [t.tip for t in result] == ["Tip 0", "Tip 1", "Tip 2"]
    assert provider.calls[0].system_prompt == ADVISOR_INSTRUCTION


async def test_checklist_items_start_incomplete():
    items = [
        {"id": "passport", "name": "Passport", "description": "Valid 6 months", "isRequired": True, "completed": True},
        {"id": "photos", "name": "Photos", "description": "Two biometric photos", "isRequired": False},
    ]
    provider = MockLLMProvider([json.dumps(items)])
    personas = create_personas(provider)

    result = await tasks.generate_checklist(personas.drafter, make_policy())

    assert [i.id for i in result] == ["passport", "photos"]
    assert all(i.completed is False for i in result)
    assert result[1].required is False
    assert "Full visa application docs." in provider.calls[0].prompt


async def test_checklist_keeps_items_with_missing_or_numeric_ids():
    items = [
        {"name": "Passport", "description": "Valid 6 months", "isRequired": True},
        {"id": 2, "name": "Photos"},
        {"id": None, "name": "Bank statements", "isRequired": False},
    ]
    provider = MockLLMProvider([json.dumps(items)])
    personas = create_personas(provider)

    result = await tasks.generate_checklist(personas.drafter, make_policy())

    assert [i.id for i in result] == ["1", "2", "3"]
    assert [i.name for i in result] == ["Passport", "Photos", "Bank statements"]
    assert provider.calls[0].response_schema["items"]["required"] == [
        "id",
        "name",
        "description",
        "isRequired",
    ]


async def test_purposes_keep_numeric_ids():
    provider = MockLLMProvider([json.dumps([{"id": 1, "label": "Tourism"}, {"label": "Business"}])])
    personas = create_personas(provider)

    result = await tasks.suggest_purposes(personas.consultant, "Canada", "Japan")

    assert [(p.id, p.label) for p in result] == [("1", "Tourism"), ("2", "Business")]
    assert provider.calls[0].response_schema["items"]["required"] == ["id", "label"]


def test_checklist_prompt_for_visa_free():
    prompt = tasks.build_checklist_prompt(make_policy(VisaStatus.VISA_FREE))

    assert "Only entry docs (Passport, Ticket)." in prompt
    assert "Full visa application docs." not in prompt


async def test_document_continues_checklist_context():
    """Test that drafting keeps the checklist exchange in the drafter's history."""
    provider = MockLLMProvider(["[]", "Subject: Application for a Schengen visa\n\nDear Officer,"])
    voyager = make_voyager(provider)

    await voyager.generate_checklist(make_policy())
    letter = await voyager.generate_document(
        "cover-letter", {"destination": "Germany", "name": "Asha Rao"}
    )

    assert letter.startswith("Subject:")
    drafting_call = provider.calls[1]
    assert len(drafting_call.messages) == 3
    assert "cover-letter for Germany" in drafting_call.prompt
    assert '"name": "Asha Rao"' in drafting_call.prompt
    assert drafting_call.response_schema is None


async def test_checklist_resets_drafter():
    provider = MockLLMProvider(["[]", "letter", "[]"])
    voyager = make_voyager(provider)

    await voyager.generate_checklist(make_policy())
    await voyager.generate_document(DocTemplate.ITINERARY, {})
    await voyager.generate_checklist(make_policy())

    assert len(provider.calls[2].messages) == 1


async def test_passport_extraction_strips_fences():
    reply = '```json\n{"fullName": "ASHA RAO", "passportNumber": "Z1234567", "citizenship": "India", "dateOfBirth": "1990-04-12", "passportExpiry": "2031-01-01"}\n```'
    provider = MockLLMProvider([reply])
    voyager = make_voyager(provider)

    details = await voyager.extract_passport_fields(b"\xff\xd8fake-jpeg", "image/png")

    assert details.full_name == "ASHA RAO"
    assert details.passport_number == "Z1234567"
    assert details.passport_expiry == "2031-01-01"

    call = provider.calls[0]
    assert len(call.messages) == 1
    attachment = call.messages[0].attachments[0]
    assert attachment.mime_type == "image/png"
    assert base64.b64decode(attachment.data) == b"\xff\xd8fake-jpeg"


async def test_passport_partial_data_is_ok():
    provider = MockLLMProvider(['{"fullName": null, "passportNumber": "Z1234567", "citizenship": ""}'])

    details = await tasks.extract_passport_fields(provider, "aGVsbG8=")

    assert details.full_name is None
    assert details.passport_number == "Z1234567"
    assert details.citizenship is None


@pytest.mark.parametrize(
    "reply",
    [
        '{"fullName": null, "passportNumber": null, "citizenship": "India"}',
        "The image is too blurry to read.",
        "",
    ],
)
async def test_passport_extraction_fails_without_anchor_fields(reply):
    provider = MockLLMProvider([reply])

    with pytest.raises(PassportExtractionError, match="too blurry"):
        await tasks.extract_passport_fields(provider, "aGVsbG8=")


async def test_search_with_advisory_runs_concurrently():
    """Test the combined run; routing by persona keeps it order independent."""
    in_flight = {"count": 0, "peak": 0}

    class SlowProvider(MockLLMProvider):
        async def generate(self, messages, **kwargs):
            in_flight["count"] += 1
            in_flight["peak"] = max(in_flight["peak"], in_flight["count"])
            await asyncio.sleep(0.01)
            try:
                return await super().generate(messages, **kwargs)
            finally:
                in_flight["count"] -= 1

    def responder(request):
        if request.system_prompt == CONSULTANT_INSTRUCTION:
            return MockReply(
                json.dumps({"visaStatus": "e_visa", "summary": "Apply online.", "timeline": "5 days"}),
                sources=[("eVisa portal", "https://evisa.example.gov/")],
            )
        if request.system_prompt == ADVISOR_INSTRUCTION:
            return json.dumps([{"category": "Safety", "tip": "Keep copies of documents."}])
        return json.dumps({"score": 9, "pass": True, "reasoning": "Sourced."})

    provider = SlowProvider(responder=responder)
    voyager = make_voyager(provider)

    policy = await voyager.search_with_advisory("India", "India", "Turkey", "Tourism")

    assert policy.visa_status == VisaStatus.E_VISA
    assert policy.verification.score == 9
    assert [t.tip for t in policy.travel_tips] == ["Keep copies of documents."]
    assert in_flight["peak"] >= 2


async def test_failed_search_cancels_advisory():
    """Test that the advisory request does not outlive a failed search."""
    advisory_cancelled = asyncio.Event()

    class HangingAdvisorProvider(MockLLMProvider):
        async def generate(self, messages, **kwargs):
            if kwargs.get("system_prompt") == ADVISOR_INSTRUCTION:
                try:
                    await asyncio.Event().wait()
                except asyncio.CancelledError:
                    advisory_cancelled.set()
                    raise
            return await super().generate(messages, **kwargs)

    provider = HangingAdvisorProvider([RuntimeError("search backend down")])
    voyager = make_voyager(provider)

    with pytest.raises(RuntimeError, match="search backend down"):
        await voyager.search_with_advisory("India", "India", "Turkey", "Tourism")

    assert advisory_cancelled.is_set()


def test_user_profile_merge():
    profile = UserProfile(citizenship="Canada", residency="Canada", full_name="Old Name", email="a@b.c")
    details = PassportDetails(full_name="New Name", passport_number="AB123456", citizenship=None)

    merged = profile.merge(details)

    assert merged.full_name == "New Name"
    assert merged.passport_number == "AB123456"
    assert merged.citizenship == "Canada"
    assert merged.email == "a@b.c"
    assert profile.full_name == "Old Name"


def test_visa_status_labels():
    assert VisaStatus.parse("E-Visa") == VisaStatus.E_VISA
    assert VisaStatus.parse("on arrival") == VisaStatus.ON_ARRIVAL
    assert VisaStatus.parse(None) == VisaStatus.UNKNOWN
    assert VisaStatus.E_VISA.label == "E-Visa Required"
    assert VisaStatus.UNKNOWN.label == "Status Unknown"


def test_confidence_tiers():
    assert ConfidenceTier.from_score(0) == ConfidenceTier.CRITICAL
    assert ConfidenceTier.from_score(2.9) == ConfidenceTier.CRITICAL
    assert ConfidenceTier.from_score(3) == ConfidenceTier.PRELIMINARY
    assert ConfidenceTier.from_score(7.9) == ConfidenceTier.PRELIMINARY
    assert ConfidenceTier.from_score(8) == ConfidenceTier.HIGH


def test_parse_helpers():
    assert strip_code_fences("```json\n[1, 2]\n```") == "[1, 2]"
    assert strip_code_fences("```\n{}\n```") == "{}"
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'

    assert parse_json("  ", []) == Ok([])
    assert parse_json(None, {}) == Ok({})
    assert parse_json('{"a": 1}', {}) == Ok({"a": 1})
    assert isinstance(parse_json("[1]", {}), Malformed)
    assert isinstance(parse_json("{oops", {}), Malformed)
