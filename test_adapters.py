"""
Adapter Tests

Request/response mapping for the Gemini and OpenRouter adapters, with the
network clients replaced by fakes.
"""

import base64
from types import SimpleNamespace

import pytest

from visavoyager.llm import (
    Attachment,
    Capability,
    GeminiAdapter,
    LLMProvider,
    Message,
    MessageRole,
    OpenRouterAdapter,
)
from visavoyager.orchestration.reconciler import grounding_sources


def test_adapters_satisfy_protocol():
    from visavoyager.config import MockLLMProvider

    assert isinstance(GeminiAdapter(api_key="gm-test-key"), LLMProvider)
    assert isinstance(OpenRouterAdapter(api_key="or-test-key"), LLMProvider)
    assert isinstance(MockLLMProvider(), LLMProvider)


def test_gemini_requires_context_manager():
    adapter = GeminiAdapter(api_key="gm-test-key")

    with pytest.raises(RuntimeError, match="async with"):
        adapter.client


def test_gemini_tool_mapping():
    tools = GeminiAdapter._to_tools((Capability.WEB_SEARCH, Capability.MAP_LOOKUP))

    assert tools[0].google_search is not None
    assert tools[1].google_maps is not None
    assert GeminiAdapter._to_tools(()) is None


def test_gemini_content_with_image():
    image = base64.b64encode(b"\xff\xd8jpeg").decode()
    message = Message(
        role=MessageRole.USER,
        content="Read this passport",
        attachments=[Attachment(data=image, mime_type="image/jpeg")],
    )

    content = GeminiAdapter._to_content(message)

    assert content.role == "user"
    assert content.parts[0].inline_data.data == b"\xff\xd8jpeg"
    assert content.parts[0].inline_data.mime_type == "image/jpeg"
    assert content.parts[1].text == "Read this passport"


def test_openrouter_message_format():
    assistant = OpenRouterAdapter._format_message(Message(role=MessageRole.MODEL, content="Hi"))
    with_image = OpenRouterAdapter._format_message(
        Message(
            role=MessageRole.USER,
            content="Read this",
            attachments=[Attachment(data="aGVsbG8=", mime_type="image/png")],
        )
    )

    assert assistant == {"role": "assistant", "content": "Hi"}
    assert with_image["content"][0]["image_url"]["url"] == "data:image/png;base64,aGVsbG8="
    assert with_image["content"][1] == {"type": "text", "text": "Read this"}


async def test_openrouter_citations_become_grounding_chunks():
    """Test that url_citation annotations reach the source reconciler."""
    captured = {}

    async def create(**kwargs):
        captured.update(kwargs)
        message = SimpleNamespace(
            content='{"visaStatus": "visa_free"}',
            annotations=[
                SimpleNamespace(
                    type="url_citation",
                    url_citation=SimpleNamespace(title="GOV.UK", url="https://www.gov.uk/"),
                )
            ],
        )
        return SimpleNamespace(
            id="gen-1",
            model="google/gemini-2.5-flash",
            choices=[SimpleNamespace(message=message)],
            usage=None,
        )

    adapter = OpenRouterAdapter(api_key="or-test-key")
    adapter._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

    result = await adapter.generate(
        [Message(role=MessageRole.USER, content="UK visa rules")],
        system_prompt="Be accurate.",
        tools=(Capability.WEB_SEARCH, Capability.MAP_LOOKUP),
        response_schema={"type": "object"},
        temperature=0.1,
    )

    assert result.text == '{"visaStatus": "visa_free"}'
    assert [s.uri for s in grounding_sources(result.raw)] == ["https://www.gov.uk/"]
    assert result.raw["id"] == "gen-1"

    assert captured["messages"][0] == {"role": "system", "content": "Be accurate."}
    assert captured["extra_body"] == {"plugins": [{"id": "web"}]}
    assert captured["response_format"]["json_schema"]["schema"] == {"type": "object"}
    assert captured["temperature"] == 0.1
