"""
Evaluator Tests

The auditor must never raise on its own bad output.
"""

import pytest

from visavoyager.config import EvaluatorConfig, MockLLMProvider
from visavoyager.orchestration import Evaluator, Verification


async def test_evaluate_parses_verdict():
    provider = MockLLMProvider(['{"score": 8.5, "pass": true, "reasoning": "Well sourced."}'])
    evaluator = Evaluator(provider)

    verification = await evaluator.evaluate('{"visaStatus": "visa_free"}', "Is it complete?")

    assert verification.score == 8.5
    assert verification.passed is True
    assert verification.reasoning == "Well sourced."


@pytest.mark.parametrize(
    "reply",
    [
        "I think this is a 7/10",
        '["score", 9]',
        '{"pass": true, "reasoning": "No score given"}',
        '{"score": "high", "pass": true}',
        '{"score": NaN, "pass": true, "reasoning": "ok"}',
    ],
)
async def test_unusable_output_fails_safe(reply):
    """Test that unparseable auditor output degrades to a zero verdict."""
    evaluator = Evaluator(MockLLMProvider([reply]))

    verification = await evaluator.evaluate("{}", "criteria")

    assert verification == Verification.failed()
    assert verification.score == 0
    assert verification.passed is False
    assert verification.reasoning == "Evaluation failed"


async def test_transport_errors_propagate():
    evaluator = Evaluator(MockLLMProvider([ConnectionError("unreachable")]))

    with pytest.raises(ConnectionError):
        await evaluator.evaluate("{}", "criteria")


async def test_content_is_truncated():
    provider = MockLLMProvider()
    evaluator = Evaluator(provider, EvaluatorConfig(max_content_chars=10))

    await evaluator.evaluate("A" * 50, "criteria")

    prompt = provider.calls[0].prompt
    assert "A" * 10 in prompt
    assert "A" * 11 not in prompt
    assert '"criteria"' in prompt


async def test_evaluation_is_stateless():
    provider = MockLLMProvider()
    evaluator = Evaluator(provider, EvaluatorConfig(model="judge-model"))

    await evaluator.evaluate("first", "criteria")
    await evaluator.evaluate("second", "criteria")

    for call in provider.calls:
        assert len(call.messages) == 1
        assert call.system_prompt is None
        assert call.tools == ()
        assert call.model == "judge-model"
        assert call.response_schema["required"] == ["score", "pass", "reasoning"]
    assert "first" not in provider.calls[1].prompt
