"""Tests for the Claude decision engine with a mocked Anthropic client."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from adjudication.errors import DecisionUnavailable, EngineNotConfigured, ValidationFailure
from adjudicator_config import ADJUDICATOR_SYSTEM_PROMPT, AdjudicatorConfig
from claude_client import (
    ClaudeDecisionEngine,
    build_decision_prompt,
    format_evidence,
    parse_structured_response,
)

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def make_client(text: str | None = None, error: Exception | None = None) -> MagicMock:
    client = MagicMock()
    if error is not None:
        client.messages.create = AsyncMock(side_effect=error)
    else:
        response = SimpleNamespace(
            content=[SimpleNamespace(text=text)],
            usage=SimpleNamespace(input_tokens=120, output_tokens=40),
        )
        client.messages.create = AsyncMock(return_value=response)
    return client


class TestParseStructuredResponse:
    def test_raw_json(self):
        assert parse_structured_response('{"status": "Covered"}') == {"status": "Covered"}

    def test_markdown_code_block(self):
        text = 'Here you go:\n```json\n{"status": "Not Covered"}\n```\nThanks'
        assert parse_structured_response(text) == {"status": "Not Covered"}

    def test_json_embedded_in_prose(self):
        text = 'My answer is {"status": "Manual Review", "confidence": 0.4} as requested.'
        assert parse_structured_response(text)["status"] == "Manual Review"

    @pytest.mark.parametrize("text", ["", "not json at all", "[1, 2, 3]"])
    def test_unparseable_returns_none(self, text):
        assert parse_structured_response(text) is None


class TestPrompt:
    def test_policy_number_is_masked(self, motor_claim, motor_evidence):
        prompt = build_decision_prompt(motor_claim, motor_evidence)

        assert "POL-2024-001234" not in prompt
        assert "****1234" in prompt

    def test_description_is_fenced_and_clauses_bracketed(self, motor_claim, motor_evidence):
        prompt = build_decision_prompt(motor_claim, motor_evidence)

        assert f"<claim_description>\n{motor_claim.description}\n</claim_description>" in prompt
        assert "[MOT-001] Collision:" in prompt
        assert "[MOT-003] Exclusions:" in prompt

    def test_empty_evidence(self):
        assert format_evidence([]) == "No policy clauses available."


class TestClaudeDecisionEngine:
    @pytest.mark.asyncio
    async def test_generate_returns_parsed_reply(self, motor_claim, motor_evidence):
        client = make_client('{"status": "Covered", "clauseReferences": ["MOT-001"]}')
        config = AdjudicatorConfig(model="claude-test", max_tokens=256)
        engine = ClaudeDecisionEngine(config=config, client=client)

        reply = await engine.generate(motor_claim, motor_evidence)

        assert reply == {"status": "Covered", "clauseReferences": ["MOT-001"]}
        kwargs = client.messages.create.await_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["max_tokens"] == 256
        assert kwargs["temperature"] == 0.0
        assert kwargs["system"] == ADJUDICATOR_SYSTEM_PROMPT
        assert "****1234" in kwargs["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_non_json_reply_is_validation_failure(self, motor_claim, motor_evidence):
        engine = ClaudeDecisionEngine(client=make_client("I cannot decide this claim."))

        with pytest.raises(ValidationFailure):
            await engine.generate(motor_claim, motor_evidence)

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch, motor_claim, motor_evidence):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        engine = ClaudeDecisionEngine()

        assert not engine.is_configured
        with pytest.raises(EngineNotConfigured) as exc_info:
            await engine.generate(motor_claim, motor_evidence)
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_authentication_error_is_not_retryable(self, motor_claim, motor_evidence):
        error = anthropic.AuthenticationError(
            "invalid x-api-key",
            response=httpx.Response(401, request=_REQUEST),
            body=None,
        )
        engine = ClaudeDecisionEngine(client=make_client(error=error))

        with pytest.raises(DecisionUnavailable) as exc_info:
            await engine.generate(motor_claim, motor_evidence)
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_connection_error_is_retryable(self, motor_claim, motor_evidence):
        error = anthropic.APIConnectionError(request=_REQUEST)
        engine = ClaudeDecisionEngine(client=make_client(error=error))

        with pytest.raises(DecisionUnavailable) as exc_info:
            await engine.generate(motor_claim, motor_evidence)
        assert exc_info.value.retryable is True
        assert "Claude API error" in str(exc_info.value)


class TestAdjudicatorConfig:
    def test_from_env_overrides(self, monkeypatch):
        monkeypatch.setenv("ADJUDICATOR_MAX_RETRIES", "5")
        monkeypatch.setenv("ADJUDICATOR_ATTEMPT_TIMEOUT_SECONDS", "2.5")

        config = AdjudicatorConfig.from_env()

        assert config.max_retries == 5
        assert config.attempt_timeout_seconds == 2.5
        assert config.backoff_base_seconds == 1.0
