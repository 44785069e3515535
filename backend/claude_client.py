"""Claude API client implementing the claim decision engine.

The engine only builds the prompt, calls the model and extracts the JSON
payload. Structural validation, retries and fallbacks are the job of
``adjudication.coordinator.ResilientDecisionCoordinator``.
"""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Sequence
from typing import Any

import anthropic

from adjudication.errors import DecisionUnavailable, EngineNotConfigured, ValidationFailure
from adjudication.models import ClaimRequest, EvidenceClause
from adjudication.ports import RawDecision
from adjudicator_config import (
    ADJUDICATOR_CONFIG,
    ADJUDICATOR_JSON_PROMPT,
    ADJUDICATOR_SYSTEM_PROMPT,
    AdjudicatorConfig,
)
from security.pii import mask_policy_number

logger = logging.getLogger(__name__)

# Client-side errors that will fail identically on every retry
_NON_RETRYABLE_ERRORS = (
    anthropic.AuthenticationError,
    anthropic.PermissionDeniedError,
    anthropic.BadRequestError,
    anthropic.NotFoundError,
)


def parse_structured_response(text: str) -> dict[str, Any] | None:
    """Parse structured JSON response from Claude.

    Attempts to extract JSON from Claude's response, handling various formats
    including markdown code blocks and raw JSON.

    Args:
        text: The raw response text from Claude

    Returns:
        Parsed JSON dictionary or None if parsing fails
    """
    if not text:
        return None

    candidates: list[str] = []

    # JSON in markdown code blocks
    json_match = re.search(r"```(?:json)?\s*([\s\S]*?)```", text)
    if json_match:
        candidates.append(json_match.group(1).strip())

    # The entire response
    candidates.append(text.strip())

    # First-to-last brace span
    json_match = re.search(r"\{[\s\S]*\}", text)
    if json_match:
        candidates.append(json_match.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    return None


def format_evidence(evidence: Sequence[EvidenceClause]) -> str:
    """Format clauses with bracketed ids the model must cite."""
    if not evidence:
        return "No policy clauses available."
    return "\n\n".join(
        f"[{clause.id}] {clause.category}: {clause.text}" for clause in evidence
    )


def build_decision_prompt(
    claim: ClaimRequest, evidence: Sequence[EvidenceClause]
) -> str:
    """Build the user prompt for a claim decision.

    The claimant's description is fenced in tags so the model treats it as
    data. The policy number is masked; the model has no use for it.
    """
    return f"""Validate this insurance claim against the policy clauses below.

## Claim
- Policy Number: {mask_policy_number(claim.policy_number)}
- Policy Type: {claim.policy_type}
- Claim Amount: ${claim.amount}

<claim_description>
{claim.description}
</claim_description>

## Policy Clauses
{format_evidence(evidence)}

{ADJUDICATOR_JSON_PROMPT}"""


class ClaudeDecisionEngine:
    """DecisionEngine backed by the Anthropic Messages API."""

    def __init__(
        self,
        config: AdjudicatorConfig | None = None,
        api_key: str | None = None,
        client: Any = None,
    ) -> None:
        self.config = config or ADJUDICATOR_CONFIG
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self._api_key)

    def _get_client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise EngineNotConfigured(
                    "Anthropic API key not configured; automated decisions unavailable"
                )
            self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        return self._client

    async def generate(
        self, claim: ClaimRequest, evidence: list[EvidenceClause]
    ) -> RawDecision:
        client = self._get_client()
        prompt = build_decision_prompt(claim, evidence)

        try:
            response = await client.messages.create(
                model=self.config.model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                system=ADJUDICATOR_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
        except _NON_RETRYABLE_ERRORS as e:
            raise DecisionUnavailable(f"Claude API error: {e!s}", retryable=False) from e
        except anthropic.APIError as e:
            raise DecisionUnavailable(f"Claude API error: {e!s}") from e

        content = response.content[0].text if response.content else ""
        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.debug(
                f"Decision generated with {self.config.model}: "
                f"{usage.input_tokens + usage.output_tokens} tokens"
            )

        structured = parse_structured_response(content)
        if structured is None:
            raise ValidationFailure(
                f"Model reply was not valid JSON ({len(content)} chars)"
            )
        return structured
