"""Retrying wrapper around the decision engine.

The engine is an untrusted, fallible oracle: it may time out, fail in
transport, or return output with missing or malformed fields. This module
retries with backoff, validates structure after every attempt, and falls back
to a deterministic manual-review decision when all attempts fail. It never
raises past ``decide``.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from adjudicator_config import ADJUDICATOR_CONFIG, AdjudicatorConfig
from rules.thresholds import RuleThresholds

from .errors import DecisionUnavailable, PipelineError, ValidationFailure
from .models import ClaimDecision, ClaimRequest, DecisionStatus, EvidenceClause
from .ports import DecisionEngine, RawDecision

logger = logging.getLogger(__name__)

# Accepted spellings for each canonical field of a raw decision
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "status": ("status", "decision"),
    "explanation": ("explanation", "reasoning"),
    "confidence_score": ("confidence_score", "confidenceScore", "confidence"),
    "cited_clause_ids": (
        "cited_clause_ids",
        "citedClauseIds",
        "clauseReferences",
        "clause_references",
        "citations",
    ),
    "required_documents": ("required_documents", "requiredDocuments"),
}


class Severity(str, Enum):
    CRITICAL = "critical"  # triggers a retry
    SOFT = "soft"  # accepted, logged as a warning


@dataclass(frozen=True)
class StructuralIssue:
    severity: Severity
    message: str


Check = Callable[[dict[str, Any], AdjudicatorConfig], list[StructuralIssue]]


def canonicalize(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Map a raw decision onto canonical field names; absent fields are None."""
    canonical: dict[str, Any] = {}
    for name, aliases in FIELD_ALIASES.items():
        canonical[name] = next((raw[a] for a in aliases if a in raw), None)
    return canonical


def _critical(message: str) -> list[StructuralIssue]:
    return [StructuralIssue(Severity.CRITICAL, message)]


def _soft(message: str) -> list[StructuralIssue]:
    return [StructuralIssue(Severity.SOFT, message)]


def _as_float(value: Any) -> float | None:
    """Finite float for ``value``, or None; NaN and infinities count as non-numeric."""
    if isinstance(value, bool):
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    return score if math.isfinite(score) else None


def check_status(fields: dict[str, Any], config: AdjudicatorConfig) -> list[StructuralIssue]:
    value = fields["status"]
    if value is None:
        return _critical("status is missing")
    if DecisionStatus.parse(value) is None:
        allowed = ", ".join(s.value for s in DecisionStatus)
        return _critical(f"status {value!r} is not one of: {allowed}")
    return []


def check_explanation(
    fields: dict[str, Any], config: AdjudicatorConfig
) -> list[StructuralIssue]:
    value = fields["explanation"]
    if not isinstance(value, str) or not value.strip():
        return _critical("explanation is missing or empty")
    length = len(value.strip())
    if length < config.min_explanation_length:
        return _soft(f"explanation is very short ({length} chars)")
    if length > config.max_explanation_length:
        return _soft(
            f"explanation exceeds {config.max_explanation_length} chars and was truncated"
        )
    return []


def check_confidence(
    fields: dict[str, Any], config: AdjudicatorConfig
) -> list[StructuralIssue]:
    value = fields["confidence_score"]
    if value is None:
        return _critical("confidence score is missing")
    score = _as_float(value)
    if score is None:
        return _critical(f"confidence score {value!r} is not numeric")
    if not 0.0 <= score <= 1.0:
        return _soft(f"confidence score {score} outside [0, 1] was clamped")
    return []


def check_citations(
    fields: dict[str, Any], config: AdjudicatorConfig
) -> list[StructuralIssue]:
    status = DecisionStatus.parse(fields["status"])
    value = fields["cited_clause_ids"]
    needs_citations = status is not None and status.is_automated

    if value is None or (isinstance(value, list) and not value):
        if needs_citations:
            return _critical(f"'{status.value}' decision has no clause citations")
        return []
    if not isinstance(value, list):
        if needs_citations:
            return _critical("clause citations are not a list")
        return _soft("clause citations are not a list and were dropped")
    if not all(isinstance(cid, str) and cid.strip() for cid in value):
        return _critical("clause citations must be non-empty strings")
    return []


def check_required_documents(
    fields: dict[str, Any], config: AdjudicatorConfig
) -> list[StructuralIssue]:
    value = fields["required_documents"]
    if value is not None and not isinstance(value, list):
        return _soft("required documents are not a list and were dropped")
    return []


STRUCTURAL_CHECKS: tuple[Check, ...] = (
    check_status,
    check_explanation,
    check_confidence,
    check_citations,
    check_required_documents,
)


def validate_structure(
    raw: Mapping[str, Any], config: AdjudicatorConfig | None = None
) -> list[StructuralIssue]:
    """Run every structural check independently and collect their issues."""
    config = config or ADJUDICATOR_CONFIG
    fields = canonicalize(raw)
    issues: list[StructuralIssue] = []
    for check in STRUCTURAL_CHECKS:
        issues.extend(check(fields, config))
    return issues


def build_decision(
    raw: Mapping[str, Any], config: AdjudicatorConfig | None = None
) -> ClaimDecision:
    """Coerce a raw decision without critical issues into a ClaimDecision."""
    config = config or ADJUDICATOR_CONFIG
    fields = canonicalize(raw)

    status = DecisionStatus.parse(fields["status"])
    if status is None:
        raise ValidationFailure(f"unrecognised status {fields['status']!r}")

    explanation = str(fields["explanation"] or "").strip()
    explanation = explanation[: config.max_explanation_length]

    score = _as_float(fields["confidence_score"])
    confidence = RuleThresholds.clamp_score(score if score is not None else 0.0)

    citations = fields["cited_clause_ids"]
    cited: tuple[str, ...] = ()
    if isinstance(citations, list):
        cited = tuple(
            dict.fromkeys(
                cid.strip() for cid in citations if isinstance(cid, str) and cid.strip()
            )
        )

    documents = fields["required_documents"]
    required: tuple[str, ...] = ()
    if isinstance(documents, list):
        required = tuple(str(doc) for doc in documents if doc)

    return ClaimDecision(
        status=status,
        explanation=explanation,
        confidence_score=confidence,
        cited_clause_ids=cited,
        required_documents=required,
    )


class ResilientDecisionCoordinator:
    """Retry, validate and fall back around a DecisionEngine."""

    def __init__(
        self,
        engine: DecisionEngine,
        config: AdjudicatorConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.engine = engine
        self.config = config or ADJUDICATOR_CONFIG
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return max(1, self.config.max_retries)

    def backoff_delay(self, attempt: int) -> float:
        """Delay after a failed ``attempt`` (1-based); doubles each time."""
        return self.config.backoff_base_seconds * (2 ** (attempt - 1))

    async def decide(
        self, claim: ClaimRequest, evidence: Sequence[EvidenceClause]
    ) -> ClaimDecision:
        last_failure: PipelineError | None = None
        attempts = self.max_attempts
        attempt = 0

        for attempt in range(1, attempts + 1):
            try:
                raw = await asyncio.wait_for(
                    self.engine.generate(claim, list(evidence)),
                    timeout=self.config.attempt_timeout_seconds,
                )
            except asyncio.TimeoutError:
                last_failure = DecisionUnavailable(
                    f"attempt timed out after {self.config.attempt_timeout_seconds}s"
                )
            except PipelineError as e:
                last_failure = e
            except Exception as e:
                last_failure = DecisionUnavailable(f"{type(e).__name__}: {e}")
            else:
                decision = self._accept(raw)
                if isinstance(decision, ClaimDecision):
                    if attempt > 1:
                        logger.info(f"Decision accepted on attempt {attempt}/{attempts}")
                    return decision
                last_failure = decision

            logger.warning(
                f"Decision attempt {attempt}/{attempts} failed: "
                f"{last_failure.kind}: {last_failure}"
            )
            if not last_failure.retryable:
                break
            if attempt < attempts:
                await self._sleep(self.backoff_delay(attempt))

        return self.fallback(last_failure, attempt)

    def _accept(self, raw: RawDecision) -> ClaimDecision | ValidationFailure:
        if not isinstance(raw, Mapping):
            return ValidationFailure(
                f"engine returned {type(raw).__name__}, expected a JSON object"
            )

        issues = validate_structure(raw, self.config)
        critical = [i.message for i in issues if i.severity is Severity.CRITICAL]
        if critical:
            return ValidationFailure("; ".join(critical))

        for issue in issues:
            logger.warning(f"Decision accepted with structural warning: {issue.message}")
        return build_decision(raw, self.config)

    def fallback(
        self, failure: PipelineError | None, attempts: int | None = None
    ) -> ClaimDecision:
        """Deterministic manual-review decision naming the failure class."""
        kind = failure.kind if failure else DecisionUnavailable.kind
        detail = f": {failure}" if failure else ""
        attempts = attempts or self.max_attempts
        return ClaimDecision.manual_review(
            explanation=(
                f"Automated decision unavailable ({kind}) after {attempts} "
                f"attempt(s){detail}. Manual review required."
            ),
            required_documents=tuple(self.config.fallback_documents),
        )
