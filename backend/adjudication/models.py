"""Data models for the claim decision pipeline."""
from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any


class DecisionStatus(str, Enum):
    """Adjudication outcome."""

    COVERED = "Covered"
    NOT_COVERED = "Not Covered"
    MANUAL_REVIEW = "Manual Review"

    @classmethod
    def parse(cls, value: Any) -> DecisionStatus | None:
        """Map the spellings LLMs tend to produce onto a status.

        Returns None when the value is not recognised.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        key = "".join(ch for ch in value.lower() if ch.isalpha())
        return _STATUS_ALIASES.get(key)

    @property
    def is_automated(self) -> bool:
        return self is not DecisionStatus.MANUAL_REVIEW


_STATUS_ALIASES: dict[str, DecisionStatus] = {
    "covered": DecisionStatus.COVERED,
    "approved": DecisionStatus.COVERED,
    "notcovered": DecisionStatus.NOT_COVERED,
    "denied": DecisionStatus.NOT_COVERED,
    "rejected": DecisionStatus.NOT_COVERED,
    "manualreview": DecisionStatus.MANUAL_REVIEW,
    "needsmanualreview": DecisionStatus.MANUAL_REVIEW,
    "review": DecisionStatus.MANUAL_REVIEW,
}

# Conservative document list attached to every fallback decision
DEFAULT_REVIEW_DOCUMENTS: tuple[str, ...] = ("Policy Document", "Claim Evidence")


@dataclass(frozen=True)
class ClaimRequest:
    """An inbound claim submitted for adjudication."""

    policy_number: str
    description: str
    amount: Decimal
    policy_type: str = "Motor"

    def __post_init__(self) -> None:
        if not self.policy_number or not self.policy_number.strip():
            raise ValueError("policy_number is required")
        if not isinstance(self.amount, Decimal):
            try:
                object.__setattr__(self, "amount", Decimal(str(self.amount)))
            except InvalidOperation as e:
                raise ValueError(f"amount is not a number: {self.amount!r}") from e
        if not self.amount.is_finite():
            raise ValueError(f"amount must be finite: {self.amount!r}")
        if self.amount < 0:
            raise ValueError("amount must be >= 0")

    def to_dict(self) -> dict[str, Any]:
        return {
            "policy_number": self.policy_number,
            "description": self.description,
            "amount": str(self.amount),
            "policy_type": self.policy_type,
        }


@dataclass(frozen=True)
class EvidenceClause:
    """A retrieved policy passage used to ground a decision."""

    id: str
    text: str
    category: str
    relevance_score: float = 0.0


@dataclass(frozen=True)
class ThreatReport:
    is_clean: bool
    threats: tuple[str, ...] = ()

    @classmethod
    def from_threats(cls, threats: list[str]) -> ThreatReport:
        return cls(is_clean=not threats, threats=tuple(threats))


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of a validation pass with errors, warnings and status."""

    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    warning_message: str | None = None

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings) or bool(self.warning_message)

    def summary(self) -> str:
        if self.is_valid and not self.has_warnings:
            return "Validation passed"
        if self.is_valid:
            return f"Validation passed with {len(self.warnings)} warning(s)"
        return f"Validation failed with {len(self.errors)} error(s)"

    def all_issues(self) -> list[str]:
        issues = [f"ERROR: {e}" for e in self.errors]
        issues.extend(f"WARNING: {w}" for w in self.warnings)
        if self.warning_message:
            issues.append(f"WARNING: {self.warning_message}")
        return issues


@dataclass(frozen=True)
class ClaimDecision:
    """Adjudication decision.

    Stages never mutate a decision; they derive a new one with
    ``dataclasses.replace`` (see ``escalate``/``prepend_reason``).
    """

    status: DecisionStatus
    explanation: str
    confidence_score: float = 0.0
    cited_clause_ids: tuple[str, ...] = ()
    required_documents: tuple[str, ...] = ()

    @classmethod
    def manual_review(
        cls,
        explanation: str,
        required_documents: tuple[str, ...] = DEFAULT_REVIEW_DOCUMENTS,
        cited_clause_ids: tuple[str, ...] = (),
    ) -> ClaimDecision:
        return cls(
            status=DecisionStatus.MANUAL_REVIEW,
            explanation=explanation,
            confidence_score=0.0,
            cited_clause_ids=cited_clause_ids,
            required_documents=tuple(required_documents),
        )

    def prepend_reason(self, reason: str) -> ClaimDecision:
        explanation = f"{reason} {self.explanation}".strip()
        return replace(self, explanation=explanation)

    def escalate(self, reason: str) -> ClaimDecision:
        """Move to manual review, keeping the prior explanation after ``reason``."""
        return replace(
            self.prepend_reason(reason), status=DecisionStatus.MANUAL_REVIEW
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "explanation": self.explanation,
            "confidence_score": self.confidence_score,
            "cited_clause_ids": list(self.cited_clause_ids),
            "required_documents": list(self.required_documents),
        }


@dataclass(frozen=True)
class Contradiction:
    """Inconsistency between two sources of claim information."""

    source_a: str
    source_b: str
    description: str
    impact: str
    severity: str = "Medium"

    @property
    def is_critical(self) -> bool:
        return self.severity in ("Critical", "High")

    def summary(self) -> str:
        return (
            f"[{self.severity}] {self.description} - {self.source_a} conflicts "
            f"with {self.source_b}. Impact: {self.impact}"
        )


@dataclass(frozen=True)
class AuditRecord:
    """Immutable snapshot of one pipeline run."""

    claim: ClaimRequest
    decision: ClaimDecision
    evidence: tuple[EvidenceClause, ...]
    processing_ms: float
    outcome: str = "completed"
    contradictions: tuple[Contradiction, ...] = ()
    audit_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "audit_id": self.audit_id,
            "timestamp": self.timestamp,
            "claim": self.claim.to_dict(),
            "decision": self.decision.to_dict(),
            "evidence": [asdict(clause) for clause in self.evidence],
            "processing_ms": self.processing_ms,
            "outcome": self.outcome,
            "contradictions": [asdict(c) for c in self.contradictions],
        }
