"""Data models for the business rule overlay."""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from adjudication.models import ClaimDecision, ClaimRequest, EvidenceClause

from .thresholds import RuleThresholds


@dataclass(frozen=True)
class RuleHit:
    """A rule that forced the decision toward manual review."""

    rule_id: str
    description: str
    severity: str
    flag: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RuleContext:
    """Inputs required to evaluate overlay rules."""

    decision: ClaimDecision
    claim: ClaimRequest
    evidence: Sequence[EvidenceClause]
    thresholds: RuleThresholds


@dataclass(frozen=True)
class OverlayOutcome:
    decision: ClaimDecision
    hits: tuple[RuleHit, ...] = ()

    @property
    def flags(self) -> list[str]:
        return [hit.flag for hit in self.hits]
