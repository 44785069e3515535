"""Business rules applied after the LLM decision.

Each rule can only move a decision toward manual review. Rules run in the
order they are registered here.
"""

from __future__ import annotations

from adjudication.models import DecisionStatus

from .models import RuleContext, RuleHit
from .registry import RuleRegistry


def confidence_floor_rule(context: RuleContext) -> RuleHit | None:
    """Low model confidence always requires a human."""
    score = context.decision.confidence_score
    floor = context.thresholds.confidence_floor
    if score >= floor:
        return None
    return RuleHit(
        rule_id="CONFIDENCE_FLOOR",
        description=f"Confidence below threshold ({score:.2f} < {floor}).",
        severity="medium",
        flag="low_confidence",
        metadata={"confidence": score, "threshold": floor},
    )


def amount_ceiling_rule(context: RuleContext) -> RuleHit | None:
    """High-value approvals are never automated."""
    amount = context.claim.amount
    ceiling = context.thresholds.auto_approval_ceiling
    if context.decision.status is not DecisionStatus.COVERED or amount <= ceiling:
        return None
    return RuleHit(
        rule_id="AUTO_APPROVAL_CEILING",
        description=f"Amount ${amount} exceeds auto-approval limit of ${ceiling}.",
        severity="high",
        flag="amount_over_ceiling",
        metadata={"amount": str(amount), "ceiling": str(ceiling)},
    )


def exclusion_clause_rule(context: RuleContext) -> RuleHit | None:
    """An approval that cites exclusion language needs a second look."""
    if context.decision.status is not DecisionStatus.COVERED:
        return None

    markers = context.thresholds.exclusion_markers
    cited_ids = set(context.decision.cited_clause_ids)

    flagged: list[str] = [
        cid for cid in context.decision.cited_clause_ids
        if any(m in cid.lower() for m in markers)
    ]
    for clause in context.evidence:
        if clause.id not in cited_ids or clause.id in flagged:
            continue
        haystack = f"{clause.category} {clause.text}".lower()
        if any(m in haystack for m in markers):
            flagged.append(clause.id)

    if not flagged:
        return None
    return RuleHit(
        rule_id="EXCLUSION_CLAUSE",
        description=f"Potential exclusion clause detected ({', '.join(flagged)}).",
        severity="high",
        flag="exclusion_cited",
        metadata={"clause_ids": flagged},
    )


DEFAULT_RULES = (
    confidence_floor_rule,
    amount_ceiling_rule,
    exclusion_clause_rule,
)


def register_default_rules(registry: RuleRegistry) -> None:
    registry.extend(DEFAULT_RULES)
