"""Business rule overlay evaluation."""
from __future__ import annotations

import logging
from collections.abc import Sequence

from adjudication.models import ClaimDecision, ClaimRequest, DecisionStatus, EvidenceClause

from . import ruleset
from .models import OverlayOutcome, RuleContext, RuleHit
from .registry import RuleRegistry, default_registry
from .thresholds import RuleThresholds

logger = logging.getLogger(__name__)


def evaluate_rules(
    decision: ClaimDecision,
    claim: ClaimRequest,
    evidence: Sequence[EvidenceClause] = (),
    thresholds: RuleThresholds | None = None,
    registry: RuleRegistry | None = None,
) -> OverlayOutcome:
    """Run the overlay rules in order against the decision produced so far.

    A rule is skipped once the decision is in manual review, so each rule
    can only tighten and re-applying the overlay changes nothing.
    """
    thresholds = thresholds or RuleThresholds()
    if registry is None:
        # ensure default registry is populated
        ruleset.register_default_rules(default_registry)
        registry = default_registry

    hits: list[RuleHit] = []
    current = decision

    for rule in registry.active_rules():
        if current.status is DecisionStatus.MANUAL_REVIEW:
            break
        context = RuleContext(
            decision=current, claim=claim, evidence=evidence, thresholds=thresholds
        )
        hit = rule(context)
        if hit is None:
            continue
        hits.append(hit)
        current = current.escalate(hit.description)
        logger.info(f"Business rule {hit.rule_id} forced manual review")

    return OverlayOutcome(decision=current, hits=tuple(hits))


def apply_rules(
    decision: ClaimDecision,
    claim: ClaimRequest,
    evidence: Sequence[EvidenceClause] = (),
    thresholds: RuleThresholds | None = None,
) -> ClaimDecision:
    """Pure, idempotent overlay returning the final decision."""
    return evaluate_rules(decision, claim, evidence, thresholds).decision


class BusinessRuleOverlay:
    """Overlay bound to a fixed set of thresholds."""

    def __init__(self, thresholds: RuleThresholds | None = None) -> None:
        self.thresholds = thresholds or RuleThresholds()

    def apply(
        self,
        decision: ClaimDecision,
        claim: ClaimRequest,
        evidence: Sequence[EvidenceClause] = (),
    ) -> ClaimDecision:
        return apply_rules(decision, claim, evidence, self.thresholds)
