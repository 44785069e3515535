"""Contradiction detection between claim data, decisions and policy clauses."""

from __future__ import annotations

import re
from collections.abc import Sequence
from decimal import Decimal, InvalidOperation

from adjudication.models import (
    ClaimDecision,
    ClaimRequest,
    Contradiction,
    DecisionStatus,
    EvidenceClause,
)

AMOUNT_PATTERN = re.compile(r"\$[\d,]+(?:\.\d{2})?")

SEVERITY_ORDER = {"Critical": 4, "High": 3, "Medium": 2, "Low": 1}

HIGH_CONFIDENCE = 0.85
LOW_CONFIDENCE = 0.70
# Relative difference tolerated between claimed and documented amounts
DOCUMENT_AMOUNT_TOLERANCE = Decimal("0.1")


def extract_amounts(text: str) -> list[Decimal]:
    """Extract dollar amounts such as ``$1,250.00`` from free text."""
    amounts: list[Decimal] = []
    for match in AMOUNT_PATTERN.findall(text or ""):
        try:
            amounts.append(Decimal(match.replace("$", "").replace(",", "")))
        except InvalidOperation:
            continue
    return amounts


def _cited(decision: ClaimDecision, evidence: Sequence[EvidenceClause]) -> list[EvidenceClause]:
    cited_ids = set(decision.cited_clause_ids)
    return [clause for clause in evidence if clause.id in cited_ids]


def _mentions(clause: EvidenceClause, *terms: str) -> bool:
    text = clause.text.lower()
    return any(term in text for term in terms)


class ContradictionDetector:
    """Advisory checks; results are reported, never used to change a decision."""

    def detect(
        self,
        claim: ClaimRequest,
        decision: ClaimDecision,
        evidence: Sequence[EvidenceClause],
        supporting_documents: Sequence[str] | None = None,
    ) -> list[Contradiction]:
        contradictions: list[Contradiction] = []
        contradictions.extend(self._decision_vs_citations(decision, evidence))
        contradictions.extend(self._coverage_vs_exclusion(decision, evidence))
        contradictions.extend(self._confidence_vs_status(decision))
        contradictions.extend(self._amount_limits(claim, evidence))
        if supporting_documents:
            contradictions.extend(self._document_amounts(claim, supporting_documents))
        return contradictions

    @staticmethod
    def has_critical(contradictions: Sequence[Contradiction]) -> bool:
        return any(c.is_critical for c in contradictions)

    @staticmethod
    def summary(contradictions: Sequence[Contradiction]) -> list[str]:
        ordered = sorted(
            contradictions,
            key=lambda c: SEVERITY_ORDER.get(c.severity, 0),
            reverse=True,
        )
        return [
            f"[{c.severity}] {c.description}: {c.source_a} vs {c.source_b}"
            for c in ordered
        ]

    def _decision_vs_citations(
        self, decision: ClaimDecision, evidence: Sequence[EvidenceClause]
    ) -> list[Contradiction]:
        cited = _cited(decision, evidence)
        if not cited:
            return []

        if decision.status is DecisionStatus.NOT_COVERED and not any(
            _mentions(c, "exclusion", "not covered", "excluded") for c in cited
        ):
            return [
                Contradiction(
                    source_a="Decision Status",
                    source_b="Cited Policy Clauses",
                    description="Claim denied but cited clauses do not contain exclusion language",
                    impact="Decision may lack proper justification",
                    severity="High",
                )
            ]

        if decision.status is DecisionStatus.COVERED and any(
            _mentions(c, "exclusion") for c in cited
        ):
            return [
                Contradiction(
                    source_a="Decision Status (Covered)",
                    source_b="Policy Exclusion Clause",
                    description="Claim marked as covered but exclusion clause is cited",
                    impact="May result in incorrect approval",
                    severity="Critical",
                )
            ]

        return []

    def _coverage_vs_exclusion(
        self, decision: ClaimDecision, evidence: Sequence[EvidenceClause]
    ) -> list[Contradiction]:
        cited = _cited(decision, evidence)
        has_coverage = any(_mentions(c, "covered", "eligible") for c in cited)
        has_exclusion = any(_mentions(c, "exclusion", "not covered") for c in cited)
        if has_coverage and has_exclusion:
            return [
                Contradiction(
                    source_a="Coverage Policy Clause",
                    source_b="Exclusion Policy Clause",
                    description="Both coverage and exclusion clauses cited - requires policy interpretation",
                    impact="Ambiguous policy application",
                    severity="High",
                )
            ]
        return []

    def _confidence_vs_status(self, decision: ClaimDecision) -> list[Contradiction]:
        found: list[Contradiction] = []
        score = decision.confidence_score

        if score > HIGH_CONFIDENCE and decision.status is DecisionStatus.MANUAL_REVIEW:
            found.append(
                Contradiction(
                    source_a=f"High Confidence Score ({score:.2f})",
                    source_b="Manual Review Status",
                    description="Model is confident but decision requires manual review",
                    impact="Potential for automated decision",
                    severity="Medium",
                )
            )

        if score < LOW_CONFIDENCE and decision.status.is_automated:
            found.append(
                Contradiction(
                    source_a=f"Low Confidence Score ({score:.2f})",
                    source_b=f"Automated Decision ({decision.status.value})",
                    description="Low confidence decision made automatically",
                    impact="Risk of incorrect decision",
                    severity="High",
                )
            )

        return found

    def _amount_limits(
        self, claim: ClaimRequest, evidence: Sequence[EvidenceClause]
    ) -> list[Contradiction]:
        found: list[Contradiction] = []
        for clause in evidence:
            if "limit" not in clause.text.lower():
                continue
            for limit in extract_amounts(clause.text):
                if claim.amount > limit:
                    found.append(
                        Contradiction(
                            source_a=f"Claim Amount (${claim.amount})",
                            source_b=f"Policy Limit (${limit}) in {clause.id}",
                            description=f"Claim amount exceeds policy limit by ${claim.amount - limit}",
                            impact="May require partial approval or denial",
                            severity="High",
                        )
                    )
        return found

    def _document_amounts(
        self, claim: ClaimRequest, documents: Sequence[str]
    ) -> list[Contradiction]:
        found: list[Contradiction] = []
        tolerance = claim.amount * DOCUMENT_AMOUNT_TOLERANCE
        for document in documents:
            for amount in extract_amounts(document):
                difference = abs(amount - claim.amount)
                if difference > tolerance:
                    found.append(
                        Contradiction(
                            source_a=f"Claimed Amount (${claim.amount})",
                            source_b=f"Document Amount (${amount})",
                            description=f"Claim amount differs from supporting document by ${difference}",
                            impact="Verify correct claim amount",
                            severity="High",
                        )
                    )
        return found
