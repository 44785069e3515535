"""Tests for advisory contradiction detection."""

from decimal import Decimal

import pytest

from adjudication.models import ClaimDecision, ClaimRequest, DecisionStatus, EvidenceClause
from validation.contradictions import ContradictionDetector, extract_amounts


@pytest.fixture
def detector():
    return ContradictionDetector()


@pytest.fixture
def claim():
    return ClaimRequest("POL-HOME-7781", "Storm damage to the garage roof.", Decimal("3000"), "Home")


@pytest.fixture
def evidence():
    return [
        EvidenceClause("HOM-001", "Storm damage to structures is covered.", "Dwelling", 0.9),
        EvidenceClause("HOM-002", "Exclusion: flood damage is not covered.", "Exclusions", 0.7),
        EvidenceClause("HOM-003", "Outbuildings are subject to a limit of $2,500 per event.", "Limits", 0.6),
    ]


def descriptions(found):
    return [c.description for c in found]


class TestExtractAmounts:
    def test_extracts_dollar_amounts(self):
        assert extract_amounts("Limit $2,500.00 and deductible $500") == [
            Decimal("2500.00"),
            Decimal("500"),
        ]

    def test_no_amounts(self):
        assert extract_amounts("") == []


class TestDetect:
    def test_denial_without_exclusion_language(self, detector, claim, evidence):
        decision = ClaimDecision(DecisionStatus.NOT_COVERED, "Denied [HOM-001].", 0.9, ("HOM-001",))

        found = detector.detect(claim, decision, evidence)

        assert "Claim denied but cited clauses do not contain exclusion language" in (
            descriptions(found)
        )

    def test_covered_citing_exclusion(self, detector, claim, evidence):
        decision = ClaimDecision(
            DecisionStatus.COVERED, "Covered [HOM-001] [HOM-002].", 0.9, ("HOM-001", "HOM-002")
        )

        found = detector.detect(claim, decision, evidence)

        assert "Claim marked as covered but exclusion clause is cited" in descriptions(found)
        assert any("Both coverage and exclusion" in d for d in descriptions(found))
        assert detector.has_critical(found)

    def test_confidence_status_mismatch(self, detector, claim, evidence):
        confident_review = ClaimDecision(DecisionStatus.MANUAL_REVIEW, "Unsure.", 0.95)
        shaky_approval = ClaimDecision(DecisionStatus.COVERED, "See [HOM-001].", 0.4, ("HOM-001",))

        assert "Model is confident but decision requires manual review" in descriptions(
            detector.detect(claim, confident_review, evidence)
        )
        assert "Low confidence decision made automatically" in descriptions(
            detector.detect(claim, shaky_approval, evidence)
        )

    def test_amount_over_clause_limit(self, detector, claim, evidence):
        decision = ClaimDecision.manual_review("Pending.")

        found = detector.detect(claim, decision, evidence)

        assert "Claim amount exceeds policy limit by $500" in descriptions(found)

    def test_supporting_document_amount_mismatch(self, detector, claim, evidence):
        decision = ClaimDecision.manual_review("Pending.")

        found = detector.detect(
            claim, decision, evidence, supporting_documents=["Contractor invoice total: $4,200.00"]
        )

        assert "Claim amount differs from supporting document by $1200.00" in descriptions(found)

    def test_document_within_tolerance(self, detector, claim):
        decision = ClaimDecision.manual_review("Pending.")
        found = detector.detect(claim, decision, [], supporting_documents=["Invoice $3,100"])
        assert found == []

    def test_summary_orders_by_severity(self, detector, claim, evidence):
        decision = ClaimDecision(
            DecisionStatus.COVERED, "Covered [HOM-002].", 0.4, ("HOM-002",)
        )

        lines = detector.summary(detector.detect(claim, decision, evidence))

        assert lines[0].startswith("[Critical]")
        assert all(not line.startswith("[Critical]") for line in lines[1:])
