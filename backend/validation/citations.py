"""Citation and hallucination checks for LLM decisions.

A decision that approves or denies a claim must be grounded in the policy
clauses retrieved for that claim. Citations pointing anywhere else are
treated as hallucinations and the decision is forced to manual review.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import replace

from adjudication.errors import HallucinationDetected
from adjudication.models import (
    ClaimDecision,
    DecisionStatus,
    EvidenceClause,
    ValidationOutcome,
)

logger = logging.getLogger(__name__)

UNCERTAINTY_PHRASES: tuple[str, ...] = (
    "i think",
    "i believe",
    "probably",
    "maybe",
    "possibly",
    "it seems",
    "appears to be",
    "likely",
    "might be",
    "could be",
    "generally",
    "typically",
    "usually",
    "in most cases",
)

PERSONAL_KNOWLEDGE_PHRASES: tuple[str, ...] = (
    "i know that",
    "i understand",
    "in my experience",
    "i recall",
    "i remember",
    "based on my knowledge",
)

VAGUE_REFERENCES: tuple[str, ...] = (
    "according to the policy",
    "the policy states",
    "policy guidelines",
    "standard practice",
    "industry standard",
    "insurance regulations",
    "common practice",
)

# Markers that tie an explanation to a concrete clause
SPECIFIC_CITATION_MARKERS: tuple[str, ...] = ("clause", "section", "[", "policy_")

CITATION_REFERENCE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\[.*?\]",
        r"clause[:\s]",
        r"section[:\s]\d+",
        r"policy_\w+",
    )
)

LOW_CONFIDENCE_CITATION_LIMIT = 5


def _evidence_ids(evidence: Iterable[EvidenceClause]) -> set[str]:
    return {clause.id for clause in evidence}


class CitationValidator:
    """Checks decisions against the evidence seen by the decision engine."""

    def are_citations_valid(
        self, cited_ids: Sequence[str], evidence: Sequence[EvidenceClause]
    ) -> bool:
        """True when there is at least one citation and all of them exist."""
        if not cited_ids:
            return False
        available = _evidence_ids(evidence)
        return all(cid in available for cid in cited_ids)

    def missing_citations(
        self, cited_ids: Sequence[str], evidence: Sequence[EvidenceClause]
    ) -> list[str]:
        """Return the cited ids absent from the evidence, in citation order."""
        available = _evidence_ids(evidence)
        return [cid for cid in cited_ids if cid not in available]

    def detect_hallucination_indicators(self, explanation: str | None) -> list[str]:
        """Flag wording that suggests guessing instead of citing.

        These are warning signals only; they never change a decision.
        """
        indicators: list[str] = []
        if not explanation:
            return indicators

        normalized = explanation.lower()

        for phrase in UNCERTAINTY_PHRASES:
            if phrase in normalized:
                indicators.append(f"Uncertainty phrase: '{phrase}'")

        for phrase in PERSONAL_KNOWLEDGE_PHRASES:
            if phrase in normalized:
                indicators.append(f"Personal knowledge claim: '{phrase}'")

        has_vague_reference = any(ref in normalized for ref in VAGUE_REFERENCES)
        has_specific_citation = any(
            marker in normalized for marker in SPECIFIC_CITATION_MARKERS
        )
        if has_vague_reference and not has_specific_citation:
            indicators.append("Vague policy reference without specific clause citation")

        return indicators

    def validate_response(
        self, decision: ClaimDecision, evidence: Sequence[EvidenceClause]
    ) -> ValidationOutcome:
        """Produce a full citation-quality report for a decision."""
        errors: list[str] = []
        warnings: list[str] = []
        cited = decision.cited_clause_ids

        if decision.status.is_automated and not cited:
            errors.append(
                f"'{decision.status.value}' decisions must cite at least one "
                "policy clause."
            )

        for cid in self.missing_citations(cited, evidence):
            errors.append(
                f"Cited clause '{cid}' not found in retrieved policy clauses. "
                "This may indicate hallucination."
            )

        if decision.confidence_score < 0.5 and len(cited) > LOW_CONFIDENCE_CITATION_LIMIT:
            warnings.append(
                f"Low confidence ({decision.confidence_score:.2f}) with many "
                f"citations ({len(cited)}) may indicate over-fitting or hallucination."
            )

        if cited and not self._references_citations(decision.explanation):
            warnings.append(
                "Explanation does not reference the cited policy clauses."
            )

        warnings.extend(
            f"Potential hallucination indicator: {indicator}"
            for indicator in self.detect_hallucination_indicators(decision.explanation)
        )

        return ValidationOutcome(
            is_valid=not errors,
            errors=tuple(errors),
            warnings=tuple(warnings),
            warning_message="Citation quality issues detected" if warnings else None,
        )

    def validate(
        self,
        decision: ClaimDecision,
        evidence: Sequence[EvidenceClause],
        enhance: bool = False,
    ) -> ClaimDecision:
        """Force manual review when an automated decision is not grounded.

        Hallucinated ids are removed from the returned citation set and named
        in the explanation. Grounded decisions come back unchanged, apart from
        the optional "Policy References" block when ``enhance`` is set.
        """
        result = decision

        if decision.status.is_automated:
            missing = self.missing_citations(decision.cited_clause_ids, evidence)
            if not decision.cited_clause_ids:
                logger.warning(
                    f"Integrity violation: '{decision.status.value}' decision "
                    "cited no policy clauses"
                )
                result = decision.escalate(
                    "Integrity violation: the decision cited no policy clauses "
                    "and cannot be automated."
                )
            elif missing:
                logger.warning(
                    "Integrity violation: hallucinated citations "
                    f"{missing} (evidence ids: {sorted(_evidence_ids(evidence))})"
                )
                grounded = tuple(
                    cid for cid in decision.cited_clause_ids if cid not in missing
                )
                result = replace(
                    decision.escalate(
                        "Integrity violation: cited clause(s) "
                        f"{', '.join(missing)} not found in retrieved policy "
                        "evidence (possible hallucination)."
                    ),
                    cited_clause_ids=grounded,
                )

        indicators = self.detect_hallucination_indicators(decision.explanation)
        if indicators:
            logger.warning(f"Hallucination indicators in explanation: {indicators}")

        if enhance and result.cited_clause_ids:
            by_id = {clause.id: clause for clause in evidence}
            cited_clauses = [
                by_id[cid] for cid in result.cited_clause_ids if cid in by_id
            ]
            result = replace(
                result,
                explanation=self.enhance_explanation(result.explanation, cited_clauses),
            )

        return result

    def enhance_explanation(
        self, explanation: str, cited_clauses: Sequence[EvidenceClause]
    ) -> str:
        """Append the full text of every cited clause for auditability."""
        if not explanation or not cited_clauses:
            return explanation

        lines = [explanation, "", "Policy References:"]
        for clause in cited_clauses:
            lines.append(f"- [{clause.id}] {clause.text}")
        return "\n".join(lines)

    @staticmethod
    def _references_citations(explanation: str) -> bool:
        if not explanation:
            return False
        return any(p.search(explanation) for p in CITATION_REFERENCE_PATTERNS)


def is_grounded(decision: ClaimDecision, evidence: Sequence[EvidenceClause]) -> bool:
    """True when the decision satisfies the citation invariant for its status."""
    if decision.status is DecisionStatus.MANUAL_REVIEW:
        return True
    return CitationValidator().are_citations_valid(decision.cited_clause_ids, evidence)


def ensure_grounded(decision: ClaimDecision, evidence: Sequence[EvidenceClause]) -> None:
    """Raise HallucinationDetected when an automated decision is not grounded."""
    if is_grounded(decision, evidence):
        return
    missing = CitationValidator().missing_citations(decision.cited_clause_ids, evidence)
    if missing:
        message = f"cited clause(s) {', '.join(missing)} not in retrieved evidence"
    else:
        message = f"'{decision.status.value}' decision cites no policy clauses"
    raise HallucinationDetected(message, missing_ids=missing)
