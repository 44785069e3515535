"""Interfaces the pipeline requires from its external collaborators."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .models import ClaimDecision, ClaimRequest, EvidenceClause

# Unvalidated mapping parsed from the model's JSON reply
RawDecision = dict[str, Any]


@runtime_checkable
class Retriever(Protocol):
    async def retrieve(
        self, query_text: str, category: str, k: int
    ) -> list[EvidenceClause]:
        """Return up to ``k`` clauses of ``category`` ranked by similarity.

        An empty list is a normal outcome, not an error.
        """
        ...


@runtime_checkable
class DecisionEngine(Protocol):
    async def generate(
        self, claim: ClaimRequest, evidence: list[EvidenceClause]
    ) -> RawDecision:
        """Produce a candidate decision from the claim and its evidence."""
        ...


@runtime_checkable
class AuditSink(Protocol):
    async def record(
        self,
        claim: ClaimRequest,
        decision: ClaimDecision,
        evidence: list[EvidenceClause],
        **context: Any,
    ) -> str:
        """Durably record a pipeline run and return an acknowledgement id.

        Accepted context keys: ``processing_ms``, ``outcome``, ``contradictions``.
        """
        ...
