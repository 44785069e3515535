"""Claim decision pipeline: domain models, failure taxonomy and ports.

The coordinator and orchestrator live in ``adjudication.coordinator`` and
``adjudication.orchestrator``; they import the ``rules`` and ``validation``
packages, which themselves import these models, so they are not re-exported
here.
"""

from .errors import (
    AuditWriteFailure,
    DecisionUnavailable,
    EngineNotConfigured,
    HallucinationDetected,
    InputRejected,
    PipelineError,
    RetrievalUnavailable,
    ValidationFailure,
)
from .models import (
    AuditRecord,
    ClaimDecision,
    ClaimRequest,
    Contradiction,
    DecisionStatus,
    EvidenceClause,
    ThreatReport,
    ValidationOutcome,
)
from .ports import AuditSink, DecisionEngine, RawDecision, Retriever

__all__ = [
    "AuditRecord",
    "AuditSink",
    "AuditWriteFailure",
    "ClaimDecision",
    "ClaimRequest",
    "Contradiction",
    "DecisionEngine",
    "DecisionStatus",
    "DecisionUnavailable",
    "EngineNotConfigured",
    "EvidenceClause",
    "HallucinationDetected",
    "InputRejected",
    "PipelineError",
    "RawDecision",
    "RetrievalUnavailable",
    "Retriever",
    "ThreatReport",
    "ValidationFailure",
    "ValidationOutcome",
]
