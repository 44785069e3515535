"""FastAPI dependencies wiring the claim pipeline to its concrete adapters.

Tests replace these through ``app.dependency_overrides``.
"""

from __future__ import annotations

from adjudication.coordinator import ResilientDecisionCoordinator
from adjudication.orchestrator import ClaimValidationOrchestrator
from adjudicator_config import AdjudicatorConfig
from audit import SqliteAuditSink
from claude_client import ClaudeDecisionEngine
from config import DB_PATH
from rag import CachedRetriever, ChromaRetriever
from rules import RuleThresholds

# Global instances
_audit_sink: SqliteAuditSink | None = None
_orchestrator: ClaimValidationOrchestrator | None = None


def get_audit_sink() -> SqliteAuditSink:
    global _audit_sink
    if _audit_sink is None:
        _audit_sink = SqliteAuditSink(DB_PATH)
    return _audit_sink


def build_orchestrator() -> ClaimValidationOrchestrator:
    """Assemble the production pipeline from environment configuration."""
    config = AdjudicatorConfig.from_env()
    return ClaimValidationOrchestrator(
        retriever=CachedRetriever(ChromaRetriever()),
        decider=ResilientDecisionCoordinator(ClaudeDecisionEngine(config), config),
        audit_sink=get_audit_sink(),
        thresholds=RuleThresholds.from_env(),
    )


def get_orchestrator() -> ClaimValidationOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator()
    return _orchestrator
