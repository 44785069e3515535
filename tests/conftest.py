"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
import atexit
import os
import shutil
import sys
import tempfile
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

# Add backend to path for imports
backend_path = str(Path(__file__).parent.parent / "backend")
if backend_path not in sys.path:
    sys.path.insert(0, backend_path)

# Point the default database and vector store at temp locations before
# config.py is imported anywhere
_temp_dir = tempfile.mkdtemp(prefix="claims-tests-")
os.environ["DB_PATH"] = os.path.join(_temp_dir, "claims_audit.db")
os.environ["CHROMA_PERSIST_DIR"] = os.path.join(_temp_dir, "chroma")


def _cleanup_temp_dir() -> None:
    shutil.rmtree(_temp_dir, ignore_errors=True)


atexit.register(_cleanup_temp_dir)

from adjudication.errors import AuditWriteFailure  # noqa: E402
from adjudication.models import ClaimRequest, EvidenceClause  # noqa: E402
from adjudicator_config import AdjudicatorConfig  # noqa: E402


class FakeRetriever:
    """Retriever returning a fixed clause list, recording every call."""

    def __init__(
        self,
        clauses: list[EvidenceClause] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.clauses = list(clauses or [])
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, str, int]] = []

    async def retrieve(self, query_text: str, category: str, k: int) -> list[EvidenceClause]:
        self.calls.append((query_text, category, k))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.clauses[:k]


class ScriptedEngine:
    """Decision engine replaying scripted replies; the last one repeats.

    A reply that is an exception instance is raised instead of returned.
    """

    def __init__(self, *replies: Any, delay: float = 0.0) -> None:
        self.replies = list(replies)
        self.delay = delay
        self.calls: list[tuple[ClaimRequest, list[EvidenceClause]]] = []

    async def generate(self, claim: ClaimRequest, evidence: list[EvidenceClause]) -> Any:
        self.calls.append((claim, list(evidence)))
        reply = self.replies[min(len(self.calls), len(self.replies)) - 1]
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(reply, BaseException):
            raise reply
        return dict(reply) if isinstance(reply, dict) else reply


class RecordingAuditSink:
    """Audit sink keeping records in memory; the first ``failures`` writes fail."""

    def __init__(self, failures: int = 0, delay: float = 0.0) -> None:
        self.failures = failures
        self.delay = delay
        self.records: list[dict[str, Any]] = []

    async def record(self, claim, decision, evidence, **context: Any) -> str:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures > 0:
            self.failures -= 1
            raise AuditWriteFailure("audit store unavailable")
        self.records.append(
            {
                "claim": claim,
                "decision": decision,
                "evidence": list(evidence),
                **context,
            }
        )
        return f"audit-{len(self.records)}"


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def motor_claim() -> ClaimRequest:
    """Ordinary motor claim that passes screening."""
    return ClaimRequest(
        policy_number="POL-2024-001234",
        description="Rear-end collision at a traffic light damaged the bumper and tail lights.",
        amount=Decimal("1200"),
        policy_type="Motor",
    )


@pytest.fixture
def motor_evidence() -> list[EvidenceClause]:
    return [
        EvidenceClause(
            id="MOT-001",
            text="Collision coverage applies to damage from accidents with other "
            "vehicles or objects. Deductible: $500.",
            category="Collision",
            relevance_score=0.91,
        ),
        EvidenceClause(
            id="MOT-002",
            text="Comprehensive coverage includes theft, vandalism and weather damage.",
            category="Comprehensive",
            relevance_score=0.74,
        ),
        EvidenceClause(
            id="MOT-003",
            text="Exclusion: racing and intentional damage are not covered.",
            category="Exclusions",
            relevance_score=0.52,
        ),
    ]


@pytest.fixture
def covered_reply() -> dict[str, Any]:
    """Well-formed engine reply approving the motor claim."""
    return {
        "status": "Covered",
        "explanation": "Collision damage is covered under clause [MOT-001] "
        "after the $500 deductible.",
        "clauseReferences": ["MOT-001"],
        "requiredDocuments": ["Repair estimate"],
        "confidenceScore": 0.92,
    }


@pytest.fixture
def test_config() -> AdjudicatorConfig:
    """Adjudicator config with short timeouts for tests."""
    return AdjudicatorConfig(
        max_retries=3,
        backoff_base_seconds=1.0,
        attempt_timeout_seconds=1.0,
    )


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fakes() -> Any:
    """Namespace exposing the fake collaborator classes to tests."""

    class _Fakes:
        Retriever = FakeRetriever
        Engine = ScriptedEngine
        AuditSink = RecordingAuditSink
        Sleep = RecordingSleep

    return _Fakes
