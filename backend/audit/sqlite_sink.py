"""SQLite audit trail for claim decisions.

Every pipeline run that got past input screening is written to the
``claim_audit`` table. The claim description and decision explanation are
PII-redacted before they are stored.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sqlite3
import threading
from collections.abc import Sequence
from typing import Any

from adjudication.errors import AuditWriteFailure
from adjudication.models import (
    AuditRecord,
    ClaimDecision,
    ClaimRequest,
    EvidenceClause,
)
from config import DB_PATH
from security.pii import redact_phi_from_explanation, redact_pii

logger = logging.getLogger(__name__)

# Database paths whose claim_audit table is known to exist
_initialized_paths: set[str] = set()
_audit_table_lock = threading.Lock()

_JSON_COLUMNS = ("cited_clause_ids", "required_documents", "evidence", "contradictions")

_COLUMNS = (
    "audit_id",
    "timestamp",
    "policy_number",
    "policy_type",
    "amount",
    "description",
    "status",
    "explanation",
    "confidence_score",
    "cited_clause_ids",
    "required_documents",
    "evidence",
    "contradictions",
    "processing_ms",
    "outcome",
)


def init_audit_table(conn: sqlite3.Connection, db_path: str) -> None:
    """Create the claim_audit table once per database path.

    The CREATE TABLE IF NOT EXISTS is idempotent but involves disk I/O, so it
    is skipped after the first successful initialization.
    """
    if db_path in _initialized_paths:
        return

    with _audit_table_lock:
        if db_path in _initialized_paths:
            return

        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS claim_audit (
                audit_id TEXT PRIMARY KEY,
                timestamp TEXT NOT NULL,
                policy_number TEXT NOT NULL,
                policy_type TEXT,
                amount TEXT,
                description TEXT,
                status TEXT NOT NULL,
                explanation TEXT,
                confidence_score REAL,
                cited_clause_ids TEXT,
                required_documents TEXT,
                evidence TEXT,
                contradictions TEXT,
                processing_ms REAL,
                outcome TEXT
            )
        """)
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_claim_audit_timestamp "
            "ON claim_audit(timestamp)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_claim_audit_status ON claim_audit(status)"
        )
        conn.commit()
        _initialized_paths.add(db_path)


def _record_row(record: AuditRecord) -> tuple[Any, ...]:
    claim = record.claim
    decision = record.decision
    return (
        record.audit_id,
        record.timestamp,
        claim.policy_number,
        claim.policy_type,
        str(claim.amount),
        redact_pii(claim.description),
        decision.status.value,
        redact_phi_from_explanation(decision.explanation),
        decision.confidence_score,
        json.dumps(list(decision.cited_clause_ids)),
        json.dumps(list(decision.required_documents)),
        json.dumps(
            [
                {
                    "id": clause.id,
                    "category": clause.category,
                    "relevance_score": clause.relevance_score,
                }
                for clause in record.evidence
            ]
        ),
        json.dumps(
            [
                {
                    "source_a": c.source_a,
                    "source_b": c.source_b,
                    "description": c.description,
                    "impact": c.impact,
                    "severity": c.severity,
                }
                for c in record.contradictions
            ]
        ),
        record.processing_ms,
        record.outcome,
    )


def _row_to_dict(row: sqlite3.Row) -> dict[str, Any]:
    entry = dict(row)
    for column in _JSON_COLUMNS:
        raw = entry.get(column)
        try:
            entry[column] = json.loads(raw) if raw else []
        except json.JSONDecodeError:
            logger.warning(f"Malformed {column} in audit record {entry['audit_id']}")
            entry[column] = []
    return entry


class SqliteAuditSink:
    """AuditSink backed by a local SQLite database."""

    def __init__(self, db_path: str = DB_PATH) -> None:
        self.db_path = db_path
        directory = os.path.dirname(db_path)
        if directory and db_path != ":memory:":
            os.makedirs(directory, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        init_audit_table(conn, self.db_path)
        return conn

    async def record(
        self,
        claim: ClaimRequest,
        decision: ClaimDecision,
        evidence: Sequence[EvidenceClause],
        **context: Any,
    ) -> str:
        record = AuditRecord(
            claim=claim,
            decision=decision,
            evidence=tuple(evidence),
            processing_ms=float(context.get("processing_ms", 0.0)),
            outcome=context.get("outcome", "completed"),
            contradictions=tuple(context.get("contradictions", ())),
        )
        try:
            await asyncio.to_thread(self.write_record, record)
        except (sqlite3.Error, OSError) as e:
            raise AuditWriteFailure(f"Could not write audit record: {e}") from e
        return record.audit_id

    def write_record(self, record: AuditRecord) -> None:
        placeholders = ", ".join("?" for _ in _COLUMNS)
        conn = self._connect()
        try:
            conn.execute(
                f"INSERT INTO claim_audit ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                _record_row(record),
            )
            conn.commit()
        finally:
            conn.close()
        logger.debug(f"Audit record {record.audit_id} written")

    def get_record(self, audit_id: str) -> dict[str, Any] | None:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM claim_audit WHERE audit_id = ?", (audit_id,)
            ).fetchone()
        finally:
            conn.close()
        return _row_to_dict(row) if row else None

    def list_records(
        self, limit: int = 50, offset: int = 0, status: str | None = None
    ) -> tuple[list[dict[str, Any]], int]:
        """Newest records first, with the total count matching the filter."""
        where_clause = "status = ?" if status else "1=1"
        params: list[Any] = [status] if status else []

        conn = self._connect()
        try:
            total = conn.execute(
                f"SELECT COUNT(*) FROM claim_audit WHERE {where_clause}", params
            ).fetchone()[0]
            rows = conn.execute(
                f"""
                SELECT * FROM claim_audit
                WHERE {where_clause}
                ORDER BY timestamp DESC
                LIMIT ? OFFSET ?
                """,
                params + [limit, offset],
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_dict(row) for row in rows], total

