"""Claim decision audit trail routes.

Security Note:
    Audit records hold claim details (descriptions are PII-redacted before
    storage). Access should be restricted once authentication exists.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from audit import SqliteAuditSink
from dependencies import get_audit_sink

router = APIRouter(prefix="/api/audit", tags=["audit"])


class ClaimAuditEntry(BaseModel):
    """Single stored pipeline run."""

    audit_id: str
    timestamp: str
    policy_number: str
    policy_type: str | None = None
    amount: str | None = None
    description: str | None = None
    status: str
    explanation: str | None = None
    confidence_score: float | None = None
    cited_clause_ids: list[str] = []
    required_documents: list[str] = []
    evidence: list[dict[str, Any]] = []
    contradictions: list[dict[str, Any]] = []
    processing_ms: float | None = None
    outcome: str | None = None


class ClaimAuditListResponse(BaseModel):
    entries: list[ClaimAuditEntry]
    total: int
    limit: int
    offset: int
    filters_applied: dict[str, Any]


@router.get("/claims", response_model=ClaimAuditListResponse)
async def list_claim_audits(
    limit: int = Query(default=50, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    status: str | None = Query(
        default=None, description="Filter by decision status (e.g. 'Manual Review')"
    ),
    sink: SqliteAuditSink = Depends(get_audit_sink),
) -> ClaimAuditListResponse:
    """List audited claim decisions, newest first."""
    rows, total = sink.list_records(limit=limit, offset=offset, status=status)
    return ClaimAuditListResponse(
        entries=[ClaimAuditEntry(**row) for row in rows],
        total=total,
        limit=limit,
        offset=offset,
        filters_applied={"status": status},
    )


@router.get("/claims/{audit_id}", response_model=ClaimAuditEntry)
async def get_claim_audit(
    audit_id: str,
    sink: SqliteAuditSink = Depends(get_audit_sink),
) -> ClaimAuditEntry:
    row = sink.get_record(audit_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Audit record not found")
    return ClaimAuditEntry(**row)
