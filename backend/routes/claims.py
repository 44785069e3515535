"""Claim validation routes."""

from __future__ import annotations

import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator

from adjudication.models import ClaimRequest
from adjudication.orchestrator import ClaimValidationOrchestrator
from dependencies import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/claims", tags=["claims"])


class ClaimSubmission(BaseModel):
    """Inbound claim for validation."""

    policy_number: str = Field(min_length=1, max_length=64)
    description: str
    amount: Decimal = Field(ge=0)
    policy_type: str = "Motor"
    deadline_seconds: float | None = Field(default=None, gt=0)
    supporting_documents: list[str] | None = None

    @field_validator("policy_number", "policy_type")
    @classmethod
    def strip_identifier(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ClaimDecisionResponse(BaseModel):
    status: str
    explanation: str
    confidence_score: float
    cited_clause_ids: list[str]
    required_documents: list[str]


@router.post("/validate", response_model=ClaimDecisionResponse)
async def validate_claim(
    submission: ClaimSubmission,
    orchestrator: ClaimValidationOrchestrator = Depends(get_orchestrator),
) -> ClaimDecisionResponse:
    """Run a claim through the guardrail pipeline.

    Operational failures never surface as HTTP errors; they come back as a
    "Manual Review" decision explaining what went wrong.
    """
    try:
        claim = ClaimRequest(
            policy_number=submission.policy_number,
            description=submission.description,
            amount=submission.amount,
            policy_type=submission.policy_type,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    decision = await orchestrator.validate_claim(
        claim,
        deadline_seconds=submission.deadline_seconds,
        supporting_documents=submission.supporting_documents,
    )
    return ClaimDecisionResponse(**decision.to_dict())
