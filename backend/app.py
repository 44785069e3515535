"""FastAPI backend for the claims adjudication guardrail pipeline."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adjudication.orchestrator import ClaimValidationOrchestrator
from dependencies import get_orchestrator
from routes import audit_router, claims_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Warm up the pipeline on startup and retry queued audits on shutdown."""
    orchestrator = None
    try:
        orchestrator = get_orchestrator()
        logger.info(
            f"Claim pipeline ready ({orchestrator.retriever.__class__.__name__}, "
            f"top_k={orchestrator.top_k})"
        )
    except Exception as e:
        # A misconfigured adapter must not stop the API from starting
        logger.warning(f"Claim pipeline initialization failed: {e}")

    yield

    if orchestrator is not None and orchestrator.pending_audits:
        flushed = await orchestrator.flush_pending_audits()
        remaining = len(orchestrator.pending_audits)
        if remaining:
            logger.error(f"{remaining} audit record(s) lost on shutdown")
        logger.info(f"Flushed {flushed} pending audit record(s) on shutdown")


app = FastAPI(
    title="Claims Adjudication Guardrails",
    description="Retrieval-grounded LLM claim decisions with safety guardrails",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS", "http://localhost:3000,http://localhost:5173"
).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(claims_router)
app.include_router(audit_router)


@app.get("/health")
async def health_check(
    orchestrator: ClaimValidationOrchestrator = Depends(get_orchestrator),
):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "pending_audits": len(orchestrator.pending_audits),
    }


@app.post("/api/audit/flush")
async def flush_audits(
    orchestrator: ClaimValidationOrchestrator = Depends(get_orchestrator),
):
    """Retry audit writes that failed during earlier requests."""
    flushed = await orchestrator.flush_pending_audits()
    return {"flushed": flushed, "pending": len(orchestrator.pending_audits)}
