"""API route modules for the claims adjudication service.

Routers:
- claims: claim validation through the guardrail pipeline
- audit: stored claim decision audit trail
"""

from .audit import router as audit_router
from .claims import router as claims_router

__all__ = ["audit_router", "claims_router"]
