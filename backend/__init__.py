"""Claims Adjudication Guardrails Backend Package.

This package provides the claim decision pipeline and its FastAPI surface:

- Prompt injection screening and PII masking
- RAG-powered policy clause retrieval
- Claude decision engine with retries and deterministic fallback
- Citation validation and business rule overlay
- SQLite audit trail

Usage:
    # Development (from project root):
    PYTHONPATH=backend uvicorn app:app --reload --port 8080

    # Seed sample policy clauses:
    python scripts/seed_policies.py

Modules:
    app: FastAPI application entry point
    adjudication: domain models, ports, coordinator and orchestrator
    security: prompt injection screening and PII masking
    rag: ChromaDB clause store and retrievers
    validation: citation and contradiction checks
    rules: business rule overlay
    audit: SQLite audit sink
    claude_client: Claude API decision engine
    adjudicator_config: decision engine configuration and prompts
"""

__version__ = "0.1.0"
