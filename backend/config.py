"""Shared configuration for the claims adjudication backend.

This module centralizes environment variable access and default values
to prevent drift between modules.
"""

import os

# Database configuration (audit trail)
DB_PATH = os.getenv("DB_PATH", "./data/claims_audit.db")

# ChromaDB configuration
CHROMA_PERSIST_DIR = os.getenv("CHROMA_PERSIST_DIR", "./data/chroma")
CHROMA_COLLECTION = os.getenv("CHROMA_COLLECTION", "policy_clauses")

# Retrieval
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "5"))
# 0 disables the retrieval cache
RETRIEVAL_CACHE_TTL_SECONDS = float(os.getenv("RETRIEVAL_CACHE_TTL_SECONDS", "300"))
RETRIEVAL_CACHE_MAX_ENTRIES = int(os.getenv("RETRIEVAL_CACHE_MAX_ENTRIES", "1024"))

# Pipeline deadline applied to every claim when the caller does not pass one.
# Unset means no deadline.
_deadline = os.getenv("PIPELINE_DEADLINE_SECONDS")
PIPELINE_DEADLINE_SECONDS = float(_deadline) if _deadline else None

# Extra time granted to the audit write after a deadline has expired
AUDIT_GRACE_SECONDS = float(os.getenv("AUDIT_GRACE_SECONDS", "2"))

# Append full cited clause text to explanations for auditability
ENHANCE_EXPLANATIONS = os.getenv("ENHANCE_EXPLANATIONS", "false").lower() == "true"
