"""Security module for inbound text screening and PII masking.

Provides prompt injection detection for claim descriptions and redaction
helpers used before claim data reaches logs or the audit store.
"""

from .pii import (
    contains_sensitive_data,
    detect_pii_types,
    mask_member_id,
    mask_policy_number,
    redact_phi_from_explanation,
    redact_pii,
)
from .prompt_injection import SecurityScreen

__all__ = [
    "SecurityScreen",
    "contains_sensitive_data",
    "detect_pii_types",
    "mask_member_id",
    "mask_policy_number",
    "redact_phi_from_explanation",
    "redact_pii",
]
