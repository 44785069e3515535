"""PII/PHI masking for log lines and stored audit text."""

from __future__ import annotations

import re

SSN_PATTERN = re.compile(r"\b\d{3}-\d{2}-\d{4}\b")
PHONE_PATTERN = re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b")
EMAIL_PATTERN = re.compile(r"\b[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\b")
CREDIT_CARD_PATTERN = re.compile(r"\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b")
DATE_OF_BIRTH_PATTERN = re.compile(
    r"\b(0?[1-9]|1[0-2])[/\-](0?[1-9]|[12][0-9]|3[01])[/\-](19|20)\d{2}\b"
)
ZIP_CODE_PATTERN = re.compile(r"\b\d{5}(?:-\d{4})?\b")

PHI_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (
        re.compile(r"\b(?:patient|member|insured)\s+name:\s*[^\.,]+", re.IGNORECASE),
        "patient name: [REDACTED]",
    ),
    (
        re.compile(r"\b(?:diagnosis|diagnosed with):\s*[^\.,]+", re.IGNORECASE),
        "diagnosis: [REDACTED]",
    ),
    (
        re.compile(r"\b(?:prescription|medication|drug):\s*[^\.,]+", re.IGNORECASE),
        "medication: [REDACTED]",
    ),
    (
        re.compile(r"\b(?:procedure|treatment|surgery):\s*[^\.,]+", re.IGNORECASE),
        "procedure: [REDACTED]",
    ),
    (
        re.compile(
            r"\b(?:doctor|physician|provider)\s+(?:name:\s*)?[A-Z][a-z]+\s+[A-Z][a-z]+"
        ),
        "provider: [REDACTED]",
    ),
)


def _mask_tail(value: str | None) -> str:
    if not value:
        return "****"
    return f"****{value[-4:]}" if len(value) > 4 else "****"


def mask_policy_number(policy_number: str | None) -> str:
    """Keep only the last four characters of a policy number."""
    return _mask_tail(policy_number)


def mask_member_id(member_id: str | None) -> str:
    return _mask_tail(member_id)


def _mask_email(match: re.Match[str]) -> str:
    parts = match.group(0).split("@")
    return f"***@{parts[1]}" if len(parts) == 2 else "***@***.***"


def _mask_zip(match: re.Match[str]) -> str:
    # Keep the three-digit region prefix
    return f"{match.group(0)[:3]}**"


def redact_pii(text: str | None) -> str:
    """Replace SSNs, phone numbers, emails, card numbers, dates and ZIPs."""
    if not text:
        return text or ""

    # Order matters: card numbers before phone numbers, dates before ZIPs
    text = SSN_PATTERN.sub("***-**-****", text)
    text = CREDIT_CARD_PATTERN.sub("****-****-****-****", text)
    text = PHONE_PATTERN.sub("***-***-****", text)
    text = EMAIL_PATTERN.sub(_mask_email, text)
    text = DATE_OF_BIRTH_PATTERN.sub("**/**/****", text)
    text = ZIP_CODE_PATTERN.sub(_mask_zip, text)
    return text


def redact_phi_from_explanation(explanation: str | None) -> str:
    if not explanation:
        return explanation or ""
    for pattern, replacement in PHI_PATTERNS:
        explanation = pattern.sub(replacement, explanation)
    return redact_pii(explanation)


def contains_sensitive_data(text: str | None) -> bool:
    if not text:
        return False
    return any(
        pattern.search(text)
        for pattern in (SSN_PATTERN, CREDIT_CARD_PATTERN, EMAIL_PATTERN, PHONE_PATTERN)
    )


def detect_pii_types(text: str | None) -> dict[str, int]:
    """Count matches per PII type, omitting types with no matches."""
    if not text:
        return {}
    counts = {
        "SSN": len(SSN_PATTERN.findall(text)),
        "Phone": len(PHONE_PATTERN.findall(text)),
        "Email": len(EMAIL_PATTERN.findall(text)),
        "CreditCard": len(CREDIT_CARD_PATTERN.findall(text)),
        "DateOfBirth": len(DATE_OF_BIRTH_PATTERN.findall(text)),
        "ZipCode": len(ZIP_CODE_PATTERN.findall(text)),
    }
    return {name: count for name, count in counts.items() if count > 0}
