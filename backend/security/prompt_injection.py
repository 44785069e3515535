"""Prompt injection screening for inbound claim text.

An LLM cannot reliably tell instructions apart from data inside its own
context, so every free-text field is scanned here before it is forwarded to
retrieval or generation. Pattern tables are read-only module constants.
"""

from __future__ import annotations

import logging
import re

from adjudication.models import ThreatReport, ValidationOutcome

logger = logging.getLogger(__name__)

MAX_INPUT_LENGTH = 10_000
MAX_DESCRIPTION_LENGTH = 5_000
MIN_DESCRIPTION_LENGTH = 10
BASE64_MIN_LENGTH = 100
REPEAT_RUN_LENGTH = 20
SPECIAL_CHAR_RATIO_LIMIT = 0.3

DANGEROUS_PATTERNS: tuple[str, ...] = (
    "ignore previous instructions",
    "ignore all previous",
    "disregard all",
    "forget everything",
    "forget all previous",
    "you are now",
    "new instructions:",
    "new role:",
    "system:",
    "system prompt",
    "admin mode",
    "developer mode",
    "jailbreak",
    "override",
    "sudo mode",
    "<script>",
    "eval(",
    "execute(",
    "exec(",
    "system(",
    "import os",
    "subprocess",
    "__import__",
    "base64.b64decode",
    "<!--",
    "*/",
    "/*",
    "';",
    '"; ',
    "../",
)

# Only suspicious when the text also asks the model to "ignore" something
ROLE_CHANGE_PATTERNS: tuple[str, ...] = (
    "you are a",
    "act as",
    "pretend to be",
    "simulate",
    "roleplay as",
    "imagine you are",
)

SQL_PATTERNS: tuple[str, ...] = (
    "drop table",
    "delete from",
    "insert into",
    "update ",
    "'; --",
    "1=1",
    "union select",
)

HIDDEN_UNICODE = re.compile("[\u200b-\u200d\ufeff\u2060-\u2069]")
REPEATED_CHARACTER = re.compile(r"(.)\1{%d,}" % (REPEAT_RUN_LENGTH - 1), re.DOTALL)
BASE64_PAYLOAD = re.compile(
    r"(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=)?"
)
SCRIPT_BLOCK = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
MARKUP_TAG = re.compile(r"<[^>]+>")
WHITESPACE = re.compile(r"\s+")


class SecurityScreen:
    """Stateless scanner and sanitizer for free text bound for the LLM."""

    def scan(self, text: str | None) -> ThreatReport:
        """Run every check and collect one finding per triggered check."""
        threats: list[str] = []
        if not text:
            return ThreatReport.from_threats(threats)

        normalized = text.lower()

        for pattern in DANGEROUS_PATTERNS:
            if pattern in normalized:
                threats.append(f"Detected suspicious pattern: '{pattern}'")

        if "ignore" in normalized:
            for pattern in ROLE_CHANGE_PATTERNS:
                if pattern in normalized:
                    threats.append(f"Detected potential role manipulation: '{pattern}'")

        if HIDDEN_UNICODE.search(text):
            threats.append(
                "Contains hidden unicode characters that may be used for obfuscation"
            )

        if REPEATED_CHARACTER.search(text):
            threats.append(
                "Contains excessive character repetition (potential DoS attempt)"
            )

        if len(text) > MAX_INPUT_LENGTH:
            threats.append(
                f"Input exceeds safe length limit (Length: {len(text)}, "
                f"Limit: {MAX_INPUT_LENGTH})"
            )

        if len(text) > BASE64_MIN_LENGTH:
            compact = text.replace("\n", "").replace("\r", "")
            if BASE64_PAYLOAD.fullmatch(compact):
                threats.append(
                    "Input appears to be base64 encoded (potential obfuscation)"
                )

        for pattern in SQL_PATTERNS:
            if pattern in normalized:
                threats.append(f"Detected SQL-like pattern: '{pattern}'")

        special = sum(1 for ch in text if not ch.isalnum() and not ch.isspace())
        ratio = special / len(text)
        if ratio > SPECIAL_CHAR_RATIO_LIMIT:
            threats.append(f"Excessive special characters detected ({ratio:.0%} of input)")

        return ThreatReport.from_threats(threats)

    def contains_prompt_injection(self, text: str | None) -> bool:
        return not self.scan(text).is_clean

    def sanitize(self, text: str | None) -> str:
        """Strip hidden characters and markup, collapse whitespace, truncate."""
        if not text:
            return ""
        text = HIDDEN_UNICODE.sub("", text)
        text = SCRIPT_BLOCK.sub("", text)
        text = MARKUP_TAG.sub("", text)
        text = WHITESPACE.sub(" ", text)
        return text[:MAX_INPUT_LENGTH].strip()

    def validate_description(self, description: str | None) -> ValidationOutcome:
        """Combine the threat scan with claim-description bounds."""
        report = self.scan(description)
        if not report.is_clean:
            logger.warning(
                f"Claim description rejected: {len(report.threats)} threat(s) detected"
            )
            return ValidationOutcome(
                is_valid=False,
                errors=report.threats,
                warning_message="Claim description contains potentially malicious content",
            )

        if not description or not description.strip():
            return ValidationOutcome(
                is_valid=False, errors=("Claim description cannot be empty",)
            )

        if len(description) > MAX_DESCRIPTION_LENGTH:
            return ValidationOutcome(
                is_valid=False,
                errors=(
                    f"Claim description exceeds maximum length "
                    f"({MAX_DESCRIPTION_LENGTH} characters)",
                ),
            )

        warnings: list[str] = []
        if len(description) < MIN_DESCRIPTION_LENGTH:
            warnings.append(
                "Claim description is very short "
                f"(minimum {MIN_DESCRIPTION_LENGTH} characters recommended)"
            )

        return ValidationOutcome(is_valid=True, warnings=tuple(warnings))
