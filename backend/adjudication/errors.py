"""Failure taxonomy for the claim decision pipeline.

None of these escape ``ClaimValidationOrchestrator.validate_claim``; each is
converted into a manual-review decision whose explanation names the ``kind``.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for operational pipeline failures."""

    kind = "PipelineError"

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class InputRejected(PipelineError):
    """Unsafe or invalid claim text, rejected before any external call."""

    kind = "InputRejected"

    def __init__(self, message: str, threats: list[str] | None = None):
        super().__init__(message, retryable=False)
        self.threats = list(threats or [])


class RetrievalUnavailable(PipelineError):
    """Policy evidence could not be retrieved."""

    kind = "RetrievalUnavailable"


class DecisionUnavailable(PipelineError):
    """The decision engine failed or exhausted its retries."""

    kind = "DecisionUnavailable"


class EngineNotConfigured(DecisionUnavailable):
    """The decision engine is missing credentials; retrying cannot help."""

    def __init__(self, message: str):
        super().__init__(message, retryable=False)


class ValidationFailure(PipelineError):
    """The engine produced structurally malformed output."""

    kind = "ValidationFailure"


class HallucinationDetected(PipelineError):
    """A decision cited evidence that was never retrieved."""

    kind = "HallucinationDetected"

    def __init__(self, message: str, missing_ids: list[str] | None = None):
        super().__init__(message, retryable=False)
        self.missing_ids = list(missing_ids or [])


class AuditWriteFailure(PipelineError):
    """The audit record could not be persisted."""

    kind = "AuditWriteFailure"
