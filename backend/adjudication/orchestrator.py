"""Claim validation pipeline.

Screen -> sanitize -> retrieve -> decide -> validate citations -> business
rules -> contradiction check -> audit. Every path resolves to a
``ClaimDecision``; operational failures become manual-review decisions whose
explanation names the failure kind.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, TypeVar

from config import (
    AUDIT_GRACE_SECONDS,
    ENHANCE_EXPLANATIONS,
    PIPELINE_DEADLINE_SECONDS,
    RETRIEVAL_TOP_K,
)
from rules import BusinessRuleOverlay, RuleThresholds
from security.pii import mask_policy_number
from security.prompt_injection import SecurityScreen
from utils import sanitize_log_value
from validation.citations import CitationValidator, ensure_grounded
from validation.contradictions import ContradictionDetector

from .coordinator import ResilientDecisionCoordinator
from .errors import (
    AuditWriteFailure,
    DecisionUnavailable,
    InputRejected,
    PipelineError,
    RetrievalUnavailable,
)
from .models import ClaimDecision, ClaimRequest, Contradiction, EvidenceClause
from .ports import AuditSink, Retriever

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Audits that failed and wait for flush_pending_audits()
MAX_PENDING_AUDITS = 100


class DeadlineExceeded(Exception):
    """Raised internally when the caller's deadline expires."""

    def __init__(self, stage: str):
        super().__init__(f"deadline exceeded during {stage}")
        self.stage = stage


class _Deadline:
    def __init__(self, seconds: float | None):
        self.seconds = seconds
        self._expires_at = time.monotonic() + seconds if seconds is not None else None

    def remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self, stage: str) -> None:
        if self.expired:
            raise DeadlineExceeded(stage)


@dataclass
class _PipelineRun:
    """Mutable per-invocation state, kept so failures can still be audited."""

    claim: ClaimRequest
    stage: str = "screen"
    outcome: str = "completed"
    evidence: list[EvidenceClause] = field(default_factory=list)
    contradictions: list[Contradiction] = field(default_factory=list)


@dataclass(frozen=True)
class PendingAudit:
    claim: ClaimRequest
    decision: ClaimDecision
    evidence: tuple[EvidenceClause, ...]
    context: dict[str, Any]
    error: str


class ClaimValidationOrchestrator:
    """Runs one claim through the guardrail pipeline.

    ``decider`` may be a ``ResilientDecisionCoordinator`` or a bare
    ``DecisionEngine``; a bare engine is wrapped in a coordinator with the
    default adjudicator configuration.
    """

    def __init__(
        self,
        retriever: Retriever,
        decider: Any,
        audit_sink: AuditSink | None = None,
        *,
        screen: SecurityScreen | None = None,
        citation_validator: CitationValidator | None = None,
        thresholds: RuleThresholds | None = None,
        contradiction_detector: ContradictionDetector | None = None,
        top_k: int = RETRIEVAL_TOP_K,
        enhance_explanations: bool = ENHANCE_EXPLANATIONS,
        default_deadline_seconds: float | None = PIPELINE_DEADLINE_SECONDS,
        audit_grace_seconds: float = AUDIT_GRACE_SECONDS,
        max_pending_audits: int = MAX_PENDING_AUDITS,
    ) -> None:
        self.retriever = retriever
        if hasattr(decider, "decide"):
            self.coordinator = decider
        else:
            self.coordinator = ResilientDecisionCoordinator(decider)
        self.audit_sink = audit_sink
        self.screen = screen or SecurityScreen()
        self.citation_validator = citation_validator or CitationValidator()
        self.overlay = BusinessRuleOverlay(thresholds)
        self.contradiction_detector = contradiction_detector or ContradictionDetector()
        self.top_k = top_k
        self.enhance_explanations = enhance_explanations
        self.default_deadline_seconds = default_deadline_seconds
        self.audit_grace_seconds = audit_grace_seconds
        self.pending_audits: deque[PendingAudit] = deque(maxlen=max_pending_audits)

    async def validate_claim(
        self,
        claim: ClaimRequest,
        deadline_seconds: float | None = None,
        supporting_documents: Sequence[str] | None = None,
    ) -> ClaimDecision:
        """Validate a claim; never raises for an operational failure."""
        started = time.perf_counter()
        if deadline_seconds is None:
            deadline_seconds = self.default_deadline_seconds
        deadline = _Deadline(deadline_seconds)
        run = _PipelineRun(claim=claim)
        masked = mask_policy_number(claim.policy_number)

        logger.info(
            f"Validating claim for policy {masked} "
            f"({sanitize_log_value(claim.policy_type, 40)}, ${claim.amount})"
        )

        try:
            decision = await self._run_pipeline(run, deadline, supporting_documents)
        except InputRejected as e:
            # Rejected input triggers no external call, the audit sink included
            logger.warning(
                f"Claim for policy {masked} rejected at screening: "
                f"{len(e.threats)} finding(s)"
            )
            return ClaimDecision.manual_review(
                "Claim description failed security screening "
                f"({e.kind}): {'; '.join(e.threats) or e}. Manual review required."
            )
        except DeadlineExceeded as e:
            logger.warning(f"Claim for policy {masked}: {e}")
            run.outcome = "deadline_exceeded"
            decision = ClaimDecision.manual_review(
                f"Automated processing stopped: {e} "
                f"(limit {deadline.seconds}s). Manual review required."
            )
        except PipelineError as e:
            logger.warning(
                f"Claim for policy {masked} failed during {run.stage}: {e.kind}: {e}"
            )
            run.outcome = e.kind
            decision = ClaimDecision.manual_review(
                f"Automated processing failed during {run.stage} ({e.kind}): {e}. "
                "Manual review required."
            )
        except Exception as e:
            logger.exception(f"Unexpected error during {run.stage} for policy {masked}")
            run.outcome = "error"
            decision = ClaimDecision.manual_review(
                f"Automated processing failed during {run.stage} "
                f"({type(e).__name__}). Manual review required."
            )

        processing_ms = (time.perf_counter() - started) * 1000
        await self._audit(run, decision, processing_ms, deadline)

        logger.info(
            f"Claim decision for policy {masked}: {decision.status.value} "
            f"(confidence {decision.confidence_score:.2f}, "
            f"outcome {run.outcome}, {processing_ms:.0f}ms)"
        )
        return decision

    def validate_claim_sync(
        self,
        claim: ClaimRequest,
        deadline_seconds: float | None = None,
        supporting_documents: Sequence[str] | None = None,
    ) -> ClaimDecision:
        """Blocking wrapper for callers without an event loop."""
        return asyncio.run(
            self.validate_claim(claim, deadline_seconds, supporting_documents)
        )

    async def _run_pipeline(
        self,
        run: _PipelineRun,
        deadline: _Deadline,
        supporting_documents: Sequence[str] | None,
    ) -> ClaimDecision:
        run.stage = "screen"
        deadline.check(run.stage)
        screening = self.screen.validate_description(run.claim.description)
        if not screening.is_valid:
            raise InputRejected(
                screening.warning_message or "Claim description is invalid",
                threats=list(screening.errors),
            )
        for issue in screening.all_issues():
            logger.info(f"Claim description {issue}")

        sanitized = self.screen.sanitize(run.claim.description)
        if sanitized != run.claim.description:
            run.claim = replace(run.claim, description=sanitized)
        claim = run.claim

        run.stage = "retrieve"
        evidence = await self._stage(
            run.stage,
            deadline,
            lambda: self.retriever.retrieve(
                claim.description, claim.policy_type, self.top_k
            ),
            RetrievalUnavailable,
        )
        run.evidence = list(evidence)
        if not run.evidence:
            run.outcome = "no_evidence"
            return ClaimDecision.manual_review(
                "No relevant policy evidence was found for policy type "
                f"'{claim.policy_type}'; the claim cannot be decided "
                "automatically. Manual review required."
            )

        run.stage = "decide"
        decision = await self._stage(
            run.stage,
            deadline,
            lambda: self.coordinator.decide(claim, run.evidence),
            DecisionUnavailable,
        )

        run.stage = "validate_citations"
        deadline.check(run.stage)
        decision = self.citation_validator.validate(
            decision, run.evidence, enhance=self.enhance_explanations
        )

        run.stage = "apply_rules"
        deadline.check(run.stage)
        decision = self.overlay.apply(decision, claim, run.evidence)

        run.stage = "detect_contradictions"
        run.contradictions = self.contradiction_detector.detect(
            claim, decision, run.evidence, supporting_documents
        )
        for line in self.contradiction_detector.summary(run.contradictions):
            logger.info(f"Advisory contradiction: {line}")

        run.stage = "verify_grounding"
        ensure_grounded(decision, run.evidence)
        return decision

    async def _stage(
        self,
        stage: str,
        deadline: _Deadline,
        call: Callable[[], Awaitable[T]],
        error_cls: type[PipelineError],
    ) -> T:
        deadline.check(stage)
        try:
            return await asyncio.wait_for(call(), timeout=deadline.remaining())
        except asyncio.TimeoutError as e:
            if deadline.expired:
                raise DeadlineExceeded(stage) from e
            raise error_cls(f"{stage} timed out") from e
        except PipelineError:
            raise
        except Exception as e:
            raise error_cls(f"{type(e).__name__}: {e}") from e

    async def _audit(
        self,
        run: _PipelineRun,
        decision: ClaimDecision,
        processing_ms: float,
        deadline: _Deadline,
    ) -> str | None:
        if self.audit_sink is None:
            return None

        context: dict[str, Any] = {
            "processing_ms": round(processing_ms, 2),
            "outcome": run.outcome,
            "contradictions": tuple(run.contradictions),
        }
        remaining = deadline.remaining()
        timeout = None if remaining is None else max(remaining, self.audit_grace_seconds)

        try:
            return await asyncio.wait_for(
                self.audit_sink.record(run.claim, decision, run.evidence, **context),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            error = f"audit write timed out after {timeout}s"
        except Exception as e:
            error = f"{type(e).__name__}: {e}"

        failure = AuditWriteFailure(error)
        logger.error(
            f"{failure.kind} for policy {mask_policy_number(run.claim.policy_number)}: "
            f"{error}; queued for retry"
        )
        if len(self.pending_audits) == self.pending_audits.maxlen:
            logger.warning("Pending audit queue full; dropping the oldest record")
        self.pending_audits.append(
            PendingAudit(
                claim=run.claim,
                decision=decision,
                evidence=tuple(run.evidence),
                context=context,
                error=error,
            )
        )
        return None

    async def flush_pending_audits(self) -> int:
        """Retry queued audit writes; returns how many succeeded."""
        if self.audit_sink is None or not self.pending_audits:
            return 0

        written = 0
        for _ in range(len(self.pending_audits)):
            pending = self.pending_audits.popleft()
            try:
                await self.audit_sink.record(
                    pending.claim,
                    pending.decision,
                    list(pending.evidence),
                    **pending.context,
                )
            except Exception as e:
                logger.warning(f"Audit retry failed: {type(e).__name__}: {e}")
                self.pending_audits.append(replace(pending, error=str(e)))
            else:
                written += 1

        if written:
            logger.info(f"Flushed {written} pending audit record(s)")
        return written
