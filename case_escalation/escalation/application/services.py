"""
Escalation Application Services
===============================

Orchestrates the escalation pipeline: fresh read, precondition checks,
inference, policy decision, then one conditional case write together with
its decision record.

Following SOLID principles:
- Single Responsibility: the policy decides, this service sequences and persists
- Dependency Inversion: depends on repository interfaces, not concrete stores
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from case_escalation.audit.application import IAuditRecorder
from case_escalation.audit.domain import DecisionRecord
from case_escalation.config import CasePriority, CaseStatus, DecisionKind, EscalationTier
from case_escalation.core import (
    AlreadyEscalatedException,
    CaseNotFoundException,
    ClassificationUnavailable,
    ConcurrentCaseUpdateException,
    EscalationDeniedException,
    InvalidCaseStateException,
)
from case_escalation.escalation.domain import (
    Case,
    CaseMetadata,
    CaseSnapshot,
    EscalationAnalysis,
    EscalationAnalysisValidator,
    EscalationPolicy,
    EscalationRecord,
    EscalationVerdict,
    FALLBACK_ANALYSIS,
    merge_escalation_metadata,
)
from case_escalation.infrastructure.database import QueryExecutor
from case_escalation.infrastructure.llm.gateway import InferenceGateway
from case_escalation.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

@dataclass(frozen=True)
class EscalationChanges:
    """Column values written by an approved escalation."""
    priority: CasePriority
    escalation_level: EscalationTier
    urgency_score: int
    escalated_by: str
    escalated_at: datetime
    metadata: Dict[str, Any]
    status: CaseStatus = CaseStatus.ESCALATED


class ICaseRepository(ABC):
    """Interface for case data access."""

    @abstractmethod
    async def get(self, case_id: str, owner_id: Optional[str] = None) -> Optional[Case]:
        """Fresh read of a case, optionally restricted to an owner."""

    @abstractmethod
    async def create(self, case: Case) -> Case:
        """Insert a new case."""

    @abstractmethod
    async def apply_escalation(
        self,
        case_id: str,
        expected_version: int,
        changes: EscalationChanges
    ) -> bool:
        """
        Conditionally write an escalation.

        Applies only if the stored version still equals expected_version and the
        case is neither escalated nor in a terminal status. Returns False when
        the condition does not hold.
        """

    @abstractmethod
    async def update_classification(
        self,
        case_id: str,
        classification: Any,
        updated_at: datetime
    ) -> bool:
        """Overwrite the classification columns of a case."""


# ========== Request / Outcome ==========

@dataclass(frozen=True)
class EscalationRequest:
    """
    Options for one escalation attempt.

    owner_id restricts the case lookup to cases owned by that user; leave it
    unset for staff-wide access.
    """
    case_id: str
    reason: str
    actor: str
    requested_priority: Optional[CasePriority] = None
    escalated_at: Optional[datetime] = None
    owner_id: Optional[str] = None
    timeout: Optional[float] = None


@dataclass(frozen=True)
class EscalationOutcome:
    """Result of a successful escalation."""
    case: Case
    ai_analysis: EscalationAnalysis
    approved: bool
    verdict: Optional[EscalationVerdict] = field(default=None, compare=False)


# ========== Application Services ==========

class EscalationService:
    """
    Case state transition manager for escalations.

    The inference call happens before any write; the case update and its
    decision record are committed together or not at all.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        case_repository: ICaseRepository,
        audit_recorder: IAuditRecorder,
        gateway: InferenceGateway
    ):
        self._executor = executor
        self._cases = case_repository
        self._audit = audit_recorder
        self._gateway = gateway

    async def escalate(self, request: EscalationRequest) -> EscalationOutcome:
        """
        Escalate a case if the policy allows it.

        Raises:
            CaseNotFoundException: case does not exist (or not visible to owner)
            AlreadyEscalatedException: case is already escalated
            InvalidCaseStateException: case is closed or completed
            EscalationDeniedException: AI analysis confidently advises against
            ConcurrentCaseUpdateException: a concurrent writer changed the case
            AuditWriteFailedException: decision record could not be written
        """
        escalated_at = request.escalated_at or datetime.now(timezone.utc)

        case = await self._load_escalatable(request.case_id, request.owner_id)

        analysis, model = await self._analyze(
            CaseSnapshot.from_case(case, request.reason), request.timeout
        )
        verdict = EscalationPolicy.decide(analysis, request.requested_priority, request.reason)

        decision = self._decision_record(case, request, analysis, verdict, model, escalated_at)

        if not verdict.approved:
            await self._audit.record(decision)
            logger.info(
                "Escalation denied by policy",
                extra={
                    "case_id": case.id,
                    "actor": request.actor,
                    "confidence": analysis.confidence,
                }
            )
            raise EscalationDeniedException(case.id, verdict.recommendation, verdict.confidence)

        escalation_record = EscalationRecord(
            reason=verdict.notes,
            priority=verdict.final_priority,
            escalated_by=request.actor,
            escalated_at=escalated_at,
            verdict=verdict.verdict.value,
            ai_analysis=analysis,
        )
        changes = EscalationChanges(
            priority=verdict.final_priority,
            escalation_level=verdict.escalation_tier,
            urgency_score=verdict.urgency_score,
            escalated_by=request.actor,
            escalated_at=escalated_at,
            metadata=merge_escalation_metadata(case.metadata.to_blob(), escalation_record),
        )

        async with self._executor.transaction():
            applied = await self._cases.apply_escalation(case.id, case.version, changes)
            if applied:
                await self._audit.record(decision)

        if not applied:
            await self._raise_lost_update(case.id, request.owner_id)

        logger.info(
            "Case escalated",
            extra={
                "case_id": case.id,
                "actor": request.actor,
                "verdict": verdict.verdict.value,
                "priority": changes.priority.value,
                "escalation_level": changes.escalation_level.value,
                "fallback": analysis.is_fallback,
            }
        )

        updated = replace(
            case,
            status=changes.status,
            priority=changes.priority,
            escalation_level=changes.escalation_level,
            urgency_score=changes.urgency_score,
            escalated_by=changes.escalated_by,
            escalated_at=changes.escalated_at,
            metadata=CaseMetadata.from_blob(changes.metadata),
            updated_at=escalated_at,
            version=case.version + 1,
        )
        return EscalationOutcome(case=updated, ai_analysis=analysis, approved=True, verdict=verdict)

    async def _load_escalatable(self, case_id: str, owner_id: Optional[str]) -> Case:
        case = await self._cases.get(case_id, owner_id=owner_id)
        if case is None:
            raise CaseNotFoundException(case_id)
        self._check_preconditions(case)
        return case

    @staticmethod
    def _check_preconditions(case: Case) -> None:
        if case.is_escalated:
            raise AlreadyEscalatedException(case.id)
        if case.is_terminal:
            raise InvalidCaseStateException(case.id, case.status.value)

    async def _analyze(
        self,
        snapshot: CaseSnapshot,
        timeout: Optional[float]
    ) -> Tuple[EscalationAnalysis, str]:
        try:
            response = await self._gateway.analyze_escalation(snapshot, timeout=timeout)
        except ClassificationUnavailable as e:
            logger.warning(
                "Escalation analysis unavailable, using fallback",
                extra={"error": e.message}
            )
            return FALLBACK_ANALYSIS, self._gateway.model
        return EscalationAnalysisValidator.validate(response.data), response.model

    async def _raise_lost_update(self, case_id: str, owner_id: Optional[str]) -> None:
        current = await self._cases.get(case_id, owner_id=owner_id)
        if current is None:
            raise CaseNotFoundException(case_id)
        self._check_preconditions(current)
        logger.warning("Escalation lost a concurrent update", extra={"case_id": case_id})
        raise ConcurrentCaseUpdateException(case_id)

    @staticmethod
    def _decision_record(
        case: Case,
        request: EscalationRequest,
        analysis: EscalationAnalysis,
        verdict: EscalationVerdict,
        model: str,
        created_at: datetime
    ) -> DecisionRecord:
        return DecisionRecord(
            kind=DecisionKind.ESCALATION,
            case_id=case.id,
            input_summary=f"Manual escalation analysis: {request.reason}",
            output_snapshot={
                "verdict": verdict.verdict.value,
                "approved": verdict.approved,
                "finalPriority": verdict.final_priority.value if verdict.final_priority else None,
                "escalationTier": verdict.escalation_tier.value if verdict.escalation_tier else None,
                "urgencyScore": verdict.urgency_score,
                "analysis": analysis.to_dict(),
                "isFallback": analysis.is_fallback,
            },
            confidence=analysis.confidence,
            model_identifier=model,
            actor=request.actor,
            created_at=created_at,
        )
