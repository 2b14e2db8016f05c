"""
Case Controllers (API Routes)
=============================

FastAPI routes for case intake and escalation.

Controllers delegate to application services.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from case_escalation.audit.infrastructure import SQLAuditRecorder
from case_escalation.config import CasePriority
from case_escalation.core import CaseNotFoundException, EscalationDeniedException
from case_escalation.escalation.application import (
    CaseResponse,
    CreateCaseRequest,
    EscalateCaseRequest,
    EscalationAnalysisInfo,
    EscalationRequest,
    EscalationResponse,
    EscalationService,
)
from case_escalation.escalation.infrastructure import SQLCaseRepository
from case_escalation.infrastructure.database import SQLAlchemyQueryExecutor, get_session
from case_escalation.infrastructure.llm.gateway import InferenceGateway
from case_escalation.shared.api.dependencies import get_actor, get_gateway, require_actor
from case_escalation.shared.infrastructure.logging import get_logger
from case_escalation.triage.application import CaseIntakeService, ClassificationService
from case_escalation.triage.interfaces.controllers import to_classification_response

logger = get_logger(__name__)
router = APIRouter(prefix="/cases", tags=["Cases"])


# ========== Example payloads for Swagger ==========

ESCALATION_DENIED_EXAMPLE = {
    "detail": "AI analysis advises against escalation: insufficient evidence. Confidence: 85.0%",
    "error": "EscalationDeniedException",
    "correlation_id": "123e4567-e89b-12d3-a456-426614174000",
    "aiRecommendation": "insufficient evidence",
    "confidence": 0.85,
    "confidencePercent": "85.0%"
}


# ========== Dependencies ==========

def get_case_repository(session: AsyncSession = Depends(get_session)) -> SQLCaseRepository:
    return SQLCaseRepository(SQLAlchemyQueryExecutor(session))


def get_intake_service(
    session: AsyncSession = Depends(get_session),
    gateway: InferenceGateway = Depends(get_gateway)
) -> CaseIntakeService:
    executor = SQLAlchemyQueryExecutor(session)
    cases = SQLCaseRepository(executor)
    classifier = ClassificationService(
        gateway, SQLAuditRecorder(executor), case_repository=cases, executor=executor
    )
    return CaseIntakeService(classifier, cases, executor)


def get_escalation_service(
    session: AsyncSession = Depends(get_session),
    gateway: InferenceGateway = Depends(get_gateway)
) -> EscalationService:
    executor = SQLAlchemyQueryExecutor(session)
    return EscalationService(
        executor, SQLCaseRepository(executor), SQLAuditRecorder(executor), gateway
    )


# ========== Route Handlers ==========

@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create a case",
    description="""
    Create a case from an incident report. Category, escalation tier,
    confidence, urgency and suggested actions come from the classification
    pipeline; the case starts as `Pending` with `Normal` priority.
    """
)
async def create_case(
    payload: CreateCaseRequest,
    actor: Optional[str] = Depends(get_actor),
    service: CaseIntakeService = Depends(get_intake_service)
):
    case, outcome = await service.create_case(
        title=payload.title,
        description=payload.description,
        owner_id=actor,
        jurisdiction=payload.jurisdiction,
        metadata=payload.metadata,
    )
    return {
        "case": CaseResponse(**case.to_dict()),
        "classification": to_classification_response(outcome, case.id),
    }


@router.get(
    "/{case_id}",
    response_model=CaseResponse,
    summary="Get a case",
    responses={404: {"description": "Case not found"}}
)
async def get_case(
    case_id: str,
    owner_id: Optional[str] = Query(None),
    repository: SQLCaseRepository = Depends(get_case_repository)
):
    case = await repository.get(case_id, owner_id=owner_id)
    if case is None:
        raise CaseNotFoundException(case_id)
    return CaseResponse(**case.to_dict())


@router.post(
    "/{case_id}/escalate",
    response_model=EscalationResponse,
    summary="Escalate a case",
    description="""
    Escalate a case after AI analysis:
    - confident AI agreement: approved, AI-suggested priority applies
    - moderate AI agreement or low-confidence disagreement: approved at the
      requested priority (default `High`)
    - confident AI disagreement (>= 70%): denied with the AI recommendation

    Requires the `X-Actor-ID` header.
    """,
    responses={
        404: {"description": "Case not found"},
        409: {"description": "Case already escalated, closed/completed, or concurrently modified"},
        422: {
            "description": "Escalation denied by AI analysis",
            "content": {"application/json": {"example": ESCALATION_DENIED_EXAMPLE}}
        }
    }
)
async def escalate_case(
    request: Request,
    case_id: str,
    payload: EscalateCaseRequest,
    owner_id: Optional[str] = Query(None, description="Restrict lookup to this owner's cases"),
    actor: str = Depends(require_actor),
    session: AsyncSession = Depends(get_session),
    service: EscalationService = Depends(get_escalation_service)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    logger.info(
        "Escalation requested",
        extra={"correlation_id": correlation_id, "case_id": case_id, "actor": actor}
    )

    escalation_request = EscalationRequest(
        case_id=case_id,
        reason=payload.reason,
        actor=actor,
        requested_priority=CasePriority(payload.priority) if payload.priority else None,
        owner_id=owner_id,
    )

    try:
        outcome = await service.escalate(escalation_request)
    except EscalationDeniedException:
        # The rejection's decision record must survive the error response
        await session.commit()
        raise

    return EscalationResponse(
        case=CaseResponse(**outcome.case.to_dict()),
        aiAnalysis=EscalationAnalysisInfo(**outcome.ai_analysis.to_dict()),
        approved=outcome.approved,
        verdict=outcome.verdict.verdict.value if outcome.verdict else None,
    )


# Export router for inclusion in main app
cases_router = router
