"""
Triage Controllers (API Routes)
================================

FastAPI routes for incident classification endpoints.

Controllers delegate to application services.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from case_escalation.audit.application import DecisionHistoryService
from case_escalation.audit.infrastructure import SQLAuditRecorder, SQLDecisionHistoryRepository
from case_escalation.escalation.application import CaseResponse
from case_escalation.escalation.infrastructure import SQLCaseRepository
from case_escalation.infrastructure.database import SQLAlchemyQueryExecutor, get_session
from case_escalation.infrastructure.llm.gateway import InferenceGateway
from case_escalation.shared.api.dependencies import get_actor, get_gateway
from case_escalation.shared.infrastructure.logging import get_logger
from case_escalation.triage.application import (
    CaseSummaryResponse,
    ClassificationInfo,
    ClassificationOutcome,
    ClassificationResponse,
    ClassificationService,
    ClassifyRequest,
    HistoryEntry,
    HistoryResponse,
    ReclassifyRequest,
    StatsResponse,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/triage", tags=["Incident Triage"])


# ========== Example payloads for Swagger ==========

CLASSIFY_RESPONSE_EXAMPLE = {
    "classification": {
        "category": "Corruption - Police",
        "escalationTier": "Urgent",
        "confidence": 0.92,
        "urgencyScore": 9,
        "suggestedActions": ["Report to oversight body"],
        "reasoning": "Police refusing to investigate and soliciting a bribe."
    },
    "fallback": False,
    "model": "gpt-4o",
    "processing_time_ms": 1500,
    "case_id": None
}


# ========== Dependencies ==========

def get_classification_service(
    session: AsyncSession = Depends(get_session),
    gateway: InferenceGateway = Depends(get_gateway)
) -> ClassificationService:
    executor = SQLAlchemyQueryExecutor(session)
    return ClassificationService(
        gateway,
        SQLAuditRecorder(executor),
        case_repository=SQLCaseRepository(executor),
        executor=executor,
    )


def get_history_service(session: AsyncSession = Depends(get_session)) -> DecisionHistoryService:
    return DecisionHistoryService(SQLDecisionHistoryRepository(SQLAlchemyQueryExecutor(session)))


def to_classification_response(
    outcome: ClassificationOutcome,
    case_id: Optional[str] = None
) -> ClassificationResponse:
    return ClassificationResponse(
        classification=ClassificationInfo(**outcome.classification.to_dict()),
        fallback=outcome.is_fallback,
        model=outcome.model,
        processing_time_ms=outcome.processing_time_ms,
        case_id=case_id,
    )


# ========== Route Handlers ==========

@router.post(
    "/classify",
    response_model=ClassificationResponse,
    summary="Classify an incident report",
    description="""
    Classify free-text incident reports into:
    - **Category**: one of the fixed issue categories (unknown values map to `Other`)
    - **Escalation tier**: `Basic`, `Priority` or `Urgent`
    - **Confidence** (0-1), **urgency score** (1-10) and suggested actions

    When the inference service fails or returns unusable output, a conservative
    fallback classification is returned with `fallback: true`. Every call is
    recorded in the decision log.
    """,
    responses={
        200: {
            "description": "Text classified",
            "content": {"application/json": {"example": CLASSIFY_RESPONSE_EXAMPLE}}
        },
        422: {"description": "Text shorter than 10 or longer than 10,000 characters"}
    }
)
async def classify_text(
    request: Request,
    payload: ClassifyRequest,
    actor: Optional[str] = Depends(get_actor),
    service: ClassificationService = Depends(get_classification_service)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    logger.info(
        "Classifying text",
        extra={"correlation_id": correlation_id, "text_length": len(payload.text)}
    )

    outcome = await service.classify_text(
        payload.text,
        context=payload.context,
        case_id=payload.case_id,
        actor=actor,
    )
    return to_classification_response(outcome, payload.case_id)


@router.post(
    "/cases/{case_id}/reclassify",
    summary="Reclassify an existing case",
    description="Classify new text for a case and overwrite its classification.",
    responses={404: {"description": "Case not found"}}
)
async def reclassify_case(
    case_id: str,
    payload: ReclassifyRequest,
    owner_id: Optional[str] = Query(None, description="Restrict lookup to this owner's cases"),
    actor: Optional[str] = Depends(get_actor),
    service: ClassificationService = Depends(get_classification_service)
):
    case, outcome = await service.reclassify_case(
        case_id,
        payload.text,
        context=payload.context,
        actor=actor,
        owner_id=owner_id,
    )
    return {
        "case": CaseResponse(**case.to_dict()),
        "classification": to_classification_response(outcome, case_id),
    }


@router.post(
    "/cases/{case_id}/summary",
    response_model=CaseSummaryResponse,
    summary="Generate a case summary",
    description="""
    Plain-text professional summary (key facts, legal issues, urgency, next steps).

    When the inference service fails, a fixed summary naming the case, its
    category and its escalation level is returned with `fallback: true`.
    """,
    responses={404: {"description": "Case not found"}}
)
async def summarize_case(
    case_id: str,
    owner_id: Optional[str] = Query(None, description="Restrict lookup to this owner's cases"),
    service: ClassificationService = Depends(get_classification_service)
):
    result = await service.summarize_case(case_id, owner_id=owner_id)
    return CaseSummaryResponse(
        caseId=result.case_id,
        summary=result.summary,
        fallback=result.is_fallback,
        model=result.model,
        generatedAt=result.generated_at.isoformat(),
    )


@router.get(
    "/history",
    response_model=HistoryResponse,
    summary="Classification history",
    description="Newest first. Input text is truncated to 200 characters."
)
async def get_history(
    owner_id: Optional[str] = Query(None, description="Only classifications of this owner's cases"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: DecisionHistoryService = Depends(get_history_service)
):
    records, total = await service.get_history(owner_id=owner_id, page=page, limit=limit)
    return HistoryResponse(
        classifications=[HistoryEntry(**record.to_history_dict()) for record in records],
        total=total,
        page=page,
        limit=limit,
    )


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Classification statistics",
    description="Totals, averages and distributions over 7d, 30d, 90d or 1y."
)
async def get_stats(
    owner_id: Optional[str] = Query(None),
    timeframe: str = Query("30d", pattern="^(7d|30d|90d|1y)$"),
    service: DecisionHistoryService = Depends(get_history_service)
):
    stats = await service.get_stats(owner_id=owner_id, timeframe=timeframe)
    return StatsResponse(
        timeframe=stats.timeframe,
        total_classifications=stats.total_classifications,
        avg_confidence=stats.avg_confidence,
        avg_urgency_score=stats.avg_urgency_score,
        avg_processing_time_ms=stats.avg_processing_time_ms,
        fallback_count=stats.fallback_count,
        tier_distribution=stats.tier_counts,
        category_distribution=stats.category_counts,
    )


# Export router
triage_router = router
