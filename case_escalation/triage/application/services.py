"""
Triage Application Services
============================

Application services for incident classification and case intake.

Orchestrates the inference gateway, the classification validator and the
audit recorder. Every classification, fallback included, leaves a decision
record.
"""

import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from case_escalation.audit.application import IAuditRecorder
from case_escalation.audit.domain import DecisionRecord
from case_escalation.config import CasePriority, CaseStatus, DecisionKind, settings
from case_escalation.core import (
    CaseNotFoundException,
    ClassificationUnavailable,
    ConfigurationException,
    ValidationException,
)
from case_escalation.escalation.application.services import ICaseRepository
from case_escalation.escalation.domain import Case, CaseMetadata, CaseSummaryPromptBuilder
from case_escalation.infrastructure.database import QueryExecutor
from case_escalation.infrastructure.llm.gateway import InferenceGateway
from case_escalation.shared.infrastructure.logging import get_logger
from case_escalation.triage.domain import (
    Classification,
    ClassificationValidator,
    FALLBACK_CLASSIFICATION,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClassificationOutcome:
    """A classification plus how it was produced."""
    classification: Classification
    model: str
    processing_time_ms: int

    @property
    def is_fallback(self) -> bool:
        return self.classification.is_fallback

    def snapshot(self) -> Dict[str, Any]:
        """Output snapshot stored in the decision record."""
        return {
            **self.classification.to_dict(),
            "processingTimeMs": self.processing_time_ms,
            "isFallback": self.is_fallback,
        }


@dataclass(frozen=True)
class CaseSummary:
    """Plain-text case summary; fallback text when inference failed."""
    case_id: str
    summary: str
    model: str
    is_fallback: bool
    generated_at: datetime


class ClassificationService:
    """
    Service for incident classification using the inference gateway.

    Coordinates between the gateway, the validator and the audit recorder.
    """

    def __init__(
        self,
        gateway: InferenceGateway,
        audit_recorder: IAuditRecorder,
        case_repository: Optional[ICaseRepository] = None,
        executor: Optional[QueryExecutor] = None
    ):
        self._gateway = gateway
        self._audit = audit_recorder
        self._cases = case_repository
        self._executor = executor

    @staticmethod
    def validate_text(text: str) -> None:
        """
        Raises:
            ValidationException: if text is blank or its length is outside the
                configured bounds
        """
        if not isinstance(text, str):
            raise ValidationException("Text must be a string")
        if not text.strip():
            raise ValidationException("Text is required for classification")
        length = len(text)
        if length < settings.min_text_length or length > settings.max_text_length:
            raise ValidationException(
                f"Text must be between {settings.min_text_length} and "
                f"{settings.max_text_length} characters",
                {"length": length}
            )

    async def infer(
        self,
        text: str,
        context: Optional[dict] = None,
        timeout: Optional[float] = None
    ) -> ClassificationOutcome:
        """
        Classify text without recording the decision.

        Inference failures and contract violations resolve to
        FALLBACK_CLASSIFICATION; nothing from the gateway is raised.
        """
        self.validate_text(text)
        start_time = time.perf_counter()

        try:
            response = await self._gateway.classify(text, context, timeout=timeout)
        except ClassificationUnavailable as e:
            logger.warning(
                "Classification unavailable, using fallback",
                extra={"error": e.message, **e.details}
            )
            classification, model = FALLBACK_CLASSIFICATION, self._gateway.model
        else:
            classification = ClassificationValidator.validate(response.data)
            model = response.model

        return ClassificationOutcome(
            classification=classification,
            model=model,
            processing_time_ms=int((time.perf_counter() - start_time) * 1000),
        )

    async def record(
        self,
        outcome: ClassificationOutcome,
        text: str,
        case_id: Optional[str] = None,
        actor: Optional[str] = None
    ) -> DecisionRecord:
        decision = DecisionRecord(
            kind=DecisionKind.CLASSIFICATION,
            case_id=case_id,
            input_summary=text,
            output_snapshot=outcome.snapshot(),
            confidence=outcome.classification.confidence,
            model_identifier=outcome.model,
            actor=actor,
        )
        await self._audit.record(decision)
        return decision

    async def classify_text(
        self,
        text: str,
        context: Optional[dict] = None,
        case_id: Optional[str] = None,
        actor: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> ClassificationOutcome:
        """
        Classify incident text and record the decision.

        Args:
            text: Incident report (10 to 10,000 characters)
            context: Optional extra facts passed to the prompt
            case_id: Case the classification belongs to, if any
            actor: Who requested the classification
            timeout: Override for the inference timeout in seconds

        Returns:
            ClassificationOutcome (fallback classification on inference failure)

        Raises:
            ValidationException: text length out of bounds
            AuditWriteFailedException: decision record could not be written
        """
        outcome = await self.infer(text, context, timeout)
        await self.record(outcome, text, case_id=case_id, actor=actor)

        logger.info(
            "Text classified",
            extra={
                "case_id": case_id,
                "category": outcome.classification.category.value,
                "escalation_tier": outcome.classification.escalation_tier.value,
                "confidence": outcome.classification.confidence,
                "fallback": outcome.is_fallback,
                "processing_time_ms": outcome.processing_time_ms,
            }
        )
        return outcome

    async def reclassify_case(
        self,
        case_id: str,
        text: str,
        context: Optional[dict] = None,
        actor: Optional[str] = None,
        owner_id: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> Tuple[Case, ClassificationOutcome]:
        """
        Classify new text for an existing case and overwrite its classification.

        Raises:
            CaseNotFoundException: case does not exist (or not visible to owner)
        """
        if self._cases is None or self._executor is None:
            raise ConfigurationException("Reclassification requires a case repository")

        case = await self._cases.get(case_id, owner_id=owner_id)
        if case is None:
            raise CaseNotFoundException(case_id)

        outcome = await self.infer(text, context, timeout)
        updated_at = datetime.now(timezone.utc)

        async with self._executor.transaction():
            if not await self._cases.update_classification(case_id, outcome.classification, updated_at):
                raise CaseNotFoundException(case_id)
            await self.record(outcome, text, case_id=case_id, actor=actor)

        logger.info(
            "Case reclassified",
            extra={
                "case_id": case_id,
                "category": outcome.classification.category.value,
                "escalation_tier": outcome.classification.escalation_tier.value,
                "fallback": outcome.is_fallback,
            }
        )

        classification = outcome.classification
        updated = replace(
            case,
            issue_category=classification.category.value,
            escalation_level=classification.escalation_tier,
            ai_confidence=classification.confidence,
            urgency_score=classification.urgency_score,
            suggested_actions=list(classification.suggested_actions),
            updated_at=updated_at,
            version=case.version + 1,
        )
        return updated, outcome

    async def summarize_case(
        self,
        case_id: str,
        owner_id: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> CaseSummary:
        """
        Generate a short professional summary of a case.

        Inference failures resolve to a fixed summary naming the case, its
        category and its escalation level. Summaries are not recorded.

        Raises:
            CaseNotFoundException: case does not exist (or not visible to owner)
        """
        if self._cases is None:
            raise ConfigurationException("Case summaries require a case repository")

        case = await self._cases.get(case_id, owner_id=owner_id)
        if case is None:
            raise CaseNotFoundException(case_id)

        try:
            response = await self._gateway.summarize_case(case, timeout=timeout)
        except ClassificationUnavailable as e:
            logger.error(
                "Case summary generation failed, using fallback",
                extra={"case_id": case_id, "error": e.message}
            )
            return CaseSummary(
                case_id=case_id,
                summary=CaseSummaryPromptBuilder.fallback_summary(case),
                model=self._gateway.model,
                is_fallback=True,
                generated_at=datetime.now(timezone.utc),
            )

        return CaseSummary(
            case_id=case_id,
            summary=response.text,
            model=response.model,
            is_fallback=False,
            generated_at=datetime.now(timezone.utc),
        )


class CaseIntakeService:
    """Creates cases whose classification comes from the incident description."""

    def __init__(
        self,
        classification_service: ClassificationService,
        case_repository: ICaseRepository,
        executor: QueryExecutor
    ):
        self._classifier = classification_service
        self._cases = case_repository
        self._executor = executor

    async def create_case(
        self,
        title: str,
        description: str,
        owner_id: Optional[str] = None,
        jurisdiction: Optional[str] = None,
        metadata: Optional[dict] = None,
        timeout: Optional[float] = None
    ) -> Tuple[Case, ClassificationOutcome]:
        """
        Classify the description and store a new Pending/Normal case.

        Raises:
            ValidationException: description length out of bounds
        """
        context = {"title": title}
        if jurisdiction:
            context["jurisdiction"] = jurisdiction

        outcome = await self._classifier.infer(description, context, timeout)
        classification = outcome.classification
        now = datetime.now(timezone.utc)

        case = Case(
            id=str(uuid4()),
            owner_id=owner_id,
            title=title,
            description=description,
            jurisdiction=jurisdiction,
            issue_category=classification.category.value,
            escalation_level=classification.escalation_tier,
            ai_confidence=classification.confidence,
            urgency_score=classification.urgency_score,
            suggested_actions=list(classification.suggested_actions),
            status=CaseStatus.PENDING,
            priority=CasePriority.NORMAL,
            metadata=CaseMetadata.from_blob(metadata or {}),
            submission_date=now,
            updated_at=now,
        )

        async with self._executor.transaction():
            await self._cases.create(case)
            await self._classifier.record(outcome, description, case_id=case.id, actor=owner_id)

        logger.info(
            "Case created",
            extra={
                "case_id": case.id,
                "category": case.issue_category,
                "escalation_level": case.escalation_level.value,
                "fallback": outcome.is_fallback,
            }
        )
        return case, outcome
