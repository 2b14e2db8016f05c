"""
Escalation Domain Entities
===========================

Pure Python domain entities for case escalation.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from case_escalation.config import (
    CasePriority, CaseStatus, EscalationTier, SUGGESTED_PRIORITIES, TERMINAL_STATUSES
)
from case_escalation.core import ClassificationValidationFailed
from case_escalation.escalation.domain.metadata import CaseMetadata
from case_escalation.shared.infrastructure.logging import get_logger
from case_escalation.triage.domain import (
    clamp_confidence, clamp_urgency, coerce_string_list, is_number
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class EscalationAnalysis:
    """
    AI assessment of whether a case should be escalated.

    Ephemeral: persisted only inside escalation metadata and decision records.
    """
    should_escalate: bool
    confidence: float
    reasons: List[str]
    suggested_priority: CasePriority
    urgency_score: int
    risk_factors: List[str] = field(default_factory=list)
    recommendation: str = ""
    is_fallback: bool = False

    def to_dict(self) -> dict:
        return {
            "shouldEscalate": self.should_escalate,
            "confidence": self.confidence,
            "reasons": list(self.reasons),
            "suggestedPriority": self.suggested_priority.value,
            "urgencyScore": self.urgency_score,
            "riskFactors": list(self.risk_factors),
            "recommendation": self.recommendation,
        }


FALLBACK_ANALYSIS = EscalationAnalysis(
    should_escalate=False,
    confidence=0.1,
    reasons=["AI analysis failed - manual review required"],
    suggested_priority=CasePriority.NORMAL,
    urgency_score=5,
    risk_factors=["Unable to assess risk factors"],
    recommendation=(
        "AI analysis unavailable. Please review case manually and use "
        "professional judgment for escalation decision."
    ),
    is_fallback=True,
)


class EscalationAnalysisValidator:
    """Enforces the escalation analysis output contract."""

    @classmethod
    def validate(cls, raw: Any) -> EscalationAnalysis:
        """Return a valid analysis, substituting FALLBACK_ANALYSIS on failure."""
        try:
            return cls.validate_strict(raw)
        except ClassificationValidationFailed as e:
            logger.warning(
                "Escalation analysis rejected, using fallback",
                extra={"reason": e.message, **e.details}
            )
            return FALLBACK_ANALYSIS

    @classmethod
    def validate_strict(cls, raw: Any) -> EscalationAnalysis:
        if not isinstance(raw, dict):
            raise ClassificationValidationFailed(
                "Escalation analysis is not an object",
                {"received_type": type(raw).__name__}
            )
        if not isinstance(raw.get("shouldEscalate"), bool):
            raise ClassificationValidationFailed("shouldEscalate is not a boolean", {"field": "shouldEscalate"})
        if not is_number(raw.get("confidence")):
            raise ClassificationValidationFailed("Confidence is not numeric", {"field": "confidence"})
        if not isinstance(raw.get("reasons"), list):
            raise ClassificationValidationFailed("Reasons is not a list", {"field": "reasons"})
        if raw.get("suggestedPriority") not in SUGGESTED_PRIORITIES:
            raise ClassificationValidationFailed(
                "Unknown suggested priority",
                {"field": "suggestedPriority", "value": raw.get("suggestedPriority")}
            )
        if not is_number(raw.get("urgencyScore")):
            raise ClassificationValidationFailed("Urgency score is not numeric", {"field": "urgencyScore"})

        recommendation = raw.get("recommendation")

        return EscalationAnalysis(
            should_escalate=raw["shouldEscalate"],
            confidence=clamp_confidence(raw["confidence"]),
            reasons=coerce_string_list(raw["reasons"], []),
            suggested_priority=CasePriority(raw["suggestedPriority"]),
            urgency_score=clamp_urgency(raw["urgencyScore"]),
            risk_factors=coerce_string_list(raw.get("riskFactors"), []),
            recommendation=recommendation if isinstance(recommendation, str) else "",
        )


@dataclass(frozen=True)
class EscalationRecord:
    """The single active escalation record kept in case metadata."""
    reason: str
    priority: CasePriority
    escalated_by: str
    escalated_at: datetime
    verdict: str
    ai_analysis: EscalationAnalysis

    def to_dict(self) -> dict:
        return {
            "reason": self.reason,
            "priority": self.priority.value,
            "escalatedBy": self.escalated_by,
            "escalatedAt": self.escalated_at.isoformat(),
            "verdict": self.verdict,
            "aiAnalysis": self.ai_analysis.to_dict(),
        }


@dataclass
class Case:
    """
    Case entity: the subset of an incident case the engine reads and writes.
    """
    id: str
    title: str
    description: str
    status: CaseStatus
    priority: CasePriority
    escalation_level: EscalationTier
    issue_category: str
    ai_confidence: float
    urgency_score: int
    submission_date: datetime
    updated_at: datetime
    suggested_actions: List[str] = field(default_factory=list)
    metadata: CaseMetadata = field(default_factory=CaseMetadata)
    jurisdiction: Optional[str] = None
    owner_id: Optional[str] = None
    escalated_by: Optional[str] = None
    escalated_at: Optional[datetime] = None
    version: int = 1

    @property
    def is_escalated(self) -> bool:
        return self.status == CaseStatus.ESCALATED

    @property
    def is_terminal(self) -> bool:
        """Closed or completed cases never re-enter the escalation pipeline."""
        return self.status.value in TERMINAL_STATUSES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "jurisdiction": self.jurisdiction,
            "ownerId": self.owner_id,
            "status": self.status.value,
            "priority": self.priority.value,
            "escalationLevel": self.escalation_level.value,
            "issueCategory": self.issue_category,
            "aiConfidence": self.ai_confidence,
            "urgencyScore": self.urgency_score,
            "suggestedActions": list(self.suggested_actions),
            "metadata": self.metadata.to_blob(),
            "escalatedBy": self.escalated_by,
            "escalatedAt": self.escalated_at.isoformat() if self.escalated_at else None,
            "submissionDate": self.submission_date.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "version": self.version,
        }


@dataclass(frozen=True)
class CaseSnapshot:
    """Case facts sent to the inference service for escalation analysis."""
    title: str
    description: str
    current_priority: str
    current_status: str
    issue_category: str
    submission_date: datetime
    jurisdiction: Optional[str] = None
    user_reason: Optional[str] = None

    @classmethod
    def from_case(cls, case: Case, user_reason: Optional[str] = None) -> "CaseSnapshot":
        return cls(
            title=case.title,
            description=case.description,
            current_priority=case.priority.value,
            current_status=case.status.value,
            issue_category=case.issue_category,
            submission_date=case.submission_date,
            jurisdiction=case.jurisdiction,
            user_reason=user_reason,
        )

    def days_since_submission(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now(timezone.utc)
        submitted = self.submission_date
        if submitted.tzinfo is None:
            submitted = submitted.replace(tzinfo=timezone.utc)
        return max(0, (now - submitted).days)


class EscalationPromptBuilder:
    """Builds prompts for escalation analysis."""

    SYSTEM_PROMPT = (
        "You are a legal case analysis AI that helps determine if cases need "
        "escalation. Always respond with valid JSON only."
    )

    @classmethod
    def build_prompt(cls, snapshot: CaseSnapshot, now: Optional[datetime] = None) -> str:
        lines = [
            "Analyze the following legal case for escalation necessity:",
            "",
            "Case Details:",
            f"- Title: {snapshot.title}",
            f"- Description: {snapshot.description}",
            f"- Current Priority: {snapshot.current_priority}",
            f"- Current Status: {snapshot.current_status}",
            f"- Issue Category: {snapshot.issue_category}",
            f"- Jurisdiction: {snapshot.jurisdiction or 'Not specified'}",
            f"- Days since submission: {snapshot.days_since_submission(now)}",
        ]
        if snapshot.user_reason:
            lines.append(f"- Manual escalation reason: {snapshot.user_reason}")

        lines.append("""
Determine:
1. Should this case be escalated? (true/false)
2. Confidence level (0-1)
3. Specific reasons for escalation
4. Suggested priority level (Normal/High/Critical)
5. Urgency score (1-10)
6. Risk factors identified
7. Overall recommendation

Consider severity, time sensitivity, public safety implications, legal
complexity, potential media attention, statute of limitations concerns,
evidence preservation needs and victim vulnerability.

Respond in this exact JSON format:
{
    "shouldEscalate": boolean,
    "confidence": number,
    "reasons": ["reason1", "reason2"],
    "suggestedPriority": "Normal|High|Critical",
    "urgencyScore": number,
    "riskFactors": ["factor1", "factor2"],
    "recommendation": "detailed recommendation text"
}""")
        return "\n".join(lines)

    @classmethod
    def build_messages(cls, snapshot: CaseSnapshot, now: Optional[datetime] = None) -> List[dict]:
        return [
            {"role": "system", "content": cls.SYSTEM_PROMPT},
            {"role": "user", "content": cls.build_prompt(snapshot, now)},
        ]


class CaseSummaryPromptBuilder:
    """Builds prompts for plain-text case summaries."""

    FALLBACK_TEMPLATE = (
        "Case Summary: {ref} - {category} case requiring {level} attention. "
        "Manual summary required due to AI processing error."
    )

    @classmethod
    def build_prompt(cls, case: Case) -> str:
        return f"""Generate a professional case summary for the following incident report:

Case Reference: {case.id}
Title: {case.title}
Issue Category: {case.issue_category}
Escalation Level: {case.escalation_level.value}
Description: {case.description}
Jurisdiction: {case.jurisdiction or 'Not specified'}

Create a concise, professional summary (max 200 words) that:
1. Summarizes the key facts
2. Identifies the main legal issues
3. Notes the urgency level
4. Suggests next steps

Format as plain text, professional tone."""

    @classmethod
    def build_messages(cls, case: Case) -> List[dict]:
        return [{"role": "user", "content": cls.build_prompt(case)}]

    @classmethod
    def fallback_summary(cls, case: Case) -> str:
        return cls.FALLBACK_TEMPLATE.format(
            ref=case.id,
            category=case.issue_category,
            level=case.escalation_level.value,
        )
