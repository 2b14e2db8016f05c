"""
Escalation Value Objects
========================

Immutable value objects and the escalation policy for the escalation domain.

The policy is a pure decision table: no I/O, no clock, no shared state.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from case_escalation.config import CasePriority, EscalationTier
from case_escalation.escalation.domain.entities import EscalationAnalysis
from case_escalation.triage.domain import clamp_urgency

APPROVE_CONFIDENCE = 0.6
MODERATE_CONFIDENCE = 0.4
REJECT_CONFIDENCE = 0.7

DEFAULT_REQUESTED_PRIORITY = CasePriority.HIGH


class Verdict(str, Enum):
    """Escalation policy outcomes, in decision-table order."""
    APPROVE = "approve"
    APPROVE_MODERATE = "approve_moderate_confidence"
    REJECT = "reject"
    APPROVE_OVERRIDE = "approve_low_confidence_override"


@dataclass(frozen=True)
class EscalationVerdict:
    """
    Outcome of the escalation policy for one request.

    final_priority and escalation_tier are None for a rejection.
    """
    verdict: Verdict
    final_priority: Optional[CasePriority]
    escalation_tier: Optional[EscalationTier]
    urgency_score: int
    notes: str
    recommendation: str
    confidence: float

    @property
    def approved(self) -> bool:
        return self.verdict != Verdict.REJECT


class EscalationPolicy:
    """
    Pure functions for the escalation decision.

    Branches are evaluated in order, first match wins:

    1. AI escalates with confidence >= 0.6: approve at the AI priority
    2. AI escalates with 0.4 <= confidence < 0.6: approve at the requested priority
    3. AI declines with confidence >= 0.7: reject
    4. anything else: approve at the requested priority (human override)
    """

    @staticmethod
    def classify_branch(analysis: EscalationAnalysis) -> Verdict:
        confidence = analysis.confidence
        if analysis.should_escalate and confidence >= APPROVE_CONFIDENCE:
            return Verdict.APPROVE
        if analysis.should_escalate and confidence >= MODERATE_CONFIDENCE:
            return Verdict.APPROVE_MODERATE
        if not analysis.should_escalate and confidence >= REJECT_CONFIDENCE:
            return Verdict.REJECT
        return Verdict.APPROVE_OVERRIDE

    @staticmethod
    def tier_for_priority(priority: CasePriority) -> EscalationTier:
        if priority == CasePriority.CRITICAL:
            return EscalationTier.URGENT
        if priority == CasePriority.HIGH:
            return EscalationTier.PRIORITY
        return EscalationTier.BASIC

    @staticmethod
    def analysis_note(verdict: Verdict, recommendation: str) -> str:
        if verdict == Verdict.APPROVE:
            return f"AI Analysis: {recommendation}"
        if verdict == Verdict.APPROVE_MODERATE:
            return f"AI Analysis (moderate confidence): {recommendation}"
        if verdict == Verdict.APPROVE_OVERRIDE:
            return (
                "AI Analysis (low confidence): Manual escalation approved "
                f"despite AI recommendation. {recommendation}"
            )
        return ""

    @classmethod
    def decide(
        cls,
        analysis: EscalationAnalysis,
        requested_priority: Optional[CasePriority],
        user_reason: str
    ) -> EscalationVerdict:
        """
        Apply the decision table to an escalation analysis.

        Args:
            analysis: Validated (or fallback) AI analysis
            requested_priority: Priority asked for by the caller, if any
            user_reason: Human-supplied escalation reason

        Returns:
            EscalationVerdict with final priority, tier, urgency and notes
        """
        verdict = cls.classify_branch(analysis)
        urgency = clamp_urgency(analysis.urgency_score)

        if verdict == Verdict.REJECT:
            return EscalationVerdict(
                verdict=verdict,
                final_priority=None,
                escalation_tier=None,
                urgency_score=urgency,
                notes=user_reason,
                recommendation=analysis.recommendation,
                confidence=analysis.confidence,
            )

        if verdict == Verdict.APPROVE:
            final_priority = analysis.suggested_priority
        else:
            final_priority = requested_priority or DEFAULT_REQUESTED_PRIORITY

        note = cls.analysis_note(verdict, analysis.recommendation)

        return EscalationVerdict(
            verdict=verdict,
            final_priority=final_priority,
            escalation_tier=cls.tier_for_priority(final_priority),
            urgency_score=urgency,
            notes=f"{user_reason} | {note}",
            recommendation=analysis.recommendation,
            confidence=analysis.confidence,
        )
