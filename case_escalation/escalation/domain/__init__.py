"""
Escalation Domain Layer
=======================

Domain layer for case escalation.

Contains:
- Entities: Case, EscalationAnalysis, EscalationRecord, CaseSnapshot
- Value Objects: EscalationVerdict, CaseMetadata
- Domain Services: EscalationPolicy, EscalationAnalysisValidator,
  EscalationPromptBuilder, CaseSummaryPromptBuilder

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from case_escalation.escalation.domain.entities import (
    Case,
    CaseSnapshot,
    CaseSummaryPromptBuilder,
    EscalationAnalysis,
    EscalationAnalysisValidator,
    EscalationPromptBuilder,
    EscalationRecord,
    FALLBACK_ANALYSIS,
)
from case_escalation.escalation.domain.metadata import (
    CaseMetadata,
    merge_escalation_metadata,
)
from case_escalation.escalation.domain.value_objects import (
    APPROVE_CONFIDENCE,
    MODERATE_CONFIDENCE,
    REJECT_CONFIDENCE,
    EscalationPolicy,
    EscalationVerdict,
    Verdict,
)

__all__ = [
    # Entities
    "Case",
    "CaseSnapshot",
    "CaseSummaryPromptBuilder",
    "EscalationAnalysis",
    "EscalationRecord",
    "FALLBACK_ANALYSIS",
    # Value Objects
    "CaseMetadata",
    "EscalationVerdict",
    "Verdict",
    # Domain Services
    "EscalationAnalysisValidator",
    "EscalationPromptBuilder",
    "EscalationPolicy",
    "merge_escalation_metadata",
    "APPROVE_CONFIDENCE",
    "MODERATE_CONFIDENCE",
    "REJECT_CONFIDENCE",
]
