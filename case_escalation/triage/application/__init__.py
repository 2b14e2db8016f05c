"""
Triage Application Layer
=========================

Application layer for incident classification.

Contains:
- Services: Business logic orchestration
- DTOs: Data transfer objects for API serialization
"""

from case_escalation.triage.application.dto import (
    ClassifyRequest,
    ReclassifyRequest,
    ClassificationInfo,
    ClassificationResponse,
    HistoryEntry,
    HistoryResponse,
    StatsResponse,
    CaseSummaryResponse,
)
from case_escalation.triage.application.services import (
    CaseIntakeService,
    CaseSummary,
    ClassificationOutcome,
    ClassificationService,
)

__all__ = [
    # DTOs
    "ClassifyRequest",
    "ReclassifyRequest",
    "ClassificationInfo",
    "ClassificationResponse",
    "HistoryEntry",
    "HistoryResponse",
    "StatsResponse",
    "CaseSummaryResponse",
    # Services
    "CaseIntakeService",
    "CaseSummary",
    "ClassificationOutcome",
    "ClassificationService",
]
