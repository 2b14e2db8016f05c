"""
Escalation Application Layer
============================

Application layer for case escalation.

Contains:
- Services: EscalationService
- DTOs: Data transfer objects for API serialization
"""

from case_escalation.escalation.application.dto import (
    CaseResponse,
    CreateCaseRequest,
    EscalateCaseRequest,
    EscalationAnalysisInfo,
    EscalationResponse,
)
from case_escalation.escalation.application.services import (
    EscalationChanges,
    EscalationOutcome,
    EscalationRequest,
    EscalationService,
    ICaseRepository,
)

__all__ = [
    # DTOs
    "CaseResponse",
    "CreateCaseRequest",
    "EscalateCaseRequest",
    "EscalationAnalysisInfo",
    "EscalationResponse",
    # Services
    "EscalationService",
    "EscalationRequest",
    "EscalationOutcome",
    "EscalationChanges",
    # Repository Interfaces
    "ICaseRepository",
]
