"""
Audit Application Layer
=======================

Contains:
- Services: DecisionHistoryService
- Repository Interfaces: IAuditRecorder, IDecisionHistoryRepository
"""

from case_escalation.audit.application.services import (
    DecisionHistoryService,
    IAuditRecorder,
    IDecisionHistoryRepository,
)

__all__ = [
    "DecisionHistoryService",
    "IAuditRecorder",
    "IDecisionHistoryRepository",
]
