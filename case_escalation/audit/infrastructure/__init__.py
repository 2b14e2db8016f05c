"""
Audit Infrastructure Layer
==========================

QueryExecutor-backed decision recorder and history repository.
"""

from case_escalation.audit.infrastructure.repositories import (
    SQLAuditRecorder,
    SQLDecisionHistoryRepository,
)

__all__ = [
    "SQLAuditRecorder",
    "SQLDecisionHistoryRepository",
]
