"""
Escalation Infrastructure Layer
===============================

QueryExecutor-backed case repository.
"""

from case_escalation.escalation.infrastructure.repositories import SQLCaseRepository

__all__ = [
    "SQLCaseRepository",
]
