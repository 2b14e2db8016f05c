"""
Audit Domain Layer
==================

Contains:
- Entities: DecisionRecord, ClassificationStats
- Domain Services: summarize_classifications, timeframe_cutoff, truncate_input
"""

from case_escalation.audit.domain.entities import (
    ClassificationStats,
    DecisionRecord,
    DEFAULT_TIMEFRAME,
    TIMEFRAMES,
    summarize_classifications,
    timeframe_cutoff,
    truncate_input,
)

__all__ = [
    "ClassificationStats",
    "DecisionRecord",
    "DEFAULT_TIMEFRAME",
    "TIMEFRAMES",
    "summarize_classifications",
    "timeframe_cutoff",
    "truncate_input",
]
