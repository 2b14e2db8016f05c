"""
Audit Domain Entities
=====================

Decision records: one append-only entry per classification or escalation
decision, including fallbacks and rejections.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from case_escalation.config import DecisionKind

HISTORY_PREVIEW_LENGTH = 200


def truncate_input(text: str, limit: int = HISTORY_PREVIEW_LENGTH) -> str:
    """Shorten input text for history listings."""
    return text[:limit] + "..."


@dataclass(frozen=True)
class DecisionRecord:
    """Audit-log entry for one engine decision."""
    kind: DecisionKind
    input_summary: str
    output_snapshot: Dict[str, Any]
    confidence: float
    model_identifier: str
    case_id: Optional[str] = None
    actor: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: str = field(default_factory=lambda: str(uuid4()))

    def to_history_dict(self) -> dict:
        """History representation with the input truncated for privacy."""
        return {
            "id": self.id,
            "caseId": self.case_id,
            "kind": self.kind.value,
            "inputText": truncate_input(self.input_summary),
            "output": self.output_snapshot,
            "confidence": self.confidence,
            "modelUsed": self.model_identifier,
            "actor": self.actor,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class ClassificationStats:
    """Aggregates over classification decisions in a timeframe."""
    timeframe: str
    total_classifications: int = 0
    avg_confidence: float = 0.0
    avg_urgency_score: float = 0.0
    avg_processing_time_ms: float = 0.0
    fallback_count: int = 0
    tier_counts: Dict[str, int] = field(default_factory=dict)
    category_counts: Dict[str, int] = field(default_factory=dict)


TIMEFRAMES = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
    "1y": timedelta(days=365),
}
DEFAULT_TIMEFRAME = "30d"


def timeframe_cutoff(timeframe: str, now: Optional[datetime] = None) -> datetime:
    """Start of the window for a timeframe; unknown values use 30 days."""
    now = now or datetime.now(timezone.utc)
    return now - TIMEFRAMES.get(timeframe, TIMEFRAMES[DEFAULT_TIMEFRAME])


def summarize_classifications(records: List[DecisionRecord], timeframe: str) -> ClassificationStats:
    """Aggregate classification decision records."""
    if not records:
        return ClassificationStats(timeframe=timeframe)

    total = len(records)
    tier_counts: Dict[str, int] = {}
    category_counts: Dict[str, int] = {}
    urgency_sum = 0.0
    processing_sum = 0.0
    fallback_count = 0

    for record in records:
        snapshot = record.output_snapshot
        tier = snapshot.get("escalationTier", "Unknown")
        category = snapshot.get("category", "Unknown")
        tier_counts[tier] = tier_counts.get(tier, 0) + 1
        category_counts[category] = category_counts.get(category, 0) + 1
        urgency_sum += snapshot.get("urgencyScore", 0) or 0
        processing_sum += snapshot.get("processingTimeMs", 0) or 0
        if snapshot.get("isFallback"):
            fallback_count += 1

    return ClassificationStats(
        timeframe=timeframe,
        total_classifications=total,
        avg_confidence=round(sum(r.confidence for r in records) / total, 4),
        avg_urgency_score=round(urgency_sum / total, 2),
        avg_processing_time_ms=round(processing_sum / total, 2),
        fallback_count=fallback_count,
        tier_counts=tier_counts,
        category_counts=dict(sorted(category_counts.items(), key=lambda item: -item[1])),
    )
