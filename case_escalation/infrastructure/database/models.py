"""
Database Models
===============

SQLAlchemy ORM models describing the tables the repositories query.

Repositories issue parameterized SQL against these tables; the models exist
to own the schema (table creation, column types, indexes).
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from case_escalation.config import MAX_ACTOR_ID_LENGTH
from case_escalation.infrastructure.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CaseModel(Base):
    """Incident case with its current classification and escalation state."""
    __tablename__ = "cases"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[Optional[str]] = mapped_column(String(MAX_ACTOR_ID_LENGTH), index=True, nullable=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    jurisdiction: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Classification
    issue_category: Mapped[str] = mapped_column(String(100), nullable=False)
    escalation_level: Mapped[str] = mapped_column(String(20), nullable=False)
    ai_confidence: Mapped[float] = mapped_column(Float, nullable=False)
    urgency_score: Mapped[int] = mapped_column(Integer, nullable=False)
    suggested_actions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # Lifecycle
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Pending", index=True)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="Normal")
    metadata_: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)
    escalated_by: Mapped[Optional[str]] = mapped_column(String(MAX_ACTOR_ID_LENGTH), nullable=True)
    escalated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Optimistic concurrency control for the escalation write
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    submission_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


class DecisionRecordModel(Base):
    """Append-only audit row: one per classification or escalation decision."""
    __tablename__ = "decision_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    case_id: Mapped[Optional[str]] = mapped_column(String(36), index=True, nullable=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    input_summary: Mapped[str] = mapped_column(Text, nullable=False)
    output_snapshot: Mapped[dict] = mapped_column(JSON, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    model_identifier: Mapped[str] = mapped_column(String(100), nullable=False)
    actor: Mapped[Optional[str]] = mapped_column(String(MAX_ACTOR_ID_LENGTH), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )
