"""
Escalation Infrastructure Repositories
======================================

QueryExecutor implementation of the case repository.

Only standard named-parameter SQL and JSON-typed columns are used, so the
same statements run on PostgreSQL and SQLite.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from case_escalation.config import CasePriority, CaseStatus, EscalationTier
from case_escalation.escalation.application import EscalationChanges, ICaseRepository
from case_escalation.escalation.domain import Case, CaseMetadata
from case_escalation.infrastructure.database import QueryExecutor, load_datetime, load_json

_CASE_COLUMNS = """
    id, owner_id, title, description, jurisdiction, issue_category,
    escalation_level, ai_confidence, urgency_score, suggested_actions,
    status, priority, metadata, escalated_by, escalated_at, version,
    submission_date, updated_at
"""

_INSERT_CASE = """
    INSERT INTO cases (
        id, owner_id, title, description, jurisdiction, issue_category,
        escalation_level, ai_confidence, urgency_score, suggested_actions,
        status, priority, metadata, version, submission_date, updated_at
    ) VALUES (
        :id, :owner_id, :title, :description, :jurisdiction, :issue_category,
        :escalation_level, :ai_confidence, :urgency_score, :suggested_actions,
        :status, :priority, :metadata, :version, :submission_date, :updated_at
    )
"""

_APPLY_ESCALATION = """
    UPDATE cases
    SET status = :status,
        priority = :priority,
        escalation_level = :escalation_level,
        urgency_score = :urgency_score,
        escalated_by = :escalated_by,
        escalated_at = :escalated_at,
        metadata = :metadata,
        updated_at = :updated_at,
        version = version + 1
    WHERE id = :id
      AND version = :expected_version
      AND status NOT IN (:escalated_status, :closed_status, :completed_status)
"""

_UPDATE_CLASSIFICATION = """
    UPDATE cases
    SET issue_category = :issue_category,
        escalation_level = :escalation_level,
        ai_confidence = :ai_confidence,
        urgency_score = :urgency_score,
        suggested_actions = :suggested_actions,
        updated_at = :updated_at,
        version = version + 1
    WHERE id = :id
"""


def _row_to_case(row: Dict[str, Any]) -> Case:
    return Case(
        id=row["id"],
        owner_id=row["owner_id"],
        title=row["title"],
        description=row["description"],
        jurisdiction=row["jurisdiction"],
        issue_category=row["issue_category"],
        escalation_level=EscalationTier(row["escalation_level"]),
        ai_confidence=float(row["ai_confidence"]),
        urgency_score=int(row["urgency_score"]),
        suggested_actions=load_json(row["suggested_actions"], []),
        status=CaseStatus(row["status"]),
        priority=CasePriority(row["priority"]),
        metadata=CaseMetadata.from_blob(load_json(row["metadata"], {})),
        escalated_by=row["escalated_by"],
        escalated_at=load_datetime(row["escalated_at"]),
        version=int(row["version"]),
        submission_date=load_datetime(row["submission_date"]),
        updated_at=load_datetime(row["updated_at"]),
    )


class SQLCaseRepository(ICaseRepository):
    """Case repository over the generic query interface."""

    def __init__(self, executor: QueryExecutor):
        self._executor = executor

    async def get(self, case_id: str, owner_id: Optional[str] = None) -> Optional[Case]:
        sql = f"SELECT {_CASE_COLUMNS} FROM cases WHERE id = :id"
        params: Dict[str, Any] = {"id": case_id}
        if owner_id:
            sql += " AND owner_id = :owner_id"
            params["owner_id"] = owner_id

        rows = await self._executor.query(sql, params)
        return _row_to_case(rows[0]) if rows else None

    async def create(self, case: Case) -> Case:
        await self._executor.execute(_INSERT_CASE, {
            "id": case.id,
            "owner_id": case.owner_id,
            "title": case.title,
            "description": case.description,
            "jurisdiction": case.jurisdiction,
            "issue_category": case.issue_category,
            "escalation_level": case.escalation_level.value,
            "ai_confidence": case.ai_confidence,
            "urgency_score": case.urgency_score,
            "suggested_actions": list(case.suggested_actions),
            "status": case.status.value,
            "priority": case.priority.value,
            "metadata": case.metadata.to_blob(),
            "version": case.version,
            "submission_date": case.submission_date,
            "updated_at": case.updated_at,
        })
        return case

    async def apply_escalation(
        self,
        case_id: str,
        expected_version: int,
        changes: EscalationChanges
    ) -> bool:
        rowcount = await self._executor.execute(_APPLY_ESCALATION, {
            "id": case_id,
            "expected_version": expected_version,
            "status": changes.status.value,
            "priority": changes.priority.value,
            "escalation_level": changes.escalation_level.value,
            "urgency_score": changes.urgency_score,
            "escalated_by": changes.escalated_by,
            "escalated_at": changes.escalated_at,
            "metadata": changes.metadata,
            "updated_at": changes.escalated_at,
            "escalated_status": CaseStatus.ESCALATED.value,
            "closed_status": CaseStatus.CLOSED.value,
            "completed_status": CaseStatus.COMPLETED.value,
        })
        return rowcount == 1

    async def update_classification(
        self,
        case_id: str,
        classification: Any,
        updated_at: datetime
    ) -> bool:
        rowcount = await self._executor.execute(_UPDATE_CLASSIFICATION, {
            "id": case_id,
            "issue_category": classification.category.value,
            "escalation_level": classification.escalation_tier.value,
            "ai_confidence": classification.confidence,
            "urgency_score": classification.urgency_score,
            "suggested_actions": list(classification.suggested_actions),
            "updated_at": updated_at,
        })
        return rowcount == 1
