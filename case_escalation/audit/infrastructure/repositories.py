"""
Audit Infrastructure Repositories
=================================

QueryExecutor implementations of the audit repositories.

The recorder writes through whichever executor it is given, so a caller
holding a transaction gets the audit insert inside that transaction.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from case_escalation.audit.application import IAuditRecorder, IDecisionHistoryRepository
from case_escalation.audit.domain import DecisionRecord
from case_escalation.config import DecisionKind
from case_escalation.core import AuditWriteFailedException
from case_escalation.infrastructure.database import QueryExecutor, load_datetime, load_json
from case_escalation.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

_INSERT_DECISION = """
    INSERT INTO decision_records (
        id, case_id, kind, input_summary, output_snapshot,
        confidence, model_identifier, actor, created_at
    ) VALUES (
        :id, :case_id, :kind, :input_summary, :output_snapshot,
        :confidence, :model_identifier, :actor, :created_at
    )
"""

_DECISION_COLUMNS = """
    d.id, d.case_id, d.kind, d.input_summary, d.output_snapshot,
    d.confidence, d.model_identifier, d.actor, d.created_at
"""

_OWNER_FILTER = " AND d.case_id IN (SELECT id FROM cases WHERE owner_id = :owner_id)"


def _row_to_record(row: Dict[str, Any]) -> DecisionRecord:
    return DecisionRecord(
        id=row["id"],
        case_id=row["case_id"],
        kind=DecisionKind(row["kind"]),
        input_summary=row["input_summary"],
        output_snapshot=load_json(row["output_snapshot"], {}),
        confidence=float(row["confidence"]),
        model_identifier=row["model_identifier"],
        actor=row["actor"],
        created_at=load_datetime(row["created_at"]),
    )


class SQLAuditRecorder(IAuditRecorder):
    """Appends decision records to the decision_records table."""

    def __init__(self, executor: QueryExecutor):
        self._executor = executor

    async def record(self, record: DecisionRecord) -> None:
        try:
            await self._executor.execute(_INSERT_DECISION, {
                "id": record.id,
                "case_id": record.case_id,
                "kind": record.kind.value,
                "input_summary": record.input_summary,
                "output_snapshot": record.output_snapshot,
                "confidence": record.confidence,
                "model_identifier": record.model_identifier,
                "actor": record.actor,
                "created_at": record.created_at,
            })
        except Exception as e:
            logger.error(
                "Decision record write failed",
                extra={"kind": record.kind.value, "case_id": record.case_id, "error": str(e)}
            )
            raise AuditWriteFailedException(record.kind.value, record.case_id, str(e))

        logger.info(
            "Decision recorded",
            extra={
                "decision_id": record.id,
                "kind": record.kind.value,
                "case_id": record.case_id,
                "confidence": record.confidence,
            }
        )


class SQLDecisionHistoryRepository(IDecisionHistoryRepository):
    """Reads decision records for history and statistics."""

    def __init__(self, executor: QueryExecutor):
        self._executor = executor

    async def list_decisions(
        self,
        kind: DecisionKind,
        owner_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[DecisionRecord], int]:
        where = "WHERE d.kind = :kind"
        params: Dict[str, Any] = {"kind": kind.value}
        if owner_id:
            where += _OWNER_FILTER
            params["owner_id"] = owner_id

        count_rows = await self._executor.query(
            f"SELECT COUNT(*) AS total FROM decision_records d {where}", params
        )
        rows = await self._executor.query(
            f"SELECT {_DECISION_COLUMNS} FROM decision_records d {where} "
            "ORDER BY d.created_at DESC LIMIT :limit OFFSET :offset",
            {**params, "limit": limit, "offset": offset},
        )
        total = int(count_rows[0]["total"]) if count_rows else 0
        return [_row_to_record(row) for row in rows], total

    async def list_since(
        self,
        kind: DecisionKind,
        since: datetime,
        owner_id: Optional[str] = None
    ) -> List[DecisionRecord]:
        where = "WHERE d.kind = :kind AND d.created_at > :since"
        params: Dict[str, Any] = {"kind": kind.value, "since": since}
        if owner_id:
            where += _OWNER_FILTER
            params["owner_id"] = owner_id

        rows = await self._executor.query(
            f"SELECT {_DECISION_COLUMNS} FROM decision_records d {where}", params
        )
        return [_row_to_record(row) for row in rows]
