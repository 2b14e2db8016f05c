"""
Tests for the SQL repositories against a recording query executor.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import pytest

from case_escalation.audit.domain import DecisionRecord
from case_escalation.audit.infrastructure import SQLAuditRecorder, SQLDecisionHistoryRepository
from case_escalation.config import CasePriority, CaseStatus, DecisionKind, EscalationTier
from case_escalation.core import AuditWriteFailedException
from case_escalation.escalation.application import EscalationChanges
from case_escalation.escalation.infrastructure import SQLCaseRepository
from case_escalation.infrastructure.database import QueryExecutor, load_datetime, load_json
from tests.conftest import NOW


class RecordingExecutor(QueryExecutor):
    """Executor that records statements and returns scripted results."""

    def __init__(self, rows=None, rowcount=1, error=None):
        self.rows = list(rows or [])
        self.rowcount = rowcount
        self.error = error
        self.statements = []

    async def query(self, sql, params=None):
        self.statements.append((sql, dict(params or {})))
        return self.rows.pop(0) if self.rows else []

    async def execute(self, sql, params=None):
        self.statements.append((sql, dict(params or {})))
        if self.error:
            raise self.error
        return self.rowcount

    @asynccontextmanager
    async def transaction(self):
        yield


def case_row(**overrides):
    row = {
        "id": "case-001",
        "owner_id": "user-1",
        "title": "Bribe demanded",
        "description": "Officer demanded money to file a report.",
        "jurisdiction": None,
        "issue_category": "Corruption - Police",
        "escalation_level": "Priority",
        "ai_confidence": "0.9",
        "urgency_score": 7,
        "suggested_actions": '["Report to oversight body"]',
        "status": "Pending",
        "priority": "Normal",
        "metadata": '{"notes": "x"}',
        "escalated_by": None,
        "escalated_at": None,
        "version": 3,
        "submission_date": "2024-04-28T12:00:00",
        "updated_at": NOW,
    }
    row.update(overrides)
    return row


class TestColumnDecoding:

    def test_load_json_accepts_text_and_decoded_values(self):
        assert load_json('{"a": 1}', {}) == {"a": 1}
        assert load_json([1], []) == [1]
        assert load_json(None, {}) == {}
        assert load_json("{broken", {}) == {}

    def test_load_datetime_makes_naive_values_utc(self):
        assert load_datetime("2024-05-01T12:00:00") == NOW
        assert load_datetime(datetime(2024, 5, 1, 12, 0)) == NOW
        assert load_datetime(None) is None


class TestSQLCaseRepository:

    @pytest.mark.asyncio
    async def test_get_maps_row_to_case(self):
        executor = RecordingExecutor(rows=[[case_row()]])

        case = await SQLCaseRepository(executor).get("case-001")

        assert case.status == CaseStatus.PENDING
        assert case.priority == CasePriority.NORMAL
        assert case.escalation_level == EscalationTier.PRIORITY
        assert case.ai_confidence == 0.9
        assert case.suggested_actions == ["Report to oversight body"]
        assert case.metadata.extensions == {"notes": "x"}
        assert case.version == 3
        assert case.submission_date.tzinfo is not None

    @pytest.mark.asyncio
    async def test_get_filters_by_owner(self):
        executor = RecordingExecutor(rows=[[]])

        case = await SQLCaseRepository(executor).get("case-001", owner_id="user-2")

        sql, params = executor.statements[0]
        assert case is None
        assert "owner_id = :owner_id" in sql
        assert params == {"id": "case-001", "owner_id": "user-2"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rowcount, applied", [(1, True), (0, False)])
    async def test_apply_escalation_is_conditional(self, rowcount, applied):
        executor = RecordingExecutor(rowcount=rowcount)
        changes = EscalationChanges(
            priority=CasePriority.HIGH,
            escalation_level=EscalationTier.PRIORITY,
            urgency_score=5,
            escalated_by="staff-7",
            escalated_at=NOW,
            metadata={"escalation": {"verdict": "approve"}},
        )

        result = await SQLCaseRepository(executor).apply_escalation("case-001", 3, changes)

        sql, params = executor.statements[0]
        assert result is applied
        assert "version = :expected_version" in sql
        assert "version = version + 1" in sql
        assert params["expected_version"] == 3
        assert params["status"] == "Escalated"
        assert {params["escalated_status"], params["closed_status"], params["completed_status"]} == {
            "Escalated", "Closed", "Completed",
        }


class TestSQLAuditRecorder:

    def record(self):
        return DecisionRecord(
            kind=DecisionKind.ESCALATION,
            input_summary="Manual escalation analysis: threats",
            output_snapshot={"verdict": "approve"},
            confidence=0.8,
            model_identifier="fake-model",
            case_id="case-001",
            actor="staff-7",
            created_at=NOW,
        )

    @pytest.mark.asyncio
    async def test_record_inserts_all_fields(self):
        executor = RecordingExecutor()

        await SQLAuditRecorder(executor).record(self.record())

        sql, params = executor.statements[0]
        assert "INSERT INTO decision_records" in sql
        assert params["kind"] == "escalation"
        assert params["output_snapshot"] == {"verdict": "approve"}
        assert params["actor"] == "staff-7"

    @pytest.mark.asyncio
    async def test_store_error_becomes_audit_write_failure(self):
        executor = RecordingExecutor(error=RuntimeError("disk full"))

        with pytest.raises(AuditWriteFailedException) as exc_info:
            await SQLAuditRecorder(executor).record(self.record())

        assert exc_info.value.case_id == "case-001"
        assert "disk full" in exc_info.value.message


class TestSQLDecisionHistoryRepository:

    @pytest.mark.asyncio
    async def test_list_decisions_counts_and_pages(self):
        row = {
            "id": "rec-1",
            "case_id": None,
            "kind": "classification",
            "input_summary": "text",
            "output_snapshot": '{"category": "Other"}',
            "confidence": 0.1,
            "model_identifier": "fake-model",
            "actor": None,
            "created_at": datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        }
        executor = RecordingExecutor(rows=[[{"total": 7}], [row]])

        records, total = await SQLDecisionHistoryRepository(executor).list_decisions(
            DecisionKind.CLASSIFICATION, owner_id="user-1", limit=5, offset=5
        )

        assert total == 7
        assert records[0].output_snapshot == {"category": "Other"}
        count_sql, count_params = executor.statements[0]
        page_sql, page_params = executor.statements[1]
        assert "SELECT id FROM cases WHERE owner_id = :owner_id" in count_sql
        assert count_params == {"kind": "classification", "owner_id": "user-1"}
        assert page_params["limit"] == 5
        assert page_params["offset"] == 5
        assert "ORDER BY d.created_at DESC" in page_sql

    @pytest.mark.asyncio
    async def test_list_since_without_owner_has_no_filter(self):
        executor = RecordingExecutor(rows=[[]])

        await SQLDecisionHistoryRepository(executor).list_since(DecisionKind.CLASSIFICATION, NOW)

        sql, params = executor.statements[0]
        assert "owner_id" not in sql
        assert params == {"kind": "classification", "since": NOW}
