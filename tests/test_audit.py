"""
Tests for decision records, history paging and classification statistics.
"""

from datetime import timedelta

import pytest

from case_escalation.audit.application import DecisionHistoryService, IDecisionHistoryRepository
from case_escalation.audit.domain import (
    DecisionRecord,
    summarize_classifications,
    timeframe_cutoff,
    truncate_input,
)
from case_escalation.config import DecisionKind
from case_escalation.core import ValidationException
from tests.conftest import NOW


def classification_record(tier="Urgent", category="Corruption - Police", confidence=0.9,
                          urgency=8, processing_ms=100, fallback=False, created_at=NOW):
    return DecisionRecord(
        kind=DecisionKind.CLASSIFICATION,
        input_summary="Officers asked for a bribe before filing the report.",
        output_snapshot={
            "category": category,
            "escalationTier": tier,
            "urgencyScore": urgency,
            "processingTimeMs": processing_ms,
            "isFallback": fallback,
        },
        confidence=confidence,
        model_identifier="fake-model",
        created_at=created_at,
    )


class FakeHistoryRepository(IDecisionHistoryRepository):

    def __init__(self, records):
        self.records = records
        self.calls = []

    async def list_decisions(self, kind, owner_id=None, limit=20, offset=0):
        self.calls.append({"kind": kind, "owner_id": owner_id, "limit": limit, "offset": offset})
        ordered = sorted(self.records, key=lambda r: r.created_at, reverse=True)
        return ordered[offset:offset + limit], len(ordered)

    async def list_since(self, kind, since, owner_id=None):
        self.calls.append({"kind": kind, "since": since, "owner_id": owner_id})
        return [r for r in self.records if r.created_at > since]


class TestDecisionRecord:

    def test_truncate_input_appends_ellipsis(self):
        assert truncate_input("a" * 300) == "a" * 200 + "..."
        assert truncate_input("short") == "short..."

    def test_history_dict_truncates_input(self):
        record = DecisionRecord(
            kind=DecisionKind.CLASSIFICATION,
            input_summary="x" * 500,
            output_snapshot={"category": "Other"},
            confidence=0.1,
            model_identifier="fake-model",
            case_id="case-001",
            created_at=NOW,
        )

        history = record.to_history_dict()

        assert history["inputText"] == "x" * 200 + "..."
        assert history["caseId"] == "case-001"
        assert history["kind"] == "classification"
        assert history["modelUsed"] == "fake-model"
        assert history["createdAt"] == NOW.isoformat()

    def test_records_get_unique_ids(self):
        assert classification_record().id != classification_record().id


class TestSummaries:

    def test_empty_window_has_zero_totals(self):
        stats = summarize_classifications([], "7d")

        assert stats.timeframe == "7d"
        assert stats.total_classifications == 0
        assert stats.tier_counts == {}

    def test_aggregates_over_snapshots(self):
        records = [
            classification_record(confidence=0.9, urgency=8, processing_ms=100),
            classification_record(tier="Basic", category="Other", confidence=0.5,
                                  urgency=4, processing_ms=300),
            classification_record(tier="Priority", category="Other", confidence=0.1,
                                  urgency=6, processing_ms=200, fallback=True),
        ]

        stats = summarize_classifications(records, "30d")

        assert stats.total_classifications == 3
        assert stats.avg_confidence == 0.5
        assert stats.avg_urgency_score == 6.0
        assert stats.avg_processing_time_ms == 200.0
        assert stats.fallback_count == 1
        assert stats.tier_counts == {"Urgent": 1, "Basic": 1, "Priority": 1}
        assert list(stats.category_counts) == ["Other", "Corruption - Police"]

    def test_unknown_timeframe_uses_thirty_days(self):
        assert timeframe_cutoff("5y", NOW) == NOW - timedelta(days=30)
        assert timeframe_cutoff("1y", NOW) == NOW - timedelta(days=365)


class TestDecisionHistoryService:

    @pytest.mark.asyncio
    async def test_history_pages_newest_first(self):
        records = [classification_record(created_at=NOW - timedelta(hours=i)) for i in range(5)]
        repository = FakeHistoryRepository(records)
        service = DecisionHistoryService(repository)

        page, total = await service.get_history(owner_id="user-1", page=2, limit=2)

        assert total == 5
        assert [r.created_at for r in page] == [NOW - timedelta(hours=2), NOW - timedelta(hours=3)]
        assert repository.calls[0] == {
            "kind": DecisionKind.CLASSIFICATION, "owner_id": "user-1", "limit": 2, "offset": 2,
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page, limit", [(0, 20), (1, 0), (-1, -1)])
    async def test_invalid_paging_is_rejected(self, page, limit):
        service = DecisionHistoryService(FakeHistoryRepository([]))

        with pytest.raises(ValidationException):
            await service.get_history(page=page, limit=limit)

    @pytest.mark.asyncio
    async def test_stats_only_count_records_in_window(self):
        records = [
            classification_record(created_at=NOW - timedelta(days=1)),
            classification_record(created_at=NOW - timedelta(days=20)),
        ]
        service = DecisionHistoryService(FakeHistoryRepository(records))

        stats = await service.get_stats(timeframe="7d", now=NOW)

        assert stats.timeframe == "7d"
        assert stats.total_classifications == 1

    @pytest.mark.asyncio
    async def test_unknown_stats_timeframe_falls_back(self):
        repository = FakeHistoryRepository([])
        service = DecisionHistoryService(repository)

        stats = await service.get_stats(timeframe="forever", now=NOW)

        assert stats.timeframe == "30d"
        assert repository.calls[0]["since"] == NOW - timedelta(days=30)
