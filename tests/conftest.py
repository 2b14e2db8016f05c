"""
Pytest configuration and fixtures for the case escalation engine.

Provides in-memory fakes for the store, the LLM client and the audit
recorder so the engine runs without a database or network.
"""

import asyncio
import copy
import json
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import pytest

from case_escalation.audit.application import IAuditRecorder
from case_escalation.audit.domain import DecisionRecord
from case_escalation.config import CasePriority, CaseStatus, EscalationTier, TERMINAL_STATUSES
from case_escalation.core import AuditWriteFailedException
from case_escalation.escalation.application import EscalationChanges, ICaseRepository
from case_escalation.escalation.domain import Case, CaseMetadata
from case_escalation.infrastructure.database import QueryExecutor
from case_escalation.infrastructure.llm import ChatCompletionResult, ILLMClient
from case_escalation.infrastructure.llm.gateway import InferenceGateway

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Factory Helpers
# =============================================================================

def fenced(payload: Any) -> str:
    """Completion text the way models usually return JSON."""
    return f"```json\n{json.dumps(payload)}\n```"


def make_case(**overrides) -> Case:
    """Create a Case with sensible defaults."""
    defaults = dict(
        id="case-001",
        title="Police refused to take my report",
        description="Officers at the station refused to investigate and asked for a bribe.",
        status=CaseStatus.PENDING,
        priority=CasePriority.NORMAL,
        escalation_level=EscalationTier.PRIORITY,
        issue_category="Corruption - Police",
        ai_confidence=0.9,
        urgency_score=7,
        suggested_actions=["Report to oversight body"],
        metadata=CaseMetadata.from_blob({"classificationNotes": "initial triage"}),
        jurisdiction="Lagos",
        owner_id="user-1",
        submission_date=NOW - timedelta(days=3),
        updated_at=NOW - timedelta(days=3),
        version=1,
    )
    defaults.update(overrides)
    return Case(**defaults)


# =============================================================================
# Fake collaborators
# =============================================================================

class FakeLLMClient(ILLMClient):
    """LLM client returning a scripted completion, error or delay."""

    model = "fake-model"

    def __init__(self, content: str = "", error: Optional[Exception] = None, delay: float = 0.0):
        self.content = content
        self.error = error
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.2,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        self.calls.append({
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "operation": operation,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return ChatCompletionResult(
            content=self.content,
            model=self.model,
            prompt_tokens=10,
            completion_tokens=20,
            latency_ms=5,
        )


class InMemoryStore:
    """Shared state behind the fake executor, repository and recorder."""

    def __init__(self):
        self.cases: Dict[str, Case] = {}
        self.records: List[DecisionRecord] = []
        self.writes = 0


class FakeQueryExecutor(QueryExecutor):
    """Executor whose transaction restores the in-memory store on error."""

    def __init__(self, store: InMemoryStore):
        self.store = store

    async def query(self, sql, params=None):
        raise AssertionError("in-memory fakes do not issue SQL")

    async def execute(self, sql, params=None):
        raise AssertionError("in-memory fakes do not issue SQL")

    @asynccontextmanager
    async def transaction(self):
        cases = copy.deepcopy(self.store.cases)
        records = list(self.store.records)
        try:
            yield
        except Exception:
            self.store.cases = cases
            self.store.records = records
            raise


class InMemoryCaseRepository(ICaseRepository):
    """Case repository with the same compare-and-swap rules as the SQL one."""

    def __init__(self, store: InMemoryStore):
        self._store = store
        self.before_apply: Optional[Callable[[], None]] = None

    async def get(self, case_id, owner_id=None):
        case = self._store.cases.get(case_id)
        if case is None or (owner_id and case.owner_id != owner_id):
            return None
        return copy.deepcopy(case)

    async def create(self, case):
        self._store.cases[case.id] = copy.deepcopy(case)
        self._store.writes += 1
        return case

    async def apply_escalation(self, case_id, expected_version, changes: EscalationChanges):
        if self.before_apply:
            self.before_apply()
        case = self._store.cases.get(case_id)
        if (
            case is None
            or case.version != expected_version
            or case.status == CaseStatus.ESCALATED
            or case.status.value in TERMINAL_STATUSES
        ):
            return False
        self._store.cases[case_id] = replace(
            case,
            status=changes.status,
            priority=changes.priority,
            escalation_level=changes.escalation_level,
            urgency_score=changes.urgency_score,
            escalated_by=changes.escalated_by,
            escalated_at=changes.escalated_at,
            metadata=CaseMetadata.from_blob(changes.metadata),
            updated_at=changes.escalated_at,
            version=case.version + 1,
        )
        self._store.writes += 1
        return True

    async def update_classification(self, case_id, classification, updated_at):
        case = self._store.cases.get(case_id)
        if case is None:
            return False
        self._store.cases[case_id] = replace(
            case,
            issue_category=classification.category.value,
            escalation_level=classification.escalation_tier,
            ai_confidence=classification.confidence,
            urgency_score=classification.urgency_score,
            suggested_actions=list(classification.suggested_actions),
            updated_at=updated_at,
            version=case.version + 1,
        )
        self._store.writes += 1
        return True


class FakeAuditRecorder(IAuditRecorder):
    """Recorder appending to the in-memory store; can be told to fail."""

    def __init__(self, store: InMemoryStore):
        self._store = store
        self.fail = False

    async def record(self, record: DecisionRecord) -> None:
        if self.fail:
            raise AuditWriteFailedException(record.kind.value, record.case_id, "store unavailable")
        self._store.records.append(record)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def executor(store) -> FakeQueryExecutor:
    return FakeQueryExecutor(store)


@pytest.fixture
def case_repository(store) -> InMemoryCaseRepository:
    return InMemoryCaseRepository(store)


@pytest.fixture
def audit_recorder(store) -> FakeAuditRecorder:
    return FakeAuditRecorder(store)


@pytest.fixture
def llm_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def gateway(llm_client) -> InferenceGateway:
    return InferenceGateway(llm_client, timeout=1.0)
