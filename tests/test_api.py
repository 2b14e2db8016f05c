"""
API tests with FastAPI dependency overrides.

The lifespan is not started, so no database or inference provider is needed.
"""

import logging

import pytest
from fastapi.testclient import TestClient

from case_escalation.audit.application import DecisionHistoryService, IDecisionHistoryRepository
from case_escalation.config import MAX_ACTOR_ID_LENGTH, CaseStatus
from case_escalation.escalation.application import EscalationService
from case_escalation.escalation.interfaces.controllers import (
    get_case_repository,
    get_escalation_service,
    get_intake_service,
)
from case_escalation.infrastructure.database import get_session
from case_escalation.infrastructure.database.models import CaseModel, DecisionRecordModel
from case_escalation.main import app
from case_escalation.shared.api.middleware import RequestMetrics
from case_escalation.triage.application import CaseIntakeService, ClassificationService
from case_escalation.triage.interfaces.controllers import (
    get_classification_service,
    get_history_service,
)
from tests.conftest import fenced, make_case

VALID_CLASSIFICATION = {
    "category": "Corruption - Police",
    "escalationTier": "Urgent",
    "confidence": 0.92,
    "urgencyScore": 9,
    "suggestedActions": ["Report to oversight body"],
}


class FakeSession:
    def __init__(self):
        self.commits = 0

    async def commit(self):
        self.commits += 1


class StoreHistoryRepository(IDecisionHistoryRepository):
    def __init__(self, store):
        self._store = store

    async def list_decisions(self, kind, owner_id=None, limit=20, offset=0):
        records = [r for r in self._store.records if r.kind == kind]
        return records[offset:offset + limit], len(records)

    async def list_since(self, kind, since, owner_id=None):
        return [r for r in self._store.records if r.kind == kind and r.created_at > since]


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(store, executor, case_repository, audit_recorder, gateway, session):
    classifier = ClassificationService(gateway, audit_recorder, case_repository, executor)

    async def override_session():
        yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_classification_service] = lambda: classifier
    app.dependency_overrides[get_history_service] = (
        lambda: DecisionHistoryService(StoreHistoryRepository(store))
    )
    app.dependency_overrides[get_case_repository] = lambda: case_repository
    app.dependency_overrides[get_intake_service] = (
        lambda: CaseIntakeService(classifier, case_repository, executor)
    )
    app.dependency_overrides[get_escalation_service] = (
        lambda: EscalationService(executor, case_repository, audit_recorder, gateway)
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


def analysis(should_escalate=True, confidence=0.8, **overrides):
    payload = {
        "shouldEscalate": should_escalate,
        "confidence": confidence,
        "reasons": ["Threats"],
        "suggestedPriority": "Critical",
        "urgencyScore": 9,
        "riskFactors": [],
        "recommendation": "Escalate to senior counsel",
    }
    payload.update(overrides)
    return fenced(payload)


class TestTriageRoutes:

    def test_classify_returns_classification(self, client, store, llm_client):
        llm_client.content = fenced(VALID_CLASSIFICATION)

        response = client.post(
            "/triage/classify",
            json={"text": "Police refused to investigate unless we paid a bribe."},
            headers={"X-Actor-ID": "user-1"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["classification"]["category"] == "Corruption - Police"
        assert body["fallback"] is False
        assert body["model"] == "fake-model"
        assert store.records[0].actor == "user-1"

    def test_classify_rejects_short_text(self, client, store):
        response = client.post("/triage/classify", json={"text": "short"})

        assert response.status_code == 422
        assert store.records == []

    def test_classify_falls_back_on_garbage(self, client, llm_client):
        llm_client.content = "no json here"

        response = client.post(
            "/triage/classify",
            json={"text": "Police refused to investigate unless we paid a bribe."},
        )

        assert response.status_code == 200
        assert response.json()["fallback"] is True
        assert response.json()["classification"]["category"] == "Other"

    def test_history_and_stats(self, client, llm_client):
        llm_client.content = fenced(VALID_CLASSIFICATION)
        client.post(
            "/triage/classify",
            json={"text": "Police refused to investigate unless we paid a bribe."},
        )

        history = client.get("/triage/history").json()
        stats = client.get("/triage/stats", params={"timeframe": "7d"}).json()

        assert history["total"] == 1
        assert history["classifications"][0]["inputText"].endswith("...")
        assert stats["timeframe"] == "7d"
        assert stats["total_classifications"] == 1
        assert stats["tier_distribution"] == {"Urgent": 1}

    def test_classify_rejects_blank_text(self, client, store, llm_client):
        response = client.post("/triage/classify", json={"text": " " * 12})

        assert response.status_code == 422
        assert llm_client.calls == []
        assert store.records == []

    def test_stats_rejects_unknown_timeframe(self, client):
        assert client.get("/triage/stats", params={"timeframe": "2w"}).status_code == 422

    def test_summary_route(self, client, store, llm_client):
        store.cases["case-001"] = make_case()
        llm_client.content = "Officers demanded a bribe before filing a report."

        response = client.post("/triage/cases/case-001/summary")

        assert response.status_code == 200
        body = response.json()
        assert body["caseId"] == "case-001"
        assert body["summary"] == "Officers demanded a bribe before filing a report."
        assert body["fallback"] is False
        assert body["generatedAt"]

    def test_summary_route_falls_back(self, client, store, llm_client):
        store.cases["case-001"] = make_case()
        llm_client.content = ""

        body = client.post("/triage/cases/case-001/summary").json()

        assert body["fallback"] is True
        assert body["summary"].endswith("Manual summary required due to AI processing error.")

    def test_summary_of_missing_case_is_404(self, client):
        assert client.post("/triage/cases/missing/summary").status_code == 404


class TestCaseRoutes:

    def test_create_case(self, client, store, llm_client):
        llm_client.content = fenced(VALID_CLASSIFICATION)

        response = client.post(
            "/cases",
            json={
                "title": "Bribe demanded",
                "description": "Police refused to investigate unless we paid a bribe.",
                "jurisdiction": "Lagos",
            },
            headers={"X-Actor-ID": "user-1"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["case"]["status"] == "Pending"
        assert body["case"]["priority"] == "Normal"
        assert body["case"]["ownerId"] == "user-1"
        assert body["classification"]["case_id"] == body["case"]["id"]
        assert body["case"]["id"] in store.cases

    def test_get_missing_case_is_404(self, client):
        response = client.get("/cases/missing")

        assert response.status_code == 404
        assert response.json()["error"] == "CaseNotFoundException"

    def test_escalate_requires_actor(self, client, store):
        store.cases["case-001"] = make_case()

        response = client.post("/cases/case-001/escalate", json={"reason": "Threats"})

        assert response.status_code == 401

    def test_escalate_approves(self, client, store, llm_client):
        store.cases["case-001"] = make_case()
        llm_client.content = analysis()

        response = client.post(
            "/cases/case-001/escalate",
            json={"reason": "Threats", "priority": "High"},
            headers={"X-Actor-ID": "staff-7"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["approved"] is True
        assert body["verdict"] == "approve"
        assert body["case"]["status"] == "Escalated"
        assert body["case"]["priority"] == "Critical"
        assert body["case"]["metadata"]["escalation"]["escalatedBy"] == "staff-7"
        assert store.cases["case-001"].status == CaseStatus.ESCALATED

    def test_escalate_denied_returns_recommendation(self, client, store, llm_client, session):
        store.cases["case-001"] = make_case()
        llm_client.content = analysis(
            should_escalate=False,
            confidence=0.85,
            suggestedPriority="Normal",
            recommendation="insufficient evidence",
        )

        response = client.post(
            "/cases/case-001/escalate",
            json={"reason": "Threats"},
            headers={"X-Actor-ID": "staff-7"},
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "EscalationDeniedException"
        assert body["aiRecommendation"] == "insufficient evidence"
        assert body["confidencePercent"] == "85.0%"
        assert session.commits == 1
        assert len(store.records) == 1
        assert store.cases["case-001"].status == CaseStatus.PENDING

    def test_escalate_already_escalated_is_409(self, client, store):
        store.cases["case-001"] = make_case(status=CaseStatus.ESCALATED)

        response = client.post(
            "/cases/case-001/escalate",
            json={"reason": "Threats"},
            headers={"X-Actor-ID": "staff-7"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "AlreadyEscalatedException"

    def test_escalate_rejects_unknown_priority(self, client, store):
        store.cases["case-001"] = make_case()

        response = client.post(
            "/cases/case-001/escalate",
            json={"reason": "Threats", "priority": "Extreme"},
            headers={"X-Actor-ID": "staff-7"},
        )

        assert response.status_code == 422


class TestHealth:

    def test_health_without_inference_is_degraded(self, client):
        client.get("/cases/missing")

        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "degraded"
        assert body["checks"] == {"database": "not_initialized", "inference": "not_configured"}
        assert body["requests"]["cases"]["requests"] >= 1
        assert "X-Correlation-ID" in response.headers

    def test_health_reports_configured_gateway(self, client, gateway):
        app.state.gateway = gateway
        try:
            body = client.get("/health").json()
        finally:
            app.state.gateway = None

        assert body["status"] == "healthy"
        assert body["checks"]["inference"] == "available (fake-model)"


class TestRequestMetrics:

    def test_counts_per_module(self):
        metrics = RequestMetrics()

        metrics.observe("/cases/case-001/escalate", 200, 30.0)
        metrics.observe("/cases", 500, 10.0)
        metrics.observe("/", 200, 1.0)

        assert metrics.snapshot() == {
            "cases": {"requests": 2, "errors": 1, "avg_ms": 20.0},
            "root": {"requests": 1, "errors": 0, "avg_ms": 1.0},
        }


class TestActorHeader:

    def test_long_email_actor_is_accepted(self, client, store, llm_client):
        store.cases["case-001"] = make_case()
        llm_client.content = analysis()
        actor = "senior.investigator@oversight-commission.example.org"
        assert len(actor) > 36

        response = client.post(
            "/cases/case-001/escalate",
            json={"reason": "Threats"},
            headers={"X-Actor-ID": actor},
        )

        assert response.status_code == 200
        assert store.cases["case-001"].escalated_by == actor

    def test_oversized_actor_is_rejected_before_any_write(self, client, store, llm_client):
        store.cases["case-001"] = make_case()

        response = client.post(
            "/cases/case-001/escalate",
            json={"reason": "Threats"},
            headers={"X-Actor-ID": "a" * (MAX_ACTOR_ID_LENGTH + 1)},
        )

        assert response.status_code == 422
        assert llm_client.calls == []
        assert store.records == []
        assert store.cases["case-001"].status == CaseStatus.PENDING

    def test_oversized_optional_actor_is_rejected(self, client, store):
        response = client.post(
            "/triage/classify",
            json={"text": "Police refused to investigate unless we paid a bribe."},
            headers={"X-Actor-ID": "a" * (MAX_ACTOR_ID_LENGTH + 1)},
        )

        assert response.status_code == 422
        assert store.records == []

    def test_actor_columns_fit_the_header_bound(self):
        assert CaseModel.__table__.c.owner_id.type.length == MAX_ACTOR_ID_LENGTH
        assert CaseModel.__table__.c.escalated_by.type.length == MAX_ACTOR_ID_LENGTH
        assert DecisionRecordModel.__table__.c.actor.type.length == MAX_ACTOR_ID_LENGTH


class TestRequestLogging:

    def test_log_line_carries_request_correlation_id(self, client, caplog):
        caplog.set_level(logging.INFO, logger="case_escalation.shared.api.middleware")

        response = client.get("/health", headers={"X-Correlation-ID": "cid-123"})

        assert response.headers["X-Correlation-ID"] == "cid-123"
        completed = [r for r in caplog.records if r.getMessage() == "Request completed"]
        assert [r.correlation_id for r in completed] == ["cid-123"]
        assert completed[0].path == "/health"
        assert completed[0].status_code == 200
