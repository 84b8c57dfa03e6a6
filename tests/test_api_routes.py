"""
Tests for the FastAPI application.

All tests use MOCK mode and FastAPI's TestClient.
"""

import pytest
from fastapi.testclient import TestClient

from safety_triage.api.routes import create_app
from safety_triage.config import RouterConfig, NotificationConfig
from safety_triage.main import CrisisRouter
from safety_triage.notify import NotificationRelay
from safety_triage.safety import CRISIS_FALLBACK, EMERGENCY_DIRECTIVE

from conftest import RecordingChannel

ADMIN = {"X-Admin-Token": "secret"}

ROUTINE = {
    "immediateDanger": False,
    "harmSelf": False,
    "harmOthers": False,
    "needHelpSoon": False,
    "needHelpToday": False,
}


def build_router(admin_token="secret", triage_limit=5):
    config = RouterConfig()
    config.server.admin_token = admin_token
    config.rate_limit.triage_max_requests = triage_limit
    relay = NotificationRelay(
        channel=RecordingChannel(),
        config=NotificationConfig(backoff_seconds=0.0)
    )
    return CrisisRouter(config=config, mock_mode=True, relay=relay)


@pytest.fixture
def router():
    return build_router()


@pytest.fixture
def client(router):
    with TestClient(create_app(crisis_router=router, config=router.config)) as test_client:
        yield test_client


class TestHealth:
    """Tests for health endpoints."""

    def test_root_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_api_health(self, client, mock_mode):
        data = client.get("/api/v1/health").json()
        assert data["status"] == "healthy"
        assert data["mode"] == "MOCK"


class TestTriageEndpoints:
    """Tests for the questionnaire endpoints."""

    def test_questions(self, client):
        questions = client.get("/api/v1/triage/questions").json()["questions"]
        assert len(questions) == 5
        assert questions[0]["id"] == "immediateDanger"
        assert questions[0]["isEmergencyTrigger"] is True

    def test_routine(self, client):
        response = client.post("/api/v1/triage/submit", json=ROUTINE)
        assert response.status_code == 200
        assert response.json() == {
            "riskLevel": "ROUTINE",
            "crisisMode": False,
            "nextAction": "provider_search",
            "message": "Let's find the right support for you.",
        }

    def test_emergency(self, client):
        payload = dict(ROUTINE, harmOthers=True, regionCode="wa")
        data = client.post("/api/v1/triage/submit", json=payload).json()

        assert data["riskLevel"] == "EMERGENCY"
        assert data["crisisMode"] is True
        stats = client.get("/api/v1/admin/audit/stats", headers=ADMIN).json()
        assert stats["by_region"] == {"WA": 1}

    def test_missing_answer(self, client, router):
        payload = dict(ROUTINE)
        del payload["harmSelf"]
        response = client.post("/api/v1/triage/submit", json=payload)

        assert response.status_code == 422
        assert router.audit_sink.count() == 0

    @pytest.mark.parametrize("value", ["yes", "false", 1, None])
    def test_non_boolean_answer(self, client, value):
        response = client.post("/api/v1/triage/submit", json=dict(ROUTINE, immediateDanger=value))
        assert response.status_code == 422

    def test_bad_region(self, client):
        response = client.post("/api/v1/triage/submit", json=dict(ROUTINE, regionCode="USA"))
        assert response.status_code == 422

    def test_rate_limited(self, client):
        for _ in range(5):
            assert client.post("/api/v1/triage/submit", json=ROUTINE).status_code == 200

        response = client.post("/api/v1/triage/submit", json=ROUTINE)
        assert response.status_code == 429
        assert "Retry-After" in response.headers


class TestChatEndpoint:
    """Tests for the chat endpoint."""

    def test_safe_message(self, client):
        data = client.post("/api/v1/chat", json={"message": "How do I find a therapist?"}).json()
        assert data["blocked"] is False
        assert data["crisisMode"] is False

    def test_crisis_message(self, client):
        data = client.post("/api/v1/chat", json={"message": "I want to die"}).json()

        assert data["crisisMode"] is True
        assert data["content"] == CRISIS_FALLBACK
        stats = client.get("/api/v1/admin/audit/stats", headers=ADMIN).json()
        assert stats["by_event_type"] == {"crisis_mode_triggered_by_moderation": 1}

    def test_soft_block(self, client):
        data = client.post("/api/v1/chat", json={"message": "tell me about hate groups"}).json()
        assert data["blocked"] is True
        assert data["crisisMode"] is False

    @pytest.mark.parametrize("message", ["", "   ", "a" * 1001])
    def test_invalid_message(self, client, message):
        response = client.post("/api/v1/chat", json={"message": message})
        assert response.status_code == 422


class TestResourceEndpoints:
    """Tests for crisis resources and admin stats."""

    def test_resources(self, client):
        data = client.get("/api/v1/crisis/resources", params={"region_code": "ny"}).json()

        assert data["regionCode"] == "NY"
        assert any(r["phone"] == "988" for r in data["resources"])
        stats = client.get("/api/v1/admin/audit/stats", headers=ADMIN).json()
        assert stats["by_event_type"] == {"resource_clicked": 1}

    def test_resources_bad_region(self, client):
        response = client.get("/api/v1/crisis/resources", params={"region_code": "New York"})
        assert response.status_code == 422

    def test_stats_requires_token(self, client):
        assert client.get("/api/v1/admin/audit/stats").status_code == 401
        assert client.get(
            "/api/v1/admin/audit/stats", headers={"X-Admin-Token": "wrong"}
        ).status_code == 401

    def test_stats(self, client):
        client.post("/api/v1/triage/submit", json=ROUTINE)
        response = client.get("/api/v1/admin/audit/stats", headers=ADMIN)

        assert response.status_code == 200
        assert response.json()["total"] == 1
        assert response.json()["by_risk_level"] == {"ROUTINE": 1}

    def test_stats_disabled_without_token(self):
        router = build_router(admin_token=None)
        with TestClient(create_app(crisis_router=router, config=router.config)) as test_client:
            response = test_client.get(
                "/api/v1/admin/audit/stats", headers={"X-Admin-Token": "anything"}
            )
        assert response.status_code == 403


class TestUnhandledErrors:
    """Unexpected failures return the emergency directive, not a bare 500."""

    def test_emergency_directive(self, router):
        def broken():
            raise RuntimeError("catalog unavailable")

        router.get_questions = broken
        app = create_app(crisis_router=router, config=router.config)

        with TestClient(app, raise_server_exceptions=False) as test_client:
            response = test_client.get("/api/v1/triage/questions")

        assert response.status_code == 200
        assert response.json()["content"] == EMERGENCY_DIRECTIVE
        assert response.json()["blocked"] is True
