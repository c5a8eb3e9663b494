"""Tests for trigger authorization and the notification processing endpoint."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request

from reminder_service.api.middleware.trigger_auth import is_authorized_trigger
from reminder_service.api.routes import notifications
from reminder_service.config import Settings
from reminder_service.core.reminders.orchestrator import RunSummary, get_orchestrator

SECRET = "s3cret"


def make_request(headers: dict = None, query_string: str = "") -> Request:
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/api/notifications/process",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "query_string": query_string.encode(),
    })


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestIsAuthorizedTrigger:
    """Test the trigger authorization rules."""

    def test_open_without_secret(self):
        """Test anyone may trigger when no secret is configured."""
        assert is_authorized_trigger(make_request(), make_settings(cron_secret=None))

    def test_rejects_without_credentials(self):
        """Test an anonymous call is rejected once a secret is set."""
        assert not is_authorized_trigger(make_request(), make_settings(cron_secret=SECRET))

    def test_bearer_token(self):
        """Test a matching bearer token is accepted and a wrong one is not."""
        settings = make_settings(cron_secret=SECRET)

        assert is_authorized_trigger(
            make_request({"Authorization": f"Bearer {SECRET}"}), settings
        )
        assert not is_authorized_trigger(
            make_request({"Authorization": "Bearer wrong"}), settings
        )

    @pytest.mark.parametrize("param", ["token", "secret"])
    def test_query_parameter(self, param):
        """Test the secret may be passed in the query string."""
        request = make_request(query_string=f"{param}={SECRET}")

        assert is_authorized_trigger(request, make_settings(cron_secret=SECRET))

    def test_scheduler_header(self):
        """Test the scheduler header is trusted."""
        request = make_request({"x-vercel-cron": "1"})

        assert is_authorized_trigger(request, make_settings(cron_secret=SECRET))

    def test_scheduler_user_agent(self):
        """Test a configured scheduler user agent is trusted."""
        request = make_request({"User-Agent": "vercel-cron/1.0"})

        assert is_authorized_trigger(request, make_settings(cron_secret=SECRET))

    def test_unknown_user_agent(self):
        """Test other user agents are not trusted."""
        request = make_request({"User-Agent": "curl/8.0"})

        assert not is_authorized_trigger(request, make_settings(cron_secret=SECRET))


class TestProcessEndpoint:
    """Test the processing endpoint."""

    @pytest.fixture
    def orchestrator(self):
        orchestrator = MagicMock()
        orchestrator.run = AsyncMock(
            return_value=RunSummary(sent_count=2, sms_sent_count=1, reminders_2h=1)
        )
        return orchestrator

    @pytest.fixture
    def client(self, orchestrator):
        app = FastAPI()
        app.include_router(notifications.router)
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator

        with patch(
            "reminder_service.api.middleware.trigger_auth.get_settings",
            return_value=make_settings(cron_secret=SECRET),
        ):
            yield TestClient(app)

    @pytest.mark.parametrize("method", ["GET", "POST"])
    def test_returns_summary(self, client, method):
        """Test both methods run the orchestrator and return the summary."""
        response = client.request(
            method,
            "/api/notifications/process",
            headers={"Authorization": f"Bearer {SECRET}"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Successfully processed 2 notifications and sent 1 SMS",
            "details": {
                "reminders24h": 0,
                "reminders12h": 0,
                "reminders2h": 1,
                "reminders30m": 0,
                "thankYou": 0,
                "smsSent": 1,
            },
        }

    def test_unauthorized(self, client, orchestrator):
        """Test a call without credentials is rejected before running."""
        response = client.get("/api/notifications/process")

        assert response.status_code == 401
        assert response.json() == {"detail": "Unauthorized"}
        orchestrator.run.assert_not_awaited()

    def test_run_failure(self, client, orchestrator):
        """Test an aborted run returns a 500 error body."""
        orchestrator.run.side_effect = RuntimeError("db down")

        response = client.get(f"/api/notifications/process?token={SECRET}")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to process notifications"}
