"""
Tests for health check endpoints.
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)


def test_healthz_endpoint():
    """Test the basic health check endpoint."""
    response = client.get("/healthz")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "checkin-bot"


def test_readyz_endpoint_all_services_healthy():
    """Test readiness endpoint when all services are healthy."""
    with (
        patch("app.routes.health.ping", AsyncMock(return_value=True)),
        patch("app.routes.health.db_health_check", AsyncMock(return_value={"healthy": True})),
        patch("app.routes.health.settings.CHAT_BOT_TOKEN", "bot-token"),
        patch("app.routes.health.settings.CHAT_WEBHOOK_SECRET", "secret"),
    ):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True

    checks = data["checks"]
    assert checks["redis"]["ok"] is True
    assert checks["database"]["ok"] is True
    assert checks["configuration"]["ok"] is True


def test_readyz_endpoint_redis_unhealthy():
    """Test readiness endpoint when Redis is down."""
    with (
        patch("app.routes.health.ping", AsyncMock(return_value=False)),
        patch("app.routes.health.db_health_check", AsyncMock(return_value={"healthy": True})),
        patch("app.routes.health.settings.CHAT_BOT_TOKEN", "bot-token"),
        patch("app.routes.health.settings.CHAT_WEBHOOK_SECRET", "secret"),
    ):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["redis"]["ok"] is False


def test_readyz_endpoint_database_error():
    """Test readiness endpoint when the database check raises."""
    with (
        patch("app.routes.health.ping", AsyncMock(return_value=True)),
        patch(
            "app.routes.health.db_health_check",
            AsyncMock(side_effect=RuntimeError("pool not initialized")),
        ),
        patch("app.routes.health.settings.CHAT_BOT_TOKEN", "bot-token"),
        patch("app.routes.health.settings.CHAT_WEBHOOK_SECRET", "secret"),
    ):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is False
    assert "RuntimeError" in data["checks"]["database"]["error"]


def test_readyz_endpoint_missing_configuration():
    """Test readiness endpoint when chat credentials are missing."""
    with (
        patch("app.routes.health.ping", AsyncMock(return_value=True)),
        patch("app.routes.health.db_health_check", AsyncMock(return_value={"healthy": True})),
        patch("app.routes.health.settings.CHAT_BOT_TOKEN", None),
        patch("app.routes.health.settings.CHAT_WEBHOOK_SECRET", None),
    ):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["configuration"]["issues"] == [
        "CHAT_BOT_TOKEN not set",
        "CHAT_WEBHOOK_SECRET not set",
    ]
