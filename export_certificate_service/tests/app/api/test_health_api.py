import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from export_certificate_service.app.main import app
from export_certificate_service.app.config import settings


@pytest.fixture
def client():
    # No `with` block: startup hooks (real Mongo/Redis connections) are not run
    yield TestClient(app)
    for attribute in ("db", "redis"):
        if hasattr(app.state, attribute):
            delattr(app.state, attribute)


@pytest.fixture
def mock_db():
    db = MagicMock()
    db.command = AsyncMock(return_value={"ok": 1})
    return db


@pytest.fixture
def mock_redis():
    redis = MagicMock()
    redis.ping = AsyncMock(return_value=True)
    return redis


def test_health_check_all_connected(client, mock_db, mock_redis):
    app.state.db = mock_db
    app.state.redis = mock_redis

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "components": {"mongodb": "connected", "redis": "connected"},
        "service_name": settings.SERVICE_NAME_API,
    }
    mock_db.command.assert_called_once_with("ping")
    mock_redis.ping.assert_awaited_once()


def test_health_check_reports_each_component(client, mock_db, mock_redis):
    mock_db.command.side_effect = Exception("Connection failed")
    app.state.db = mock_db
    app.state.redis = mock_redis

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["components"] == {"mongodb": "disconnected", "redis": "connected"}


def test_health_check_before_startup(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["components"] == {"mongodb": "disconnected", "redis": "disconnected"}


@patch("export_certificate_service.app.config.settings.SERVICE_NAME_API", "TestServiceName")
def test_health_check_service_name_configurable(client, mock_db, mock_redis):
    app.state.db = mock_db
    app.state.redis = mock_redis

    response = client.get("/health")

    assert response.json()["service_name"] == "TestServiceName"
