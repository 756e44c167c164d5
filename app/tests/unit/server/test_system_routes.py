from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.dependencies.rate_limits import setup_rate_limiter
from api.routes.system import router as system_router
from infrastructure.conversations import CommandRegistry

pytestmark = pytest.mark.unit


@pytest.fixture
def app():
    app = FastAPI()
    setup_rate_limiter(app)
    app.include_router(system_router)
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def test_get_version_unknown(client):
    response = client.get("/version")

    assert response.status_code == 200
    assert response.json() == {"version": "Unknown"}


@patch("core.config.settings.GIT_SHA", "foo")
def test_get_version_known(client):
    response = client.get("/version")

    assert response.status_code == 200
    assert response.json() == {"version": "foo"}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_commands_before_startup(client):
    response = client.get("/commands")

    assert response.status_code == 200
    assert response.json() == {"commands": []}


def test_commands_lists_registry(app, client):
    registry = CommandRegistry()
    registry.register("/get_accounts", "Lists the accounts")
    app.state.registry = registry

    response = client.get("/commands")

    assert response.json()["commands"] == [
        {"trigger": "/help", "description": "Shows this help", "important": True},
        {
            "trigger": "/cancel",
            "description": "Cancels the current command",
            "important": False,
        },
        {
            "trigger": "/get_accounts",
            "description": "Lists the accounts",
            "important": False,
        },
    ]
