"""Shared fixtures: a standalone service container and a Flask app on in-memory SQLite."""

import pytest

from api import create_app
from api.config import TestingConfig
from services import EXTENSION_KEY, build_services

PASSWORD = "Secret123!"


def config_map(**overrides):
    """TestingConfig as a plain dict, the way Flask's config would hold it."""
    config = {key: getattr(TestingConfig, key) for key in dir(TestingConfig) if key.isupper()}
    config.update(overrides)
    return config


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def services():
    container = build_services(config_map())
    yield container
    container.shutdown()


@pytest.fixture
def registered(services):
    """An admin identity a@x.com / Secret123! with its own company."""
    return services.sessions.register("a@x.com", PASSWORD, "Ada", "Lovelace", "Acme")


@pytest.fixture
def app():
    app = create_app("test")
    yield app
    app.extensions[EXTENSION_KEY].shutdown()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin(client):
    """Register through the API; returns the response data (user + tokens)."""
    resp = client.post(
        "/api/v1/auth/register",
        json={
            "email": "admin@acme.io",
            "password": PASSWORD,
            "first_name": "Grace",
            "last_name": "Hopper",
            "company_name": "Acme",
        },
    )
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]
