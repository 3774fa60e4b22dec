# web_api/tests/conftest.py
"""Pytest fixtures for web API tests.

The app is used without its lifespan (no real scheduler or database):
tests put a JobStore with a mocked APScheduler on app.state and patch the
user lookup that require_manager does.
"""

import pytest
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from core.enums import UserRole
from core.notifications.queue import JobStore


@pytest.fixture(autouse=True)
def _jwt_secret():
    """Ensure JWT_SECRET is set so tokens can be created and verified."""
    with patch("web_api.auth.JWT_SECRET", "test-secret"):
        yield


@pytest.fixture
def app():
    from main import app

    yield app
    if hasattr(app.state, "job_store"):
        del app.state.job_store


@pytest.fixture
def client(app):
    """Create a test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def job_store(app):
    """Queue with a mocked scheduler, attached the way the lifespan does it."""
    scheduler = MagicMock()
    scheduler.running = False
    store = JobStore(scheduler, name="api-test-queue")
    app.state.job_store = store
    yield store
    store.shutdown()


@pytest.fixture
def db_user():
    """Patch the user row require_manager loads. Set .return_value per test."""

    @asynccontextmanager
    async def fake_connection():
        yield MagicMock()

    lookup = AsyncMock(
        return_value={
            "user_id": 1,
            "email": "manager@example.com",
            "first_name": "Grace",
            "last_name": "Hopper",
            "role": UserRole.manager,
            "is_active": True,
        }
    )
    with patch("core.database.get_connection", fake_connection), patch(
        "core.queries.users.get_user_by_id", lookup
    ):
        yield lookup


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a signed session token."""
    from web_api.auth import create_jwt

    def _headers(user_id: int = 1, role: str = "manager") -> dict[str, str]:
        return {"Authorization": f"Bearer {create_jwt(user_id, role)}"}

    return _headers
