import pytest
from fastapi.testclient import TestClient

from app.core.rate_limit import limiter
from app.database.supabase_client import (
    get_supabase, get_service_supabase, get_session_client_factory
)
from app.main import app
from tests.fakes import FakeBackend, FakeClient


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def backend():
    """Fresh in-memory provider."""
    return FakeBackend()


@pytest.fixture
def client(backend):
    """API client wired to the fake provider, rate limiting off."""
    limiter.enabled = False
    app.dependency_overrides[get_supabase] = lambda: FakeClient(backend, "public")
    app.dependency_overrides[get_service_supabase] = lambda: FakeClient(backend, "service")
    app.dependency_overrides[get_session_client_factory] = lambda: (lambda: FakeClient(backend, "session"))
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        limiter.enabled = True


@pytest.fixture
def alice(backend):
    """A confirmed user with a live session: (user, token)."""
    return backend.add_user("alice@example.com", "correct", first_name="Alice", last_name="Liddell")
