import asyncio
from datetime import date

import pytest
from fastapi.testclient import TestClient

from backend.auth import identity_for_email
from backend.clock import FixedClock
from backend.main import create_app
from backend.settings import reset_settings
from backend.store import MemoryEntityStore

TODAY = date(2024, 3, 10)
USER_EMAIL = "jordan@example.com"
HEADERS = {"X-User-Email": USER_EMAIL, "X-Backend-Token": "test-secret"}


@pytest.fixture(autouse=True)
def settings_env(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("BACKEND_SESSION_SECRET", "test-secret")
    monkeypatch.setenv("ALLOWED_EMAILS", "")
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("PUBLIC_BASE_URL", "http://testserver")
    monkeypatch.delenv("LLM_API_URL", raising=False)
    monkeypatch.delenv("LLM_API_KEY", raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def store():
    return MemoryEntityStore()


@pytest.fixture
def identity():
    return identity_for_email(USER_EMAIL)


@pytest.fixture
def client(store):
    app = create_app(store=store, clock=FixedClock(TODAY))
    with TestClient(app) as test_client:
        yield test_client


def run(coro):
    return asyncio.run(coro)
