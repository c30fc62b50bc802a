"""
tests/conftest.py -- Shared test fixtures for the ride-hailing backend.

This module provides:
  - codec: TokenCodec with a fixed test secret
  - store / ledger: file-backed SQLite repositories under tmp_path
  - service: AuthService wired to the above
  - api_client: TestClient over the real app with a patched lifespan

Design: each test gets its own SQLite file under tmp_path. AuthService runs
store calls in worker threads, so a plain ':memory:' URL would hand every
thread its own empty database. A file keeps one schema visible to all of them.

JWT_SECRET and LOGIN_RATE_LIMIT must be set before any api/ import because
api/main.py reads settings at import time.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before importing api/ so get_settings() succeeds and the
# login limit never trips across the whole session.
os.environ.setdefault("JWT_SECRET", "test-secret-0123456789abcdef0123456789abcdef")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.ledger import RevocationLedger
from auth.service import AuthService
from auth.store import PrincipalStore
from auth.tokens import TokenCodec
from core.config import get_settings

TEST_SECRET = "unit-test-secret-abcdefghijklmnopqrstuvwxyz"

# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(TEST_SECRET, expire_seconds=3600)


@pytest.fixture
def store(tmp_path) -> Generator[PrincipalStore, None, None]:
    s = PrincipalStore(f"sqlite:///{tmp_path / 'principals.db'}")
    yield s
    s.close()


@pytest.fixture
def ledger(tmp_path) -> Generator[RevocationLedger, None, None]:
    led = RevocationLedger(f"sqlite:///{tmp_path / 'ledger.db'}", default_ttl=3600)
    yield led
    led.close()


@pytest.fixture
def service(store, ledger, codec) -> AuthService:
    return AuthService(store, ledger, codec, timeout=5.0)


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(service: AuthService):
    """Return a lifespan that wires the test service into app.state.

    The purge_task is a long-sleeping coroutine so shutdown has a real
    asyncio.Task to cancel.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = get_settings()
        app.state.auth_service = service
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


@pytest.fixture
def api_client(tmp_path) -> Generator[tuple[TestClient, AuthService], None, None]:
    """Yield (client, service) over isolated SQLite files.

    The service's codec uses the same secret as the app settings so tokens
    minted directly through service.codec are accepted by the routes.
    """
    db_url = f"sqlite:///{tmp_path / 'api.db'}"
    svc = AuthService(
        PrincipalStore(db_url),
        RevocationLedger(db_url, default_ttl=3600),
        TokenCodec(get_settings().jwt_secret, expire_seconds=3600),
        timeout=5.0,
    )
    app.router.lifespan_context = _patch_lifespan(svc)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, svc

    svc.store.close()
    svc.ledger.close()
