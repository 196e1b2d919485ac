# tests/conftest.py
"""
Global test bootstrap
- Sets the required secrets BEFORE `app.*` is imported (settings load at import)
- Mounts a mock Redis client into app.core.redis_client
- Gives every test a fresh in-memory document store
"""

from __future__ import annotations

import os

import pytest

# ──────────────────────────────────────────────────────────────────────────────
# 🌱 Test env (must precede any `app` import)
# ──────────────────────────────────────────────────────────────────────────────
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-cms-tests-only")
os.environ.setdefault("POSTGRES_PASSWORD", "postgres")
os.environ.setdefault("LOG_TO_FILE", "0")
os.environ.setdefault("DOCSTORE_BACKEND", "memory")
os.environ.setdefault("ENABLE_DOCS", "true")

from app.core.redis_client import redis_wrapper  # noqa: E402
from app.docstore import InMemoryDocumentStore, set_document_store  # noqa: E402
from tests.fixtures.mocks.redis import MockRedisClient  # noqa: E402
from tests.utils.auth import bearer  # noqa: E402


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


# ──────────────────────────────────────────────────────────────────────────────
# 🗄️ Store
# ──────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def store():
    """Fresh in-memory store, also installed as the process-wide store."""
    s = InMemoryDocumentStore()
    set_document_store(s)
    yield s
    set_document_store(None)


# ──────────────────────────────────────────────────────────────────────────────
# 🔌 Redis
# ──────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def redis_client():
    """Mock Redis mounted into `redis_wrapper` for the duration of one test."""
    client = MockRedisClient()
    previous = redis_wrapper._client
    redis_wrapper._client = client
    yield client
    redis_wrapper._client = previous


# ──────────────────────────────────────────────────────────────────────────────
# 🔑 Tokens
# ──────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def producer_headers():
    return bearer("prod-1")


@pytest.fixture()
def other_producer_headers():
    return bearer("prod-2")


@pytest.fixture()
def admin_headers():
    return bearer("admin-1", role="super_admin")


# ──────────────────────────────────────────────────────────────────────────────
# 🌐 HTTP client
# ──────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def client(store):
    """TestClient over a fresh app bound to the per-test store (lifespan not run)."""
    from fastapi.testclient import TestClient

    from app.main import create_app

    return TestClient(create_app(document_store=store), raise_server_exceptions=False)
