import asyncio
import os

# The app under test must never reach for Postgres
os.environ.setdefault("STORE_BACKEND", "memory")

import fakeredis
import pytest
from fastapi.testclient import TestClient

from marketplace import redis_client
from marketplace.config import settings
from marketplace.main import app
from marketplace.redis_client import issue_token
from marketplace.store import InMemoryStore, get_store

from _helper import RESTAURANT_A, RESTAURANT_B


@pytest.fixture
def store():
    return InMemoryStore(restaurants=[RESTAURANT_A, RESTAURANT_B])


@pytest.fixture(autouse=True)
def default_policies(monkeypatch):
    monkeypatch.setattr(settings, "strict_status_adjacency", False)
    monkeypatch.setattr(settings, "restrict_order_reads", False)
    monkeypatch.setattr(settings, "timezone", "UTC")


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def fake_redis(redis_server, monkeypatch):
    """Module Redis client swapped for a fake bound to the shared server."""
    r = fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)
    monkeypatch.setattr(redis_client, "_redis", r)
    return r


@pytest.fixture
def client(store, fake_redis):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(redis_server):
    """auth_headers(actor) -> Authorization header for a session bound to actor."""

    def _headers(actor) -> dict:
        async def _issue():
            r = fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)
            try:
                return await issue_token(actor, r=r)
            finally:
                await r.aclose()

        return {"Authorization": f"Bearer {asyncio.run(_issue())}"}

    return _headers
