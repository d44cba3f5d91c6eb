"""Shared fixtures for Vigor tests."""

from __future__ import annotations

import time
from uuid import uuid4

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from vigor.api.app import create_app
from vigor.api.ratelimit import limiter
from vigor.events.broadcaster import EventBroadcaster
from vigor.events.types import Connection
from vigor.exceptions import TransportClosedError

JWT_SECRET = "vigor-test-secret-0123456789abcdef"
SUPABASE_SECRET = "supabase-test-secret-0123456789abcd"

ORG_ID = "11111111-1111-4111-8111-111111111111"
OTHER_ORG_ID = "22222222-2222-4222-8222-222222222222"
GYM_A = "aaaaaaaa-aaaa-4aaa-8aaa-aaaaaaaaaaaa"
GYM_B = "bbbbbbbb-bbbb-4bbb-8bbb-bbbbbbbbbbbb"


class RecordingTransport:
    """In-memory transport that keeps every written frame."""

    def __init__(self, *, fail: bool = False) -> None:
        self.frames: list[str] = []
        self.fail = fail
        self.close_calls = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, frame: str) -> None:
        if self._closed or self.fail:
            raise TransportClosedError("gone")
        self.frames.append(frame)

    def close(self) -> None:
        self.close_calls += 1
        self._closed = True


def make_token(
    *,
    role: str = "owner",
    company_id: str | None = ORG_ID,
    user_id: str = "user-1",
    secret: str = JWT_SECRET,
    expires_in: int = 3600,
) -> str:
    claims = {
        "userId": user_id,
        "email": f"{user_id}@example.com",
        "role": role,
        "exp": int(time.time()) + expires_in,
    }
    if company_id is not None:
        claims["companyId"] = company_id
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def make_connection():
    """Factory for registry/broadcaster connections backed by a RecordingTransport."""

    def _make(
        org_id: str = ORG_ID,
        location_id: str | None = None,
        *,
        fail: bool = False,
        connection_id: str | None = None,
    ) -> Connection:
        return Connection(
            id=connection_id or str(uuid4()),
            org_id=org_id,
            location_id=location_id,
            user_id="user-1",
            transport=RecordingTransport(fail=fail),
        )

    return _make


@pytest.fixture
def auth_env(monkeypatch):
    """Configure the jwt provider with the test secret."""
    monkeypatch.setenv("VIGOR_AUTH_PROVIDER", "jwt")
    monkeypatch.setenv("VIGOR_JWT_SECRET", JWT_SECRET)
    monkeypatch.setenv("VIGOR_ENVIRONMENT", "test")


@pytest.fixture
def broadcaster():
    """Fresh broadcaster; the heartbeat task is never started."""
    return EventBroadcaster(heartbeat_interval=3600)


@pytest_asyncio.fixture
async def client(auth_env, broadcaster):
    """HTTP test client for an app wired to the ``broadcaster`` fixture."""
    # Disable rate limiter for tests
    limiter.enabled = False
    app = create_app(broadcaster=broadcaster)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await broadcaster.shutdown()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}
