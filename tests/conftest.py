"""
Pytest configuration for Status Page backend tests.

Every test gets its own SQLite database file and an in-process change feed.
"""

import os

os.environ.setdefault("IDENTITY_TOKEN_SECRET", "test-identity-secret-0123456789abcdef")
os.environ["CHANGE_FEED"] = "local"
os.environ.setdefault("ENVIRONMENT", "development")

import asyncio
import uuid
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest

from statuspage.core.database import build_engine, build_session_factory
from statuspage.core.security import AuthenticatedIdentity, create_identity_token
from statuspage.core.sessions import SessionRegistry
from statuspage.main import app
from statuspage.models import Base
from statuspage.schemas.organization import SessionResponse
from statuspage.services.session_service import SessionResolver
from statuspage.store.client import DirectoryStore
from statuspage.store.feed import LocalChangeFeed


def pytest_configure(config):
    """Configure pytest-asyncio mode."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def new_identity(display_name: str = "Ada Lovelace", email: str | None = None) -> AuthenticatedIdentity:
    """Identity with a fresh subject; email defaults to a unique address."""
    uid = uuid.uuid4().hex
    return AuthenticatedIdentity(
        subject_id=uid,
        email=email or f"user_{uid[:8]}@example.com",
        display_name=display_name,
    )


def auth_headers(identity: AuthenticatedIdentity) -> dict[str, str]:
    token = create_identity_token(identity.subject_id, identity.email, identity.display_name)
    return {"Authorization": f"Bearer {token}"}


async def until(stream: AsyncIterator[Any], predicate: Callable[[Any], bool], timeout: float = 5.0) -> Any:
    """First item of stream matching predicate. The stream stays open for reuse."""

    async def find() -> Any:
        while True:
            item = await anext(stream)
            if predicate(item):
                return item

    return await asyncio.wait_for(find(), timeout)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'statuspage.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def feed() -> LocalChangeFeed:
    return LocalChangeFeed()


@pytest.fixture
async def store(engine, feed):
    store = DirectoryStore(build_session_factory(engine), feed)
    yield store
    await feed.close()


@pytest.fixture
async def sessions():
    registry = SessionRegistry()
    yield registry
    await registry.close_all()


@pytest.fixture
def bootstrap(store):
    """Sign a new identity in; returns (identity, SessionResponse)."""

    async def _bootstrap(
        display_name: str = "Ada Lovelace", email: str | None = None
    ) -> tuple[AuthenticatedIdentity, SessionResponse]:
        identity = new_identity(display_name, email)
        session = await SessionResolver(store).resolve(identity)
        return identity, session

    return _bootstrap


@pytest.fixture
async def client(store, sessions):
    app.state.store = store
    app.state.sessions = sessions
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test", timeout=30.0) as client:
        yield client
