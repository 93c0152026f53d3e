"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock

import jwt
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from memory_store import InMemoryIssueStore

_PRIVATE_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)
PRIVATE_PEM = _PRIVATE_KEY.private_bytes(
    serialization.Encoding.PEM,
    serialization.PrivateFormat.PKCS8,
    serialization.NoEncryption(),
).decode()
PUBLIC_PEM = _PRIVATE_KEY.public_key().public_bytes(
    serialization.Encoding.PEM,
    serialization.PublicFormat.SubjectPublicKeyInfo,
).decode()

os.environ["CIVIC_JWT_ALGORITHM"] = "RS256"
os.environ["CIVIC_JWT_PUBLIC_KEY"] = PUBLIC_PEM
os.environ["CIVIC_JWT_ISSUER"] = "civic-identity"
os.environ["CIVIC_LOG_FORMAT"] = "console"

from civictask.auth.jwt import reset_keys  # noqa: E402
from civictask.auth.schemas import Actor  # noqa: E402
from civictask.config import get_settings  # noqa: E402
from civictask.db import models  # noqa: E402,F401
from civictask.db.base import Base  # noqa: E402
from civictask.dependencies import get_classifier, get_issue_store  # noqa: E402
from civictask.intake.classifier import Classification  # noqa: E402
from civictask.lifecycle.engine import LifecycleEngine  # noqa: E402
from civictask.main import create_app  # noqa: E402
from civictask.store.records import Department, Priority  # noqa: E402
from civictask.store.sql import SqlIssueStore  # noqa: E402

get_settings.cache_clear()
reset_keys()


def make_token(
    uid: str,
    role: str = "worker",
    department: str | None = "water",
    *,
    expires_in: timedelta = timedelta(hours=1),
    key: str = PRIVATE_PEM,
    **claims: Any,
) -> str:
    """Sign a token the way the identity provider does."""
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": uid,
        "name": uid.title(),
        "role": role,
        "iss": "civic-identity",
        "iat": now,
        "exp": now + expires_in,
        **claims,
    }
    if department is not None:
        payload["department"] = department
    return jwt.encode(payload, key, algorithm="RS256")


def auth_headers(uid: str, role: str = "worker", department: str | None = "water") -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(uid, role, department)}"}


# ── Engine fixtures ──


@pytest.fixture
def store() -> InMemoryIssueStore:
    return InMemoryIssueStore()


@pytest.fixture
def engine(store: InMemoryIssueStore) -> LifecycleEngine:
    return LifecycleEngine(store)


@pytest.fixture
def worker_actor() -> Actor:
    return Actor(uid="w1", name="Asha", role="worker", department=Department.WATER)


@pytest.fixture
def admin_actor() -> Actor:
    return Actor(uid="admin-water", name="Water Desk", role="department", department=Department.WATER)


# ── API fixtures ──


@pytest.fixture
def classifier() -> AsyncMock:
    mock = AsyncMock()
    mock.classify.return_value = Classification(
        department=Department.WATER,
        priority=Priority.HIGH,
        summary="Burst pipe on MG Road",
    )
    return mock


@pytest.fixture
def headers() -> Callable[..., dict[str, str]]:
    return auth_headers


@pytest_asyncio.fixture
async def client(store: InMemoryIssueStore, classifier: AsyncMock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the app with the store and classifier swapped for test doubles."""
    app = create_app()
    app.dependency_overrides[get_issue_store] = lambda: store
    app.dependency_overrides[get_classifier] = lambda: classifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ── SQL store fixtures ──


@pytest_asyncio.fixture
async def sql_engine() -> AsyncGenerator[AsyncEngine, None]:
    db_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield db_engine
    await db_engine.dispose()


@pytest_asyncio.fixture
async def sql_store(sql_engine: AsyncEngine) -> SqlIssueStore:
    return SqlIssueStore(async_sessionmaker(sql_engine, expire_on_commit=False), timeout_seconds=2.0)
