"""
Shared fixtures: an isolated SQLite database per test and seeded tenants.
"""
import asyncio
import os
from datetime import datetime, timedelta
from types import SimpleNamespace

# Must be set before coaching_api.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("AUTH_RATE_LIMIT_PER_MINUTE", "1000")
os.environ.setdefault("DEV_MODE", "true")

import bcrypt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api import models  # noqa: F401
from coaching_api.main import app
from coaching_api.database import get_session
from coaching_api.core.rate_limit import AuthRateLimitMiddleware
from coaching_api.services.email_service import MockEmailService, set_email_service

API = "/api/v1"
PASSWORD = "correct-horse-battery"

_real_gensalt = bcrypt.gensalt


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Minimum work factor keeps password hashing quick in tests."""
    monkeypatch.setattr(bcrypt, "gensalt", lambda rounds=4, prefix=b"2b": _real_gensalt(rounds=4, prefix=prefix))


@pytest.fixture
def engine(tmp_path):
    # File database + NullPool: every request opens its own connection
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)

    async def _create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    asyncio.run(_create_tables())
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def mail():
    service = MockEmailService()
    set_email_service(service)
    return service


@pytest.fixture
def client(engine, mail):
    factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_session():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    AuthRateLimitMiddleware.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()
    AuthRateLimitMiddleware.reset()


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register(client: TestClient, **payload) -> dict:
    payload.setdefault("password", PASSWORD)
    payload.setdefault("first_name", payload["email"].split("@")[0].title())
    payload.setdefault("last_name", "Tester")
    response = client.post(f"{API}/auth/register", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def as_member(tokens: dict) -> SimpleNamespace:
    return SimpleNamespace(
        id=tokens["user"]["id"],
        email=tokens["user"]["email"],
        token=tokens["access_token"],
        refresh_token=tokens["refresh_token"],
        headers=auth_header(tokens["access_token"]),
    )


@pytest.fixture
def platform_admin(client):
    return as_member(register(client, email="root@platform.io", role="admin"))


@pytest.fixture
def make_tenant(client, platform_admin):
    """Factory: an organization with one user of every role."""
    def _make(name: str, **org_fields) -> SimpleNamespace:
        response = client.post(
            f"{API}/organization/admin/create",
            json={"name": name, **org_fields},
            headers=platform_admin.headers,
        )
        assert response.status_code == 201, response.text
        org = response.json()
        domain = f"{org['slug']}.io"

        def member(role: str, **extra) -> SimpleNamespace:
            return as_member(register(
                client, email=f"{role}@{domain}", role=role, organization_id=org["id"], **extra
            ))

        return SimpleNamespace(
            org=org,
            admin=member("admin"),
            manager=member("manager"),
            coach=member("coach", hourly_rate=120),
            entrepreneur=member("entrepreneur", startup_name=f"{name} Labs"),
        )
    return _make


@pytest.fixture
def tenant(make_tenant):
    return make_tenant("Acme Coaching")


@pytest.fixture
def other_tenant(make_tenant):
    return make_tenant("Globex Mentoring")


def future(days: int = 7, hour: int = 10, minute: int = 0) -> datetime:
    base = datetime.utcnow() + timedelta(days=days)
    return base.replace(hour=hour, minute=minute, second=0, microsecond=0)


def book_session(client: TestClient, tenant: SimpleNamespace, start: datetime, duration: int = 60, **extra):
    payload = {
        "coach_id": tenant.coach.id,
        "entrepreneur_id": tenant.entrepreneur.id,
        "scheduled_at": start.isoformat(),
        "duration": duration,
        **extra,
    }
    return client.post(f"{API}/sessions", json=payload, headers=tenant.manager.headers)


def completed_session(client: TestClient, tenant: SimpleNamespace, start: datetime, duration: int = 60) -> dict:
    response = book_session(client, tenant, start, duration)
    assert response.status_code == 201, response.text
    session_id = response.json()["id"]
    response = client.patch(
        f"{API}/sessions/{session_id}", json={"status": "completed"}, headers=tenant.manager.headers
    )
    assert response.status_code == 200, response.text
    return response.json()
