from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from app import models as _models  # noqa: F401
from app.core.config import get_settings
from app.core.db import get_session, get_session_factory
from app.main import app
from app.services.imports import service as import_service

PASSWORD = "Passw0rd!"

RegisterFn = Callable[..., Awaitable[dict[str, Any]]]


@pytest.fixture
async def engine(monkeypatch: pytest.MonkeyPatch, tmp_path) -> AsyncIterator[AsyncEngine]:
    settings = get_settings()
    monkeypatch.setattr(settings, "throttle_limit", 0)
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "uploads"))

    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def client(session_maker: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncClient]:
    async def override_get_session() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_session_factory] = lambda: session_maker
    import_service._active_imports.clear()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver/api/v1") as test_client:
        yield test_client

    app.dependency_overrides.clear()
    import_service._active_imports.clear()


@pytest.fixture
def register(client: AsyncClient) -> RegisterFn:
    """Registers a user creating a new family and returns token, member and family ids."""

    async def _register(
        email: str,
        *,
        name: str = "Test User",
        family_name: str = "Test Family",
        gender: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "registration_type": "create_family",
            "email": email,
            "password": PASSWORD,
            "name": name,
            "family_name": family_name,
        }
        if gender:
            payload["gender"] = gender
        res = await client.post("/auth/register", json=payload)
        assert res.status_code == 201, res.text
        data = res.json()
        token = data["token"]["access_token"]
        return {
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
            "user_id": data["user"]["id"],
            "member_id": data["user"]["member"]["id"],
            "family_id": data["family"]["id"],
        }

    return _register


@pytest.fixture
def invite_member(client: AsyncClient) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Invites a new user into an existing family and returns their token and ids."""

    async def _invite(inviter: dict[str, Any], email: str, *, name: str = "Invited User") -> dict[str, Any]:
        invite_res = await client.post(
            "/invitations",
            json={"family_id": inviter["family_id"]},
            headers=inviter["headers"],
        )
        assert invite_res.status_code == 201, invite_res.text
        accept_res = await client.post(
            "/invitations/accept",
            json={
                "invitation_code": invite_res.json()["code"],
                "email": email,
                "password": PASSWORD,
                "name": name,
            },
        )
        assert accept_res.status_code == 201, accept_res.text
        data = accept_res.json()
        return {
            "token": data["access_token"],
            "headers": {"Authorization": f"Bearer {data['access_token']}"},
            "user_id": data["user_id"],
            "member_id": data["member_id"],
            "family_id": data["family_id"],
        }

    return _invite
