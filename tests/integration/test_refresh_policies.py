"""
Optional refresh behaviours: token rotation and session expiry enforcement.
"""
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import update

from backend.app.core.config import get_settings
from backend.app.main import app
from backend.app.models.session_orm import UserSessionORM


def _override(**flags):
    app.dependency_overrides[get_settings] = lambda: get_settings().model_copy(update=flags)


async def _login(client: AsyncClient, admin) -> dict:
    resp = await client.post("/api/auth/login", json={"email": admin.email, "password": "admin123"})
    assert resp.status_code == 200
    return resp.json()


@pytest.mark.asyncio
async def test_rotation_retires_the_presented_token(client: AsyncClient, seeded_admin):
    _override(rotate_refresh_tokens=True)
    tokens = await _login(client, seeded_admin)

    first = await client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert first.status_code == 200
    rotated = first.json()["refreshToken"]

    replay = await client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert replay.status_code == 401
    assert replay.json() == {"message": "Session not found or expired"}

    second = await client.post("/api/auth/refresh", json={"refreshToken": rotated})
    assert second.status_code == 200


@pytest.mark.asyncio
async def test_expired_session_still_refreshes_by_default(client: AsyncClient, db_session, seeded_admin):
    tokens = await _login(client, seeded_admin)
    await db_session.execute(
        update(UserSessionORM).values(expires_at=datetime.now(timezone.utc) - timedelta(days=1))
    )

    resp = await client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_expired_session_rejected_when_enforced(client: AsyncClient, db_session, seeded_admin):
    _override(enforce_session_expiry=True)
    tokens = await _login(client, seeded_admin)
    await db_session.execute(
        update(UserSessionORM).values(expires_at=datetime.now(timezone.utc) - timedelta(days=1))
    )

    resp = await client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert resp.status_code == 401
    assert resp.json() == {"message": "Session not found or expired"}
