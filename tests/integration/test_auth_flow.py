"""
End-to-end tests for login, refresh, logout, forgot-password and /me.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from backend.app.core.security import Profile, TokenPayload
from backend.app.models.audit_orm import AuditLogORM
from backend.app.models.session_orm import UserSessionORM
from backend.app.services import user_service, work_group_service
from backend.app.services.password_service import verify_password

DEFAULT_PASSWORD = "secret123"


async def _login(client: AsyncClient, email: str, password: str):
    return await client.post("/api/auth/login", json={"email": email, "password": password})


@pytest.mark.asyncio
async def test_seeded_admin_can_log_in(client: AsyncClient, seeded_admin):
    resp = await _login(client, "admin@mecone.com", "admin123")

    assert resp.status_code == 200
    body = resp.json()
    assert body["accessToken"]
    assert body["refreshToken"]
    assert body["user"]["profile"] == "ADMINISTRATOR"
    assert body["user"]["email"] == "admin@mecone.com"
    assert set(body["user"]) == {"id", "email", "firstName", "lastName", "profile", "mustChangePassword"}


@pytest.mark.asyncio
async def test_wrong_password_is_invalid_credentials(client: AsyncClient, seeded_admin):
    resp = await _login(client, "admin@mecone.com", "wrong")

    assert resp.status_code == 401
    assert resp.json() == {"message": "Invalid credentials"}


@pytest.mark.asyncio
async def test_login_email_is_case_insensitive(client: AsyncClient, seeded_admin):
    resp = await _login(client, "Admin@Mecone.COM", "admin123")
    assert resp.status_code == 200


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{}, {"email": "admin@mecone.com"}, {"password": "admin123"}, {"email": "", "password": ""}])
async def test_login_requires_both_fields(client: AsyncClient, body):
    resp = await client.post("/api/auth/login", json=body)

    assert resp.status_code == 400
    assert resp.json() == {"message": "Email and password are required"}


@pytest.mark.asyncio
async def test_inactive_user_cannot_log_in(client: AsyncClient, db_session, make_user):
    user = await make_user(Profile.NEGOTIATOR)
    await user_service.deactivate_user(db_session, user)

    resp = await _login(client, user.email, DEFAULT_PASSWORD)
    assert resp.status_code == 401
    assert resp.json() == {"message": "Invalid credentials"}


@pytest.mark.asyncio
async def test_login_persists_session_and_audits(client: AsyncClient, db_session, seeded_admin):
    resp = await client.post(
        "/api/auth/login",
        json={"email": "admin@mecone.com", "password": "admin123"},
        headers={"User-Agent": "pytest-agent"},
    )
    refresh_token = resp.json()["refreshToken"]

    session = (await db_session.execute(
        select(UserSessionORM).where(UserSessionORM.token == refresh_token)
    )).scalar_one()
    assert session.user_id == seeded_admin.id
    assert session.is_active is True
    assert session.user_agent == "pytest-agent"

    await db_session.refresh(seeded_admin)
    assert seeded_admin.last_login is not None

    logins = (await db_session.execute(
        select(AuditLogORM).where(AuditLogORM.action == "LOGIN")
    )).scalars().all()
    assert len(logins) == 1
    assert logins[0].user_id == seeded_admin.id
    assert logins[0].record_id == seeded_admin.id
    assert logins[0].table_name == "users"


@pytest.mark.asyncio
async def test_two_logins_give_two_sessions(client: AsyncClient, db_session, seeded_admin):
    first = await _login(client, "admin@mecone.com", "admin123")
    second = await _login(client, "admin@mecone.com", "admin123")
    assert first.json()["refreshToken"] != second.json()["refreshToken"]

    sessions = (await db_session.execute(
        select(UserSessionORM).where(UserSessionORM.user_id == seeded_admin.id)
    )).scalars().all()
    assert len(sessions) == 2
    assert all(s.is_active for s in sessions)


@pytest.mark.asyncio
async def test_refresh_issues_new_pair(client: AsyncClient, seeded_admin):
    tokens = (await _login(client, "admin@mecone.com", "admin123")).json()

    resp = await client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})

    assert resp.status_code == 200
    body = resp.json()
    assert set(body) == {"accessToken", "refreshToken"}
    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['accessToken']}"})
    assert me.status_code == 200


@pytest.mark.asyncio
async def test_refresh_without_rotation_keeps_old_session(client: AsyncClient, seeded_admin):
    tokens = (await _login(client, "admin@mecone.com", "admin123")).json()

    await client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    again = await client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})

    assert again.status_code == 200


@pytest.mark.asyncio
async def test_refresh_requires_token(client: AsyncClient):
    resp = await client.post("/api/auth/refresh", json={})
    assert resp.status_code == 400
    assert resp.json() == {"message": "Refresh token is required"}


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(client: AsyncClient, seeded_admin):
    tokens = (await _login(client, "admin@mecone.com", "admin123")).json()

    resp = await client.post("/api/auth/refresh", json={"refreshToken": tokens["accessToken"]})

    assert resp.status_code == 401
    assert resp.json() == {"message": "Invalid refresh token"}


@pytest.mark.asyncio
async def test_refresh_with_untracked_token_is_rejected(client: AsyncClient, seeded_admin, token_service):
    stray = token_service.issue_token_pair(
        TokenPayload(user_id=seeded_admin.id, email=seeded_admin.email, profile=seeded_admin.profile)
    )
    resp = await client.post("/api/auth/refresh", json={"refreshToken": stray.refresh_token})

    assert resp.status_code == 401
    assert resp.json() == {"message": "Session not found or expired"}


@pytest.mark.asyncio
async def test_refresh_for_deactivated_user_is_rejected(client: AsyncClient, db_session, make_user):
    user = await make_user(Profile.LAWYER)
    tokens = (await _login(client, user.email, DEFAULT_PASSWORD)).json()
    user.is_active = False
    await db_session.flush()

    resp = await client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})

    assert resp.status_code == 401
    assert resp.json() == {"message": "User not found or inactive"}


@pytest.mark.asyncio
async def test_logout_then_refresh_fails(client: AsyncClient, seeded_admin):
    tokens = (await _login(client, "admin@mecone.com", "admin123")).json()
    headers = {"Authorization": f"Bearer {tokens['accessToken']}"}

    logout = await client.post("/api/auth/logout", json={"refreshToken": tokens["refreshToken"]}, headers=headers)
    assert logout.status_code == 200
    assert logout.json() == {"message": "Logged out successfully"}

    resp = await client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_logout_is_idempotent(client: AsyncClient, db_session, seeded_admin):
    tokens = (await _login(client, "admin@mecone.com", "admin123")).json()
    headers = {"Authorization": f"Bearer {tokens['accessToken']}"}

    for body in ({"refreshToken": tokens["refreshToken"]}, {"refreshToken": tokens["refreshToken"]}, {}, {"refreshToken": "unknown"}):
        resp = await client.post("/api/auth/logout", json=body, headers=headers)
        assert resp.status_code == 200

    logouts = (await db_session.execute(
        select(AuditLogORM).where(AuditLogORM.action == "LOGOUT")
    )).scalars().all()
    assert len(logouts) == 4
    assert {row.user_id for row in logouts} == {seeded_admin.id}


@pytest.mark.asyncio
async def test_logout_requires_authentication(client: AsyncClient):
    resp = await client.post("/api/auth/logout", json={})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_forgot_password_unknown_email_is_silent(client: AsyncClient, db_session):
    resp = await client.post("/api/auth/forgot-password", json={"email": "nobody@mecone.com"})

    assert resp.status_code == 200
    assert resp.json() == {"message": "If the email exists, a recovery link has been sent"}
    resets = (await db_session.execute(select(AuditLogORM))).scalars().all()
    assert resets == []


@pytest.mark.asyncio
async def test_forgot_password_sets_temporary_password(client: AsyncClient, db_session, make_user):
    user = await make_user(Profile.CONTROLLER)

    resp = await client.post("/api/auth/forgot-password", json={"email": user.email})

    assert resp.status_code == 200
    assert resp.json() == {"message": "If the email exists, a recovery link has been sent"}
    await db_session.refresh(user)
    assert user.temporary_password is True
    assert user.must_change_password is True
    assert not await verify_password(DEFAULT_PASSWORD, user.hashed_password)

    resets = (await db_session.execute(
        select(AuditLogORM).where(AuditLogORM.action == "PASSWORD_RESET")
    )).scalars().all()
    assert len(resets) == 1
    assert resets[0].record_id == user.id


@pytest.mark.asyncio
async def test_forgot_password_requires_email(client: AsyncClient):
    resp = await client.post("/api/auth/forgot-password", json={})
    assert resp.status_code == 400
    assert resp.json() == {"message": "Email is required"}


@pytest.mark.asyncio
async def test_me_without_header(client: AsyncClient):
    resp = await client.get("/api/auth/me")

    assert resp.status_code == 401
    assert resp.json() == {"message": "No authorization header provided"}


@pytest.mark.asyncio
async def test_me_lists_work_groups(client: AsyncClient, db_session, make_user, auth_headers):
    user = await make_user(Profile.COORDINATOR)
    group = await work_group_service.create_work_group(db_session, name="Recovery")
    await work_group_service.add_user_to_work_group(db_session, user.id, group.id)

    resp = await client.get("/api/auth/me", headers=auth_headers(user))

    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == user.id
    assert body["isActive"] is True
    assert [g["name"] for g in body["workGroups"]] == ["Recovery"]
    assert "password" not in body and "hashedPassword" not in body


@pytest.mark.asyncio
async def test_change_password_clears_forced_change(client: AsyncClient, db_session, make_user, auth_headers):
    user = await make_user(Profile.MANAGER, temporary_password=True)
    assert user.must_change_password is True

    resp = await client.post(
        "/api/auth/change-password",
        json={"currentPassword": DEFAULT_PASSWORD, "newPassword": "brand-new-pass"},
        headers=auth_headers(user),
    )

    assert resp.status_code == 200
    await db_session.refresh(user)
    assert user.temporary_password is False
    assert user.must_change_password is False
    assert (await _login(client, user.email, "brand-new-pass")).status_code == 200


@pytest.mark.asyncio
async def test_change_password_checks_current(client: AsyncClient, make_user, auth_headers):
    user = await make_user(Profile.MANAGER)

    resp = await client.post(
        "/api/auth/change-password",
        json={"currentPassword": "not-it", "newPassword": "brand-new-pass"},
        headers=auth_headers(user),
    )

    assert resp.status_code == 400
    assert resp.json() == {"message": "Current password is incorrect"}


@pytest.fixture
def failing_audit(monkeypatch):
    from backend.app.services.audit_service import AuditRecorder

    async def broken_record(self, entry):
        raise RuntimeError("audit storage unavailable")

    monkeypatch.setattr(AuditRecorder, "record", broken_record)


@pytest.mark.asyncio
async def test_login_succeeds_when_audit_fails(client: AsyncClient, db_session, seeded_admin, failing_audit):
    resp = await _login(client, "admin@mecone.com", "admin123")
    assert resp.status_code == 200

    sessions = (await db_session.execute(
        select(UserSessionORM).where(UserSessionORM.token == resp.json()["refreshToken"])
    )).scalars().all()
    assert len(sessions) == 1
    assert sessions[0].is_active is True

    audits = (await db_session.execute(select(AuditLogORM))).scalars().all()
    assert audits == []


@pytest.mark.asyncio
async def test_logout_succeeds_when_audit_fails(client: AsyncClient, db_session, seeded_admin, failing_audit):
    tokens = (await _login(client, "admin@mecone.com", "admin123")).json()

    resp = await client.post(
        "/api/auth/logout",
        json={"refreshToken": tokens["refreshToken"]},
        headers={"Authorization": f"Bearer {tokens['accessToken']}"},
    )
    assert resp.status_code == 200

    session = (await db_session.execute(
        select(UserSessionORM).where(UserSessionORM.token == tokens["refreshToken"])
    )).scalar_one()
    await db_session.refresh(session)
    assert session.is_active is False


@pytest.mark.asyncio
async def test_seeded_admin_must_change_password(client: AsyncClient, seeded_admin):
    resp = await _login(client, "admin@mecone.com", "admin123")
    assert resp.json()["user"]["mustChangePassword"] is True
    assert seeded_admin.temporary_password is False
