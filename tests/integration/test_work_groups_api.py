import pytest
from httpx import AsyncClient
from sqlalchemy import select

from backend.app.core.security import Profile
from backend.app.models.audit_orm import AuditLogORM
from backend.app.services import work_group_service


@pytest.mark.asyncio
async def test_create_and_fetch_work_group(client: AsyncClient, db_session, make_user, auth_headers):
    manager = await make_user(Profile.MANAGER)

    resp = await client.post(
        "/api/work-groups", json={"name": "Collections", "description": "Debt recovery"}, headers=auth_headers(manager)
    )
    assert resp.status_code == 201
    group = resp.json()
    assert group["createdBy"] == manager.id

    detail = await client.get(f"/api/work-groups/{group['id']}", headers=auth_headers(manager))
    assert detail.status_code == 200
    assert detail.json()["members"] == []

    created = (await db_session.execute(
        select(AuditLogORM).where(AuditLogORM.action == "CREATE", AuditLogORM.table_name == "work_groups")
    )).scalars().all()
    assert len(created) == 1


@pytest.mark.asyncio
async def test_duplicate_name_rejected(client: AsyncClient, db_session, make_user, auth_headers):
    manager = await make_user(Profile.MANAGER)
    await work_group_service.create_work_group(db_session, name="Collections")

    resp = await client.post("/api/work-groups", json={"name": "collections"}, headers=auth_headers(manager))
    assert resp.status_code == 400
    assert resp.json() == {"message": "Work group name already exists"}


@pytest.mark.asyncio
async def test_list_shows_members(client: AsyncClient, db_session, make_user, auth_headers):
    member = await make_user(Profile.NEGOTIATOR)
    group = await work_group_service.create_work_group(db_session, name="Negotiation")
    await work_group_service.add_user_to_work_group(db_session, member.id, group.id)

    resp = await client.get("/api/work-groups", headers=auth_headers(member))

    assert resp.status_code == 200
    [listed] = resp.json()
    assert [m["id"] for m in listed["members"]] == [member.id]


@pytest.mark.asyncio
async def test_update_and_delete_work_group(client: AsyncClient, db_session, make_user, auth_headers):
    admin = await make_user(Profile.ADMINISTRATOR)
    group = await work_group_service.create_work_group(db_session, name="Old name")

    resp = await client.put(f"/api/work-groups/{group.id}", json={"name": "New name"}, headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.json()["name"] == "New name"

    resp = await client.delete(f"/api/work-groups/{group.id}", headers=auth_headers(admin))
    assert resp.status_code == 200
    await db_session.refresh(group)
    assert group.is_active is False

    resp = await client.get("/api/work-groups", params={"isActive": "true"}, headers=auth_headers(admin))
    assert resp.json() == []


@pytest.mark.asyncio
async def test_coordinator_cannot_manage_groups(client: AsyncClient, make_user, auth_headers):
    coordinator = await make_user(Profile.COORDINATOR)

    resp = await client.post("/api/work-groups", json={"name": "Nope"}, headers=auth_headers(coordinator))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_missing_group_is_404(client: AsyncClient, make_user, auth_headers):
    user = await make_user(Profile.COORDINATOR)
    resp = await client.get("/api/work-groups/unknown", headers=auth_headers(user))
    assert resp.status_code == 404
    assert resp.json() == {"message": "Work group not found"}
