"""Work group router."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import ADMIN_ONLY, ADMIN_OR_MANAGER, authorize, get_current_user, request_origin
from backend.app.core.database import get_db
from backend.app.core.errors import ConflictError, NotFoundError
from backend.app.core.security import CurrentUser
from backend.app.schemas.common import MessageResponse
from backend.app.schemas.work_groups import (
    WorkGroupCreate,
    WorkGroupMember,
    WorkGroupResponse,
    WorkGroupUpdate,
    WorkGroupWithMembers,
)
from backend.app.services import work_group_service
from backend.app.services.audit_service import AuditAction, AuditEntry, AuditRecorder

router = APIRouter()


async def _get_or_404(db: AsyncSession, group_id: str):
    group = await work_group_service.get_work_group(db, group_id)
    if group is None:
        raise NotFoundError("Work group not found")
    return group


async def _with_members(db: AsyncSession, group) -> WorkGroupWithMembers:
    response = WorkGroupWithMembers.model_validate(group)
    response.members = [
        WorkGroupMember.model_validate(u) for u in await work_group_service.get_members(db, group.id)
    ]
    return response


@router.get("", response_model=List[WorkGroupWithMembers], dependencies=[Depends(get_current_user)])
async def list_work_groups(
    search: Optional[str] = None,
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    db: AsyncSession = Depends(get_db),
):
    groups = await work_group_service.list_work_groups(db, search=search, is_active=is_active)
    return [await _with_members(db, g) for g in groups]


@router.post("", response_model=WorkGroupResponse, status_code=201, dependencies=authorize(*ADMIN_OR_MANAGER))
async def create_work_group(
    payload: WorkGroupCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    if await work_group_service.get_work_group_by_name(db, payload.name):
        raise ConflictError("Work group name already exists")

    group = await work_group_service.create_work_group(
        db,
        name=payload.name,
        description=payload.description,
        is_active=payload.is_active,
        created_by=current_user.id,
    )
    origin = request_origin(request)
    await AuditRecorder(db).record(AuditEntry(
        action=AuditAction.CREATE,
        table="work_groups",
        user_id=current_user.id,
        record_id=group.id,
        new_values=work_group_service.work_group_snapshot(group),
        ip_address=origin.ip_address,
        user_agent=origin.user_agent,
    ))
    return group


@router.get("/{group_id}", response_model=WorkGroupWithMembers, dependencies=[Depends(get_current_user)])
async def get_work_group(group_id: str, db: AsyncSession = Depends(get_db)):
    return await _with_members(db, await _get_or_404(db, group_id))


@router.put("/{group_id}", response_model=WorkGroupResponse, dependencies=authorize(*ADMIN_OR_MANAGER))
async def update_work_group(
    group_id: str,
    payload: WorkGroupUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    group = await _get_or_404(db, group_id)
    before = work_group_service.work_group_snapshot(group)

    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None or k == "description"}
    if changes.get("name") and changes["name"].strip().lower() != group.name.lower():
        if await work_group_service.get_work_group_by_name(db, changes["name"]):
            raise ConflictError("Work group name already exists")

    group = await work_group_service.update_work_group(db, group, updated_by=current_user.id, **changes)
    origin = request_origin(request)
    await AuditRecorder(db).record(AuditEntry(
        action=AuditAction.UPDATE,
        table="work_groups",
        user_id=current_user.id,
        record_id=group.id,
        old_values=before,
        new_values=work_group_service.work_group_snapshot(group),
        ip_address=origin.ip_address,
        user_agent=origin.user_agent,
    ))
    return group


@router.delete("/{group_id}", response_model=MessageResponse, dependencies=authorize(*ADMIN_ONLY))
async def delete_work_group(
    group_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    group = await _get_or_404(db, group_id)
    before = work_group_service.work_group_snapshot(group)
    await work_group_service.deactivate_work_group(db, group, actor_id=current_user.id)

    origin = request_origin(request)
    await AuditRecorder(db).record(AuditEntry(
        action=AuditAction.DELETE,
        table="work_groups",
        user_id=current_user.id,
        record_id=group.id,
        old_values=before,
        ip_address=origin.ip_address,
        user_agent=origin.user_agent,
    ))
    return MessageResponse(message="Work group deactivated successfully")
