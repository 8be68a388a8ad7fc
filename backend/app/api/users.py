"""
User management router.

Creation and admin resets hand out a temporary password exactly once, in
the response body. Every mutation is audited with before/after snapshots.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import (
    ADMIN_ONLY,
    ADMIN_OR_MANAGER,
    get_current_user,
    get_notifier,
    request_origin,
    authorize,
)
from backend.app.core.config import Settings, get_settings
from backend.app.core.database import get_db
from backend.app.core.errors import ConflictError, NotFoundError
from backend.app.core.security import CurrentUser
from backend.app.schemas.common import MessageResponse
from backend.app.schemas.users import (
    PasswordResetResponse,
    UserCreate,
    UserCreatedResponse,
    UserResponse,
    UserUpdate,
    UserWithWorkGroups,
)
from backend.app.schemas.work_groups import WorkGroupResponse
from backend.app.services import user_service, work_group_service
from backend.app.services.audit_service import AuditAction, AuditEntry, AuditRecorder
from backend.app.services.notifications import TemporaryPasswordNotifier
from backend.app.services.password_service import generate_temporary_password, hash_password
from backend.app.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)
router = APIRouter()


async def _get_or_404(db: AsyncSession, user_id: str):
    user = await user_service.get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def _with_work_groups(db: AsyncSession, user) -> UserWithWorkGroups:
    groups = await user_service.get_user_work_groups(db, user.id)
    response = UserWithWorkGroups.model_validate(user)
    response.work_groups = [WorkGroupResponse.model_validate(g) for g in groups]
    return response


async def _assign_work_group(db: AsyncSession, user_id: str, work_group_id: Optional[str]) -> None:
    """Replace the user's membership; an empty id just clears it."""
    await work_group_service.clear_user_work_groups(db, user_id)
    if work_group_id and work_group_id.strip():
        group = await work_group_service.get_work_group(db, work_group_id)
        if group is None:
            raise NotFoundError("Work group not found")
        await work_group_service.add_user_to_work_group(db, user_id, group.id)


@router.get(
    "",
    response_model=List[UserWithWorkGroups],
    dependencies=authorize(*ADMIN_OR_MANAGER),
)
async def list_users(
    search: Optional[str] = None,
    profile: Optional[str] = None,
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    db: AsyncSession = Depends(get_db),
):
    users = await user_service.list_users(db, search=search, profile=profile, is_active=is_active)
    return [await _with_work_groups(db, u) for u in users]


@router.post(
    "",
    response_model=UserCreatedResponse,
    status_code=201,
    dependencies=authorize(*ADMIN_OR_MANAGER),
)
async def create_user(
    payload: UserCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: TemporaryPasswordNotifier = Depends(get_notifier),
    current_user: CurrentUser = Depends(get_current_user),
):
    if await user_service.get_user_by_email(db, payload.email):
        raise ConflictError("Email already exists")

    temporary_password = generate_temporary_password()
    user = await user_service.create_user(
        db,
        email=payload.email,
        hashed_password=await hash_password(temporary_password, settings.bcrypt_rounds),
        first_name=payload.first_name,
        last_name=payload.last_name,
        profile=payload.profile.value,
        is_active=payload.is_active,
        temporary_password=True,
        must_change_password=True,
        created_by=current_user.id,
    )
    if payload.work_group_id:
        await _assign_work_group(db, user.id, payload.work_group_id)

    origin = request_origin(request)
    await AuditRecorder(db).record(AuditEntry(
        action=AuditAction.CREATE,
        table="users",
        user_id=current_user.id,
        record_id=user.id,
        new_values={**user_service.user_snapshot(user), "work_group_id": payload.work_group_id},
        ip_address=origin.ip_address,
        user_agent=origin.user_agent,
    ))
    await notifier.notify(user, temporary_password)

    return UserCreatedResponse(
        user=UserResponse.model_validate(user),
        temporary_password=temporary_password,
    )


@router.get("/{user_id}", response_model=UserWithWorkGroups, dependencies=[Depends(get_current_user)])
async def get_user(user_id: str, db: AsyncSession = Depends(get_db)):
    user = await _get_or_404(db, user_id)
    return await _with_work_groups(db, user)


@router.put(
    "/{user_id}",
    response_model=UserWithWorkGroups,
    dependencies=authorize(*ADMIN_OR_MANAGER),
)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    user = await _get_or_404(db, user_id)
    before = user_service.user_snapshot(user)

    changes = payload.model_dump(exclude_unset=True, exclude={"work_group_id"})
    if changes.get("email") and user_service.normalize_email(changes["email"]) != user.email:
        if await user_service.get_user_by_email(db, changes["email"]):
            raise ConflictError("Email already exists")
    if "profile" in changes and changes["profile"] is not None:
        changes["profile"] = changes["profile"].value
    # Required columns cannot be nulled through a partial update
    changes = {k: v for k, v in changes.items() if v is not None}

    user = await user_service.update_user(db, user, updated_by=current_user.id, **changes)
    if "work_group_id" in payload.model_fields_set:
        await _assign_work_group(db, user.id, payload.work_group_id)

    if user.is_active is False and before["is_active"]:
        await SessionRegistry(db).deactivate_user_sessions(user.id)

    origin = request_origin(request)
    await AuditRecorder(db).record(AuditEntry(
        action=AuditAction.UPDATE,
        table="users",
        user_id=current_user.id,
        record_id=user.id,
        old_values=before,
        new_values={**user_service.user_snapshot(user), "work_group_id": payload.work_group_id},
        ip_address=origin.ip_address,
        user_agent=origin.user_agent,
    ))
    return await _with_work_groups(db, user)


@router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    dependencies=authorize(*ADMIN_ONLY),
)
async def delete_user(
    user_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Soft delete: the user is deactivated and their sessions revoked."""
    user = await _get_or_404(db, user_id)
    before = user_service.user_snapshot(user)

    await user_service.deactivate_user(db, user, actor_id=current_user.id)
    revoked = await SessionRegistry(db).deactivate_user_sessions(user.id)
    logger.info(f"User {user.id} deactivated by {current_user.id}; {revoked} session(s) revoked")

    origin = request_origin(request)
    await AuditRecorder(db).record(AuditEntry(
        action=AuditAction.DELETE,
        table="users",
        user_id=current_user.id,
        record_id=user.id,
        old_values=before,
        ip_address=origin.ip_address,
        user_agent=origin.user_agent,
    ))
    return MessageResponse(message="User deactivated successfully")


@router.post(
    "/{user_id}/reset-password",
    response_model=PasswordResetResponse,
    dependencies=authorize(*ADMIN_OR_MANAGER),
)
async def reset_password(
    user_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: TemporaryPasswordNotifier = Depends(get_notifier),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Admin-triggered reset: issue a temporary password and force a change."""
    user = await _get_or_404(db, user_id)

    temporary_password = generate_temporary_password()
    await user_service.set_temporary_password(
        db,
        user,
        await hash_password(temporary_password, settings.bcrypt_rounds),
        updated_by=current_user.id,
    )

    origin = request_origin(request)
    await AuditRecorder(db).record(AuditEntry(
        action=AuditAction.PASSWORD_RESET,
        table="users",
        user_id=current_user.id,
        record_id=user.id,
        ip_address=origin.ip_address,
        user_agent=origin.user_agent,
    ))
    await notifier.notify(user, temporary_password)
    return PasswordResetResponse(message="Password reset successfully", temporary_password=temporary_password)
