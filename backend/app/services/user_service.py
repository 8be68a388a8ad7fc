"""
Credential store: user lookups and mutations.

Lookups return None when nothing matches; only storage failures raise.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import Settings
from backend.app.core.security import Profile
from backend.app.models.user_orm import UserORM
from backend.app.models.work_group_orm import UserWorkGroupORM, WorkGroupORM
from backend.app.services.password_service import hash_password

logger = logging.getLogger(__name__)

# Columns exposed in audit snapshots; the password hash is never one of them.
_SNAPSHOT_FIELDS = (
    "id", "email", "first_name", "last_name", "profile", "is_active",
    "temporary_password", "must_change_password", "last_login",
    "created_at", "updated_at", "created_by", "updated_by",
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def user_snapshot(user: UserORM) -> Dict[str, Any]:
    """JSON-safe view of a user for audit old/new values."""
    snapshot = {}
    for field in _SNAPSHOT_FIELDS:
        value = getattr(user, field)
        snapshot[field] = value.isoformat() if isinstance(value, datetime) else value
    return snapshot


async def get_user(db: AsyncSession, user_id: str) -> Optional[UserORM]:
    return await db.get(UserORM, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[UserORM]:
    result = await db.execute(
        select(UserORM).where(func.lower(UserORM.email) == normalize_email(email))
    )
    return result.scalar_one_or_none()


async def get_user_work_groups(db: AsyncSession, user_id: str) -> List[WorkGroupORM]:
    result = await db.execute(
        select(WorkGroupORM)
        .join(UserWorkGroupORM, UserWorkGroupORM.group_id == WorkGroupORM.id)
        .where(UserWorkGroupORM.user_id == user_id)
        .order_by(WorkGroupORM.name)
    )
    return list(result.scalars().all())


async def get_user_with_work_groups(db: AsyncSession, user_id: str) -> Optional[tuple[UserORM, List[WorkGroupORM]]]:
    user = await get_user(db, user_id)
    if user is None:
        return None
    return user, await get_user_work_groups(db, user_id)


async def list_users(
    db: AsyncSession,
    search: Optional[str] = None,
    profile: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> List[UserORM]:
    query = select(UserORM)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(
            or_(
                func.lower(UserORM.first_name).like(pattern),
                func.lower(UserORM.last_name).like(pattern),
                func.lower(UserORM.email).like(pattern),
            )
        )
    if profile:
        query = query.where(UserORM.profile == profile)
    if is_active is not None:
        query = query.where(UserORM.is_active.is_(is_active))
    result = await db.execute(query.order_by(UserORM.created_at.desc()))
    return list(result.scalars().all())


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    hashed_password: str,
    first_name: str,
    last_name: str,
    profile: str,
    is_active: bool = True,
    temporary_password: bool = False,
    must_change_password: bool = True,
    created_by: Optional[str] = None,
) -> UserORM:
    user = UserORM(
        email=normalize_email(email),
        hashed_password=hashed_password,
        first_name=first_name,
        last_name=last_name,
        profile=profile,
        is_active=is_active,
        temporary_password=temporary_password,
        # A temporary password always forces a change
        must_change_password=must_change_password or temporary_password,
        created_by=created_by,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    logger.info(f"User created: {user.id} ({user.profile})")
    return user


async def update_user(db: AsyncSession, user: UserORM, **fields: Any) -> UserORM:
    if "email" in fields and fields["email"] is not None:
        fields["email"] = normalize_email(fields["email"])
    for key, value in fields.items():
        setattr(user, key, value)
    if user.temporary_password:
        user.must_change_password = True
    user.updated_at = datetime.now(timezone.utc)
    await db.flush()
    await db.refresh(user)
    return user


async def update_last_login(db: AsyncSession, user: UserORM, when: Optional[datetime] = None) -> None:
    user.last_login = when or datetime.now(timezone.utc)
    await db.flush()


async def set_temporary_password(
    db: AsyncSession, user: UserORM, hashed_password: str, updated_by: Optional[str] = None
) -> UserORM:
    return await update_user(
        db,
        user,
        hashed_password=hashed_password,
        temporary_password=True,
        must_change_password=True,
        updated_by=updated_by or user.updated_by,
    )


async def deactivate_user(db: AsyncSession, user: UserORM, actor_id: Optional[str] = None) -> UserORM:
    return await update_user(db, user, is_active=False, updated_by=actor_id)


async def seed_admin_user(db: AsyncSession, settings: Settings) -> Optional[UserORM]:
    """Create the initial administrator on first startup. Idempotent."""
    existing = await get_user_by_email(db, settings.seed_admin_email)
    if existing:
        return None
    user = await create_user(
        db,
        email=settings.seed_admin_email,
        hashed_password=await hash_password(settings.seed_admin_password, settings.bcrypt_rounds),
        first_name=settings.seed_admin_first_name,
        last_name=settings.seed_admin_last_name,
        profile=Profile.ADMINISTRATOR.value,
    )
    logger.info(f"Seeded admin user {user.email}")
    return user
