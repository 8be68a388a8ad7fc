import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.user_orm import UserORM
from backend.app.models.work_group_orm import UserWorkGroupORM, WorkGroupORM

logger = logging.getLogger(__name__)


def work_group_snapshot(group: WorkGroupORM) -> Dict[str, Any]:
    return {
        "id": group.id,
        "name": group.name,
        "description": group.description,
        "is_active": group.is_active,
        "created_at": group.created_at,
        "updated_at": group.updated_at,
        "created_by": group.created_by,
        "updated_by": group.updated_by,
    }


async def get_work_group(db: AsyncSession, group_id: str) -> Optional[WorkGroupORM]:
    return await db.get(WorkGroupORM, group_id)


async def get_work_group_by_name(db: AsyncSession, name: str) -> Optional[WorkGroupORM]:
    result = await db.execute(
        select(WorkGroupORM).where(func.lower(WorkGroupORM.name) == name.strip().lower())
    )
    return result.scalar_one_or_none()


async def get_members(db: AsyncSession, group_id: str) -> List[UserORM]:
    result = await db.execute(
        select(UserORM)
        .join(UserWorkGroupORM, UserWorkGroupORM.user_id == UserORM.id)
        .where(UserWorkGroupORM.group_id == group_id)
        .order_by(UserORM.first_name, UserORM.last_name)
    )
    return list(result.scalars().all())


async def list_work_groups(
    db: AsyncSession, search: Optional[str] = None, is_active: Optional[bool] = None
) -> List[WorkGroupORM]:
    query = select(WorkGroupORM)
    if search:
        query = query.where(func.lower(WorkGroupORM.name).like(f"%{search.lower()}%"))
    if is_active is not None:
        query = query.where(WorkGroupORM.is_active.is_(is_active))
    result = await db.execute(query.order_by(WorkGroupORM.name))
    return list(result.scalars().all())


async def create_work_group(
    db: AsyncSession,
    *,
    name: str,
    description: Optional[str] = None,
    is_active: bool = True,
    created_by: Optional[str] = None,
) -> WorkGroupORM:
    group = WorkGroupORM(
        name=name.strip(),
        description=description,
        is_active=is_active,
        created_by=created_by,
    )
    db.add(group)
    await db.flush()
    await db.refresh(group)
    logger.info(f"Work group created: {group.id} ({group.name})")
    return group


async def update_work_group(db: AsyncSession, group: WorkGroupORM, **fields: Any) -> WorkGroupORM:
    for key, value in fields.items():
        setattr(group, key, value)
    group.updated_at = datetime.now(timezone.utc)
    await db.flush()
    await db.refresh(group)
    return group


async def deactivate_work_group(db: AsyncSession, group: WorkGroupORM, actor_id: Optional[str] = None) -> WorkGroupORM:
    return await update_work_group(db, group, is_active=False, updated_by=actor_id)


async def add_user_to_work_group(db: AsyncSession, user_id: str, group_id: str) -> None:
    db.add(UserWorkGroupORM(user_id=user_id, group_id=group_id))
    await db.flush()


async def clear_user_work_groups(db: AsyncSession, user_id: str) -> None:
    await db.execute(delete(UserWorkGroupORM).where(UserWorkGroupORM.user_id == user_id))
    await db.flush()
