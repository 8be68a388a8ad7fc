"""
Entities (individuals and companies) with their addresses and contacts.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.entity_orm import EntityAddressORM, EntityContactORM, EntityORM

logger = logging.getLogger(__name__)

_SNAPSHOT_FIELDS = (
    "id",
    "type",
    "name",
    "document",
    "municipal_registration",
    "state_registration",
    "external_id",
    "is_active",
    "created_at",
    "updated_at",
    "created_by",
    "updated_by",
)


def normalize_document(document: str) -> str:
    return document.strip()


def entity_snapshot(entity: EntityORM) -> Dict[str, Any]:
    return {field: getattr(entity, field) for field in _SNAPSHOT_FIELDS}


async def get_entity(db: AsyncSession, entity_id: str) -> Optional[EntityORM]:
    return await db.get(EntityORM, entity_id)


async def get_entity_by_document(db: AsyncSession, document: str) -> Optional[EntityORM]:
    result = await db.execute(
        select(EntityORM).where(EntityORM.document == normalize_document(document))
    )
    return result.scalar_one_or_none()


async def get_addresses(db: AsyncSession, entity_id: str) -> List[EntityAddressORM]:
    result = await db.execute(
        select(EntityAddressORM)
        .where(EntityAddressORM.entity_id == entity_id)
        .order_by(EntityAddressORM.is_primary.desc(), EntityAddressORM.created_at)
    )
    return list(result.scalars().all())


async def get_contacts(db: AsyncSession, entity_id: str) -> List[EntityContactORM]:
    result = await db.execute(
        select(EntityContactORM)
        .where(EntityContactORM.entity_id == entity_id)
        .order_by(EntityContactORM.created_at)
    )
    return list(result.scalars().all())


async def list_entities(
    db: AsyncSession,
    search: Optional[str] = None,
    entity_type: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> List[EntityORM]:
    query = select(EntityORM)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(
            or_(
                func.lower(EntityORM.name).like(pattern),
                func.lower(EntityORM.document).like(pattern),
            )
        )
    if entity_type:
        query = query.where(EntityORM.type == entity_type)
    if is_active is not None:
        query = query.where(EntityORM.is_active.is_(is_active))
    result = await db.execute(query.order_by(EntityORM.created_at.desc()))
    return list(result.scalars().all())


async def create_entity(db: AsyncSession, *, created_by: Optional[str] = None, **fields: Any) -> EntityORM:
    fields["document"] = normalize_document(fields["document"])
    entity = EntityORM(created_by=created_by, **fields)
    db.add(entity)
    await db.flush()
    await db.refresh(entity)
    logger.info(f"Entity created: {entity.id} ({entity.type})")
    return entity


async def update_entity(db: AsyncSession, entity: EntityORM, **fields: Any) -> EntityORM:
    if fields.get("document") is not None:
        fields["document"] = normalize_document(fields["document"])
    for key, value in fields.items():
        setattr(entity, key, value)
    entity.updated_at = datetime.now(timezone.utc)
    await db.flush()
    await db.refresh(entity)
    return entity


async def deactivate_entity(db: AsyncSession, entity: EntityORM, actor_id: Optional[str] = None) -> EntityORM:
    return await update_entity(db, entity, is_active=False, updated_by=actor_id)


async def add_addresses(db: AsyncSession, entity_id: str, addresses: Iterable[Dict[str, Any]]) -> None:
    for address in addresses:
        db.add(EntityAddressORM(entity_id=entity_id, **address))
    await db.flush()


async def add_contacts(db: AsyncSession, entity_id: str, contacts: Iterable[Dict[str, Any]]) -> None:
    for contact in contacts:
        db.add(EntityContactORM(entity_id=entity_id, **contact))
    await db.flush()


async def replace_addresses(db: AsyncSession, entity_id: str, addresses: Iterable[Dict[str, Any]]) -> None:
    await db.execute(delete(EntityAddressORM).where(EntityAddressORM.entity_id == entity_id))
    await add_addresses(db, entity_id, addresses)


async def replace_contacts(db: AsyncSession, entity_id: str, contacts: Iterable[Dict[str, Any]]) -> None:
    await db.execute(delete(EntityContactORM).where(EntityContactORM.entity_id == entity_id))
    await add_contacts(db, entity_id, contacts)
