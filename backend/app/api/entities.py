"""
Entity router.

Any authenticated profile may manage entities. Deletion is soft and every
mutation is audited with before/after snapshots.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_current_user, request_origin
from backend.app.core.database import get_db
from backend.app.core.errors import ConflictError, NotFoundError
from backend.app.core.security import CurrentUser
from backend.app.schemas.common import MessageResponse
from backend.app.schemas.entities import (
    AddressResponse,
    ContactResponse,
    EntityCreateRequest,
    EntityType,
    EntityUpdateRequest,
    EntityWithDetails,
)
from backend.app.services import entity_service
from backend.app.services.audit_service import AuditAction, AuditEntry, AuditRecorder

router = APIRouter()


async def _get_or_404(db: AsyncSession, entity_id: str):
    entity = await entity_service.get_entity(db, entity_id)
    if entity is None:
        raise NotFoundError("Entity not found")
    return entity


async def _with_details(db: AsyncSession, entity) -> EntityWithDetails:
    response = EntityWithDetails.model_validate(entity)
    response.addresses = [
        AddressResponse.model_validate(a) for a in await entity_service.get_addresses(db, entity.id)
    ]
    response.contacts = [
        ContactResponse.model_validate(c) for c in await entity_service.get_contacts(db, entity.id)
    ]
    return response


async def _audit(request: Request, db: AsyncSession, action: AuditAction, actor: CurrentUser, record_id: str,
                 old_values: Optional[dict] = None, new_values: Optional[dict] = None) -> None:
    origin = request_origin(request)
    await AuditRecorder(db).record(AuditEntry(
        action=action,
        table="entities",
        user_id=actor.id,
        record_id=record_id,
        old_values=old_values,
        new_values=new_values,
        ip_address=origin.ip_address,
        user_agent=origin.user_agent,
    ))


@router.get("", response_model=List[EntityWithDetails], dependencies=[Depends(get_current_user)])
async def list_entities(
    search: Optional[str] = None,
    entity_type: Optional[EntityType] = Query(default=None, alias="type"),
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    db: AsyncSession = Depends(get_db),
):
    entities = await entity_service.list_entities(
        db,
        search=search,
        entity_type=entity_type.value if entity_type else None,
        is_active=is_active,
    )
    return [await _with_details(db, e) for e in entities]


@router.post("", response_model=EntityWithDetails, status_code=201)
async def create_entity(
    payload: EntityCreateRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    if await entity_service.get_entity_by_document(db, payload.entity.document):
        raise ConflictError("Document already exists")

    entity = await entity_service.create_entity(
        db, created_by=current_user.id, **payload.entity.model_dump(mode="json")
    )
    await entity_service.add_addresses(db, entity.id, [a.model_dump(mode="json") for a in payload.addresses])
    await entity_service.add_contacts(db, entity.id, [c.model_dump(mode="json") for c in payload.contacts])

    await _audit(request, db, AuditAction.CREATE, current_user, entity.id,
                 new_values=entity_service.entity_snapshot(entity))
    return await _with_details(db, entity)


@router.get("/{entity_id}", response_model=EntityWithDetails, dependencies=[Depends(get_current_user)])
async def get_entity(entity_id: str, db: AsyncSession = Depends(get_db)):
    return await _with_details(db, await _get_or_404(db, entity_id))


@router.put("/{entity_id}", response_model=EntityWithDetails)
async def update_entity(
    entity_id: str,
    payload: EntityUpdateRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    entity = await _get_or_404(db, entity_id)
    before = entity_service.entity_snapshot(entity)

    changes = payload.entity.model_dump(mode="json", exclude_unset=True)
    # Required columns cannot be nulled through a partial update
    changes = {
        k: v for k, v in changes.items()
        if v is not None or k in ("municipal_registration", "state_registration", "external_id")
    }
    if changes.get("document") and entity_service.normalize_document(changes["document"]) != entity.document:
        if await entity_service.get_entity_by_document(db, changes["document"]):
            raise ConflictError("Document already exists")

    entity = await entity_service.update_entity(db, entity, updated_by=current_user.id, **changes)
    if payload.addresses is not None:
        await entity_service.replace_addresses(db, entity.id, [a.model_dump(mode="json") for a in payload.addresses])
    if payload.contacts is not None:
        await entity_service.replace_contacts(db, entity.id, [c.model_dump(mode="json") for c in payload.contacts])

    await _audit(request, db, AuditAction.UPDATE, current_user, entity.id,
                 old_values=before, new_values=entity_service.entity_snapshot(entity))
    return await _with_details(db, entity)


@router.delete("/{entity_id}", response_model=MessageResponse)
async def delete_entity(
    entity_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    entity = await _get_or_404(db, entity_id)
    before = entity_service.entity_snapshot(entity)
    await entity_service.deactivate_entity(db, entity, actor_id=current_user.id)

    await _audit(request, db, AuditAction.DELETE, current_user, entity.id, old_values=before)
    return MessageResponse(message="Entity deactivated successfully")
