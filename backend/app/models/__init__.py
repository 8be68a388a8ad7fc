"""Models package."""

from backend.app.models.user_orm import UserORM
from backend.app.models.session_orm import UserSessionORM
from backend.app.models.audit_orm import AuditLogORM
from backend.app.models.work_group_orm import WorkGroupORM, UserWorkGroupORM
from backend.app.models.entity_orm import EntityORM, EntityAddressORM, EntityContactORM

__all__ = [
    "UserORM",
    "UserSessionORM",
    "AuditLogORM",
    "WorkGroupORM",
    "UserWorkGroupORM",
    "EntityORM",
    "EntityAddressORM",
    "EntityContactORM",
]
