"""
Audit Recorder.

Appends immutable audit rows. Snapshots are redacted here, at the single
point where they enter storage, so no call site can leak a secret.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.logging import correlation_id_ctx
from backend.app.models.audit_orm import AuditLogORM

logger = logging.getLogger(__name__)

REDACTED = "[HIDDEN]"

SENSITIVE_KEYS = frozenset({
    "password",
    "hashed_password",
    "hashedPassword",
    "password_hash",
    "passwordHash",
    "current_password",
    "currentPassword",
    "new_password",
    "newPassword",
    "temporary_password_plain",
    "refresh_token",
    "refreshToken",
    "access_token",
    "accessToken",
})


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    PASSWORD_RESET = "PASSWORD_RESET"
    API_ACCESS = "API_ACCESS"


@dataclass
class AuditEntry:
    action: str
    table: str
    user_id: Optional[str] = None
    record_id: Optional[str] = None
    old_values: Optional[dict] = None
    new_values: Optional[dict] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


def redact(value: Any) -> Any:
    """Recursively replace secret-bearing keys and make the value JSON-safe."""
    if isinstance(value, dict):
        return {
            str(k): (REDACTED if k in SENSITIVE_KEYS else redact(v))
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _action_name(action) -> str:
    return getattr(action, "value", action)


class AuditRecorder:
    """Writes audit rows into the caller's unit of work."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self, entry: AuditEntry) -> AuditLogORM:
        row = AuditLogORM(
            user_id=entry.user_id,
            action=_action_name(entry.action),
            table_name=entry.table,
            record_id=entry.record_id,
            old_values=redact(entry.old_values) if entry.old_values is not None else None,
            new_values=redact(entry.new_values) if entry.new_values is not None else None,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            correlation_id=correlation_id_ctx.get(),
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def record_safely(self, entry: AuditEntry) -> Optional[AuditLogORM]:
        """
        Best-effort variant for the login/logout/access paths.

        The write runs in a savepoint so a failure leaves the surrounding
        transaction usable; the failure is logged and the request proceeds.
        """
        try:
            async with self.session.begin_nested():
                return await self.record(entry)
        except Exception as e:
            self._log_failure(entry, e)
            return None

    async def record_committed(self, entry: AuditEntry) -> Optional[AuditLogORM]:
        """
        Best-effort write that is committed immediately.

        Used by the authentication gate: the row must outlive a handler that
        later fails and rolls the request's transaction back. Only call this
        before the caller has pending writes of its own.
        """
        row = await self.record_safely(entry)
        try:
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            self._log_failure(entry, e)
            return None
        return row

    @staticmethod
    def _log_failure(entry: AuditEntry, error: Exception) -> None:
        action = _action_name(entry.action)
        logger.error(
            f"Audit write failed for {action} on {entry.table}: {error}",
            extra={"extra_data": {"audit_action": action, "record_id": entry.record_id}},
            exc_info=True,
        )
