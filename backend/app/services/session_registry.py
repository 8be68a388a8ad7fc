"""
Session Registry - persisted, revocable refresh-token grants.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.session_orm import UserSessionORM

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored timestamp is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SessionRegistry:
    """Repository for refresh-token sessions."""

    def __init__(self, session: AsyncSession, enforce_expiry: bool = False):
        self.session = session
        self.enforce_expiry = enforce_expiry

    async def create_session(
        self,
        user_id: str,
        refresh_token: str,
        expires_at: datetime,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> UserSessionORM:
        row = UserSessionORM(
            user_id=user_id,
            token=refresh_token,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.session.add(row)
        await self.session.flush()
        logger.info(f"Session {row.id} opened for user {user_id}")
        return row

    async def get_active_session(self, refresh_token: str) -> Optional[UserSessionORM]:
        """
        Active session for a token, or None.

        Only the ``is_active`` flag is checked unless the registry was built
        with ``enforce_expiry``, in which case ``expires_at`` must also lie
        in the future.
        """
        result = await self.session.execute(
            select(UserSessionORM).where(
                UserSessionORM.token == refresh_token,
                UserSessionORM.is_active.is_(True),
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        if self.enforce_expiry and _as_utc(row.expires_at) <= datetime.now(timezone.utc):
            return None
        return row

    async def deactivate_session(self, refresh_token: str) -> None:
        """Idempotent: unknown or already inactive tokens are a no-op."""
        result = await self.session.execute(
            update(UserSessionORM)
            .where(UserSessionORM.token == refresh_token, UserSessionORM.is_active.is_(True))
            .values(is_active=False)
        )
        if result.rowcount:
            logger.info("Session deactivated")

    async def deactivate_user_sessions(self, user_id: str) -> int:
        """Revoke every active session of a user. Returns how many were revoked."""
        result = await self.session.execute(
            update(UserSessionORM)
            .where(UserSessionORM.user_id == user_id, UserSessionORM.is_active.is_(True))
            .values(is_active=False)
        )
        return result.rowcount or 0

    async def touch(self, row: UserSessionORM) -> None:
        row.last_used = datetime.now(timezone.utc)
        await self.session.flush()
