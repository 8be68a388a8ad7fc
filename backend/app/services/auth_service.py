"""
Authentication flows: login, refresh, logout, forgot-password and
password change, composed from the password codec, token service,
session registry and audit recorder.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import Settings
from backend.app.core.errors import AuthenticationError, ValidationError
from backend.app.core.security import CurrentUser, TokenPair, TokenPayload, TokenService
from backend.app.models.user_orm import UserORM
from backend.app.services import user_service
from backend.app.services.audit_service import AuditAction, AuditEntry, AuditRecorder
from backend.app.services.notifications import TemporaryPasswordNotifier
from backend.app.services.password_service import (
    generate_temporary_password,
    hash_password,
    verify_password,
)
from backend.app.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
FORGOT_PASSWORD_MESSAGE = "If the email exists, a recovery link has been sent"


@dataclass
class RequestOrigin:
    """Where a request came from, copied into sessions and audit rows."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass
class LoginResult:
    tokens: TokenPair
    user: UserORM


def _payload_for(user: UserORM) -> TokenPayload:
    return TokenPayload(user_id=user.id, email=user.email, profile=user.profile)


async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[UserORM]:
    user = await user_service.get_user_by_email(db, email)
    if not user or not user.is_active:
        return None
    if not await verify_password(password, user.hashed_password):
        return None
    return user


async def login(
    db: AsyncSession,
    token_service: TokenService,
    email: str,
    password: str,
    origin: RequestOrigin,
) -> LoginResult:
    user = await authenticate_user(db, email, password)
    if user is None:
        # Same answer for unknown email, inactive user and wrong password
        raise AuthenticationError(INVALID_CREDENTIALS)

    tokens = token_service.issue_token_pair(_payload_for(user))
    await SessionRegistry(db).create_session(
        user.id,
        tokens.refresh_token,
        token_service.refresh_expiry(),
        origin.ip_address,
        origin.user_agent,
    )
    await user_service.update_last_login(db, user)
    await AuditRecorder(db).record_safely(AuditEntry(
        action=AuditAction.LOGIN,
        table="users",
        user_id=user.id,
        record_id=user.id,
        ip_address=origin.ip_address,
        user_agent=origin.user_agent,
    ))
    logger.info(f"User {user.id} logged in")
    return LoginResult(tokens=tokens, user=user)


async def refresh_tokens(
    db: AsyncSession,
    token_service: TokenService,
    settings: Settings,
    refresh_token: str,
    origin: RequestOrigin,
) -> TokenPair:
    payload = token_service.verify_refresh_token(refresh_token)
    if payload is None:
        raise AuthenticationError("Invalid refresh token")

    registry = SessionRegistry(db, enforce_expiry=settings.enforce_session_expiry)
    session = await registry.get_active_session(refresh_token)
    if session is None:
        raise AuthenticationError("Session not found or expired")

    user = await user_service.get_user(db, payload.user_id)
    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    tokens = token_service.issue_token_pair(_payload_for(user))
    if settings.rotate_refresh_tokens:
        await registry.deactivate_session(refresh_token)
        await registry.create_session(
            user.id,
            tokens.refresh_token,
            token_service.refresh_expiry(),
            origin.ip_address,
            origin.user_agent,
        )
    else:
        await registry.touch(session)
    return tokens


async def logout(
    db: AsyncSession,
    current_user: CurrentUser,
    refresh_token: Optional[str],
    origin: RequestOrigin,
) -> None:
    if refresh_token:
        await SessionRegistry(db).deactivate_session(refresh_token)
    await AuditRecorder(db).record_safely(AuditEntry(
        action=AuditAction.LOGOUT,
        table="users",
        user_id=current_user.id,
        record_id=current_user.id,
        ip_address=origin.ip_address,
        user_agent=origin.user_agent,
    ))
    logger.info(f"User {current_user.id} logged out")


async def forgot_password(
    db: AsyncSession,
    settings: Settings,
    notifier: TemporaryPasswordNotifier,
    email: str,
    origin: RequestOrigin,
) -> None:
    """Issue a temporary password. Silent when the email is unknown."""
    user = await user_service.get_user_by_email(db, email)
    if user is None:
        return

    temporary_password = generate_temporary_password()
    hashed = await hash_password(temporary_password, settings.bcrypt_rounds)
    await user_service.set_temporary_password(db, user, hashed)
    await AuditRecorder(db).record_safely(AuditEntry(
        action=AuditAction.PASSWORD_RESET,
        table="users",
        user_id=user.id,
        record_id=user.id,
        ip_address=origin.ip_address,
        user_agent=origin.user_agent,
    ))
    await notifier.notify(user, temporary_password)


async def change_password(
    db: AsyncSession,
    settings: Settings,
    current_user: CurrentUser,
    current_password: str,
    new_password: str,
    origin: RequestOrigin,
) -> UserORM:
    """Replace the caller's password and lift the forced-change flags."""
    user = await user_service.get_user(db, current_user.id)
    if user is None or not user.is_active:
        raise AuthenticationError("User not found or inactive")
    if not await verify_password(current_password, user.hashed_password):
        raise ValidationError("Current password is incorrect")
    if current_password == new_password:
        raise ValidationError("New password must be different from the current password")

    before = user_service.user_snapshot(user)
    user = await user_service.update_user(
        db,
        user,
        hashed_password=await hash_password(new_password, settings.bcrypt_rounds),
        temporary_password=False,
        must_change_password=False,
        updated_by=user.id,
    )
    await AuditRecorder(db).record(AuditEntry(
        action=AuditAction.UPDATE,
        table="users",
        user_id=user.id,
        record_id=user.id,
        old_values=before,
        new_values=user_service.user_snapshot(user),
        ip_address=origin.ip_address,
        user_agent=origin.user_agent,
    ))
    return user
