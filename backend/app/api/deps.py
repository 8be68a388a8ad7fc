"""
Request-level guards shared by every router.

``get_current_user`` is the authentication gate: it validates the bearer
access token, reloads the caller, attaches the identity to
``request.state.user`` and audits the access. ``require_profiles`` is the
authorization gate and must be declared after it.
"""
import logging
from typing import Iterable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import Settings, get_settings
from backend.app.core.database import get_db
from backend.app.core.errors import AuthenticationError, ForbiddenError, ServiceError
from backend.app.core.security import CurrentUser, Profile, TokenService, get_token_service
from backend.app.services import user_service
from backend.app.services.audit_service import AuditAction, AuditEntry, AuditRecorder
from backend.app.services.auth_service import RequestOrigin
from backend.app.services.notifications import LoggingNotifier, TemporaryPasswordNotifier

logger = logging.getLogger(__name__)


def request_origin(request: Request) -> RequestOrigin:
    return RequestOrigin(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("User-Agent"),
    )


def get_notifier(settings: Settings = Depends(get_settings)) -> TemporaryPasswordNotifier:
    return LoggingNotifier(include_password=settings.log_temporary_passwords)


def _bearer_token(header: str) -> str:
    parts = header.split(" ")
    return parts[1].strip() if len(parts) > 1 else ""


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    token_service: TokenService = Depends(get_token_service),
) -> CurrentUser:
    header = request.headers.get("Authorization")
    if not header:
        raise AuthenticationError("No authorization header provided")

    token = _bearer_token(header)
    if not token:
        raise AuthenticationError("No token provided")

    try:
        payload = token_service.verify_access_token(token)
        if payload is None:
            raise AuthenticationError("Invalid or expired token")

        user = await user_service.get_user(db, payload.user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("User not found or inactive")

        current_user = CurrentUser(id=payload.user_id, email=payload.email, profile=payload.profile)
        request.state.user = current_user

        if settings.audit_api_access:
            origin = request_origin(request)
            await AuditRecorder(db).record_committed(AuditEntry(
                action=AuditAction.API_ACCESS,
                table="users",
                user_id=current_user.id,
                record_id=current_user.id,
                ip_address=origin.ip_address,
                user_agent=origin.user_agent,
            ))
        return current_user
    except ServiceError:
        raise
    except Exception as e:
        # Internal failures stay behind the auth boundary
        logger.error(f"Authentication error: {e}", exc_info=True)
        raise AuthenticationError("Authentication failed")


def is_authorized(user: CurrentUser, allowed: Iterable[str]) -> bool:
    return user.profile in {getattr(p, "value", p) for p in allowed}


def require_profiles(*profiles: Profile):
    """
    Dependency factory restricting a route to the given profiles.

    Reads the identity left by ``get_current_user``; without one the caller
    is told it is not authenticated.
    """
    allowed = frozenset(getattr(p, "value", p) for p in profiles)

    async def check_profile(request: Request) -> CurrentUser:
        current_user = getattr(request.state, "user", None)
        if current_user is None:
            raise AuthenticationError("Not authenticated")
        if not is_authorized(current_user, allowed):
            raise ForbiddenError("Insufficient permissions")
        return current_user

    return check_profile


ADMIN_OR_MANAGER = (Profile.ADMINISTRATOR, Profile.MANAGER)
ADMIN_ONLY = (Profile.ADMINISTRATOR,)


def authorize(*profiles: Profile) -> list:
    """Route ``dependencies`` running authentication, then the profile check."""
    return [Depends(get_current_user), Depends(require_profiles(*profiles))]
