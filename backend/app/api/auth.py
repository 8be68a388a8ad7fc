"""
Authentication router.

Login, token refresh, logout, forgot-password, password change and the
current-user projection.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_current_user, get_notifier, request_origin
from backend.app.core.config import Settings, get_settings
from backend.app.core.database import get_db
from backend.app.core.errors import NotFoundError, ValidationError
from backend.app.core.security import CurrentUser, TokenService, get_token_service
from backend.app.schemas.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MeResponse,
    RefreshRequest,
    SessionUser,
    TokenPairResponse,
)
from backend.app.schemas.common import MessageResponse
from backend.app.schemas.work_groups import WorkGroupResponse
from backend.app.services import auth_service, user_service
from backend.app.services.notifications import TemporaryPasswordNotifier

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
):
    """Exchange email and password for an access/refresh token pair."""
    if not payload.email or not payload.password:
        raise ValidationError("Email and password are required")

    result = await auth_service.login(
        db, token_service, payload.email, payload.password, request_origin(request)
    )
    return LoginResponse(
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        user=SessionUser.model_validate(result.user),
    )


@router.post("/refresh", response_model=TokenPairResponse)
async def refresh(
    payload: RefreshRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    token_service: TokenService = Depends(get_token_service),
):
    if not payload.refresh_token:
        raise ValidationError("Refresh token is required")

    tokens = await auth_service.refresh_tokens(
        db, token_service, settings, payload.refresh_token, request_origin(request)
    )
    return TokenPairResponse(access_token=tokens.access_token, refresh_token=tokens.refresh_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    payload: LogoutRequest | None = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Revoke the given refresh token's session. Succeeds even if it is unknown."""
    refresh_token = payload.refresh_token if payload else None
    await auth_service.logout(db, current_user, refresh_token, request_origin(request))
    return MessageResponse(message="Logged out successfully")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    payload: ForgotPasswordRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: TemporaryPasswordNotifier = Depends(get_notifier),
):
    if not payload.email:
        raise ValidationError("Email is required")

    await auth_service.forgot_password(db, settings, notifier, payload.email, request_origin(request))
    return MessageResponse(message=auth_service.FORGOT_PASSWORD_MESSAGE)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: CurrentUser = Depends(get_current_user),
):
    await auth_service.change_password(
        db,
        settings,
        current_user,
        payload.current_password,
        payload.new_password,
        request_origin(request),
    )
    return MessageResponse(message="Password changed successfully")


@router.get("/me", response_model=MeResponse)
async def me(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    found = await user_service.get_user_with_work_groups(db, current_user.id)
    if found is None:
        raise NotFoundError("User not found")

    user, work_groups = found
    return MeResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        profile=user.profile,
        must_change_password=user.must_change_password,
        is_active=user.is_active,
        last_login=user.last_login,
        work_groups=[WorkGroupResponse.model_validate(g) for g in work_groups],
    )
