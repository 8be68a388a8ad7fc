"""
Authentication request/response schemas.

Login, refresh and forgot-password accept optional fields so the routes can
answer missing input with their own 400 messages.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from backend.app.schemas.common import CamelModel
from backend.app.schemas.work_groups import WorkGroupResponse

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


class LogoutRequest(CamelModel):
    refresh_token: Optional[str] = None


class ForgotPasswordRequest(CamelModel):
    email: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6)

    @field_validator("new_password")
    @classmethod
    def fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class TokenPairResponse(CamelModel):
    access_token: str
    refresh_token: str


class SessionUser(CamelModel):
    """Password-free projection returned on login."""
    id: str
    email: str
    first_name: str
    last_name: str
    profile: str
    must_change_password: bool


class LoginResponse(TokenPairResponse):
    user: SessionUser


class MeResponse(SessionUser):
    is_active: bool
    last_login: Optional[datetime] = None
    work_groups: List[WorkGroupResponse] = []
