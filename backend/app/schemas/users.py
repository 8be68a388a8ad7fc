from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field

from backend.app.core.security import Profile
from backend.app.schemas.common import CamelModel
from backend.app.schemas.work_groups import WorkGroupResponse


class UserCreate(CamelModel):
    email: EmailStr
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    profile: Profile
    is_active: bool = True
    work_group_id: Optional[str] = None


class UserUpdate(CamelModel):
    """Partial update; ``work_group_id`` replaces the membership when sent."""
    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    profile: Optional[Profile] = None
    is_active: Optional[bool] = None
    work_group_id: Optional[str] = None


class UserResponse(CamelModel):
    id: str
    email: str
    first_name: str
    last_name: str
    profile: str
    is_active: bool
    temporary_password: bool
    must_change_password: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    created_by: Optional[str] = None
    updated_by: Optional[str] = None


class UserWithWorkGroups(UserResponse):
    work_groups: List[WorkGroupResponse] = []


class UserCreatedResponse(CamelModel):
    """Creation response; the only place the plaintext temporary password is shown."""
    user: UserResponse
    temporary_password: str


class PasswordResetResponse(CamelModel):
    message: str
    temporary_password: str
