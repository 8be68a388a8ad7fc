from datetime import datetime
from typing import List, Optional

from pydantic import Field

from backend.app.schemas.common import CamelModel


class WorkGroupCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: bool = True


class WorkGroupUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class WorkGroupResponse(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    created_by: Optional[str] = None
    updated_by: Optional[str] = None


class WorkGroupMember(CamelModel):
    id: str
    email: str
    first_name: str
    last_name: str
    profile: str
    is_active: bool


class WorkGroupWithMembers(WorkGroupResponse):
    members: List[WorkGroupMember] = []
