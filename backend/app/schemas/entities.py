from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import EmailStr, Field

from backend.app.schemas.common import CamelModel


class EntityType(str, Enum):
    INDIVIDUAL = "INDIVIDUAL"
    COMPANY = "COMPANY"


class ContactStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PRIMARY = "PRIMARY"
    INACTIVE = "INACTIVE"


class AddressCreate(CamelModel):
    street: str = Field(min_length=1, max_length=255)
    number: Optional[str] = Field(default=None, max_length=20)
    complement: Optional[str] = Field(default=None, max_length=100)
    neighborhood: str = Field(min_length=1, max_length=100)
    zip_code: str = Field(min_length=1, max_length=10)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=2, max_length=2)
    country: str = Field(default="Brasil", max_length=50)
    is_active: bool = True
    is_primary: bool = False


class ContactCreate(CamelModel):
    name: Optional[str] = Field(default=None, max_length=100)
    role: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    mobile: Optional[str] = Field(default=None, max_length=20)
    email: Optional[EmailStr] = None
    telegram: Optional[str] = Field(default=None, max_length=100)
    instagram: Optional[str] = Field(default=None, max_length=100)
    facebook: Optional[str] = Field(default=None, max_length=100)
    linkedin: Optional[str] = Field(default=None, max_length=100)
    status: ContactStatus = ContactStatus.ACTIVE


class EntityCreate(CamelModel):
    type: EntityType
    name: str = Field(min_length=1, max_length=255)
    document: str = Field(min_length=1, max_length=20)
    municipal_registration: Optional[str] = Field(default=None, max_length=50)
    state_registration: Optional[str] = Field(default=None, max_length=50)
    external_id: Optional[str] = Field(default=None, max_length=100)
    is_active: bool = True


class EntityUpdate(CamelModel):
    type: Optional[EntityType] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    document: Optional[str] = Field(default=None, min_length=1, max_length=20)
    municipal_registration: Optional[str] = Field(default=None, max_length=50)
    state_registration: Optional[str] = Field(default=None, max_length=50)
    external_id: Optional[str] = Field(default=None, max_length=100)
    is_active: Optional[bool] = None


class EntityCreateRequest(CamelModel):
    entity: EntityCreate
    addresses: List[AddressCreate] = []
    contacts: List[ContactCreate] = []


class EntityUpdateRequest(CamelModel):
    """``addresses``/``contacts`` replace the stored lists only when sent."""
    entity: EntityUpdate = EntityUpdate()
    addresses: Optional[List[AddressCreate]] = None
    contacts: Optional[List[ContactCreate]] = None


class AddressResponse(AddressCreate):
    id: str
    entity_id: str
    created_at: datetime
    updated_at: datetime


class ContactResponse(CamelModel):
    id: str
    entity_id: str
    name: Optional[str] = None
    role: Optional[str] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None
    telegram: Optional[str] = None
    instagram: Optional[str] = None
    facebook: Optional[str] = None
    linkedin: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime


class EntityResponse(CamelModel):
    id: str
    type: str
    name: str
    document: str
    municipal_registration: Optional[str] = None
    state_registration: Optional[str] = None
    external_id: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    created_by: Optional[str] = None
    updated_by: Optional[str] = None


class EntityWithDetails(EntityResponse):
    addresses: List[AddressResponse] = []
    contacts: List[ContactResponse] = []
