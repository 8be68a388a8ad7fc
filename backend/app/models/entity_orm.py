import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from backend.app.core.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class EntityORM(Base):
    """
    Individual or company managed by the back-office.

    ``document`` is the CPF/CNPJ as entered; it is unique across entities.
    Deletion is soft, like users.
    """
    __tablename__ = "entities"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    type = Column(String(20), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    document = Column(String(20), unique=True, nullable=False, index=True)
    municipal_registration = Column(String(50), nullable=True)
    state_registration = Column(String(50), nullable=True)
    external_id = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
    created_by = Column(String(36), nullable=True)
    updated_by = Column(String(36), nullable=True)

    def __repr__(self):
        return f"<Entity {self.type} {self.document}>"


class EntityAddressORM(Base):
    __tablename__ = "entity_addresses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    entity_id = Column(String(36), ForeignKey("entities.id"), nullable=False, index=True)
    street = Column(String(255), nullable=False)
    number = Column(String(20), nullable=True)
    complement = Column(String(100), nullable=True)
    neighborhood = Column(String(100), nullable=False)
    zip_code = Column(String(10), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(2), nullable=False)
    country = Column(String(50), default="Brasil", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_primary = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class EntityContactORM(Base):
    __tablename__ = "entity_contacts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    entity_id = Column(String(36), ForeignKey("entities.id"), nullable=False, index=True)
    name = Column(String(100), nullable=True)
    role = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)
    mobile = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    telegram = Column(String(100), nullable=True)
    instagram = Column(String(100), nullable=True)
    facebook = Column(String(100), nullable=True)
    linkedin = Column(String(100), nullable=True)
    status = Column(String(20), default="ACTIVE", nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
