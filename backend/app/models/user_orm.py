import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Boolean, DateTime
from backend.app.core.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class UserORM(Base):
    """
    Back-office account.

    Never hard-deleted: removal is an ``is_active=False`` transition.
    ``created_by`` / ``updated_by`` hold plain user ids, not foreign keys.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    hashed_password = Column(Text, nullable=False)
    profile = Column(String(20), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    temporary_password = Column(Boolean, default=False, nullable=False)
    must_change_password = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
    created_by = Column(String(36), nullable=True)
    updated_by = Column(String(36), nullable=True)

    def __repr__(self):
        return f"<User {self.email} ({self.profile})>"
