"""
Audit Trail ORM Model.

Append-only record of security-relevant and administrative actions.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime, JSON
from backend.app.core.database import Base


class AuditLogORM(Base):
    """
    Immutable audit entry.

    ``user_id`` is nullable for system-initiated events. Snapshots are
    redacted before they reach this table.
    """
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=True, index=True)
    action = Column(String(50), nullable=False, index=True)
    table_name = Column("table", String(50), nullable=False)
    record_id = Column(String(36), nullable=True)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    correlation_id = Column(String(128), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<AuditLog {self.action} on {self.table_name} by {self.user_id}>"
