"""Audit log model."""

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String
from sqlalchemy.sql import func

from waitlist.common.clock import utcnow
from waitlist.db.base import Base


class AuditLog(Base):
    """Audit log for all admin actions."""

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(Integer, nullable=False)  # Account CID of the staff member
    action = Column(String(100), nullable=False)  # e.g., "waiting_list.account_removed"
    entity_type = Column(String(50), nullable=False)  # e.g., "WAITING_LIST_ACCOUNT"
    entity_id = Column(Integer, nullable=False)
    before = Column(JSON, nullable=True)  # State before change
    after = Column(JSON, nullable=True)  # State after change
    meta = Column(JSON, nullable=True)  # request-id, reason, etc.
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_audit_log_entity", "entity_type", "entity_id"),
        Index("ix_audit_log_created_at", "created_at"),
        Index("ix_audit_log_actor_id", "actor_id"),
    )
