"""Audit logging helpers."""

from typing import Any

from sqlalchemy.orm import Session

from waitlist.models.audit import AuditLog


def write_audit(
    db: Session,
    actor_id: int,
    action: str,
    entity_type: str,
    entity_id: int,
    before: dict[str, Any] | None = None,
    after: dict[str, Any] | None = None,
    meta: dict[str, Any] | None = None,
    reason: str | None = None,
    request_id: str | None = None,
) -> AuditLog:
    """
    Write an audit log entry. The caller owns the transaction.

    Args:
        db: Database session
        actor_id: Account CID performing the action
        action: Action type (e.g., "waiting_list.account_removed")
        entity_type: Type of entity (e.g., "WAITING_LIST_ACCOUNT")
        entity_id: ID of the entity
        before: State before change
        after: State after change
        meta: Additional metadata
        reason: Reason for the action
        request_id: Request ID of the originating HTTP request
    """
    audit_meta = dict(meta) if meta else {}
    if reason:
        audit_meta["reason"] = reason
    if request_id:
        audit_meta["request_id"] = request_id

    audit_entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        before=before,
        after=after,
        meta=audit_meta or None,
    )
    db.add(audit_entry)
    return audit_entry
