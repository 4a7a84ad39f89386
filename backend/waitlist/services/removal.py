"""Removal of accounts from a waiting list."""

import uuid

from sqlalchemy import update
from sqlalchemy.orm import Session

from waitlist.common.clock import utcnow
from waitlist.core.audit import write_audit
from waitlist.core.exceptions import NotFoundError
from waitlist.core.logging import get_logger
from waitlist.db.session import transaction
from waitlist.events import account_removed, get_event_bus, waiting_list_changed
from waitlist.models.account import Account
from waitlist.models.removal import Removal
from waitlist.models.waiting_list import WaitingList, WaitingListAccount
from waitlist.services.memberships import find_active_membership

logger = get_logger(__name__)


def remove(
    db: Session,
    waiting_list: WaitingList,
    account: Account | int,
    removal: Removal,
    request_id: str | None = None,
) -> WaitingListAccount:
    """End the account's membership of the list, recording why.

    Raises ValidationError before touching anything when the removal is
    invalid, and NotFoundError when the account is not active on the list.
    """
    removal.validate()

    membership = find_active_membership(db, waiting_list, account)
    if membership is None:
        account_id = account.id if isinstance(account, Account) else account
        raise NotFoundError(
            f"Account {account_id} is not on waiting list {waiting_list.id}",
            details={"account_id": account_id, "waiting_list_id": waiting_list.id},
        )

    now = utcnow()
    correlation_id = str(uuid.uuid4())
    with transaction(db):
        # Conditional update: a concurrent removal leaves nothing to update
        result = db.execute(
            update(WaitingListAccount)
            .where(
                WaitingListAccount.id == membership.id,
                WaitingListAccount.deleted_at.is_(None),
            )
            .values(
                deleted_at=now,
                removal_type=removal.reason.value,
                removal_comment=removal.comment,
                removed_by=removal.actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundError(f"Membership {membership.id} is no longer active")

        write_audit(
            db,
            actor_id=removal.actor_id,
            action="waiting_list.account_removed",
            entity_type="WAITING_LIST_ACCOUNT",
            entity_id=membership.id,
            before={"status": "active"},
            after={
                "status": "removed",
                "removal_type": removal.reason.value,
                "removal_comment": removal.comment,
            },
            meta={
                "waiting_list_id": waiting_list.id,
                "account_id": membership.account_id,
                "correlation_id": correlation_id,
            },
            reason=removal.reason.label,
            request_id=request_id,
        )

    db.refresh(membership)

    logger.info(
        "Account removed from waiting list",
        extra={
            "waiting_list_id": waiting_list.id,
            "account_id": membership.account_id,
            "membership_id": membership.id,
            "reason": removal.reason.value,
            "actor_id": removal.actor_id,
        },
    )

    bus = get_event_bus()
    bus.publish(
        account_removed(
            waiting_list_id=waiting_list.id,
            account_id=membership.account_id,
            reason=removal.reason.value,
            actor_id=removal.actor_id,
            custom_reason=removal.comment,
            timestamp=now,
            correlation_id=correlation_id,
        )
    )
    bus.publish(waiting_list_changed(waiting_list.id, "removal", correlation_id))
    return membership
