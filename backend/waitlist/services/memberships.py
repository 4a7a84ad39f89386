"""Waiting list membership lookups and admission."""

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from waitlist.common.clock import utcnow
from waitlist.core.audit import write_audit
from waitlist.core.exceptions import ConflictError, NotFoundError
from waitlist.core.logging import get_logger
from waitlist.db.session import transaction
from waitlist.events import Event, EventType, get_event_bus, waiting_list_changed
from waitlist.models.account import Account
from waitlist.models.flag import FlagAssignment
from waitlist.models.waiting_list import WaitingList, WaitingListAccount

logger = get_logger(__name__)

AccountRef = Account | int


def _account_id(account: AccountRef) -> int:
    return account.id if isinstance(account, Account) else int(account)


def get_waiting_list(db: Session, waiting_list_id: int) -> WaitingList:
    """Get a waiting list by id or raise NotFoundError."""
    waiting_list = db.get(WaitingList, waiting_list_id)
    if waiting_list is None:
        raise NotFoundError(f"Waiting list {waiting_list_id} not found")
    return waiting_list


def get_account(db: Session, account_id: int) -> Account:
    """Get an account by CID or raise NotFoundError."""
    account = db.get(Account, account_id)
    if account is None:
        raise NotFoundError(f"Account {account_id} not found")
    return account


def find_active_membership(
    db: Session, waiting_list: WaitingList, account: AccountRef
) -> WaitingListAccount | None:
    """Return the account's active membership on the list, if any."""
    stmt = select(WaitingListAccount).where(
        WaitingListAccount.waiting_list_id == waiting_list.id,
        WaitingListAccount.account_id == _account_id(account),
        WaitingListAccount.deleted_at.is_(None),
    )
    return db.scalars(stmt).first()


def get_membership(
    db: Session,
    waiting_list: WaitingList,
    membership_id: int,
    active_only: bool = True,
) -> WaitingListAccount:
    """Get a membership of this list by id.

    Removed memberships count as missing unless active_only is False.
    """
    membership = db.get(WaitingListAccount, membership_id)
    if membership is None or membership.waiting_list_id != waiting_list.id:
        raise NotFoundError(
            f"Membership {membership_id} not found on waiting list {waiting_list.id}"
        )
    if active_only and not membership.is_active:
        raise NotFoundError(f"Membership {membership_id} is no longer active")
    return membership


def ensure_active(db: Session, membership: WaitingListAccount) -> None:
    """Re-read the membership row (locking it where supported) and require it active."""
    stmt = (
        select(WaitingListAccount.deleted_at)
        .where(WaitingListAccount.id == membership.id)
        .with_for_update()
    )
    row = db.execute(stmt).first()
    if row is None or row.deleted_at is not None:
        raise NotFoundError(f"Membership {membership.id} is no longer active")


def _insert_membership(
    db: Session,
    waiting_list: WaitingList,
    account: Account,
    actor_id: int,
    notes: str | None,
    now: datetime,
    correlation_id: str,
) -> WaitingListAccount:
    with transaction(db):
        membership = WaitingListAccount(
            waiting_list=waiting_list,
            account=account,
            notes=notes,
            added_by=actor_id,
            created_at=now,
        )
        for flag in waiting_list.flags:
            membership.flag_assignments.append(
                FlagAssignment(flag=flag, marked_at=now if flag.default_value else None)
            )
        db.add(membership)
        db.flush()
        write_audit(
            db,
            actor_id=actor_id,
            action="waiting_list.account_added",
            entity_type="WAITING_LIST_ACCOUNT",
            entity_id=membership.id,
            after={"waiting_list_id": waiting_list.id, "account_id": account.id, "notes": notes},
            meta={"correlation_id": correlation_id},
        )
    return membership


def add_account(
    db: Session,
    waiting_list: WaitingList,
    account: Account,
    actor_id: int,
    notes: str | None = None,
    created_at: datetime | None = None,
) -> WaitingListAccount:
    """Admit an account to the list.

    Every flag of the list is attached, marked when its default_value is set.
    Raises ConflictError if the account is already active on the list.
    """
    if find_active_membership(db, waiting_list, account) is not None:
        raise ConflictError(
            f"Account {account.id} is already on waiting list {waiting_list.id}",
            details={"account_id": account.id, "waiting_list_id": waiting_list.id},
        )

    now = created_at or utcnow()
    correlation_id = str(uuid.uuid4())
    try:
        membership = _insert_membership(db, waiting_list, account, actor_id, notes, now, correlation_id)
    except IntegrityError as e:
        # Lost a race with a concurrent admission of the same account
        raise ConflictError(
            f"Account {account.id} is already on waiting list {waiting_list.id}",
            details={"account_id": account.id, "waiting_list_id": waiting_list.id},
        ) from e

    logger.info(
        "Account added to waiting list",
        extra={
            "waiting_list_id": waiting_list.id,
            "account_id": account.id,
            "membership_id": membership.id,
            "actor_id": actor_id,
        },
    )

    bus = get_event_bus()
    bus.publish(
        Event(
            event_type=EventType.ACCOUNT_ADDED,
            payload={
                "waiting_list_id": waiting_list.id,
                "account_id": account.id,
                "actor_id": actor_id,
            },
            source="memberships",
            correlation_id=correlation_id,
        )
    )
    bus.publish(waiting_list_changed(waiting_list.id, "memberships", correlation_id))
    return membership
