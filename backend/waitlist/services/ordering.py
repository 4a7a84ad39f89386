"""Queue position of an account within its waiting list.

Canonical order: admission time ascending, ties broken by insertion (id).
Listing, positions and counts all use `active_memberships_query` so the
numbers shown always match iteration order.
"""

from dataclasses import dataclass

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session, selectinload

from waitlist.models.account import Account
from waitlist.models.flag import FlagAssignment
from waitlist.models.waiting_list import WaitingList, WaitingListAccount


@dataclass(frozen=True)
class PositionSummary:
    position: int | None
    total: int

    @property
    def display(self) -> str:
        """Formatted as "<position> of <total>", "-" when not on the list."""
        return f"{self.position if self.position is not None else '-'} of {self.total}"


def active_memberships_query(waiting_list: WaitingList) -> Select:
    return (
        select(WaitingListAccount)
        .where(
            WaitingListAccount.waiting_list_id == waiting_list.id,
            WaitingListAccount.deleted_at.is_(None),
        )
        .order_by(WaitingListAccount.created_at.asc(), WaitingListAccount.id.asc())
    )


def ordered_accounts(db: Session, waiting_list: WaitingList) -> list[WaitingListAccount]:
    """Active memberships in queue order, with account and flags loaded."""
    stmt = active_memberships_query(waiting_list).options(
        selectinload(WaitingListAccount.account).selectinload(Account.roster_entry),
        selectinload(WaitingListAccount.flag_assignments).selectinload(FlagAssignment.flag),
    )
    return list(db.scalars(stmt))


def position_map(db: Session, waiting_list: WaitingList) -> dict[int, int]:
    """membership id -> 1-based position."""
    stmt = active_memberships_query(waiting_list).with_only_columns(WaitingListAccount.id)
    return {membership_id: index for index, membership_id in enumerate(db.scalars(stmt), start=1)}


def count_active(db: Session, waiting_list: WaitingList) -> int:
    stmt = select(func.count(WaitingListAccount.id)).where(
        WaitingListAccount.waiting_list_id == waiting_list.id,
        WaitingListAccount.deleted_at.is_(None),
    )
    return db.scalar(stmt) or 0


def _membership_id(db: Session, waiting_list: WaitingList, subject) -> int | None:
    if isinstance(subject, WaitingListAccount):
        return subject.id if subject.waiting_list_id == waiting_list.id else None

    account_id = subject.id if isinstance(subject, Account) else int(subject)
    stmt = select(WaitingListAccount.id).where(
        WaitingListAccount.waiting_list_id == waiting_list.id,
        WaitingListAccount.account_id == account_id,
        WaitingListAccount.deleted_at.is_(None),
    )
    return db.scalar(stmt)


def position_of(
    db: Session, waiting_list: WaitingList, subject: WaitingListAccount | Account | int
) -> int | None:
    """1-based rank of a membership (or account) among the active members.

    Returns None when the subject is not currently on the list.
    """
    membership_id = _membership_id(db, waiting_list, subject)
    if membership_id is None:
        return None
    return position_map(db, waiting_list).get(membership_id)


def position_summary(
    db: Session, waiting_list: WaitingList, subject: WaitingListAccount | Account | int
) -> PositionSummary:
    positions = position_map(db, waiting_list)
    membership_id = _membership_id(db, waiting_list, subject)
    return PositionSummary(
        position=positions.get(membership_id) if membership_id is not None else None,
        total=len(positions),
    )
