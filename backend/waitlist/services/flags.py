"""Flag registry: manual/automatic flags and their mark state per membership.

A flag is manual when it has no position group. Automatic flags are
maintained elsewhere and are left alone by manual edits.
"""

import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from waitlist.common.clock import utcnow
from waitlist.core.audit import write_audit
from waitlist.core.exceptions import ValidationError
from waitlist.core.logging import get_logger
from waitlist.db.session import transaction
from waitlist.events import get_event_bus, waiting_list_changed
from waitlist.models.flag import Flag, FlagAssignment
from waitlist.models.waiting_list import WaitingList, WaitingListAccount
from waitlist.services.memberships import ensure_active

logger = get_logger(__name__)

FlagRef = Flag | int


@dataclass(frozen=True)
class FlagField:
    """Edit-form field for one manual flag."""

    key: str
    label: str
    flag_id: int
    getter: Callable[[WaitingListAccount], bool]


@dataclass(frozen=True)
class FlagColumn:
    """Table column for one flag shown in the list table."""

    key: str
    label: str
    flag_id: int
    getter: Callable[[WaitingListAccount], bool]


@dataclass
class FlagSyncResult:
    marked: list[int] = field(default_factory=list)
    unmarked: list[int] = field(default_factory=list)
    attached: list[int] = field(default_factory=list)
    detached: list[int] = field(default_factory=list)

    def as_dict(self) -> dict[str, list[int]]:
        return {
            "marked": self.marked,
            "unmarked": self.unmarked,
            "attached": self.attached,
            "detached": self.detached,
        }


def list_manual_flags(waiting_list: WaitingList) -> list[Flag]:
    """Flags without a position group; the only ones editable by hand."""
    return [flag for flag in waiting_list.flags if flag.is_manual]


def is_marked(membership: WaitingListAccount, flag: FlagRef) -> bool:
    assignment = membership.assignment_for(flag)
    return assignment is not None and assignment.value


def _resolve_flag(membership: WaitingListAccount, flag: FlagRef) -> Flag:
    flag_id = flag.id if isinstance(flag, Flag) else flag
    for candidate in membership.waiting_list.flags:
        if candidate.id == flag_id:
            return candidate
    raise ValidationError(
        f"Flag {flag_id} does not belong to waiting list {membership.waiting_list_id}",
        details={"flag_id": flag_id},
    )


def mark(
    db: Session, membership: WaitingListAccount, flag: FlagRef, now: datetime | None = None
) -> FlagAssignment:
    """Mark a flag for the membership (attaching it if needed). Idempotent."""
    resolved = _resolve_flag(membership, flag)
    with transaction(db):
        ensure_active(db, membership)
        assignment = membership.assignment_for(resolved)
        if assignment is None:
            assignment = FlagAssignment(flag=resolved)
            membership.flag_assignments.append(assignment)
        changed = assignment.mark(now)

    if changed:
        logger.info(
            "Flag marked",
            extra={"membership_id": membership.id, "flag_id": resolved.id},
        )
    return assignment


def unmark(db: Session, membership: WaitingListAccount, flag: FlagRef) -> FlagAssignment | None:
    """Clear a flag's mark. Idempotent; no pivot is created."""
    resolved = _resolve_flag(membership, flag)
    with transaction(db):
        ensure_active(db, membership)
        assignment = membership.assignment_for(resolved)
        changed = assignment.unmark() if assignment is not None else False

    if changed:
        logger.info(
            "Flag unmarked",
            extra={"membership_id": membership.id, "flag_id": resolved.id},
        )
    return assignment


def _normalise_states(
    waiting_list: WaitingList, desired_states: Mapping[int | str | Flag, bool]
) -> dict[int, bool]:
    """Key desired states by flag id; reject flags from other lists."""
    flag_ids = {flag.id for flag in waiting_list.flags}
    states: dict[int, bool] = {}
    for key, value in desired_states.items():
        if isinstance(key, Flag):
            flag_id = key.id
        else:
            try:
                flag_id = int(key)
            except (TypeError, ValueError):
                raise ValidationError(
                    f"Invalid flag id: {key!r}", details={"flag_id": str(key)}
                ) from None
        if flag_id not in flag_ids:
            raise ValidationError(
                f"Flag {flag_id} does not belong to waiting list {waiting_list.id}",
                details={"flag_id": flag_id},
            )
        states[flag_id] = bool(value)
    return states


def _apply_manual_edits(
    membership: WaitingListAccount, states: dict[int, bool], now: datetime
) -> FlagSyncResult:
    result = FlagSyncResult()
    flags_by_id = {flag.id: flag for flag in membership.waiting_list.flags}

    # Mark/unmark the manual flags already associated; absent means unmarked
    for assignment in membership.flag_assignments:
        if assignment.flag.is_automatic:
            continue
        if states.get(assignment.flag_id, False):
            if assignment.mark(now):
                result.marked.append(assignment.flag_id)
        elif assignment.unmark():
            result.unmarked.append(assignment.flag_id)

    # Resync: keep the passed manual flags plus every automatic association
    keep = {flag_id for flag_id in states if flags_by_id[flag_id].is_manual}
    keep.update(a.flag_id for a in membership.flag_assignments if a.flag.is_automatic)

    for assignment in list(membership.flag_assignments):
        if assignment.flag_id not in keep:
            membership.flag_assignments.remove(assignment)
            result.detached.append(assignment.flag_id)

    associated = {a.flag_id for a in membership.flag_assignments}
    for flag_id in sorted(keep - associated):
        value = states[flag_id]
        membership.flag_assignments.append(
            FlagAssignment(flag=flags_by_id[flag_id], marked_at=now if value else None)
        )
        result.attached.append(flag_id)
        if value:
            result.marked.append(flag_id)

    return result


def apply_manual_edits(
    db: Session,
    membership: WaitingListAccount,
    desired_states: Mapping[int | str | Flag, bool],
    now: datetime | None = None,
) -> FlagSyncResult:
    """Apply desired manual flag states in one transaction.

    Manual flags missing from desired_states are unmarked and detached.
    Automatic flags are never changed, even when listed.
    """
    states = _normalise_states(membership.waiting_list, desired_states)
    with transaction(db):
        ensure_active(db, membership)
        result = _apply_manual_edits(membership, states, now or utcnow())

    logger.info(
        "Manual flags applied",
        extra={"membership_id": membership.id, **result.as_dict()},
    )
    return result


def update_notes_and_flags(
    db: Session,
    membership: WaitingListAccount,
    notes: str | None,
    flag_states: Mapping[int | str | Flag, bool],
    actor_id: int | None = None,
    request_id: str | None = None,
) -> FlagSyncResult:
    """Update notes and manual flags together, then signal a list refresh."""
    states = _normalise_states(membership.waiting_list, flag_states)
    correlation_id = str(uuid.uuid4())
    before_notes = membership.notes

    with transaction(db):
        ensure_active(db, membership)
        membership.notes = notes
        result = _apply_manual_edits(membership, states, utcnow())
        if actor_id is not None:
            write_audit(
                db,
                actor_id=actor_id,
                action="waiting_list.account_updated",
                entity_type="WAITING_LIST_ACCOUNT",
                entity_id=membership.id,
                before={"notes": before_notes},
                after={"notes": notes, "flags": result.as_dict()},
                meta={"correlation_id": correlation_id},
                request_id=request_id,
            )

    logger.info(
        "Waiting list account updated",
        extra={
            "membership_id": membership.id,
            "waiting_list_id": membership.waiting_list_id,
            "actor_id": actor_id,
        },
    )
    get_event_bus().publish(
        waiting_list_changed(membership.waiting_list_id, "flags", correlation_id)
    )
    return result


def _flag_getter(flag_id: int) -> Callable[[WaitingListAccount], bool]:
    def getter(membership: WaitingListAccount) -> bool:
        return is_marked(membership, flag_id)

    return getter


def manual_flag_fields(membership: WaitingListAccount) -> list[FlagField]:
    """One form field per manual flag associated with the membership."""
    return [
        FlagField(key=f"flags.{flag.id}", label=flag.name, flag_id=flag.id, getter=_flag_getter(flag.id))
        for flag in membership.flags
        if flag.is_manual
    ]


def flag_columns(waiting_list: WaitingList) -> list[FlagColumn]:
    """One table column per flag marked display_in_table."""
    return [
        FlagColumn(key=f"flag_{flag.id}", label=flag.name, flag_id=flag.id, getter=_flag_getter(flag.id))
        for flag in waiting_list.flags
        if flag.display_in_table
    ]
