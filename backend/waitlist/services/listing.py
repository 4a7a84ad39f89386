"""Read models for the waiting list accounts table and edit form."""

from dataclasses import dataclass
from typing import Any

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.orm import Session, selectinload

from waitlist.core.config import settings
from waitlist.core.exceptions import ValidationError
from waitlist.models.account import Account
from waitlist.models.flag import FlagAssignment
from waitlist.models.waiting_list import FeatureToggle, WaitingList, WaitingListAccount
from waitlist.services.flags import flag_columns, manual_flag_fields
from waitlist.services.ordering import active_memberships_query, position_map, position_summary


@dataclass(frozen=True)
class TableColumn:
    key: str
    label: str
    kind: str = "text"  # text | boolean | datetime


def table_columns(waiting_list: WaitingList) -> list[TableColumn]:
    """Columns of the accounts table, honouring the list's feature toggles."""
    columns = [
        TableColumn("position", "Position"),
        TableColumn("account_id", "CID"),
        TableColumn("name", "Name"),
    ]
    if waiting_list.feature_enabled(FeatureToggle.DISPLAY_ON_ROSTER):
        columns.append(TableColumn("on_roster", "On Roster", "boolean"))
    columns.append(TableColumn("created_at", "Added On", "datetime"))
    if waiting_list.feature_enabled(FeatureToggle.CHECK_CTS_THEORY_EXAM):
        columns.append(TableColumn("cts_theory_exam", "CTS Theory Exam", "boolean"))
    columns.extend(
        TableColumn(column.key, column.label, "boolean") for column in flag_columns(waiting_list)
    )
    return columns


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _search_filter(search: str):
    # User input is matched literally, never as a LIKE pattern
    term = f"%{_escape_like(search.strip().lower())}%"
    return or_(
        cast(WaitingListAccount.account_id, String).like(term, escape="\\"),
        func.lower(Account.name_first).like(term, escape="\\"),
        func.lower(Account.name_last).like(term, escape="\\"),
        func.lower(Account.name_first + " " + Account.name_last).like(term, escape="\\"),
    )


def validate_page_size(page_size: int) -> int:
    if page_size not in settings.WAITLIST_PAGE_SIZES:
        raise ValidationError(
            f"page_size must be one of {settings.WAITLIST_PAGE_SIZES}",
            details={"page_size": page_size, "allowed": settings.WAITLIST_PAGE_SIZES},
        )
    return page_size


def account_rows(
    db: Session,
    waiting_list: WaitingList,
    search: str | None = None,
    page: int = 1,
    page_size: int | None = None,
) -> tuple[list[dict[str, Any]], int]:
    """One page of table rows in queue order, plus the filtered total.

    Positions are ranks in the whole list, not in the filtered result.
    """
    page_size = validate_page_size(page_size or settings.WAITLIST_DEFAULT_PAGE_SIZE)
    if page < 1:
        raise ValidationError("page must be >= 1", details={"page": page})

    stmt = active_memberships_query(waiting_list).join(WaitingListAccount.account)
    if search and search.strip():
        stmt = stmt.where(_search_filter(search))

    total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    memberships = db.scalars(
        stmt.options(
            selectinload(WaitingListAccount.account).selectinload(Account.roster_entry),
            selectinload(WaitingListAccount.flag_assignments).selectinload(FlagAssignment.flag),
        )
        .offset((page - 1) * page_size)
        .limit(page_size)
    ).all()

    positions = position_map(db, waiting_list)
    show_roster = waiting_list.feature_enabled(FeatureToggle.DISPLAY_ON_ROSTER)
    show_exam = waiting_list.feature_enabled(FeatureToggle.CHECK_CTS_THEORY_EXAM)
    columns = flag_columns(waiting_list)

    rows = []
    for membership in memberships:
        row: dict[str, Any] = {
            "id": membership.id,
            "position": positions.get(membership.id),
            "account_id": membership.account_id,
            "name": membership.account.name,
            "created_at": membership.created_at,
            "flags": {column.key: column.getter(membership) for column in columns},
        }
        if show_roster:
            row["on_roster"] = membership.account.on_roster()
        if show_exam:
            row["cts_theory_exam"] = membership.theory_exam_passed
        rows.append(row)
    return rows, total


def account_form(db: Session, waiting_list: WaitingList, membership: WaitingListAccount) -> dict[str, Any]:
    """Edit-form view of one membership."""
    summary = position_summary(db, waiting_list, membership)
    form: dict[str, Any] = {
        "id": membership.id,
        "account_id": membership.account_id,
        "name": membership.account.name,
        "position": summary.display,
        "notes": membership.notes,
        "created_at": membership.created_at,
        "cts_theory_exam": None,
        "manual_flags": None,
    }
    if waiting_list.feature_enabled(FeatureToggle.CHECK_CTS_THEORY_EXAM):
        form["cts_theory_exam"] = {"passed": membership.theory_exam_passed}
    if membership.flag_assignments:
        form["manual_flags"] = [
            {"key": field.key, "flag_id": field.flag_id, "label": field.label, "value": field.getter(membership)}
            for field in manual_flag_fields(membership)
        ]
    return form
