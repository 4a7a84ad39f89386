"""Waiting list account management endpoints for the admin panel."""

from fastapi import APIRouter, Depends, Query, Request, status

from waitlist.common.pagination import PaginationParams, pagination_params
from waitlist.core.dependencies import CurrentUser, DbSession
from waitlist.common.request_id import get_request_id
from waitlist.models.removal import Removal, RemovalReason
from waitlist.models.waiting_list import FeatureToggle
from waitlist.schemas.waiting_list import (
    FlagOut,
    RemovalOut,
    RemovalReasonOption,
    RemovalRequest,
    TableColumnOut,
    WaitingListAccountCreate,
    WaitingListAccountDetail,
    WaitingListAccountPage,
    WaitingListAccountRow,
    WaitingListAccountUpdate,
    WaitingListAccountUpdateOut,
    WaitingListOut,
)
from waitlist.security.policies import Ability, authorize
from waitlist.services import flags as flag_registry
from waitlist.services import listing, memberships, removal as removal_recorder
from waitlist.services.ordering import count_active

router = APIRouter()


@router.get("/removal-reasons", response_model=list[RemovalReasonOption])
def list_removal_reasons(current_user: CurrentUser) -> list[RemovalReasonOption]:
    """Removal reasons for the reason selector."""
    return [RemovalReasonOption(**option) for option in RemovalReason.form_options()]


@router.get("/{waiting_list_id}", response_model=WaitingListOut)
def get_waiting_list(
    waiting_list_id: int,
    db: DbSession,
    current_user: CurrentUser,
) -> WaitingListOut:
    """Waiting list with its feature toggles and flag definitions."""
    waiting_list = memberships.get_waiting_list(db, waiting_list_id)
    authorize(current_user, Ability.VIEW, waiting_list)

    return WaitingListOut(
        id=waiting_list.id,
        name=waiting_list.name,
        slug=waiting_list.slug,
        department=waiting_list.department,
        feature_toggles={toggle.value: waiting_list.feature_enabled(toggle) for toggle in FeatureToggle},
        total_accounts=count_active(db, waiting_list),
        flags=[FlagOut.model_validate(flag) for flag in waiting_list.flags],
    )


@router.get("/{waiting_list_id}/accounts", response_model=WaitingListAccountPage)
def list_accounts(
    waiting_list_id: int,
    db: DbSession,
    current_user: CurrentUser,
    pagination: PaginationParams = Depends(pagination_params),
    search: str | None = Query(None, max_length=100, description="CID or name"),
) -> WaitingListAccountPage:
    """
    Accounts on the list in queue order (oldest admission first).

    Positions are ranks within the whole list, so they stay stable under search.
    """
    waiting_list = memberships.get_waiting_list(db, waiting_list_id)
    authorize(current_user, Ability.VIEW, waiting_list)

    rows, total = listing.account_rows(
        db,
        waiting_list,
        search=search,
        page=pagination.page,
        page_size=pagination.page_size,
    )
    return WaitingListAccountPage(
        items=[WaitingListAccountRow(**row) for row in rows],
        columns=[
            TableColumnOut(key=column.key, label=column.label, kind=column.kind)
            for column in listing.table_columns(waiting_list)
        ],
        page=pagination.page,
        page_size=pagination.page_size,
        total=total,
    )


@router.post(
    "/{waiting_list_id}/accounts",
    response_model=WaitingListAccountDetail,
    status_code=status.HTTP_201_CREATED,
)
def add_account(
    waiting_list_id: int,
    payload: WaitingListAccountCreate,
    db: DbSession,
    current_user: CurrentUser,
) -> WaitingListAccountDetail:
    """Add an account to the end of the list."""
    waiting_list = memberships.get_waiting_list(db, waiting_list_id)
    authorize(current_user, Ability.UPDATE_ACCOUNTS, waiting_list)

    account = memberships.get_account(db, payload.account_id)
    membership = memberships.add_account(
        db, waiting_list, account, actor_id=current_user.id, notes=payload.notes
    )
    return WaitingListAccountDetail(**listing.account_form(db, waiting_list, membership))


@router.get("/{waiting_list_id}/accounts/{membership_id}", response_model=WaitingListAccountDetail)
def get_account(
    waiting_list_id: int,
    membership_id: int,
    db: DbSession,
    current_user: CurrentUser,
) -> WaitingListAccountDetail:
    """Edit-form view of one account on the list."""
    waiting_list = memberships.get_waiting_list(db, waiting_list_id)
    authorize(current_user, Ability.VIEW, waiting_list)

    membership = memberships.get_membership(db, waiting_list, membership_id)
    return WaitingListAccountDetail(**listing.account_form(db, waiting_list, membership))


@router.patch(
    "/{waiting_list_id}/accounts/{membership_id}",
    response_model=WaitingListAccountUpdateOut,
)
def update_account(
    waiting_list_id: int,
    membership_id: int,
    payload: WaitingListAccountUpdate,
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
) -> WaitingListAccountUpdateOut:
    """
    Update notes and manual flags.

    Every manual flag to keep must be sent; missing ones are unmarked.
    Automatic flags are ignored.
    """
    waiting_list = memberships.get_waiting_list(db, waiting_list_id)
    authorize(current_user, Ability.UPDATE_ACCOUNTS, waiting_list)

    membership = memberships.get_membership(db, waiting_list, membership_id)
    notes = payload.notes if "notes" in payload.model_fields_set else membership.notes
    result = flag_registry.update_notes_and_flags(
        db,
        membership,
        notes=notes,
        flag_states=payload.flags,
        actor_id=current_user.id,
        request_id=get_request_id(request),
    )
    return WaitingListAccountUpdateOut(
        account=WaitingListAccountDetail(**listing.account_form(db, waiting_list, membership)),
        changes=result.as_dict(),
    )


@router.post(
    "/{waiting_list_id}/accounts/{membership_id}/remove",
    response_model=RemovalOut,
)
def remove_account(
    waiting_list_id: int,
    membership_id: int,
    payload: RemovalRequest,
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
) -> RemovalOut:
    """Remove an account from the list with a reason."""
    waiting_list = memberships.get_waiting_list(db, waiting_list_id)
    authorize(current_user, Ability.REMOVE_ACCOUNTS, waiting_list)

    membership = memberships.get_membership(db, waiting_list, membership_id)
    removed = removal_recorder.remove(
        db,
        waiting_list,
        membership.account_id,
        Removal(
            reason=payload.reason_type,
            actor_id=current_user.id,
            custom_reason=payload.custom_reason or "",
        ),
        request_id=get_request_id(request),
    )
    return RemovalOut(
        id=removed.id,
        account_id=removed.account_id,
        waiting_list_id=removed.waiting_list_id,
        removed_at=removed.deleted_at,
        removal_type=removed.removal_type,
        removal_comment=removed.removal_comment,
        removed_by=removed.removed_by,
    )
