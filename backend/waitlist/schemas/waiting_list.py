"""Pydantic schemas for waiting lists and their accounts."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from waitlist.common.pagination import PaginatedResponse
from waitlist.models.removal import RemovalReason


# ============================================================================
# Waiting list
# ============================================================================


class FlagOut(BaseModel):
    """Flag definition."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    position_group_id: int | None
    display_in_table: bool
    default_value: bool
    is_automatic: bool


class WaitingListOut(BaseModel):
    """Waiting list with resolved feature toggles."""

    id: int
    name: str
    slug: str
    department: str
    feature_toggles: dict[str, bool]
    total_accounts: int
    flags: list[FlagOut]


class RemovalReasonOption(BaseModel):
    value: str
    label: str


# ============================================================================
# Accounts table
# ============================================================================


class TableColumnOut(BaseModel):
    key: str
    label: str
    kind: str


class WaitingListAccountRow(BaseModel):
    """One row of the accounts table."""

    id: int
    position: int | None
    account_id: int
    name: str
    on_roster: bool | None = None
    created_at: datetime
    cts_theory_exam: bool | None = None
    flags: dict[str, bool] = Field(default_factory=dict)


class WaitingListAccountPage(PaginatedResponse[WaitingListAccountRow]):
    """A page of table rows plus the column layout."""

    columns: list[TableColumnOut]


# ============================================================================
# Edit form
# ============================================================================


class ManualFlagField(BaseModel):
    key: str
    flag_id: int
    label: str
    value: bool


class TheoryExamOut(BaseModel):
    passed: bool


class WaitingListAccountDetail(BaseModel):
    """Edit-form view of one account on the list."""

    id: int
    account_id: int
    name: str
    position: str = Field(..., description='"<position> of <total>"')
    notes: str | None
    created_at: datetime
    cts_theory_exam: TheoryExamOut | None = None
    manual_flags: list[ManualFlagField] | None = None


class WaitingListAccountCreate(BaseModel):
    """Request to add an account to a waiting list."""

    account_id: int = Field(..., gt=0, description="Account CID")
    notes: str | None = Field(None, description="Optional notes")


class WaitingListAccountUpdate(BaseModel):
    """Request to update notes and manual flags.

    Manual flags missing from `flags` are treated as unmarked. Leaving out
    `notes` keeps the stored notes; an explicit null clears them.
    """

    notes: str | None = Field(None, description="Notes")
    flags: dict[int, bool] = Field(default_factory=dict, description="flag id -> marked")


class FlagSyncOut(BaseModel):
    marked: list[int]
    unmarked: list[int]
    attached: list[int]
    detached: list[int]


class WaitingListAccountUpdateOut(BaseModel):
    account: WaitingListAccountDetail
    changes: FlagSyncOut


# ============================================================================
# Removal
# ============================================================================


class RemovalRequest(BaseModel):
    """Request to remove an account from a waiting list."""

    reason_type: RemovalReason = Field(..., description="Reason for removal")
    custom_reason: str | None = Field(None, description="Required when reason_type is 'other'")

    @model_validator(mode="after")
    def require_custom_reason(self) -> "RemovalRequest":
        if self.reason_type is RemovalReason.OTHER and not (self.custom_reason or "").strip():
            raise ValueError("custom_reason is required when reason_type is 'other'")
        return self


class RemovalOut(BaseModel):
    """Removed membership."""

    id: int
    account_id: int
    waiting_list_id: int
    removed_at: datetime
    removal_type: str
    removal_comment: str | None
    removed_by: int
