"""Database models."""

# Import all models here so Alembic can detect them
from waitlist.models.account import Account, RosterEntry, StaffRole
from waitlist.models.audit import AuditLog
from waitlist.models.flag import Flag, FlagAssignment
from waitlist.models.removal import Removal, RemovalReason
from waitlist.models.waiting_list import (
    Department,
    FeatureToggle,
    MembershipStatus,
    WaitingList,
    WaitingListAccount,
)

__all__ = [
    "Account",
    "RosterEntry",
    "StaffRole",
    "AuditLog",
    "Flag",
    "FlagAssignment",
    "Removal",
    "RemovalReason",
    "Department",
    "FeatureToggle",
    "MembershipStatus",
    "WaitingList",
    "WaitingListAccount",
]
