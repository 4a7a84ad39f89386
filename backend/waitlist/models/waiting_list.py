"""Waiting list and membership models."""

from enum import Enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from waitlist.common.clock import utcnow
from waitlist.db.base import Base


class Department(str, Enum):
    """Training department owning a waiting list."""

    ATC = "atc"
    PILOT = "pilot"


class FeatureToggle(str, Enum):
    """Per-list feature toggles. Unset keys read as enabled."""

    CHECK_CTS_THEORY_EXAM = "check_cts_theory_exam"
    DISPLAY_ON_ROSTER = "display_on_roster"


class MembershipStatus(str, Enum):
    """Membership lifecycle: active until removed, removal is terminal."""

    ACTIVE = "active"
    REMOVED = "removed"


class WaitingList(Base):
    """An ordered queue of accounts awaiting a training place."""

    __tablename__ = "waiting_lists"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    department = Column(String(20), nullable=False, default=Department.ATC.value)
    feature_toggles = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=True)

    # Relationships
    memberships = relationship(
        "WaitingListAccount",
        back_populates="waiting_list",
        cascade="all, delete-orphan",
        order_by=lambda: [WaitingListAccount.created_at, WaitingListAccount.id],
    )
    flags = relationship(
        "Flag",
        back_populates="waiting_list",
        cascade="all, delete-orphan",
        order_by="Flag.id",
    )

    def feature_enabled(self, toggle: FeatureToggle | str) -> bool:
        """Read a feature toggle; missing keys default to True."""
        key = toggle.value if isinstance(toggle, FeatureToggle) else toggle
        return bool((self.feature_toggles or {}).get(key, True))

    def __repr__(self) -> str:
        return f"<WaitingList {self.id} {self.slug!r}>"


class WaitingListAccount(Base):
    """Membership of an account on a waiting list (soft-deleted on removal)."""

    __tablename__ = "waiting_list_account"

    id = Column(Integer, primary_key=True, autoincrement=True)
    waiting_list_id = Column(
        Integer,
        ForeignKey("waiting_lists.id", onupdate="CASCADE", ondelete="CASCADE"),
        nullable=False,
    )
    account_id = Column(
        Integer,
        ForeignKey("accounts.id", onupdate="CASCADE", ondelete="CASCADE"),
        nullable=False,
    )
    notes = Column(Text, nullable=True)
    added_by = Column(Integer, nullable=True)

    # Admission time; the canonical queue ordering key
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=True)

    # Removal
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    removal_type = Column(String(50), nullable=True)
    removal_comment = Column(Text, nullable=True)
    removed_by = Column(Integer, nullable=True)

    # Relationships
    waiting_list = relationship("WaitingList", back_populates="memberships")
    account = relationship("Account", back_populates="waiting_list_memberships")
    flag_assignments = relationship(
        "FlagAssignment",
        back_populates="membership",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_waiting_list_account_list_order", "waiting_list_id", "deleted_at", "created_at"),
        Index("ix_waiting_list_account_account_id", "account_id"),
        # One active membership per (list, account)
        Index(
            "uq_waiting_list_account_active",
            "waiting_list_id",
            "account_id",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None

    @property
    def status(self) -> MembershipStatus:
        return MembershipStatus.ACTIVE if self.is_active else MembershipStatus.REMOVED

    @property
    def theory_exam_passed(self) -> bool:
        return self.account is not None and self.account.has_passed_cts_theory_exam

    @property
    def flags(self) -> list:
        """Associated flags, ordered by id."""
        return sorted((a.flag for a in self.flag_assignments), key=lambda flag: flag.id)

    def assignment_for(self, flag) -> "FlagAssignment | None":  # noqa: F821
        flag_id = getattr(flag, "id", flag)
        for assignment in self.flag_assignments:
            if assignment.flag_id == flag_id:
                return assignment
        return None

    def __repr__(self) -> str:
        return f"<WaitingListAccount {self.id} list={self.waiting_list_id} account={self.account_id}>"
