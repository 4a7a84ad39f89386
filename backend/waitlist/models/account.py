"""Account and roster models."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from waitlist.common.clock import utcnow
from waitlist.db.base import Base


class StaffRole(str, Enum):
    """Staff role enum (null on the account means no admin access)."""

    ADMIN = "ADMIN"
    TRAINING_MANAGER = "TRAINING_MANAGER"
    MENTOR = "MENTOR"


class Account(Base):
    """Network member, identified by CID."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=False)  # CID
    name_first = Column(String(100), nullable=False)
    name_last = Column(String(100), nullable=False)
    cts_theory_exam_passed_at = Column(DateTime(timezone=True), nullable=True)
    staff_role = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    # Relationships
    roster_entry = relationship(
        "RosterEntry", back_populates="account", uselist=False, cascade="all, delete-orphan"
    )
    waiting_list_memberships = relationship("WaitingListAccount", back_populates="account")

    @property
    def name(self) -> str:
        return f"{self.name_first} {self.name_last}".strip()

    def on_roster(self) -> bool:
        """True when the account holds a roster entry."""
        return self.roster_entry is not None

    @property
    def has_passed_cts_theory_exam(self) -> bool:
        return self.cts_theory_exam_passed_at is not None

    def __repr__(self) -> str:
        return f"<Account {self.id} {self.name!r}>"


class RosterEntry(Base):
    """Controller roster membership."""

    __tablename__ = "roster"

    account_id = Column(
        Integer,
        ForeignKey("accounts.id", onupdate="CASCADE", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    account = relationship("Account", back_populates="roster_entry")
