"""Waiting list flags and their per-membership assignments."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, false
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from waitlist.common.clock import utcnow
from waitlist.db.base import Base


class Flag(Base):
    """Named boolean attribute defined on a waiting list.

    Flags with a position group are maintained automatically and are never
    edited by hand.
    """

    __tablename__ = "waiting_list_flags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    waiting_list_id = Column(
        Integer,
        ForeignKey("waiting_lists.id", onupdate="CASCADE", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    position_group_id = Column(Integer, nullable=True)
    display_in_table = Column(Boolean, nullable=False, default=False, server_default=false())
    default_value = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    # Relationships
    waiting_list = relationship("WaitingList", back_populates="flags")

    @property
    def is_automatic(self) -> bool:
        return self.position_group_id is not None

    @property
    def is_manual(self) -> bool:
        return self.position_group_id is None

    def __repr__(self) -> str:
        return f"<Flag {self.id} {self.name!r}>"


class FlagAssignment(Base):
    """Pivot between a membership and a flag; marked iff marked_at is set."""

    __tablename__ = "waiting_list_account_flag"

    waiting_list_account_id = Column(
        Integer,
        ForeignKey("waiting_list_account.id", onupdate="CASCADE", ondelete="CASCADE"),
        primary_key=True,
    )
    flag_id = Column(
        Integer,
        ForeignKey("waiting_list_flags.id", onupdate="CASCADE", ondelete="CASCADE"),
        primary_key=True,
    )
    marked_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    membership = relationship("WaitingListAccount", back_populates="flag_assignments")
    flag = relationship("Flag", lazy="joined")

    @property
    def value(self) -> bool:
        return self.marked_at is not None

    def mark(self, now: datetime | None = None) -> bool:
        """Mark the flag. Keeps the original timestamp if already marked.

        Returns True when the state changed.
        """
        if self.marked_at is not None:
            return False
        self.marked_at = now or utcnow()
        return True

    def unmark(self) -> bool:
        """Clear the mark. Returns True when the state changed."""
        if self.marked_at is None:
            return False
        self.marked_at = None
        return True

    def __repr__(self) -> str:
        return f"<FlagAssignment membership={self.waiting_list_account_id} flag={self.flag_id} marked_at={self.marked_at}>"
