"""Tests for removing accounts from a waiting list."""

import pytest
from sqlalchemy.exc import IntegrityError

from waitlist.core.exceptions import NotFoundError, ValidationError
from waitlist.events import EventType
from waitlist.models.audit import AuditLog
from waitlist.models.removal import Removal, RemovalReason
from waitlist.models.waiting_list import MembershipStatus, WaitingListAccount
from waitlist.services.memberships import find_active_membership
from waitlist.services.ordering import count_active, position_of
from waitlist.services.removal import remove
from tests.helpers.seed import at, create_account, create_waiting_list, enrol


@pytest.fixture
def member(db):
    waiting_list = create_waiting_list(db)
    account = create_account(db, 1300001, "Removal", "Candidate")
    membership = enrol(db, waiting_list, account)
    return waiting_list, account, membership


class TestRemovalValue:
    def test_other_requires_custom_reason(self):
        with pytest.raises(ValidationError):
            Removal(RemovalReason.OTHER, actor_id=42).validate()
        with pytest.raises(ValidationError):
            Removal(RemovalReason.OTHER, actor_id=42, custom_reason="   ").validate()

    def test_other_with_text_is_valid(self):
        removal = Removal(RemovalReason.OTHER, actor_id=42, custom_reason="  Moved region ")
        removal.validate()
        assert removal.comment == "Moved region"

    def test_comment_only_kept_for_other(self):
        removal = Removal(RemovalReason.INACTIVITY, actor_id=42, custom_reason="ignored")
        removal.validate()
        assert removal.comment is None

    def test_unknown_reason_is_rejected(self):
        with pytest.raises(ValidationError):
            Removal("retired", actor_id=42).validate()

    def test_plain_string_reason_is_accepted(self):
        removal = Removal("other", actor_id=42, custom_reason="Left the division")
        removal.validate()

        assert removal.reason is RemovalReason.OTHER
        assert removal.comment == "Left the division"

    def test_form_options_cover_every_reason(self):
        options = RemovalReason.form_options()

        assert [option["value"] for option in options] == [reason.value for reason in RemovalReason]
        assert options[-1] == {"value": "other", "label": "Other"}


def test_remove_ends_membership(db, member, events):
    waiting_list, account, membership = member

    removed = remove(db, waiting_list, account, Removal(RemovalReason.TRAINING_PLACE, actor_id=42))

    assert removed.id == membership.id
    assert removed.status is MembershipStatus.REMOVED
    assert removed.deleted_at is not None
    assert removed.removal_type == "training_place"
    assert removed.removal_comment is None
    assert removed.removed_by == 42
    assert find_active_membership(db, waiting_list, account) is None
    assert count_active(db, waiting_list) == 0

    assert [event.event_type for event in events] == [
        EventType.ACCOUNT_REMOVED,
        EventType.WAITING_LIST_CHANGED,
    ]
    payload = events[0].payload
    assert payload["waiting_list_id"] == waiting_list.id
    assert payload["account_id"] == account.id
    assert payload["reason"] == "training_place"
    assert payload["actor_id"] == 42
    assert payload["custom_reason"] is None
    assert events[0].correlation_id == events[1].correlation_id


def test_remove_with_other_reason_stores_comment(db, member):
    waiting_list, account, _ = member

    removed = remove(
        db, waiting_list, account.id, Removal(RemovalReason.OTHER, actor_id=42, custom_reason="Left the division")
    )

    assert removed.removal_type == "other"
    assert removed.removal_comment == "Left the division"


def test_remove_writes_audit_entry(db, member):
    waiting_list, account, membership = member

    remove(db, waiting_list, account, Removal(RemovalReason.MEMBER_REQUEST, actor_id=42), request_id="req-1")

    audit = db.query(AuditLog).filter_by(action="waiting_list.account_removed").one()
    assert audit.actor_id == 42
    assert audit.entity_id == membership.id
    assert audit.after["removal_type"] == "member_request"
    assert audit.meta["account_id"] == account.id
    assert audit.meta["reason"] == "Requested by member"
    assert audit.meta["request_id"] == "req-1"


def test_invalid_removal_changes_nothing(db, member, events):
    """Other without text is rejected and the account stays on the list."""
    waiting_list, account, membership = member

    with pytest.raises(ValidationError):
        remove(db, waiting_list, account, Removal(RemovalReason.OTHER, actor_id=42, custom_reason=""))

    assert count_active(db, waiting_list) == 1
    assert position_of(db, waiting_list, membership) == 1
    assert db.query(AuditLog).filter_by(action="waiting_list.account_removed").count() == 0
    assert events == []


def test_second_removal_is_not_found(db, member):
    waiting_list, account, _ = member
    remove(db, waiting_list, account, Removal(RemovalReason.INACTIVITY, actor_id=42))

    with pytest.raises(NotFoundError):
        remove(db, waiting_list, account, Removal(RemovalReason.INACTIVITY, actor_id=42))


def test_removal_that_loses_a_race_changes_nothing(db, member, events, monkeypatch):
    """The lookup saw an active row but another request ended it first."""
    waiting_list, account, membership = member
    remove(db, waiting_list, account, Removal(RemovalReason.INACTIVITY, actor_id=42))
    events.clear()
    monkeypatch.setattr(
        "waitlist.services.removal.find_active_membership",
        lambda *args, **kwargs: membership,
    )

    with pytest.raises(NotFoundError):
        remove(db, waiting_list, account, Removal(RemovalReason.TRANSFERRED, actor_id=7))

    db.refresh(membership)
    assert membership.removal_type == "inactivity"
    assert membership.removed_by == 42
    assert db.query(AuditLog).filter_by(action="waiting_list.account_removed").count() == 1
    assert events == []


def test_remove_non_member_is_not_found(db, member):
    waiting_list, _, _ = member
    outsider = create_account(db, 1300099)

    with pytest.raises(NotFoundError):
        remove(db, waiting_list, outsider, Removal(RemovalReason.INACTIVITY, actor_id=42))


def test_removed_account_can_rejoin_at_the_end(db, member):
    waiting_list, account, membership = member
    other = create_account(db, 1300002)
    enrol(db, waiting_list, other, minutes=10)
    remove(db, waiting_list, account, Removal(RemovalReason.INACTIVITY, actor_id=42))

    rejoined = enrol(db, waiting_list, account, minutes=20)

    assert rejoined.id != membership.id
    assert position_of(db, waiting_list, account) == 2
    assert db.query(WaitingListAccount).filter_by(account_id=account.id).count() == 2


def test_database_rejects_second_active_membership(db, member):
    waiting_list, account, _ = member

    db.add(WaitingListAccount(waiting_list_id=waiting_list.id, account_id=account.id, created_at=at(60)))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

    assert count_active(db, waiting_list) == 1
