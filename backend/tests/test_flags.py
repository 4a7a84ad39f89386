"""Tests for flag marking and manual flag edits."""

from datetime import datetime, timezone

import pytest

from waitlist.core.exceptions import NotFoundError, ValidationError
from waitlist.events import EventType
from waitlist.models.audit import AuditLog
from waitlist.models.flag import FlagAssignment
from waitlist.models.removal import Removal, RemovalReason
from waitlist.services import flags as registry
from waitlist.services.removal import remove
from tests.helpers.seed import create_account, create_flag, create_waiting_list, enrol


@pytest.fixture
def setup(db):
    """List with manual flags A, B and automatic flag C, one member."""
    waiting_list = create_waiting_list(db)
    flag_a = create_flag(db, waiting_list, "Completed Moodle", display_in_table=True)
    flag_b = create_flag(db, waiting_list, "Seminar Attended")
    flag_c = create_flag(db, waiting_list, "Hours Check", position_group_id=7, display_in_table=True)
    account = create_account(db, 1200001, "Flag", "Holder")
    membership = enrol(db, waiting_list, account)
    return waiting_list, membership, flag_a, flag_b, flag_c


class TestFlagAssignment:
    def test_mark_keeps_original_timestamp(self):
        first = datetime(2026, 1, 1, tzinfo=timezone.utc)
        later = datetime(2026, 2, 1, tzinfo=timezone.utc)
        assignment = FlagAssignment()

        assert assignment.mark(first) is True
        assert assignment.mark(later) is False
        assert assignment.marked_at == first
        assert assignment.value is True

    def test_unmark_clears_timestamp(self):
        assignment = FlagAssignment(marked_at=datetime(2026, 1, 1, tzinfo=timezone.utc))

        assert assignment.unmark() is True
        assert assignment.unmark() is False
        assert assignment.marked_at is None
        assert assignment.value is False


def test_new_membership_gets_every_flag_unmarked_by_default(db, setup):
    waiting_list, membership, flag_a, flag_b, flag_c = setup

    assert [flag.id for flag in membership.flags] == [flag_a.id, flag_b.id, flag_c.id]
    assert not any(registry.is_marked(membership, flag) for flag in (flag_a, flag_b, flag_c))


def test_default_value_marks_flag_on_admission(db):
    waiting_list = create_waiting_list(db)
    flag = create_flag(db, waiting_list, "Eligible", default_value=True)
    membership = enrol(db, waiting_list, create_account(db, 1200002))

    assert registry.is_marked(membership, flag)


def test_list_manual_flags_excludes_position_group_flags(db, setup):
    waiting_list, _, flag_a, flag_b, flag_c = setup

    assert registry.list_manual_flags(waiting_list) == [flag_a, flag_b]
    assert flag_c.is_automatic


def test_mark_then_unmark(db, setup):
    _, membership, flag_a, _, _ = setup

    registry.mark(db, membership, flag_a)
    assert registry.is_marked(membership, flag_a)

    registry.unmark(db, membership, flag_a)
    assert not registry.is_marked(membership, flag_a)


def test_mark_is_idempotent(db, setup):
    _, membership, flag_a, _, _ = setup
    first = datetime(2026, 3, 1, tzinfo=timezone.utc)

    registry.mark(db, membership, flag_a, now=first)
    assignment = registry.mark(db, membership, flag_a.id, now=datetime(2026, 4, 1, tzinfo=timezone.utc))

    assert registry.is_marked(membership, flag_a)
    assert assignment.marked_at == first


def test_mark_attaches_missing_flag(db, setup):
    waiting_list, membership, _, _, _ = setup
    late_flag = create_flag(db, waiting_list, "Added Later")
    assert membership.assignment_for(late_flag) is None

    registry.mark(db, membership, late_flag)

    assert registry.is_marked(membership, late_flag)


def test_unmark_without_assignment_is_a_no_op(db, setup):
    waiting_list, membership, _, _, _ = setup
    late_flag = create_flag(db, waiting_list, "Added Later")

    assert registry.unmark(db, membership, late_flag) is None
    assert membership.assignment_for(late_flag) is None


def test_flag_from_other_list_is_rejected(db, setup):
    _, membership, _, _, _ = setup
    other_list = create_waiting_list(db, name="C1 Training")
    foreign = create_flag(db, other_list, "Foreign")

    with pytest.raises(ValidationError):
        registry.mark(db, membership, foreign)


def test_apply_manual_edits_scenario(db, setup):
    """A marked, B unmarked; applying {A: False} unmarks A, leaves B unmarked, C untouched."""
    _, membership, flag_a, flag_b, flag_c = setup
    registry.mark(db, membership, flag_a)
    registry.mark(db, membership, flag_c)
    c_marked_at = membership.assignment_for(flag_c).marked_at

    registry.apply_manual_edits(db, membership, {flag_a.id: False})

    assert not registry.is_marked(membership, flag_a)
    assert not registry.is_marked(membership, flag_b)
    assert registry.is_marked(membership, flag_c)
    assert membership.assignment_for(flag_c).marked_at == c_marked_at


def test_apply_manual_edits_never_touches_automatic_flags(db, setup):
    _, membership, flag_a, _, flag_c = setup
    registry.mark(db, membership, flag_c)

    result = registry.apply_manual_edits(db, membership, {flag_a.id: True, flag_c.id: False})

    assert registry.is_marked(membership, flag_a)
    assert registry.is_marked(membership, flag_c)
    assert flag_c.id not in result.unmarked
    assert flag_c.id not in result.detached


def test_apply_manual_edits_does_not_attach_unassociated_automatic_flag(db, setup):
    waiting_list, membership, _, _, _ = setup
    late_auto = create_flag(db, waiting_list, "Late Auto", position_group_id=3)

    registry.apply_manual_edits(db, membership, {late_auto.id: True})

    assert membership.assignment_for(late_auto) is None


def test_apply_manual_edits_resyncs_associations(db, setup):
    """Exactly the passed manual flags stay associated; automatic ones are kept."""
    waiting_list, membership, flag_a, flag_b, flag_c = setup
    late_flag = create_flag(db, waiting_list, "Added Later")

    result = registry.apply_manual_edits(db, membership, {flag_a.id: True, late_flag.id: False})

    associated = {assignment.flag_id for assignment in membership.flag_assignments}
    assert associated == {flag_a.id, late_flag.id, flag_c.id}
    assert result.detached == [flag_b.id]
    assert result.attached == [late_flag.id]
    assert registry.is_marked(membership, flag_a)
    assert not registry.is_marked(membership, late_flag)

    db.expire_all()
    stored = {a.flag_id for a in db.query(FlagAssignment).filter_by(waiting_list_account_id=membership.id)}
    assert stored == associated


def test_apply_manual_edits_accepts_string_keys(db, setup):
    _, membership, flag_a, flag_b, _ = setup

    registry.apply_manual_edits(db, membership, {str(flag_a.id): True, str(flag_b.id): True})

    assert registry.is_marked(membership, flag_a)
    assert registry.is_marked(membership, flag_b)


def test_apply_manual_edits_rejects_unknown_flag_without_changes(db, setup):
    _, membership, flag_a, _, _ = setup
    registry.mark(db, membership, flag_a)

    with pytest.raises(ValidationError):
        registry.apply_manual_edits(db, membership, {flag_a.id: False, 999999: True})

    assert registry.is_marked(membership, flag_a)


def test_flag_edits_on_removed_membership_fail(db, setup):
    waiting_list, membership, flag_a, _, _ = setup
    remove(db, waiting_list, membership.account, Removal(RemovalReason.INACTIVITY, actor_id=42))

    with pytest.raises(NotFoundError):
        registry.apply_manual_edits(db, membership, {flag_a.id: True})
    with pytest.raises(NotFoundError):
        registry.mark(db, membership, flag_a)


def test_update_notes_and_flags(db, setup, events):
    waiting_list, membership, flag_a, flag_b, _ = setup

    registry.update_notes_and_flags(
        db, membership, notes="Booked for mentoring", flag_states={flag_b.id: True, flag_a.id: False}, actor_id=42
    )

    assert membership.notes == "Booked for mentoring"
    assert registry.is_marked(membership, flag_b)
    assert not registry.is_marked(membership, flag_a)

    audit = db.query(AuditLog).filter_by(action="waiting_list.account_updated").one()
    assert audit.actor_id == 42
    assert audit.entity_id == membership.id
    assert audit.after["notes"] == "Booked for mentoring"

    assert [event.event_type for event in events] == [EventType.WAITING_LIST_CHANGED]
    assert events[0].payload == {"waiting_list_id": waiting_list.id}


def test_manual_flag_fields(db, setup):
    _, membership, flag_a, flag_b, _ = setup
    registry.mark(db, membership, flag_b)

    fields = registry.manual_flag_fields(membership)

    assert [(f.key, f.label) for f in fields] == [
        (f"flags.{flag_a.id}", "Completed Moodle"),
        (f"flags.{flag_b.id}", "Seminar Attended"),
    ]
    assert [f.getter(membership) for f in fields] == [False, True]


def test_flag_columns_follow_display_in_table(db, setup):
    waiting_list, membership, flag_a, _, flag_c = setup
    registry.mark(db, membership, flag_c)

    columns = registry.flag_columns(waiting_list)

    assert [c.key for c in columns] == [f"flag_{flag_a.id}", f"flag_{flag_c.id}"]
    assert [c.getter(membership) for c in columns] == [False, True]
