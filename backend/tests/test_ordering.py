"""Tests for queue positions within a waiting list."""

from waitlist.models.removal import Removal, RemovalReason
from waitlist.services.ordering import (
    count_active,
    ordered_accounts,
    position_map,
    position_of,
    position_summary,
)
from waitlist.services.removal import remove
from tests.helpers.seed import create_account, create_waiting_list, enrol


def _three_member_list(db):
    waiting_list = create_waiting_list(db)
    first = create_account(db, 1100001, "First", "Member")
    second = create_account(db, 1100002, "Second", "Member")
    third = create_account(db, 1100003, "Third", "Member")
    # Enrolled out of order; admission time decides the position
    m3 = enrol(db, waiting_list, third, minutes=30)
    m1 = enrol(db, waiting_list, first, minutes=10)
    m2 = enrol(db, waiting_list, second, minutes=20)
    return waiting_list, (first, second, third), (m1, m2, m3)


def test_positions_follow_admission_time(db):
    """Accounts added at t1 < t2 < t3 are at positions 1, 2, 3."""
    waiting_list, _, (m1, m2, m3) = _three_member_list(db)

    assert position_of(db, waiting_list, m1) == 1
    assert position_of(db, waiting_list, m2) == 2
    assert position_of(db, waiting_list, m3) == 3
    assert [m.id for m in ordered_accounts(db, waiting_list)] == [m1.id, m2.id, m3.id]


def test_removing_middle_account_closes_the_gap(db):
    waiting_list, (first, second, third), (m1, m2, m3) = _three_member_list(db)

    remove(db, waiting_list, second, Removal(RemovalReason.TRAINING_PLACE, actor_id=42))

    assert position_of(db, waiting_list, m1) == 1
    assert position_of(db, waiting_list, m3) == 2
    assert position_of(db, waiting_list, m2) is None
    assert position_of(db, waiting_list, second) is None
    assert count_active(db, waiting_list) == 2
    assert position_summary(db, waiting_list, m3).total == 2


def test_same_admission_time_keeps_insertion_order(db):
    waiting_list = create_waiting_list(db)
    a = create_account(db, 1100011)
    b = create_account(db, 1100012)
    c = create_account(db, 1100013)
    ma = enrol(db, waiting_list, a, minutes=5)
    mb = enrol(db, waiting_list, b, minutes=5)
    mc = enrol(db, waiting_list, c, minutes=5)

    assert position_map(db, waiting_list) == {ma.id: 1, mb.id: 2, mc.id: 3}


def test_position_by_account_or_cid(db):
    waiting_list, (first, second, third), _ = _three_member_list(db)

    assert position_of(db, waiting_list, third) == 3
    assert position_of(db, waiting_list, second.id) == 2


def test_non_member_has_no_position(db):
    waiting_list, _, _ = _three_member_list(db)
    other_list = create_waiting_list(db, name="C1 Training")
    outsider = create_account(db, 1100099)
    elsewhere = enrol(db, other_list, outsider)

    assert position_of(db, waiting_list, outsider) is None
    # A membership of a different list is not ranked here
    assert position_of(db, waiting_list, elsewhere) is None


def test_position_summary_display(db):
    waiting_list, _, (m1, m2, m3) = _three_member_list(db)
    outsider = create_account(db, 1100099)

    assert position_summary(db, waiting_list, m2).display == "2 of 3"
    assert position_summary(db, waiting_list, outsider).display == "- of 3"


def test_empty_list(db):
    waiting_list = create_waiting_list(db)
    account = create_account(db, 1100001)

    assert ordered_accounts(db, waiting_list) == []
    assert count_active(db, waiting_list) == 0
    assert position_of(db, waiting_list, account) is None
