from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import ADMIN_INBOX, InlineExecutor
from smartwork.core.errors import (
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    TransientInfraError,
    UnauthenticatedError,
)
from smartwork.models.request import RecurringRequest, Request
from smartwork.models.user import User
from smartwork.services import requests as ledger
from smartwork.services import users as user_service
from smartwork.services.ids import IdAllocator
from smartwork.services.mailer import Mailer
from smartwork.services.notifications import Notifier


class ExplodingMailer(Mailer):
    def send(self, to, subject, body):
        raise RuntimeError("mail server on fire")


# ---------- creation & shared id space ----------

def test_ids_are_shared_across_both_ledgers(db, make_user, notifier):
    alice = make_user("alice")

    first = ledger.create_request(db, alice, date(2025, 3, 10), notifier)
    second = ledger.create_recurring_request(db, alice, 1, "Monday", notifier)
    third = ledger.create_request(db, alice, date(2025, 3, 11), notifier)

    assert [first.id, second.id, third.id] == [1, 2, 3]


def test_allocation_continues_from_persisted_max(db, make_user, notifier):
    alice = make_user("alice")
    db.add(Request(id=41, employee_username="alice", employee_name="alice", date=date(2025, 1, 1), status="Pending"))
    db.commit()

    recurring = ledger.create_recurring_request(db, alice, 3, None, notifier)

    assert recurring.id == 42


def test_create_snapshots_display_name(db, make_user, notifier):
    named = make_user("alice", display_name="Alice Rossi")
    plain = make_user("bob", display_name="   ")

    assert ledger.create_request(db, named, date(2025, 3, 10), notifier).employee_name == "Alice Rossi"
    assert ledger.create_request(db, plain, date(2025, 3, 10), notifier).employee_name == "bob"


def test_create_sets_pending_and_notifies_admin(db, make_user, notifier, mailer):
    alice = make_user("alice", display_name="Alice Rossi")

    request = ledger.create_request(db, alice, date(2025, 3, 10), notifier)

    assert request.status == "Pending"
    assert request.decision_by is None and request.decision_at is None
    (mail,) = mailer.to(ADMIN_INBOX)
    assert "Alice Rossi" in mail["body"]
    assert "2025-03-10" in mail["body"]


def test_create_truncates_timestamps_to_utc_day(db, make_user, notifier):
    alice = make_user("alice")
    late_evening_rome = datetime(2025, 3, 11, 0, 30, tzinfo=timezone(timedelta(hours=1)))

    request = ledger.create_request(db, alice, late_evening_rome, notifier)

    assert request.date == date(2025, 3, 10)


def test_recurring_day_validation_and_default_name(db, make_user, notifier, mailer):
    alice = make_user("alice")

    for bad in (-1, 7, None):
        with pytest.raises(InvalidInputError):
            ledger.create_recurring_request(db, alice, bad, None, notifier)

    recurring = ledger.create_recurring_request(db, alice, 0, "", notifier)
    assert recurring.day_name == "Sunday"
    assert "every Sunday" in mailer.to(ADMIN_INBOX)[0]["body"]


def test_notification_failure_does_not_affect_create(db, make_user):
    alice = make_user("alice")
    broken = Notifier(ExplodingMailer(), ADMIN_INBOX, InlineExecutor())

    request = ledger.create_request(db, alice, date(2025, 3, 10), broken)

    assert db.get(Request, request.id) is not None


def test_allocator_only_serves_ledger_models(db):
    with pytest.raises(ValueError):
        IdAllocator().insert(db, User, {})


def test_allocator_gives_up_cleanly_on_persistent_conflict(db, make_user, notifier, monkeypatch):
    alice = make_user("alice")
    existing = ledger.create_request(db, alice, date(2025, 3, 10), notifier)

    allocator = IdAllocator(retries=2)
    # pretend the table is empty so every attempt collides with id 1
    monkeypatch.setattr(IdAllocator, "current_max", staticmethod(lambda conn: 0))

    with pytest.raises(TransientInfraError) as exc:
        ledger.create_request(db, alice, date(2025, 4, 1), notifier, allocator=allocator)
    assert exc.value.code == "id_allocation_failed"

    db.expire_all()
    assert db.get(Request, existing.id).date == date(2025, 3, 10)
    assert db.query(Request).count() == 1


# ---------- concurrency ----------

def _create_in_own_session(session_factory, notifier, username, index):
    session = session_factory()
    try:
        user = session.get(User, username)
        if index % 2:
            return ledger.create_request(session, user, date(2025, 3, 1) + timedelta(days=index), notifier).id
        return ledger.create_recurring_request(session, user, index % 7, None, notifier).id
    finally:
        session.close()


def test_parallel_creates_get_distinct_ids(session_factory, make_user, notifier):
    make_user("alice")
    make_user("bob")

    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = [
            pool.submit(_create_in_own_session, session_factory, notifier, "alice" if i % 3 else "bob", i)
            for i in range(40)
        ]
        ids = [f.result() for f in futures]

    assert len(set(ids)) == 40
    assert set(ids) == set(range(1, 41))


def test_two_recurring_and_two_single_in_parallel(session_factory, make_user, notifier):
    alice = make_user("alice")
    bob = make_user("bob")

    def recurring(user):
        session = session_factory()
        try:
            return ledger.create_recurring_request(session, session.get(User, user.username), 1, None, notifier).id
        finally:
            session.close()

    def single(user, day):
        session = session_factory()
        try:
            return ledger.create_request(session, session.get(User, user.username), day, notifier).id
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=4) as pool:
        futures = [
            pool.submit(recurring, alice),
            pool.submit(recurring, bob),
            pool.submit(single, alice, date(2025, 3, 10)),
            pool.submit(single, bob, date(2025, 3, 11)),
        ]
        ids = sorted(f.result() for f in futures)

    assert ids == [1, 2, 3, 4]


# ---------- listing ----------

def test_list_all_and_mine_are_ordered(db, make_user, notifier):
    alice = make_user("alice")
    bob = make_user("bob")
    ledger.create_request(db, alice, date(2025, 3, 12), notifier)
    ledger.create_request(db, bob, date(2025, 3, 10), notifier)
    ledger.create_request(db, alice, date(2025, 3, 11), notifier)

    assert [r.date.day for r in ledger.list_all(db, Request)] == [10, 11, 12]
    assert [r.date.day for r in ledger.list_mine(db, Request, "alice")] == [11, 12]


def test_recurring_listed_by_day_of_week(db, make_user, notifier):
    alice = make_user("alice")
    for day in (5, 1, 3):
        ledger.create_recurring_request(db, alice, day, None, notifier)

    assert [r.day_of_week for r in ledger.list_mine(db, RecurringRequest, "alice")] == [1, 3, 5]


# ---------- decisions ----------

def test_approve_records_decision_and_notifies_owner(db, make_user, notifier, mailer):
    alice = make_user("alice", email="alice@x.com")
    request = ledger.create_request(db, alice, date(2025, 3, 10), notifier)

    updated = ledger.set_decision(db, Request, request.id, True, "root", notifier)

    assert updated.status == "Approved"
    assert updated.decision_by == "root"
    assert updated.decision_at is not None
    (mail,) = mailer.to("alice@x.com")
    assert "approved" in mail["body"] and "root" in mail["body"]


def test_reject_recurring(db, make_user, notifier, mailer):
    alice = make_user("alice", email="alice@x.com")
    recurring = ledger.create_recurring_request(db, alice, 2, None, notifier)

    updated = ledger.set_decision(db, RecurringRequest, recurring.id, False, "root", notifier)

    assert updated.status == "Rejected"
    assert mailer.to("alice@x.com")[0]["subject"] == "Request rejected"


def test_decision_on_missing_id_writes_nothing(db, make_user, notifier, mailer):
    alice = make_user("alice")
    request = ledger.create_request(db, alice, date(2025, 3, 10), notifier)
    mailer.sent.clear()

    with pytest.raises(NotFoundError):
        ledger.set_decision(db, Request, request.id + 100, True, "root", notifier)

    db.expire_all()
    assert db.get(Request, request.id).status == "Pending"
    assert db.query(Request).count() == 1
    assert mailer.sent == []


def test_decisions_are_terminal(db, make_user, notifier):
    alice = make_user("alice")
    request = ledger.create_request(db, alice, date(2025, 3, 10), notifier)
    ledger.set_decision(db, Request, request.id, True, "root", notifier)

    with pytest.raises(InvalidInputError) as exc:
        ledger.set_decision(db, Request, request.id, False, "root", notifier)
    assert exc.value.code == "already_decided"


def test_decision_without_email_skips_notice(db, make_user, notifier, mailer):
    alice = make_user("alice", email=None)
    request = ledger.create_request(db, alice, date(2025, 3, 10), notifier)
    mailer.sent.clear()

    ledger.set_decision(db, Request, request.id, True, "root", notifier)

    assert mailer.sent == []


# ---------- deletion ----------

def test_owner_can_delete(db, make_user, notifier):
    alice = make_user("alice")
    request = ledger.create_request(db, alice, date(2025, 3, 10), notifier)

    ledger.delete_entry(db, Request, alice, request.id)

    assert db.get(Request, request.id) is None


def test_admin_can_delete_any(db, make_user, notifier):
    alice = make_user("alice")
    root = make_user("root", role="Admin")
    recurring = ledger.create_recurring_request(db, alice, 4, None, notifier)

    ledger.delete_entry(db, RecurringRequest, root, recurring.id)

    assert db.get(RecurringRequest, recurring.id) is None


def test_other_employee_cannot_delete(db, make_user, notifier):
    alice = make_user("alice")
    bob = make_user("bob")
    request = ledger.create_request(db, alice, date(2025, 3, 10), notifier)

    with pytest.raises(ForbiddenError):
        ledger.delete_entry(db, Request, bob, request.id)
    assert db.get(Request, request.id) is not None


def test_delete_missing(db, make_user):
    alice = make_user("alice")

    with pytest.raises(NotFoundError):
        ledger.delete_entry(db, Request, alice, 999)


def test_deleted_highest_id_is_handed_out_again(db, make_user, notifier):
    alice = make_user("alice")
    first = ledger.create_request(db, alice, date(2025, 3, 10), notifier)
    second = ledger.create_recurring_request(db, alice, 1, None, notifier)

    ledger.delete_entry(db, RecurringRequest, alice, second.id)
    third = ledger.create_request(db, alice, date(2025, 3, 12), notifier)

    assert third.id == second.id
    assert {r.id for r in ledger.list_all(db, Request)} == {first.id, third.id}
    assert db.query(RecurringRequest).count() == 0


# ---------- owner integrity ----------

def test_create_for_deleted_owner_is_refused(db, session_factory, make_user, notifier, mailer):
    make_user("root", role="Admin")
    alice = make_user("alice")
    mailer.sent.clear()

    other = session_factory()
    try:
        user_service.delete_user(other, "root", "alice")
    finally:
        other.close()

    with pytest.raises(UnauthenticatedError) as exc:
        ledger.create_request(db, alice, date(2025, 3, 10), notifier)
    assert exc.value.code == "unknown_user"

    with pytest.raises(UnauthenticatedError):
        ledger.create_recurring_request(db, alice, 1, None, notifier)

    db.expire_all()
    assert db.query(Request).count() == 0
    assert db.query(RecurringRequest).count() == 0
    assert mailer.sent == []


def test_foreign_keys_are_enforced(db):
    db.add(Request(id=1, employee_username="ghost", employee_name="ghost", date=date(2025, 3, 10), status="Pending"))

    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()
