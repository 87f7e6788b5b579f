# backend/tests/test_period_concurrency.py
from __future__ import annotations

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm.exc import StaleDataError

from app.db import SessionLocal
from app.models import Payment, RentPeriod
from app.services import payments, rent_periods
from app.services.results import CONCURRENT_MODIFICATION, ErrorKind

# Two sessions on the same sqlite file. The second session's work is injected
# before the first session issues its first write, so neither blocks on the
# database lock.


def _pay(db, world, period_id, amount="1", today=date(2024, 1, 20)):
    return payments.create_payment(
        db,
        actor_user_id=world.manager,
        org_slug=world.org_slug,
        rent_period_id=period_id,
        amount=amount,
        today=today,
    )


def _fresh(period_id):
    s = SessionLocal()
    try:
        period = s.get(RentPeriod, period_id)
        count = s.scalar(select(func.count(Payment.id)).where(Payment.rent_period_id == period_id))
        return period.status, count
    finally:
        s.close()


def test_racing_deletes_of_the_last_two_payments(db, world, make_period, monkeypatch):
    period = make_period(due_date=date(2024, 1, 1))
    first = _pay(db, world, period.id, amount="400")
    second = _pay(db, world, period.id, amount="600")
    assert first.ok and second.ok

    real_claim = payments._claim_period
    other_results = []
    started = []

    def claim_after_other_delete(db_, period_):
        if not started:
            started.append(1)
            other = SessionLocal()
            try:
                other_results.append(
                    payments.delete_payment(
                        other,
                        actor_user_id=world.owner,
                        org_slug=world.org_slug,
                        payment_id=second.data.id,
                        today=date(2024, 1, 5),
                    )
                )
            finally:
                other.close()
        real_claim(db_, period_)

    monkeypatch.setattr(payments, "_claim_period", claim_after_other_delete)

    res = payments.delete_payment(
        db, actor_user_id=world.owner, org_slug=world.org_slug, payment_id=first.data.id, today=date(2024, 1, 5)
    )

    assert other_results[0].ok
    assert other_results[0].data.status_reverted is False
    assert not res.ok
    assert (res.kind, res.error) == (ErrorKind.CONFLICT, CONCURRENT_MODIFICATION)

    # the loser changed nothing: one payment left, period still PAID
    assert _fresh(period.id) == ("PAID", 1)

    # retried against the committed state it is the last payment and reverts
    retry = payments.delete_payment(
        db, actor_user_id=world.owner, org_slug=world.org_slug, payment_id=first.data.id, today=date(2024, 1, 5)
    )
    assert retry.ok and retry.data.status_reverted is True
    assert _fresh(period.id) == ("OVERDUE", 0)


def test_sequential_deletes_still_revert_on_the_last_one(db, world, make_period):
    period = make_period(due_date=date(2030, 1, 1))
    a = _pay(db, world, period.id)
    b = _pay(db, world, period.id)

    for created, reverted in ((a, False), (b, True)):
        res = payments.delete_payment(
            db, actor_user_id=world.owner, org_slug=world.org_slug, payment_id=created.data.id, today=date(2024, 1, 5)
        )
        assert res.ok and res.data.status_reverted is reverted

    assert _fresh(period.id) == ("DUE", 0)


def test_payment_racing_a_date_edit_is_a_conflict(db, world, make_period, monkeypatch):
    period = make_period(due_date=date(2024, 2, 1))

    real_insert = payments._insert_payment
    edits = []

    def insert_after_other_edit(db_, **kw):
        if not edits:
            other = SessionLocal()
            try:
                edits.append(
                    rent_periods.update_rent_period_dates(
                        other,
                        actor_user_id=world.manager,
                        org_slug=world.org_slug,
                        rent_period_id=period.id,
                        due_date="2024-02-05",
                        today=date(2024, 1, 20),
                    )
                )
            finally:
                other.close()
        return real_insert(db_, **kw)

    monkeypatch.setattr(payments, "_insert_payment", insert_after_other_edit)

    res = _pay(db, world, period.id, amount="1000")

    assert edits[0].ok
    assert (res.kind, res.error) == (ErrorKind.CONFLICT, CONCURRENT_MODIFICATION)
    assert _fresh(period.id) == ("DUE", 0)


def test_stale_status_write_is_reported_as_conflict(db, world, make_period, monkeypatch):
    period = make_period(due_date=date(2024, 2, 1))

    def stale(db_, period_, *, today):
        raise StaleDataError("rent_periods row version changed")

    monkeypatch.setattr(payments, "_mark_period_paid", stale)

    res = _pay(db, world, period.id)
    assert (res.kind, res.error) == (ErrorKind.CONFLICT, CONCURRENT_MODIFICATION)
    assert _fresh(period.id) == ("DUE", 0)
