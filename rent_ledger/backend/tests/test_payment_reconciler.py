# backend/tests/test_payment_reconciler.py
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import func, select

from app.domain.audit import list_audit_logs
from app.domain.rent_status import apply_status
from app.models import Payment, RentPeriod
from app.services import payments
from app.services.results import ErrorKind


def _pay(db, world, period_id, amount="1", today=date(2024, 1, 20), actor=None, **kw):
    return payments.create_payment(
        db,
        actor_user_id=actor or world.manager,
        org_slug=world.org_slug,
        rent_period_id=period_id,
        amount=amount,
        today=today,
        **kw,
    )


def _payment_count(db, period_id) -> int:
    return db.scalar(select(func.count(Payment.id)).where(Payment.rent_period_id == period_id))


def _status(db, period_id) -> str:
    db.expire_all()
    return db.get(RentPeriod, period_id).status


def test_any_positive_amount_marks_period_paid(db, world, make_period):
    period = make_period(due_date=date(2024, 2, 1))

    # schedule amount is 1000.00; a token payment still settles the period
    res = _pay(db, world, period.id, amount="0.01")
    assert res.ok, res.error
    assert res.data.amount == Decimal("0.01")

    p = db.get(RentPeriod, period.id)
    db.refresh(p)
    assert (p.status, p.days_overdue) == ("PAID", 0)


def test_non_positive_amount_and_missing_period_rejected(db, world, make_period):
    period = make_period(due_date=date(2024, 2, 1))

    for amount in (0, "-5", "abc", None):
        r = _pay(db, world, period.id, amount=amount)
        assert not r.ok and r.kind == ErrorKind.VALIDATION
        assert r.error == "Amount must be greater than 0"

    r = _pay(db, world, None, amount=10)
    assert not r.ok and r.error == "Rent period is required"
    assert _payment_count(db, period.id) == 0


def test_period_in_other_org_is_not_found(db, world, make_period):
    foreign = make_period(
        due_date=date(2024, 2, 1),
        org_id=world.other_org_id,
        rent_config_id=world.other_lease.rent_config_id,
    )

    r = _pay(db, world, foreign.id, amount=10)
    assert not r.ok and r.kind == ErrorKind.NOT_FOUND
    assert r.error == "Rent period not found or does not belong to this organization"

    missing = _pay(db, world, 999999, amount=10)
    assert (missing.kind, missing.error) == (r.kind, r.error)
    assert _payment_count(db, foreign.id) == 0


def test_failed_status_step_compensates_the_insert(db, world, make_period, monkeypatch):
    period = make_period(due_date=date(2024, 1, 10))
    # bring it to its evaluated state first: OVERDUE as of the 20th
    apply_status(period, date(2024, 1, 20))
    db.commit()
    before = _status(db, period.id)
    assert before == "OVERDUE"

    removed = []
    real_remove = payments._remove_payment

    def spy_remove(db_, payment):
        removed.append(payment.id)
        real_remove(db_, payment)

    def boom(db_, period_, *, today):
        raise RuntimeError("status write failed")

    monkeypatch.setattr(payments, "_remove_payment", spy_remove)
    monkeypatch.setattr(payments, "_mark_period_paid", boom)

    res = _pay(db, world, period.id, amount="1000")
    assert not res.ok
    assert res.kind == ErrorKind.FAILED
    assert res.error == "Failed to mark rent period as paid"

    assert len(removed) == 1
    assert _payment_count(db, period.id) == 0
    assert _status(db, period.id) == before


def test_delete_last_payment_after_due_date_reverts_to_overdue(db, world, make_period):
    period = make_period(due_date=date(2024, 1, 1))
    created = _pay(db, world, period.id, today=date(2024, 1, 1))
    assert _status(db, period.id) == "PAID"

    res = payments.delete_payment(
        db, actor_user_id=world.owner, org_slug=world.org_slug, payment_id=created.data.id, today=date(2024, 1, 5)
    )
    assert res.ok and not res.degraded
    assert res.data.rent_period_status == "OVERDUE"
    p = db.get(RentPeriod, period.id)
    assert (p.status, p.days_overdue) == ("OVERDUE", 4)


def test_delete_last_payment_before_due_date_reverts_to_due(db, world, make_period):
    period = make_period(due_date=date(2030, 1, 1))
    created = _pay(db, world, period.id, today=date(2024, 1, 5))

    res = payments.delete_payment(
        db, actor_user_id=world.owner, org_slug=world.org_slug, payment_id=created.data.id, today=date(2024, 1, 5)
    )
    assert res.ok
    assert _status(db, period.id) == "DUE"


def test_period_stays_paid_while_other_payments_remain(db, world, make_period):
    period = make_period(due_date=date(2024, 1, 1))
    first = _pay(db, world, period.id, amount="400")
    _pay(db, world, period.id, amount="600")

    res = payments.delete_payment(
        db, actor_user_id=world.owner, org_slug=world.org_slug, payment_id=first.data.id, today=date(2024, 1, 5)
    )
    assert res.ok and res.data.status_reverted is False
    assert _status(db, period.id) == "PAID"
    assert _payment_count(db, period.id) == 1


def test_failed_revert_is_a_degraded_success(db, world, make_period, monkeypatch, caplog):
    period = make_period(due_date=date(2024, 1, 1))
    created = _pay(db, world, period.id)

    def boom(db_, period_, *, today):
        raise RuntimeError("revert failed")

    monkeypatch.setattr(payments, "_revert_period_status", boom)

    with caplog.at_level(logging.ERROR, logger="rentledger.payments"):
        res = payments.delete_payment(
            db, actor_user_id=world.owner, org_slug=world.org_slug, payment_id=created.data.id, today=date(2024, 1, 5)
        )

    assert res.ok
    assert res.degraded
    assert "manual reconciliation" in res.warning
    assert _payment_count(db, period.id) == 0
    assert _status(db, period.id) == "PAID"
    assert any(r.levelno == logging.ERROR and r.name == "rentledger.payments" for r in caplog.records)


def test_update_audits_only_real_changes(db, world, make_period):
    period = make_period(due_date=date(2024, 2, 1))
    created = _pay(db, world, period.id, amount="100", reference="TRX-1")
    pid = created.data.id

    same = payments.update_payment(
        db, actor_user_id=world.ops, org_slug=world.org_slug, payment_id=pid, reference=" TRX-1 "
    )
    assert same.ok
    assert list_audit_logs(db, org_id=world.org_id, action_type="PAYMENT_UPDATED") == []

    changed = payments.update_payment(
        db, actor_user_id=world.ops, org_slug=world.org_slug, payment_id=pid, amount="150"
    )
    assert changed.ok and changed.data.amount == Decimal("150.00")
    logs = list_audit_logs(db, org_id=world.org_id, action_type="PAYMENT_UPDATED")
    assert len(logs) == 1
    assert '"amount": "150.00"' in logs[0].after_json
    assert "reference" not in logs[0].after_json

    # the period is never touched by an update
    assert _status(db, period.id) == "PAID"


def test_create_and_delete_are_audited(db, world, make_period):
    period = make_period(due_date=date(2024, 1, 1))
    created = _pay(db, world, period.id, amount="250")
    payments.delete_payment(
        db, actor_user_id=world.owner, org_slug=world.org_slug, payment_id=created.data.id, today=date(2024, 1, 5)
    )

    logs = list_audit_logs(db, org_id=world.org_id)
    kinds = [r.action_type for r in logs]
    assert kinds == ["PAYMENT_DELETED", "PAYMENT_CREATED"]

    deleted = logs[0]
    assert deleted.entity_type == "payment"
    assert deleted.entity_id == str(created.data.id)
    assert '"amount": "250.00"' in deleted.before_json
    assert '"status": "PAID"' in deleted.before_json
    assert '"status": "OVERDUE"' in deleted.after_json


def test_list_payments_scoped_to_period(db, world, make_period):
    a = make_period(due_date=date(2024, 2, 1))
    b = make_period(due_date=date(2024, 3, 1))
    _pay(db, world, a.id)
    _pay(db, world, b.id)

    res = payments.list_payments(db, actor_user_id=world.director, org_slug=world.org_slug, rent_period_id=a.id)
    assert res.ok
    assert [p.rent_period_id for p in res.data] == [a.id]


def test_update_rejects_null_amount_and_null_paid_at_alike(db, world, make_period):
    period = make_period(due_date=date(2024, 2, 1))
    created = _pay(db, world, period.id, amount="100", paid_at="2024-01-20T09:30:00Z")
    pid = created.data.id

    no_amount = payments.update_payment(
        db, actor_user_id=world.ops, org_slug=world.org_slug, payment_id=pid, amount=None
    )
    assert (no_amount.kind, no_amount.error) == (ErrorKind.VALIDATION, "Amount must be greater than 0")

    for blank in (None, ""):
        r = payments.update_payment(
            db, actor_user_id=world.ops, org_slug=world.org_slug, payment_id=pid, paid_at=blank
        )
        assert (r.kind, r.error) == (ErrorKind.VALIDATION, "Invalid paid_at timestamp")

    db.expire_all()
    kept = db.get(Payment, pid)
    assert kept.paid_at.replace(tzinfo=None) == datetime(2024, 1, 20, 9, 30)
    assert list_audit_logs(db, org_id=world.org_id, action_type="PAYMENT_UPDATED") == []
