# backend/app/services/payments.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from ..domain.audit import (
    PAYMENT_CREATED,
    PAYMENT_DELETED,
    PAYMENT_UPDATED,
    record_audit,
    row_snapshot,
)
from ..domain.rent_status import PAID, apply_status, status_after_payment_removed
from ..models import Payment, RentPeriod
from .org_guard import OWNER_ONLY, READ_ROLES, WRITE_ROLES, owner_only_message, require_org
from .ownership import must_get_payment, must_get_rent_period
from .results import CONCURRENT_MODIFICATION, ErrorKind, OpError, OpResult, run_op
from .saga import Saga, SagaFailed, SagaStep
from .validation import UNSET, optional_text, parse_timestamp, positive_amount, require_id

log = logging.getLogger("rentledger.payments")

PERIOD_REQUIRED = "Rent period is required"
PERIOD_NOT_IN_ORG = "Rent period not found or does not belong to this organization"
PAYMENT_NOT_FOUND = "Payment not found or access denied"
MARK_PAID_FAILED = "Failed to mark rent period as paid"
REVERT_FAILED_WARNING = (
    "Payment deleted but rent period status could not be reverted; "
    "the period needs manual reconciliation"
)

PAYMENT_FIELDS = ("id", "rent_period_id", "amount", "paid_at", "reference")


@dataclass(frozen=True)
class PaymentDeletion:
    payment_id: int
    rent_period_id: int
    rent_period_status: str
    status_reverted: bool


def _today(today: Optional[date]) -> date:
    return today or date.today()


# -----------------------------------------------------------------------------
# Saga steps (module-level so each is individually replaceable)
# -----------------------------------------------------------------------------
def _insert_payment(
    db: Session,
    *,
    org_id: int,
    rent_period_id: int,
    amount: Any,
    paid_at: datetime,
    reference: Optional[str],
) -> Payment:
    now = datetime.utcnow()
    p = Payment(
        org_id=int(org_id),
        rent_period_id=int(rent_period_id),
        amount=amount,
        paid_at=paid_at,
        reference=reference,
        created_at=now,
        updated_at=now,
    )
    db.add(p)
    db.flush()
    return p


def _remove_payment(db: Session, payment: Payment) -> None:
    db.delete(payment)
    db.flush()


def _claim_period(db: Session, period: RentPeriod) -> None:
    # bumps version_id before any decision is made from the period's payments;
    # a writer that committed first turns this into StaleDataError
    period.updated_at = datetime.utcnow()
    flag_modified(period, "updated_at")
    db.flush()


def _mark_period_paid(db: Session, period: RentPeriod, *, today: date) -> str:
    # savepoint: a failure here rolls back only this step, leaving the
    # inserted payment in place for explicit compensation
    with db.begin_nested():
        period.status = PAID
        apply_status(period, today)
        period.updated_at = datetime.utcnow()
        db.flush()
    return period.status


def _revert_period_status(db: Session, period: RentPeriod, *, today: date) -> str:
    with db.begin_nested():
        period.status = status_after_payment_removed(period.due_date, today)
        apply_status(period, today)
        period.updated_at = datetime.utcnow()
        db.flush()
    return period.status


def payment_saga(
    db: Session,
    *,
    period: RentPeriod,
    org_id: int,
    amount: Any,
    paid_at: datetime,
    reference: Optional[str],
    today: date,
) -> Saga:
    """insert payment (inverse: delete it) -> mark period PAID (no inverse)."""
    return Saga(
        name="record_payment",
        steps=[
            SagaStep(
                name="payment",
                forward=lambda st: _insert_payment(
                    db,
                    org_id=org_id,
                    rent_period_id=period.id,
                    amount=amount,
                    paid_at=paid_at,
                    reference=reference,
                ),
                compensate=lambda st: _remove_payment(db, st["payment"]),
            ),
            SagaStep(
                name="period_status",
                forward=lambda st: _mark_period_paid(db, period, today=today),
            ),
        ],
    )


# -----------------------------------------------------------------------------
# Operations
# -----------------------------------------------------------------------------
def list_payments(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    rent_period_id: Optional[Any] = None,
) -> OpResult[list[Payment]]:
    def body() -> list[Payment]:
        ctx = require_org(db, actor_user_id=actor_user_id, org_slug=org_slug, required_roles=READ_ROLES)
        q = select(Payment).where(Payment.org_id == ctx.org_id)
        if rent_period_id is not None:
            period = must_get_rent_period(
                db, org_id=ctx.org_id, rent_period_id=rent_period_id, message=PERIOD_NOT_IN_ORG
            )
            q = q.where(Payment.rent_period_id == period.id)
        return list(db.scalars(q.order_by(desc(Payment.paid_at), desc(Payment.id))).all())

    return run_op(db, body, failure_message="Failed to load payments", log=log)


def create_payment(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    rent_period_id: Any,
    amount: Any,
    paid_at: Any = None,
    reference: Any = None,
    today: Optional[date] = None,
) -> OpResult[Payment]:
    """
    Record a payment and mark its period PAID, as one unit.

    Any single payment settles the period regardless of amount. If the status
    step fails, the inserted payment is deleted again before returning.
    """
    day = _today(today)

    def body() -> Payment:
        ctx = require_org(db, actor_user_id=actor_user_id, org_slug=org_slug, required_roles=WRITE_ROLES)

        pid = require_id(rent_period_id, PERIOD_REQUIRED)
        amt = positive_amount(amount)
        when = parse_timestamp(paid_at) if paid_at not in (None, "") else datetime.utcnow()
        ref = optional_text(reference)

        period = must_get_rent_period(
            db, org_id=ctx.org_id, rent_period_id=pid, message=PERIOD_NOT_IN_ORG, for_update=True
        )
        before = row_snapshot(period, ("status", "days_overdue"))

        saga = payment_saga(
            db, period=period, org_id=ctx.org_id, amount=amt, paid_at=when, reference=ref, today=day
        )
        try:
            state = saga.run()
        except SagaFailed as e:
            if e.fully_compensated:
                db.commit()
            else:
                db.rollback()
            log.error(
                "payment not recorded: %s",
                e,
                extra={"org_id": ctx.org_id, "user_id": ctx.actor_user_id, "rent_period_id": pid},
            )
            if isinstance(e.cause, StaleDataError):
                raise OpError(ErrorKind.CONFLICT, CONCURRENT_MODIFICATION)
            raise OpError(ErrorKind.FAILED, MARK_PAID_FAILED)

        db.commit()
        payment: Payment = state["payment"]

        log.info(
            "payment recorded",
            extra={
                "org_id": ctx.org_id,
                "user_id": ctx.actor_user_id,
                "rent_period_id": pid,
                "payment_id": payment.id,
            },
        )
        record_audit(
            db,
            org_id=ctx.org_id,
            actor_user_id=ctx.actor_user_id,
            action_type=PAYMENT_CREATED,
            entity_type="payment",
            entity_id=payment.id,
            description=f"Payment of {amt} recorded for rent period {pid}",
            before={"rent_period": before},
            after={
                "payment": row_snapshot(payment, PAYMENT_FIELDS),
                "rent_period": {"status": period.status, "days_overdue": period.days_overdue},
            },
        )
        return payment

    return run_op(db, body, failure_message="Failed to create payment", log=log)


def update_payment(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    payment_id: Any,
    amount: Any = UNSET,
    paid_at: Any = UNSET,
    reference: Any = UNSET,
) -> OpResult[Payment]:
    """Edits amount / paid_at / reference only. Never touches the period."""

    def body() -> Payment:
        ctx = require_org(db, actor_user_id=actor_user_id, org_slug=org_slug, required_roles=WRITE_ROLES)
        payment = must_get_payment(db, org_id=ctx.org_id, payment_id=payment_id, message=PAYMENT_NOT_FOUND)

        before = row_snapshot(payment, PAYMENT_FIELDS)

        if amount is not UNSET:
            payment.amount = positive_amount(amount)
        if paid_at is not UNSET:
            payment.paid_at = parse_timestamp(paid_at)
        if reference is not UNSET:
            payment.reference = optional_text(reference)

        after = row_snapshot(payment, PAYMENT_FIELDS)
        if after == before:
            return payment

        payment.updated_at = datetime.utcnow()
        db.commit()

        changed = sorted(k for k in after if after[k] != before[k])
        record_audit(
            db,
            org_id=ctx.org_id,
            actor_user_id=ctx.actor_user_id,
            action_type=PAYMENT_UPDATED,
            entity_type="payment",
            entity_id=payment.id,
            description=f"Payment {payment.id} updated ({', '.join(changed)})",
            before={k: before[k] for k in changed},
            after={k: after[k] for k in changed},
        )
        return payment

    return run_op(db, body, failure_message="Failed to update payment", log=log)


def delete_payment(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    payment_id: Any,
    today: Optional[date] = None,
) -> OpResult[PaymentDeletion]:
    """
    Owner-only. Deletes the payment; when it was the period's last payment the
    period falls back to DUE or OVERDUE (never PAID). If that revert fails the
    delete still stands and the result is a degraded success.
    """
    day = _today(today)

    def body() -> OpResult[PaymentDeletion]:
        ctx = require_org(
            db,
            actor_user_id=actor_user_id,
            org_slug=org_slug,
            required_roles=OWNER_ONLY,
            denied_message=owner_only_message("delete payments"),
        )
        payment = must_get_payment(db, org_id=ctx.org_id, payment_id=payment_id, message=PAYMENT_NOT_FOUND)
        period = must_get_rent_period(
            db, org_id=ctx.org_id, rent_period_id=payment.rent_period_id, for_update=True
        )
        _claim_period(db, period)

        deleted = row_snapshot(payment, PAYMENT_FIELDS)
        status_before = period.status
        pid, period_id = int(payment.id), int(period.id)

        _remove_payment(db, payment)
        remaining = db.scalar(
            select(func.count(Payment.id)).where(
                Payment.org_id == ctx.org_id,
                Payment.rent_period_id == period.id,
            )
        )

        reverted = False
        revert_failed = False
        if not remaining:
            try:
                _revert_period_status(db, period, today=day)
                reverted = True
            except StaleDataError:
                raise
            except Exception:
                revert_failed = True
                log.error(
                    "payment %s deleted but rent period %s status revert failed; manual reconciliation needed",
                    pid,
                    period_id,
                    exc_info=True,
                    extra={
                        "org_id": ctx.org_id,
                        "user_id": ctx.actor_user_id,
                        "rent_period_id": period_id,
                        "payment_id": pid,
                    },
                )

        db.commit()
        status_after = period.status

        record_audit(
            db,
            org_id=ctx.org_id,
            actor_user_id=ctx.actor_user_id,
            action_type=PAYMENT_DELETED,
            entity_type="payment",
            entity_id=pid,
            description=f"Payment {pid} deleted from rent period {period_id}",
            before={"payment": deleted, "rent_period": {"status": status_before}},
            after={"rent_period": {"status": status_after}},
        )

        out = PaymentDeletion(
            payment_id=pid,
            rent_period_id=period_id,
            rent_period_status=status_after,
            status_reverted=reverted,
        )
        if revert_failed:
            return OpResult.degraded_success(out, warning=REVERT_FAILED_WARNING)
        return OpResult.success(out)

    return run_op(db, body, failure_message="Failed to delete payment", log=log)
