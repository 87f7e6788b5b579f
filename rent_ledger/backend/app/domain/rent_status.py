# backend/app/domain/rent_status.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

# -----------------------------------------------------------------------------
# Rent period status engine
# -----------------------------------------------------------------------------
# Single source of truth for "is this period late".
#
#   PAID             -> days_overdue = 0 (sticky; only an explicit status change undoes it)
#   DUE | OVERDUE    -> days_overdue = max(0, today - due_date)
#   DUE and late     -> promoted to OVERDUE
#
# Pure functions only. Every write that touches status or due_date calls
# apply_status() before flush, inside the same transaction.
# -----------------------------------------------------------------------------

DUE = "DUE"
PAID = "PAID"
OVERDUE = "OVERDUE"

PERIOD_STATUSES = (DUE, PAID, OVERDUE)


@dataclass(frozen=True)
class StatusResult:
    status: str
    days_overdue: int


def _as_date(v: Any) -> date:
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    return date.fromisoformat(str(v))


def normalize_status(raw: Any) -> str:
    s = str(raw or "").strip().upper()
    if s not in PERIOD_STATUSES:
        raise ValueError(f"Invalid status. Must be one of: {', '.join(PERIOD_STATUSES)}")
    return s


def recompute(status: str, due_date: Any, today: Any) -> StatusResult:
    s = normalize_status(status)
    if s == PAID:
        return StatusResult(status=PAID, days_overdue=0)

    days = max(0, (_as_date(today) - _as_date(due_date)).days)
    if days > 0 and s == DUE:
        s = OVERDUE
    return StatusResult(status=s, days_overdue=days)


def apply_status(period: Any, today: Any) -> StatusResult:
    """
    Recompute and write (status, days_overdue) onto a RentPeriod-like object.
    Returns the result for callers that want to log or audit it.
    """
    r = recompute(period.status, period.due_date, today)
    period.status = r.status
    period.days_overdue = r.days_overdue
    return r


def status_after_payment_removed(due_date: Any, today: Any) -> str:
    """
    Status a period falls back to once its last payment is gone:
    OVERDUE if today is past the due date, else DUE.

    Expressed through recompute() so the two rules can't drift apart.
    """
    return recompute(DUE, due_date, today).status
