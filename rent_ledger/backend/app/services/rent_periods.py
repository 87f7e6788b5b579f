# backend/app/services/rent_periods.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import delete, desc, select
from sqlalchemy.orm import Session

from ..domain.audit import RENT_PERIOD_STATUS_CHANGED, record_audit
from ..domain.rent_schedule import compute_next_period
from ..domain.rent_status import DUE, OVERDUE, PAID, apply_status, normalize_status
from ..models import Occupancy, Payment, RentConfig, RentPeriod, Unit
from .org_guard import OWNER_ONLY, READ_ROLES, WRITE_ROLES, owner_only_message, require_org
from .ownership import must_get_rent_config, must_get_rent_period
from .results import ErrorKind, OpError, OpResult, run_op
from .validation import UNSET, invalid, optional_date, parse_date, require_id

log = logging.getLogger("rentledger.rent_periods")

CONFIG_REQUIRED = "Rent config is required"
CONFIG_NOT_IN_ORG = "Rent config not found or does not belong to this organization"
OCCUPANCY_MISSING = "Occupancy not found for this rent config"
DATES_REQUIRED = "All dates are required"
BAD_RANGE = "Period end date must be after or equal to period start date"
PERIOD_EXISTS = "A rent period already exists for this rent config and start date"


def _today(today: Optional[date]) -> date:
    return today or date.today()


def _status_of(raw: Any) -> str:
    try:
        return normalize_status(raw)
    except ValueError as e:
        raise invalid(str(e))


def _latest_period(db: Session, *, rent_config_id: int) -> Optional[RentPeriod]:
    return db.scalar(
        select(RentPeriod)
        .where(RentPeriod.rent_config_id == int(rent_config_id))
        .order_by(desc(RentPeriod.period_end), desc(RentPeriod.id))
        .limit(1)
    )


def list_rent_periods(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    rent_config_id: Optional[Any] = None,
    status: Optional[str] = None,
    overdue_only: bool = False,
    unpaid_only: bool = False,
    due_on: Any = None,
    building_id: Optional[Any] = None,
) -> OpResult[list[RentPeriod]]:
    """
    Org-scoped listing, newest due date first. due_on + status=DUE is the
    "due today" queue; unpaid_only + building_id is the per-building follow-up list.
    """

    def body() -> list[RentPeriod]:
        ctx = require_org(db, actor_user_id=actor_user_id, org_slug=org_slug, required_roles=READ_ROLES)
        q = select(RentPeriod).where(RentPeriod.org_id == ctx.org_id)
        if rent_config_id is not None:
            q = q.where(RentPeriod.rent_config_id == require_id(rent_config_id, CONFIG_REQUIRED))
        if status:
            q = q.where(RentPeriod.status == _status_of(status))
        if overdue_only:
            q = q.where(RentPeriod.days_overdue > 0)
        if unpaid_only:
            q = q.where(RentPeriod.status.in_((DUE, OVERDUE)))
        if due_on not in (None, ""):
            q = q.where(RentPeriod.due_date == parse_date(due_on, "Invalid due date"))
        if building_id is not None:
            units = select(Unit.id).where(
                Unit.org_id == ctx.org_id, Unit.building_id == require_id(building_id, "Building is required")
            )
            configs = (
                select(RentConfig.id)
                .join(Occupancy, Occupancy.id == RentConfig.occupancy_id)
                .where(RentConfig.org_id == ctx.org_id, Occupancy.unit_id.in_(units))
            )
            q = q.where(RentPeriod.rent_config_id.in_(configs))
        return list(db.scalars(q.order_by(desc(RentPeriod.due_date), desc(RentPeriod.id))).all())

    return run_op(db, body, failure_message="Failed to fetch rent periods", log=log)


def generate_next_rent_period(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    rent_config_id: Any,
    today: Optional[date] = None,
) -> OpResult[RentPeriod]:
    """
    Create the period that follows the latest existing one for this rent config
    (or the occupancy's first period). New periods start DUE and are run through
    the status engine, so a period generated after its due date is OVERDUE.
    """
    day = _today(today)

    def body() -> RentPeriod:
        ctx = require_org(db, actor_user_id=actor_user_id, org_slug=org_slug, required_roles=WRITE_ROLES)
        cid = require_id(rent_config_id, CONFIG_REQUIRED)

        # row lock serializes generators for the same config; the unique
        # (rent_config_id, period_start) catches anything that slips past
        cfg = must_get_rent_config(
            db, org_id=ctx.org_id, rent_config_id=cid, message=CONFIG_NOT_IN_ORG, for_update=True
        )

        occ = db.scalar(
            select(Occupancy).where(Occupancy.id == cfg.occupancy_id, Occupancy.org_id == ctx.org_id)
        )
        if occ is None:
            raise OpError(ErrorKind.NOT_FOUND, OCCUPANCY_MISSING)

        prior = _latest_period(db, rent_config_id=cfg.id)
        try:
            dates = compute_next_period(
                cycle=cfg.cycle,
                due_day=cfg.due_day,
                active_from=occ.active_from,
                active_to=occ.active_to,
                prior_period_end=prior.period_end if prior is not None else None,
            )
        except ValueError as e:
            # includes OccupancyEnded
            raise invalid(str(e))

        now = datetime.utcnow()
        period = RentPeriod(
            org_id=ctx.org_id,
            rent_config_id=cfg.id,
            period_start=dates.period_start,
            period_end=dates.period_end,
            due_date=dates.due_date,
            status=DUE,
            days_overdue=0,
            created_at=now,
            updated_at=now,
        )
        apply_status(period, day)
        db.add(period)
        db.commit()

        log.info(
            "rent period generated %s..%s due %s status=%s",
            period.period_start,
            period.period_end,
            period.due_date,
            period.status,
            extra={
                "org_id": ctx.org_id,
                "user_id": ctx.actor_user_id,
                "rent_config_id": cfg.id,
                "rent_period_id": period.id,
            },
        )
        return period

    return run_op(
        db,
        body,
        failure_message="Failed to generate rent period",
        conflict_message=PERIOD_EXISTS,
        log=log,
    )


def create_rent_period(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    rent_config_id: Any,
    period_start: Any,
    period_end: Any,
    due_date: Any,
    status: Any = DUE,
    today: Optional[date] = None,
) -> OpResult[RentPeriod]:
    day = _today(today)

    def body() -> RentPeriod:
        ctx = require_org(db, actor_user_id=actor_user_id, org_slug=org_slug, required_roles=WRITE_ROLES)
        cid = require_id(rent_config_id, CONFIG_REQUIRED)

        start = parse_date(period_start, DATES_REQUIRED)
        end = parse_date(period_end, DATES_REQUIRED)
        due = parse_date(due_date, DATES_REQUIRED)
        if end < start:
            raise invalid(BAD_RANGE)
        st = _status_of(status or DUE)

        cfg = must_get_rent_config(db, org_id=ctx.org_id, rent_config_id=cid, message=CONFIG_NOT_IN_ORG)

        now = datetime.utcnow()
        period = RentPeriod(
            org_id=ctx.org_id,
            rent_config_id=cfg.id,
            period_start=start,
            period_end=end,
            due_date=due,
            status=st,
            days_overdue=0,
            created_at=now,
            updated_at=now,
        )
        apply_status(period, day)
        db.add(period)
        db.commit()
        return period

    return run_op(
        db,
        body,
        failure_message="Failed to create rent period",
        conflict_message=PERIOD_EXISTS,
        log=log,
    )


def update_rent_period_status(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    rent_period_id: Any,
    status: Any,
    today: Optional[date] = None,
) -> OpResult[RentPeriod]:
    """
    Explicit status change. This is the only path that takes a period out of
    PAID while it still has payments. Asking for DUE on a late period yields
    OVERDUE (the status engine decides).
    """
    day = _today(today)

    def body() -> RentPeriod:
        ctx = require_org(db, actor_user_id=actor_user_id, org_slug=org_slug, required_roles=WRITE_ROLES)
        st = _status_of(status)
        period = must_get_rent_period(db, org_id=ctx.org_id, rent_period_id=rent_period_id, for_update=True)

        before = {"status": period.status, "days_overdue": period.days_overdue}
        period.status = st
        apply_status(period, day)
        if period.status == before["status"] and period.days_overdue == before["days_overdue"]:
            return period

        period.updated_at = datetime.utcnow()
        db.commit()

        if period.status != before["status"]:
            record_audit(
                db,
                org_id=ctx.org_id,
                actor_user_id=ctx.actor_user_id,
                action_type=RENT_PERIOD_STATUS_CHANGED,
                entity_type="rent_period",
                entity_id=period.id,
                description=f"Rent period status changed from {before['status']} to {period.status}",
                before=before,
                after={"status": period.status, "days_overdue": period.days_overdue},
            )
        return period

    return run_op(db, body, failure_message="Failed to update rent period status", log=log)


def update_rent_period_dates(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    rent_period_id: Any,
    period_start: Any = UNSET,
    period_end: Any = UNSET,
    due_date: Any = UNSET,
    today: Optional[date] = None,
) -> OpResult[RentPeriod]:
    day = _today(today)

    def body() -> RentPeriod:
        ctx = require_org(db, actor_user_id=actor_user_id, org_slug=org_slug, required_roles=WRITE_ROLES)
        period = must_get_rent_period(db, org_id=ctx.org_id, rent_period_id=rent_period_id, for_update=True)

        # blank means "leave as is"
        start = optional_date(None if period_start is UNSET else period_start, DATES_REQUIRED) or period.period_start
        end = optional_date(None if period_end is UNSET else period_end, DATES_REQUIRED) or period.period_end
        due = optional_date(None if due_date is UNSET else due_date, DATES_REQUIRED) or period.due_date
        if end < start:
            raise invalid(BAD_RANGE)

        period.period_start = start
        period.period_end = end
        period.due_date = due
        apply_status(period, day)
        period.updated_at = datetime.utcnow()
        db.commit()
        return period

    return run_op(
        db,
        body,
        failure_message="Failed to update rent period dates",
        conflict_message=PERIOD_EXISTS,
        log=log,
    )


def delete_rent_period(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    rent_period_id: Any,
) -> OpResult[int]:
    def body() -> int:
        ctx = require_org(
            db,
            actor_user_id=actor_user_id,
            org_slug=org_slug,
            required_roles=OWNER_ONLY,
            denied_message=owner_only_message("delete rent periods"),
        )
        period = must_get_rent_period(db, org_id=ctx.org_id, rent_period_id=rent_period_id, for_update=True)
        pid = int(period.id)

        db.execute(delete(Payment).where(Payment.org_id == ctx.org_id, Payment.rent_period_id == pid))
        db.delete(period)
        db.commit()

        log.info("rent period deleted", extra={"org_id": ctx.org_id, "user_id": ctx.actor_user_id, "rent_period_id": pid})
        return pid

    return run_op(db, body, failure_message="Failed to delete rent period", log=log)


# -----------------------------------------------------------------------------
# Clock-driven refresh
# -----------------------------------------------------------------------------
def refresh_rent_period_statuses(db: Session, *, org_id: Optional[int] = None, today: Optional[date] = None) -> int:
    """
    Re-run the status engine on every non-PAID period so days_overdue tracks the
    calendar between writes. Returns how many rows changed. System operation:
    no actor, no guard (CLI / scheduler), caller handles errors.
    """
    day = _today(today)

    q = select(RentPeriod).where(RentPeriod.status != PAID)
    if org_id is not None:
        q = q.where(RentPeriod.org_id == int(org_id))

    changed = 0
    for period in db.scalars(q).all():
        before = (period.status, period.days_overdue)
        apply_status(period, day)
        if (period.status, period.days_overdue) != before:
            period.updated_at = datetime.utcnow()
            changed += 1

    db.commit()
    log.info("rent period statuses refreshed: %s changed", changed, extra={"org_id": org_id})
    return changed


def refresh_org_rent_periods(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    today: Optional[date] = None,
) -> OpResult[int]:
    def body() -> int:
        ctx = require_org(db, actor_user_id=actor_user_id, org_slug=org_slug, required_roles=WRITE_ROLES)
        return refresh_rent_period_statuses(db, org_id=ctx.org_id, today=today)

    return run_op(db, body, failure_message="Failed to refresh rent period statuses", log=log)
