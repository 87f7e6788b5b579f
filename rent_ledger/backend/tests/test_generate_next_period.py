# backend/tests/test_generate_next_period.py
from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import func, select

from app.models import Occupancy, RentPeriod
from app.services import rent_periods
from app.services.results import ErrorKind


def _gen(db, world, actor=None, today=date(2024, 1, 20), rent_config_id=None):
    return rent_periods.generate_next_rent_period(
        db,
        actor_user_id=actor or world.manager,
        org_slug=world.org_slug,
        rent_config_id=rent_config_id or world.lease.rent_config_id,
        today=today,
    )


def test_first_and_second_monthly_periods(db, world):
    r1 = _gen(db, world)
    assert r1.ok, r1.error
    p1 = r1.data
    assert (p1.period_start, p1.period_end, p1.due_date) == (date(2024, 1, 15), date(2024, 1, 31), date(2024, 1, 31))
    assert (p1.status, p1.days_overdue) == ("DUE", 0)

    r2 = _gen(db, world)
    assert r2.ok, r2.error
    p2 = r2.data
    assert (p2.period_start, p2.period_end, p2.due_date) == (date(2024, 2, 1), date(2024, 2, 29), date(2024, 2, 29))


def test_period_generated_after_its_due_date_is_overdue(db, world):
    r = _gen(db, world, today=date(2024, 2, 10))
    assert r.ok
    assert (r.data.status, r.data.days_overdue) == ("OVERDUE", 10)


def test_generation_stops_when_occupancy_has_ended(db, world):
    occ = db.get(Occupancy, world.lease.occupancy_id)
    occ.active_to = date(2024, 1, 31)
    occ.updated_at = datetime.utcnow()
    db.commit()

    assert _gen(db, world).ok
    r = _gen(db, world)
    assert not r.ok
    assert r.kind == ErrorKind.VALIDATION
    assert r.error == "Cannot generate period: occupancy has ended"

    n = db.scalar(select(func.count(RentPeriod.id)).where(RentPeriod.rent_config_id == world.lease.rent_config_id))
    assert n == 1


def test_other_orgs_rent_config_reads_as_not_found(db, world):
    r = _gen(db, world, rent_config_id=world.other_lease.rent_config_id)
    assert not r.ok
    assert r.kind == ErrorKind.NOT_FOUND
    assert r.error == "Rent config not found or does not belong to this organization"


def test_director_cannot_generate(db, world):
    r = _gen(db, world, actor=world.director)
    assert not r.ok and r.kind == ErrorKind.DENIED


def test_duplicate_start_is_a_conflict(db, world, monkeypatch):
    assert _gen(db, world).ok

    # a racing generator that didn't see the first period computes the same start
    monkeypatch.setattr(rent_periods, "_latest_period", lambda db, rent_config_id: None)
    r = _gen(db, world)
    assert not r.ok
    assert r.kind == ErrorKind.CONFLICT

    n = db.scalar(select(func.count(RentPeriod.id)).where(RentPeriod.rent_config_id == world.lease.rent_config_id))
    assert n == 1


def test_list_filters_and_order(db, world):
    _gen(db, world, today=date(2024, 3, 10))
    _gen(db, world, today=date(2024, 3, 10))

    all_rows = rent_periods.list_rent_periods(db, actor_user_id=world.director, org_slug=world.org_slug)
    assert [p.due_date for p in all_rows.data] == [date(2024, 2, 29), date(2024, 1, 31)]

    overdue = rent_periods.list_rent_periods(
        db, actor_user_id=world.director, org_slug=world.org_slug, overdue_only=True
    )
    assert len(overdue.data) == 2

    bad = rent_periods.list_rent_periods(db, actor_user_id=world.director, org_slug=world.org_slug, status="LATE")
    assert not bad.ok and bad.error == "Invalid status. Must be one of: DUE, PAID, OVERDUE"
