# backend/tests/test_records_validation.py
from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import select

from app.models import RentPeriod
from app.services import records
from app.services.results import ErrorKind


def _w(world):
    return {"actor_user_id": world.manager, "org_slug": world.org_slug}


def test_required_fields(db, world):
    cases = [
        (records.create_building(db, **_w(world), name="   "), "Building name is required"),
        (records.create_unit(db, **_w(world), building_id=world.lease.building_id, unit_number=""), "Unit number is required"),
        (records.create_unit(db, **_w(world), building_id=None, unit_number="2B"), "Building is required"),
        (records.create_tenant(db, **_w(world), full_name=None), "Full name is required"),
        (
            records.create_occupancy(
                db, **_w(world), unit_id=world.lease.unit_id, tenant_id=world.lease.tenant_id, active_from=None
            ),
            "Active from date is required",
        ),
    ]
    for res, msg in cases:
        assert not res.ok
        assert res.kind == ErrorKind.VALIDATION
        assert res.error == msg


def test_occupancy_end_before_start_rejected(db, world):
    res = records.create_occupancy(
        db,
        **_w(world),
        unit_id=world.lease.unit_id,
        tenant_id=world.lease.tenant_id,
        active_from="2024-03-01",
        active_to="2024-02-28",
    )
    assert not res.ok
    assert res.error == "Active to date must be after or equal to active from date"


def test_tenant_email_normalized(db, world):
    res = records.create_tenant(db, **_w(world), full_name="  Ada Obi ", email=" Ada@Example.COM ")
    assert res.ok
    assert (res.data.full_name, res.data.email, res.data.phone) == ("Ada Obi", "ada@example.com", None)


@pytest.mark.parametrize("due_day", [0, 32, "x", None])
def test_due_day_range(db, world, due_day):
    res = records.create_rent_config(
        db, **_w(world), occupancy_id=world.lease.occupancy_id, amount="500", cycle="MONTHLY", due_day=due_day
    )
    assert not res.ok
    assert res.error == "Due day must be between 1 and 31"


def test_rent_config_amount_and_cycle(db, world):
    bad_amount = records.create_rent_config(
        db, **_w(world), occupancy_id=world.lease.occupancy_id, amount="0", due_day=5
    )
    assert bad_amount.error == "Amount must be greater than 0"

    bad_cycle = records.create_rent_config(
        db, **_w(world), occupancy_id=world.lease.occupancy_id, amount="500", cycle="FORTNIGHTLY", due_day=5
    )
    assert not bad_cycle.ok and bad_cycle.kind == ErrorKind.VALIDATION
    assert bad_cycle.error.startswith("Cycle must be one of:")

    ok = records.create_rent_config(
        db, **_w(world), occupancy_id=world.lease.occupancy_id, amount="500", cycle="quarterly", due_day="5"
    )
    assert ok.ok
    assert (ok.data.cycle, ok.data.due_day) == ("QUARTERLY", 5)


def test_references_into_another_org_read_as_not_found(db, world):
    other = world.other_lease

    unit = records.create_unit(db, **_w(world), building_id=other.building_id, unit_number="9Z")
    assert (unit.kind, unit.error) == (ErrorKind.NOT_FOUND, "Building not found or does not belong to this organization")

    occ = records.create_occupancy(
        db, **_w(world), unit_id=other.unit_id, tenant_id=world.lease.tenant_id, active_from=date(2024, 1, 1)
    )
    assert occ.error == "Unit not found or does not belong to this organization"

    occ2 = records.create_occupancy(
        db, **_w(world), unit_id=world.lease.unit_id, tenant_id=other.tenant_id, active_from=date(2024, 1, 1)
    )
    assert occ2.error == "Tenant not found or does not belong to this organization"

    cfg = records.create_rent_config(db, **_w(world), occupancy_id=other.occupancy_id, amount="10", due_day=1)
    assert cfg.error == "Occupancy not found or does not belong to this organization"

    upd = records.update_tenant(db, **_w(world), tenant_id=other.tenant_id, full_name="Hijack")
    assert upd.kind == ErrorKind.NOT_FOUND


def test_update_is_full_form(db, world):
    res = records.update_building(
        db, **_w(world), building_id=world.lease.building_id, name="Renamed", address=None
    )
    assert res.ok
    assert (res.data.name, res.data.address) == ("Renamed", None)

    listed = records.list_buildings(db, **_w(world))
    assert [b.name for b in listed.data] == ["Renamed"]


@pytest.mark.parametrize(
    "call,what",
    [
        (lambda db, w, who: records.delete_building(db, actor_user_id=who, org_slug=w.org_slug, building_id=w.lease.building_id), "buildings"),
        (lambda db, w, who: records.delete_unit(db, actor_user_id=who, org_slug=w.org_slug, unit_id=w.lease.unit_id), "units"),
        (lambda db, w, who: records.delete_tenant(db, actor_user_id=who, org_slug=w.org_slug, tenant_id=w.lease.tenant_id), "tenants"),
        (lambda db, w, who: records.delete_occupancy(db, actor_user_id=who, org_slug=w.org_slug, occupancy_id=w.lease.occupancy_id), "occupancies"),
        (lambda db, w, who: records.delete_rent_config(db, actor_user_id=who, org_slug=w.org_slug, rent_config_id=w.lease.rent_config_id), "rent configs"),
    ],
)
def test_deletes_are_owner_only(db, world, call, what):
    res = call(db, world, world.manager)
    assert not res.ok and res.kind == ErrorKind.DENIED
    assert res.error == f"Only organization owners can delete {what}"

    assert call(db, world, world.owner).ok


def test_deleting_a_building_cascades_to_its_periods(db, world, make_period):
    period = make_period(due_date=date(2024, 2, 1))

    res = records.delete_building(
        db, actor_user_id=world.owner, org_slug=world.org_slug, building_id=world.lease.building_id
    )
    assert res.ok
    assert db.scalar(select(RentPeriod.id).where(RentPeriod.id == period.id)) is None
