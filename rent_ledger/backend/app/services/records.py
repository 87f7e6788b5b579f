# backend/app/services/records.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Type

from sqlalchemy import asc, desc, select
from sqlalchemy.orm import Session

from ..domain.rent_schedule import MAX_DUE_DAY, MIN_DUE_DAY, normalize_cycle
from ..models import Building, Occupancy, RentConfig, Tenant, Unit
from .org_guard import OWNER_ONLY, READ_ROLES, WRITE_ROLES, OrgContext, owner_only_message, require_org
from .ownership import must_get_building, must_get_occupancy, must_get_rent_config, must_get_tenant, must_get_unit
from .results import OpResult, run_op
from .validation import invalid, optional_date, optional_text, parse_date, positive_amount, require_id, require_text

log = logging.getLogger("rentledger.records")

# -----------------------------------------------------------------------------
# Org-scoped property records: buildings, units, tenants, occupancies, rent configs.
#
# Create/update take the full form (update replaces every editable field) and run
# the same validation. Referenced rows must live in the caller's org; a row in
# another org reads as "not found".
# -----------------------------------------------------------------------------


def _writer(db: Session, actor_user_id: Optional[int], org_slug: str) -> OrgContext:
    return require_org(db, actor_user_id=actor_user_id, org_slug=org_slug, required_roles=WRITE_ROLES)


def _reader(db: Session, actor_user_id: Optional[int], org_slug: str) -> OrgContext:
    return require_org(db, actor_user_id=actor_user_id, org_slug=org_slug, required_roles=READ_ROLES)


def _owner(db: Session, actor_user_id: Optional[int], org_slug: str, what: str) -> OrgContext:
    return require_org(
        db,
        actor_user_id=actor_user_id,
        org_slug=org_slug,
        required_roles=OWNER_ONLY,
        denied_message=owner_only_message(f"delete {what}"),
    )


def _insert(db: Session, model: Type[Any], ctx: OrgContext, values: dict[str, Any]) -> Any:
    now = datetime.utcnow()
    row = model(org_id=ctx.org_id, created_at=now, updated_at=now, **values)
    db.add(row)
    db.commit()
    return row


def _apply(db: Session, row: Any, values: dict[str, Any]) -> Any:
    for k, v in values.items():
        setattr(row, k, v)
    row.updated_at = datetime.utcnow()
    db.commit()
    return row


def _remove(db: Session, row: Any, *, ctx: OrgContext, kind: str) -> int:
    rid = int(row.id)
    db.delete(row)
    db.commit()
    log.info("%s deleted", kind, extra={"org_id": ctx.org_id, "user_id": ctx.actor_user_id})
    return rid


# -----------------------------------------------------------------------------
# Buildings
# -----------------------------------------------------------------------------
def _building_values(name: Any, address: Any) -> dict[str, Any]:
    return {"name": require_text(name, "Building name is required"), "address": optional_text(address)}


def list_buildings(db: Session, *, actor_user_id: Optional[int], org_slug: str) -> OpResult[list[Building]]:
    def body() -> list[Building]:
        ctx = _reader(db, actor_user_id, org_slug)
        q = select(Building).where(Building.org_id == ctx.org_id).order_by(asc(Building.name), asc(Building.id))
        return list(db.scalars(q).all())

    return run_op(db, body, failure_message="Failed to fetch buildings", log=log)


def create_building(
    db: Session, *, actor_user_id: Optional[int], org_slug: str, name: Any, address: Any = None
) -> OpResult[Building]:
    def body() -> Building:
        ctx = _writer(db, actor_user_id, org_slug)
        return _insert(db, Building, ctx, _building_values(name, address))

    return run_op(db, body, failure_message="Failed to create building", log=log)


def update_building(
    db: Session, *, actor_user_id: Optional[int], org_slug: str, building_id: Any, name: Any, address: Any = None
) -> OpResult[Building]:
    def body() -> Building:
        ctx = _writer(db, actor_user_id, org_slug)
        values = _building_values(name, address)
        row = must_get_building(db, org_id=ctx.org_id, building_id=building_id)
        return _apply(db, row, values)

    return run_op(db, body, failure_message="Failed to update building", log=log)


def delete_building(db: Session, *, actor_user_id: Optional[int], org_slug: str, building_id: Any) -> OpResult[int]:
    def body() -> int:
        ctx = _owner(db, actor_user_id, org_slug, "buildings")
        row = must_get_building(db, org_id=ctx.org_id, building_id=building_id)
        return _remove(db, row, ctx=ctx, kind="building")

    return run_op(db, body, failure_message="Failed to delete building", log=log)


# -----------------------------------------------------------------------------
# Units
# -----------------------------------------------------------------------------
def _unit_values(db: Session, ctx: OrgContext, building_id: Any, unit_number: Any) -> dict[str, Any]:
    number = require_text(unit_number, "Unit number is required")
    bid = require_id(building_id, "Building is required")
    b = must_get_building(
        db, org_id=ctx.org_id, building_id=bid, message="Building not found or does not belong to this organization"
    )
    return {"building_id": b.id, "unit_number": number}


def list_units(
    db: Session, *, actor_user_id: Optional[int], org_slug: str, building_id: Optional[Any] = None
) -> OpResult[list[Unit]]:
    def body() -> list[Unit]:
        ctx = _reader(db, actor_user_id, org_slug)
        q = select(Unit).where(Unit.org_id == ctx.org_id)
        if building_id is not None:
            q = q.where(Unit.building_id == require_id(building_id, "Building is required"))
        return list(db.scalars(q.order_by(asc(Unit.unit_number), asc(Unit.id))).all())

    return run_op(db, body, failure_message="Failed to fetch units", log=log)


def create_unit(
    db: Session, *, actor_user_id: Optional[int], org_slug: str, building_id: Any, unit_number: Any
) -> OpResult[Unit]:
    def body() -> Unit:
        ctx = _writer(db, actor_user_id, org_slug)
        return _insert(db, Unit, ctx, _unit_values(db, ctx, building_id, unit_number))

    return run_op(db, body, failure_message="Failed to create unit", log=log)


def update_unit(
    db: Session, *, actor_user_id: Optional[int], org_slug: str, unit_id: Any, building_id: Any, unit_number: Any
) -> OpResult[Unit]:
    def body() -> Unit:
        ctx = _writer(db, actor_user_id, org_slug)
        row = must_get_unit(db, org_id=ctx.org_id, unit_id=unit_id)
        return _apply(db, row, _unit_values(db, ctx, building_id, unit_number))

    return run_op(db, body, failure_message="Failed to update unit", log=log)


def delete_unit(db: Session, *, actor_user_id: Optional[int], org_slug: str, unit_id: Any) -> OpResult[int]:
    def body() -> int:
        ctx = _owner(db, actor_user_id, org_slug, "units")
        row = must_get_unit(db, org_id=ctx.org_id, unit_id=unit_id)
        return _remove(db, row, ctx=ctx, kind="unit")

    return run_op(db, body, failure_message="Failed to delete unit", log=log)


# -----------------------------------------------------------------------------
# Tenants
# -----------------------------------------------------------------------------
def _tenant_values(full_name: Any, email: Any, phone: Any) -> dict[str, Any]:
    em = optional_text(email)
    return {
        "full_name": require_text(full_name, "Full name is required"),
        "email": em.lower() if em else None,
        "phone": optional_text(phone),
    }


def list_tenants(db: Session, *, actor_user_id: Optional[int], org_slug: str) -> OpResult[list[Tenant]]:
    def body() -> list[Tenant]:
        ctx = _reader(db, actor_user_id, org_slug)
        q = select(Tenant).where(Tenant.org_id == ctx.org_id).order_by(asc(Tenant.full_name), asc(Tenant.id))
        return list(db.scalars(q).all())

    return run_op(db, body, failure_message="Failed to fetch tenants", log=log)


def create_tenant(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    full_name: Any,
    email: Any = None,
    phone: Any = None,
) -> OpResult[Tenant]:
    def body() -> Tenant:
        ctx = _writer(db, actor_user_id, org_slug)
        return _insert(db, Tenant, ctx, _tenant_values(full_name, email, phone))

    return run_op(db, body, failure_message="Failed to create tenant", log=log)


def update_tenant(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    tenant_id: Any,
    full_name: Any,
    email: Any = None,
    phone: Any = None,
) -> OpResult[Tenant]:
    def body() -> Tenant:
        ctx = _writer(db, actor_user_id, org_slug)
        values = _tenant_values(full_name, email, phone)
        row = must_get_tenant(db, org_id=ctx.org_id, tenant_id=tenant_id)
        return _apply(db, row, values)

    return run_op(db, body, failure_message="Failed to update tenant", log=log)


def delete_tenant(db: Session, *, actor_user_id: Optional[int], org_slug: str, tenant_id: Any) -> OpResult[int]:
    def body() -> int:
        ctx = _owner(db, actor_user_id, org_slug, "tenants")
        row = must_get_tenant(db, org_id=ctx.org_id, tenant_id=tenant_id)
        return _remove(db, row, ctx=ctx, kind="tenant")

    return run_op(db, body, failure_message="Failed to delete tenant", log=log)


# -----------------------------------------------------------------------------
# Occupancies
# -----------------------------------------------------------------------------
def _occupancy_values(
    db: Session, ctx: OrgContext, unit_id: Any, tenant_id: Any, active_from: Any, active_to: Any
) -> dict[str, Any]:
    uid = require_id(unit_id, "Unit is required")
    tid = require_id(tenant_id, "Tenant is required")
    start = parse_date(active_from, "Active from date is required")
    end = optional_date(active_to, "Active to date must be after or equal to active from date")
    if end is not None and end < start:
        raise invalid("Active to date must be after or equal to active from date")

    unit = must_get_unit(
        db, org_id=ctx.org_id, unit_id=uid, message="Unit not found or does not belong to this organization"
    )
    tenant = must_get_tenant(
        db, org_id=ctx.org_id, tenant_id=tid, message="Tenant not found or does not belong to this organization"
    )
    return {"unit_id": unit.id, "tenant_id": tenant.id, "active_from": start, "active_to": end}


def list_occupancies(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    unit_id: Optional[Any] = None,
    tenant_id: Optional[Any] = None,
) -> OpResult[list[Occupancy]]:
    def body() -> list[Occupancy]:
        ctx = _reader(db, actor_user_id, org_slug)
        q = select(Occupancy).where(Occupancy.org_id == ctx.org_id)
        if unit_id is not None:
            q = q.where(Occupancy.unit_id == require_id(unit_id, "Unit is required"))
        if tenant_id is not None:
            q = q.where(Occupancy.tenant_id == require_id(tenant_id, "Tenant is required"))
        return list(db.scalars(q.order_by(desc(Occupancy.active_from), desc(Occupancy.id))).all())

    return run_op(db, body, failure_message="Failed to fetch occupancies", log=log)


def create_occupancy(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    unit_id: Any,
    tenant_id: Any,
    active_from: Any,
    active_to: Any = None,
) -> OpResult[Occupancy]:
    def body() -> Occupancy:
        ctx = _writer(db, actor_user_id, org_slug)
        return _insert(db, Occupancy, ctx, _occupancy_values(db, ctx, unit_id, tenant_id, active_from, active_to))

    return run_op(db, body, failure_message="Failed to create occupancy", log=log)


def update_occupancy(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    occupancy_id: Any,
    unit_id: Any,
    tenant_id: Any,
    active_from: Any,
    active_to: Any = None,
) -> OpResult[Occupancy]:
    def body() -> Occupancy:
        ctx = _writer(db, actor_user_id, org_slug)
        row = must_get_occupancy(db, org_id=ctx.org_id, occupancy_id=occupancy_id)
        return _apply(db, row, _occupancy_values(db, ctx, unit_id, tenant_id, active_from, active_to))

    return run_op(db, body, failure_message="Failed to update occupancy", log=log)


def delete_occupancy(
    db: Session, *, actor_user_id: Optional[int], org_slug: str, occupancy_id: Any
) -> OpResult[int]:
    def body() -> int:
        ctx = _owner(db, actor_user_id, org_slug, "occupancies")
        row = must_get_occupancy(db, org_id=ctx.org_id, occupancy_id=occupancy_id)
        return _remove(db, row, ctx=ctx, kind="occupancy")

    return run_op(db, body, failure_message="Failed to delete occupancy", log=log)


# -----------------------------------------------------------------------------
# Rent configs
# -----------------------------------------------------------------------------
def _due_day(raw: Any) -> int:
    msg = f"Due day must be between {MIN_DUE_DAY} and {MAX_DUE_DAY}"
    if raw is None or isinstance(raw, bool):
        raise invalid(msg)
    try:
        d = int(str(raw).strip())
    except ValueError:
        raise invalid(msg)
    if not (MIN_DUE_DAY <= d <= MAX_DUE_DAY):
        raise invalid(msg)
    return d


def _rent_config_values(
    db: Session, ctx: OrgContext, occupancy_id: Any, amount: Any, cycle: Any, due_day: Any
) -> dict[str, Any]:
    oid = require_id(occupancy_id, "Occupancy is required")
    amt = positive_amount(amount)
    try:
        cyc = normalize_cycle(cycle)
    except ValueError as e:
        raise invalid(str(e))
    day = _due_day(due_day)

    occ = must_get_occupancy(
        db,
        org_id=ctx.org_id,
        occupancy_id=oid,
        message="Occupancy not found or does not belong to this organization",
    )
    return {"occupancy_id": occ.id, "amount": amt, "cycle": cyc, "due_day": day}


def list_rent_configs(
    db: Session, *, actor_user_id: Optional[int], org_slug: str, occupancy_id: Optional[Any] = None
) -> OpResult[list[RentConfig]]:
    def body() -> list[RentConfig]:
        ctx = _reader(db, actor_user_id, org_slug)
        q = select(RentConfig).where(RentConfig.org_id == ctx.org_id)
        if occupancy_id is not None:
            q = q.where(RentConfig.occupancy_id == require_id(occupancy_id, "Occupancy is required"))
        return list(db.scalars(q.order_by(desc(RentConfig.created_at), desc(RentConfig.id))).all())

    return run_op(db, body, failure_message="Failed to fetch rent configs", log=log)


def create_rent_config(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    occupancy_id: Any,
    amount: Any,
    cycle: Any = "MONTHLY",
    due_day: Any = 1,
) -> OpResult[RentConfig]:
    def body() -> RentConfig:
        ctx = _writer(db, actor_user_id, org_slug)
        values = _rent_config_values(db, ctx, occupancy_id, amount, cycle, due_day)
        row = _insert(db, RentConfig, ctx, values)
        log.info(
            "rent config created %s %s due_day=%s",
            row.cycle,
            row.amount,
            row.due_day,
            extra={"org_id": ctx.org_id, "user_id": ctx.actor_user_id, "rent_config_id": row.id},
        )
        return row

    return run_op(db, body, failure_message="Failed to create rent config", log=log)


def update_rent_config(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    rent_config_id: Any,
    occupancy_id: Any,
    amount: Any,
    cycle: Any,
    due_day: Any,
) -> OpResult[RentConfig]:
    def body() -> RentConfig:
        ctx = _writer(db, actor_user_id, org_slug)
        values = _rent_config_values(db, ctx, occupancy_id, amount, cycle, due_day)
        row = must_get_rent_config(db, org_id=ctx.org_id, rent_config_id=rent_config_id)
        return _apply(db, row, values)

    return run_op(db, body, failure_message="Failed to update rent config", log=log)


def delete_rent_config(
    db: Session, *, actor_user_id: Optional[int], org_slug: str, rent_config_id: Any
) -> OpResult[int]:
    def body() -> int:
        ctx = _owner(db, actor_user_id, org_slug, "rent configs")
        row = must_get_rent_config(db, org_id=ctx.org_id, rent_config_id=rent_config_id)
        return _remove(db, row, ctx=ctx, kind="rent config")

    return run_op(db, body, failure_message="Failed to delete rent config", log=log)
