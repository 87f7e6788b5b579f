# backend/app/services/ownership.py
from __future__ import annotations

from typing import Any, Optional, Type

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Building, Unit, Tenant, Occupancy, RentConfig, RentPeriod, Payment
from .results import ErrorKind, OpError

# Missing row and another org's row are the same answer: NOT_FOUND with one message.


def _get_scoped(
    db: Session,
    model: Type[Any],
    *,
    org_id: int,
    row_id: Any,
    message: str,
    for_update: bool = False,
) -> Any:
    try:
        rid = int(row_id)
    except (TypeError, ValueError):
        raise OpError(ErrorKind.NOT_FOUND, message)

    q = select(model).where(model.id == rid, model.org_id == int(org_id))
    if for_update:
        # locked reads must see the committed row, not a cached copy
        q = q.with_for_update().execution_options(populate_existing=True)
    row = db.scalar(q)
    if row is None:
        raise OpError(ErrorKind.NOT_FOUND, message)
    return row


def must_get_building(db: Session, *, org_id: int, building_id: Any, message: Optional[str] = None) -> Building:
    return _get_scoped(
        db, Building, org_id=org_id, row_id=building_id, message=message or "Building not found or access denied"
    )


def must_get_unit(db: Session, *, org_id: int, unit_id: Any, message: Optional[str] = None) -> Unit:
    return _get_scoped(db, Unit, org_id=org_id, row_id=unit_id, message=message or "Unit not found or access denied")


def must_get_tenant(db: Session, *, org_id: int, tenant_id: Any, message: Optional[str] = None) -> Tenant:
    return _get_scoped(
        db, Tenant, org_id=org_id, row_id=tenant_id, message=message or "Tenant not found or access denied"
    )


def must_get_occupancy(db: Session, *, org_id: int, occupancy_id: Any, message: Optional[str] = None) -> Occupancy:
    return _get_scoped(
        db,
        Occupancy,
        org_id=org_id,
        row_id=occupancy_id,
        message=message or "Occupancy not found or access denied",
    )


def must_get_rent_config(
    db: Session,
    *,
    org_id: int,
    rent_config_id: Any,
    message: Optional[str] = None,
    for_update: bool = False,
) -> RentConfig:
    return _get_scoped(
        db,
        RentConfig,
        org_id=org_id,
        row_id=rent_config_id,
        message=message or "Rent config not found or access denied",
        for_update=for_update,
    )


def must_get_rent_period(
    db: Session,
    *,
    org_id: int,
    rent_period_id: Any,
    message: Optional[str] = None,
    for_update: bool = False,
) -> RentPeriod:
    return _get_scoped(
        db,
        RentPeriod,
        org_id=org_id,
        row_id=rent_period_id,
        message=message or "Rent period not found or access denied",
        for_update=for_update,
    )


def must_get_payment(db: Session, *, org_id: int, payment_id: Any, message: Optional[str] = None) -> Payment:
    return _get_scoped(
        db, Payment, org_id=org_id, row_id=payment_id, message=message or "Payment not found or access denied"
    )
