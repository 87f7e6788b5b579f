# backend/app/routers/tenants.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Actor, get_actor
from ..db import get_db
from ..schemas import DeletedOut, OccupancyIn, OccupancyOut, TenantIn, TenantOut
from ..services import records
from .deps import unwrap

router = APIRouter(prefix="/orgs/{org_slug}", tags=["tenants"])


@router.get("/tenants", response_model=list[TenantOut])
def list_tenants(org_slug: str, db: Session = Depends(get_db), a: Actor = Depends(get_actor)):
    return unwrap(records.list_tenants(db, actor_user_id=a.user_id, org_slug=org_slug))


@router.post("/tenants", response_model=TenantOut, status_code=201)
def create_tenant(org_slug: str, payload: TenantIn, db: Session = Depends(get_db), a: Actor = Depends(get_actor)):
    return unwrap(records.create_tenant(db, actor_user_id=a.user_id, org_slug=org_slug, **payload.model_dump()))


@router.put("/tenants/{tenant_id}", response_model=TenantOut)
def update_tenant(
    org_slug: str,
    tenant_id: int,
    payload: TenantIn,  # full update
    db: Session = Depends(get_db),
    a: Actor = Depends(get_actor),
):
    return unwrap(
        records.update_tenant(
            db, actor_user_id=a.user_id, org_slug=org_slug, tenant_id=tenant_id, **payload.model_dump()
        )
    )


@router.delete("/tenants/{tenant_id}", response_model=DeletedOut)
def delete_tenant(org_slug: str, tenant_id: int, db: Session = Depends(get_db), a: Actor = Depends(get_actor)):
    rid = unwrap(records.delete_tenant(db, actor_user_id=a.user_id, org_slug=org_slug, tenant_id=tenant_id))
    return DeletedOut(id=rid)


# -------------------- Occupancies --------------------

@router.get("/occupancies", response_model=list[OccupancyOut])
def list_occupancies(
    org_slug: str,
    unit_id: Optional[int] = Query(default=None),
    tenant_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    a: Actor = Depends(get_actor),
):
    return unwrap(
        records.list_occupancies(
            db, actor_user_id=a.user_id, org_slug=org_slug, unit_id=unit_id, tenant_id=tenant_id
        )
    )


@router.post("/occupancies", response_model=OccupancyOut, status_code=201)
def create_occupancy(
    org_slug: str, payload: OccupancyIn, db: Session = Depends(get_db), a: Actor = Depends(get_actor)
):
    return unwrap(records.create_occupancy(db, actor_user_id=a.user_id, org_slug=org_slug, **payload.model_dump()))


@router.put("/occupancies/{occupancy_id}", response_model=OccupancyOut)
def update_occupancy(
    org_slug: str,
    occupancy_id: int,
    payload: OccupancyIn,
    db: Session = Depends(get_db),
    a: Actor = Depends(get_actor),
):
    return unwrap(
        records.update_occupancy(
            db, actor_user_id=a.user_id, org_slug=org_slug, occupancy_id=occupancy_id, **payload.model_dump()
        )
    )


@router.delete("/occupancies/{occupancy_id}", response_model=DeletedOut)
def delete_occupancy(org_slug: str, occupancy_id: int, db: Session = Depends(get_db), a: Actor = Depends(get_actor)):
    rid = unwrap(records.delete_occupancy(db, actor_user_id=a.user_id, org_slug=org_slug, occupancy_id=occupancy_id))
    return DeletedOut(id=rid)
