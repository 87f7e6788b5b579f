# backend/app/routers/buildings.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Actor, get_actor
from ..db import get_db
from ..schemas import BuildingIn, BuildingOut, DeletedOut, UnitIn, UnitOut
from ..services import records
from .deps import unwrap

router = APIRouter(prefix="/orgs/{org_slug}", tags=["buildings"])


# -------------------- Buildings --------------------

@router.get("/buildings", response_model=list[BuildingOut])
def list_buildings(org_slug: str, db: Session = Depends(get_db), a: Actor = Depends(get_actor)):
    return unwrap(records.list_buildings(db, actor_user_id=a.user_id, org_slug=org_slug))


@router.post("/buildings", response_model=BuildingOut, status_code=201)
def create_building(org_slug: str, payload: BuildingIn, db: Session = Depends(get_db), a: Actor = Depends(get_actor)):
    return unwrap(records.create_building(db, actor_user_id=a.user_id, org_slug=org_slug, **payload.model_dump()))


@router.put("/buildings/{building_id}", response_model=BuildingOut)
def update_building(
    org_slug: str,
    building_id: int,
    payload: BuildingIn,
    db: Session = Depends(get_db),
    a: Actor = Depends(get_actor),
):
    return unwrap(
        records.update_building(
            db, actor_user_id=a.user_id, org_slug=org_slug, building_id=building_id, **payload.model_dump()
        )
    )


@router.delete("/buildings/{building_id}", response_model=DeletedOut)
def delete_building(org_slug: str, building_id: int, db: Session = Depends(get_db), a: Actor = Depends(get_actor)):
    rid = unwrap(records.delete_building(db, actor_user_id=a.user_id, org_slug=org_slug, building_id=building_id))
    return DeletedOut(id=rid)


# -------------------- Units --------------------

@router.get("/units", response_model=list[UnitOut])
def list_units(
    org_slug: str,
    building_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    a: Actor = Depends(get_actor),
):
    return unwrap(records.list_units(db, actor_user_id=a.user_id, org_slug=org_slug, building_id=building_id))


@router.post("/units", response_model=UnitOut, status_code=201)
def create_unit(org_slug: str, payload: UnitIn, db: Session = Depends(get_db), a: Actor = Depends(get_actor)):
    return unwrap(records.create_unit(db, actor_user_id=a.user_id, org_slug=org_slug, **payload.model_dump()))


@router.put("/units/{unit_id}", response_model=UnitOut)
def update_unit(
    org_slug: str,
    unit_id: int,
    payload: UnitIn,
    db: Session = Depends(get_db),
    a: Actor = Depends(get_actor),
):
    return unwrap(
        records.update_unit(db, actor_user_id=a.user_id, org_slug=org_slug, unit_id=unit_id, **payload.model_dump())
    )


@router.delete("/units/{unit_id}", response_model=DeletedOut)
def delete_unit(org_slug: str, unit_id: int, db: Session = Depends(get_db), a: Actor = Depends(get_actor)):
    rid = unwrap(records.delete_unit(db, actor_user_id=a.user_id, org_slug=org_slug, unit_id=unit_id))
    return DeletedOut(id=rid)
