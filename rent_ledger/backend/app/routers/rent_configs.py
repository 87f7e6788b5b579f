# backend/app/routers/rent_configs.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Actor, get_actor
from ..db import get_db
from ..schemas import DeletedOut, RentConfigIn, RentConfigOut, RentPeriodOut
from ..services import records
from ..services.rent_periods import generate_next_rent_period
from .deps import unwrap

router = APIRouter(prefix="/orgs/{org_slug}/rent-configs", tags=["rent-configs"])


@router.get("", response_model=list[RentConfigOut])
def list_rent_configs(
    org_slug: str,
    occupancy_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    a: Actor = Depends(get_actor),
):
    return unwrap(
        records.list_rent_configs(db, actor_user_id=a.user_id, org_slug=org_slug, occupancy_id=occupancy_id)
    )


@router.post("", response_model=RentConfigOut, status_code=201)
def create_rent_config(
    org_slug: str, payload: RentConfigIn, db: Session = Depends(get_db), a: Actor = Depends(get_actor)
):
    return unwrap(records.create_rent_config(db, actor_user_id=a.user_id, org_slug=org_slug, **payload.model_dump()))


@router.put("/{rent_config_id}", response_model=RentConfigOut)
def update_rent_config(
    org_slug: str,
    rent_config_id: int,
    payload: RentConfigIn,
    db: Session = Depends(get_db),
    a: Actor = Depends(get_actor),
):
    return unwrap(
        records.update_rent_config(
            db, actor_user_id=a.user_id, org_slug=org_slug, rent_config_id=rent_config_id, **payload.model_dump()
        )
    )


@router.delete("/{rent_config_id}", response_model=DeletedOut)
def delete_rent_config(
    org_slug: str, rent_config_id: int, db: Session = Depends(get_db), a: Actor = Depends(get_actor)
):
    rid = unwrap(
        records.delete_rent_config(db, actor_user_id=a.user_id, org_slug=org_slug, rent_config_id=rent_config_id)
    )
    return DeletedOut(id=rid)


@router.post("/{rent_config_id}/generate-next", response_model=RentPeriodOut, status_code=201)
def generate_next(org_slug: str, rent_config_id: int, db: Session = Depends(get_db), a: Actor = Depends(get_actor)):
    return unwrap(
        generate_next_rent_period(db, actor_user_id=a.user_id, org_slug=org_slug, rent_config_id=rent_config_id)
    )
