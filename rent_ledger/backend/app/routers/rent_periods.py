# backend/app/routers/rent_periods.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Actor, get_actor
from ..db import get_db
from ..schemas import (
    DeletedOut,
    RefreshOut,
    RentPeriodCreate,
    RentPeriodDatesUpdate,
    RentPeriodOut,
    RentPeriodStatusUpdate,
)
from ..services import rent_periods as svc
from .deps import unwrap

router = APIRouter(prefix="/orgs/{org_slug}/rent-periods", tags=["rent-periods"])


@router.get("", response_model=list[RentPeriodOut])
def list_rent_periods(
    org_slug: str,
    rent_config_id: Optional[int] = Query(default=None),
    status: Optional[str] = Query(default=None),
    overdue_only: bool = Query(default=False),
    unpaid_only: bool = Query(default=False),
    due_on: Optional[date] = Query(default=None),
    building_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    a: Actor = Depends(get_actor),
):
    return unwrap(
        svc.list_rent_periods(
            db,
            actor_user_id=a.user_id,
            org_slug=org_slug,
            rent_config_id=rent_config_id,
            status=status,
            overdue_only=overdue_only,
            unpaid_only=unpaid_only,
            due_on=due_on,
            building_id=building_id,
        )
    )


@router.post("", response_model=RentPeriodOut, status_code=201)
def create_rent_period(
    org_slug: str, payload: RentPeriodCreate, db: Session = Depends(get_db), a: Actor = Depends(get_actor)
):
    return unwrap(svc.create_rent_period(db, actor_user_id=a.user_id, org_slug=org_slug, **payload.model_dump()))


@router.post("/refresh", response_model=RefreshOut)
def refresh_statuses(org_slug: str, db: Session = Depends(get_db), a: Actor = Depends(get_actor)):
    n = unwrap(svc.refresh_org_rent_periods(db, actor_user_id=a.user_id, org_slug=org_slug))
    return RefreshOut(updated=n)


@router.patch("/{rent_period_id}/status", response_model=RentPeriodOut)
def update_status(
    org_slug: str,
    rent_period_id: int,
    payload: RentPeriodStatusUpdate,
    db: Session = Depends(get_db),
    a: Actor = Depends(get_actor),
):
    return unwrap(
        svc.update_rent_period_status(
            db, actor_user_id=a.user_id, org_slug=org_slug, rent_period_id=rent_period_id, status=payload.status
        )
    )


@router.patch("/{rent_period_id}/dates", response_model=RentPeriodOut)
def update_dates(
    org_slug: str,
    rent_period_id: int,
    payload: RentPeriodDatesUpdate,
    db: Session = Depends(get_db),
    a: Actor = Depends(get_actor),
):
    return unwrap(
        svc.update_rent_period_dates(
            db,
            actor_user_id=a.user_id,
            org_slug=org_slug,
            rent_period_id=rent_period_id,
            **payload.model_dump(exclude_unset=True),
        )
    )


@router.delete("/{rent_period_id}", response_model=DeletedOut)
def delete_rent_period(
    org_slug: str, rent_period_id: int, db: Session = Depends(get_db), a: Actor = Depends(get_actor)
):
    rid = unwrap(svc.delete_rent_period(db, actor_user_id=a.user_id, org_slug=org_slug, rent_period_id=rent_period_id))
    return DeletedOut(id=rid)
