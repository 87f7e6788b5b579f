# backend/app/routers/organizations.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import Actor, get_actor
from ..db import get_db
from ..schemas import CurrencyUpdate, MembershipOut, OrganizationCreate, OrganizationOut
from ..services import organizations as svc
from .deps import unwrap

router = APIRouter(prefix="/orgs", tags=["organizations"])


@router.post("", response_model=OrganizationOut, status_code=201)
def create_organization(payload: OrganizationCreate, db: Session = Depends(get_db), a: Actor = Depends(get_actor)):
    return unwrap(svc.create_organization(db, actor_user_id=a.user_id, name=payload.name, currency=payload.currency))


@router.get("", response_model=list[MembershipOut])
def list_my_organizations(db: Session = Depends(get_db), a: Actor = Depends(get_actor)):
    return unwrap(svc.list_memberships(db, actor_user_id=a.user_id))


@router.get("/{org_slug}", response_model=OrganizationOut)
def get_organization(org_slug: str, db: Session = Depends(get_db), a: Actor = Depends(get_actor)):
    return unwrap(svc.get_organization(db, actor_user_id=a.user_id, org_slug=org_slug))


@router.patch("/{org_slug}/currency", response_model=OrganizationOut)
def update_currency(
    org_slug: str,
    payload: CurrencyUpdate,
    db: Session = Depends(get_db),
    a: Actor = Depends(get_actor),
):
    return unwrap(
        svc.update_organization_currency(db, actor_user_id=a.user_id, org_slug=org_slug, currency=payload.currency)
    )
