# backend/app/routers/payments.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Actor, get_actor
from ..db import get_db
from ..schemas import PaymentCreate, PaymentDeleteOut, PaymentOut, PaymentUpdate
from ..services import payments as svc
from .deps import unwrap

router = APIRouter(prefix="/orgs/{org_slug}/payments", tags=["payments"])


@router.get("", response_model=list[PaymentOut])
def list_payments(
    org_slug: str,
    rent_period_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    a: Actor = Depends(get_actor),
):
    return unwrap(svc.list_payments(db, actor_user_id=a.user_id, org_slug=org_slug, rent_period_id=rent_period_id))


@router.post("", response_model=PaymentOut, status_code=201)
def create_payment(org_slug: str, payload: PaymentCreate, db: Session = Depends(get_db), a: Actor = Depends(get_actor)):
    return unwrap(svc.create_payment(db, actor_user_id=a.user_id, org_slug=org_slug, **payload.model_dump()))


@router.patch("/{payment_id}", response_model=PaymentOut)
def update_payment(
    org_slug: str,
    payment_id: int,
    payload: PaymentUpdate,
    db: Session = Depends(get_db),
    a: Actor = Depends(get_actor),
):
    return unwrap(
        svc.update_payment(
            db,
            actor_user_id=a.user_id,
            org_slug=org_slug,
            payment_id=payment_id,
            **payload.model_dump(exclude_unset=True),
        )
    )


@router.delete("/{payment_id}", response_model=PaymentDeleteOut)
def delete_payment(org_slug: str, payment_id: int, db: Session = Depends(get_db), a: Actor = Depends(get_actor)):
    res = svc.delete_payment(db, actor_user_id=a.user_id, org_slug=org_slug, payment_id=payment_id)
    d = unwrap(res)
    return PaymentDeleteOut(
        payment_id=d.payment_id,
        rent_period_id=d.rent_period_id,
        rent_period_status=d.rent_period_status,
        status_reverted=d.status_reverted,
        degraded=res.degraded,
        warning=res.warning,
    )
