# backend/app/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.auth import create_access_token
from app.db import SessionLocal
from app.models import AppUser, Building, Occupancy, OrgMembership, Organization, RentConfig, Tenant, Unit
from app.services.payments import create_payment
from app.services.rent_periods import generate_next_rent_period

DEMO_STAFF = (
    ("MANAGER", "manager"),
    ("OPS", "ops"),
    ("DIRECTOR", "director"),
)


@dataclass(frozen=True)
class SeedResult:
    org_slug: str
    owner_email: str
    owner_token: str
    rent_config_id: Optional[int]
    periods_generated: int


def _get_or_create_org(db: Session, slug: str, name: str, currency: str) -> Organization:
    row = db.scalar(select(Organization).where(Organization.slug == slug))
    if row:
        return row
    now = datetime.utcnow()
    row = Organization(slug=slug, name=name, currency=currency, created_at=now, updated_at=now)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _get_or_create_user(db: Session, email: str, display_name: str) -> AppUser:
    row = db.scalar(select(AppUser).where(AppUser.email == email))
    if row:
        return row
    row = AppUser(email=email, display_name=display_name, created_at=datetime.utcnow())
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _ensure_membership(db: Session, org_id: int, user_id: int, role: str) -> None:
    existing = db.scalar(
        select(OrgMembership).where(OrgMembership.org_id == int(org_id), OrgMembership.user_id == int(user_id))
    )
    if existing:
        return
    db.add(OrgMembership(org_id=int(org_id), user_id=int(user_id), role=str(role), created_at=datetime.utcnow()))
    db.commit()


def _sample_lease(db: Session, org_id: int, active_from: date, amount: Decimal, due_day: int) -> RentConfig:
    now = datetime.utcnow()
    b = Building(org_id=org_id, name="Demo Court", address="12 Allen Avenue, Ikeja", created_at=now, updated_at=now)
    db.add(b)
    db.flush()
    u = Unit(org_id=org_id, building_id=b.id, unit_number="A1", created_at=now, updated_at=now)
    t = Tenant(org_id=org_id, full_name="Ada Okafor", email="ada@demo.local", created_at=now, updated_at=now)
    db.add_all([u, t])
    db.flush()
    occ = Occupancy(org_id=org_id, unit_id=u.id, tenant_id=t.id, active_from=active_from, created_at=now, updated_at=now)
    db.add(occ)
    db.flush()
    cfg = RentConfig(
        org_id=org_id, occupancy_id=occ.id, amount=amount, cycle="MONTHLY", due_day=due_day, created_at=now, updated_at=now
    )
    db.add(cfg)
    db.commit()
    db.refresh(cfg)
    return cfg


def seed_demo(
    *,
    org_slug: str = "demo",
    org_name: str = "Demo Properties",
    owner_email: str = "owner@demo.local",
    currency: str = "NGN",
    months_back: int = 3,
    create_sample_lease: bool = True,
    today: Optional[date] = None,
) -> SeedResult:
    """
    Idempotent for org/users/memberships. The sample lease is only created when the
    org has no buildings yet; its periods are generated up to `today` and the
    oldest one is paid.
    """
    day = today or date.today()
    db = SessionLocal()
    try:
        org = _get_or_create_org(db, org_slug, org_name, currency)
        owner = _get_or_create_user(db, owner_email, owner_email.split("@")[0])
        _ensure_membership(db, org.id, owner.id, role="OWNER")

        domain = owner_email.split("@", 1)[1] if "@" in owner_email else "demo.local"
        for role, local in DEMO_STAFF:
            u = _get_or_create_user(db, f"{local}@{domain}", local.title())
            _ensure_membership(db, org.id, u.id, role=role)

        cfg_id: Optional[int] = None
        generated = 0
        has_buildings = db.scalar(select(Building.id).where(Building.org_id == org.id).limit(1)) is not None
        if create_sample_lease and not has_buildings:
            y, m = day.year, day.month - int(months_back)
            while m < 1:
                y, m = y - 1, m + 12
            cfg = _sample_lease(db, org.id, date(y, m, 1), Decimal("250000.00"), due_day=5)
            cfg_id = int(cfg.id)

            first_period_id: Optional[int] = None
            while True:
                res = generate_next_rent_period(
                    db, actor_user_id=owner.id, org_slug=org.slug, rent_config_id=cfg_id, today=day
                )
                if not res.ok or res.data is None:
                    break
                generated += 1
                first_period_id = first_period_id or int(res.data.id)
                if res.data.period_end >= day:
                    break

            if first_period_id is not None:
                create_payment(
                    db,
                    actor_user_id=owner.id,
                    org_slug=org.slug,
                    rent_period_id=first_period_id,
                    amount=cfg.amount,
                    reference="DEMO-0001",
                    today=day,
                )

        return SeedResult(
            org_slug=org.slug,
            owner_email=owner.email,
            owner_token=create_access_token(owner),
            rent_config_id=cfg_id,
            periods_generated=generated,
        )
    finally:
        db.close()
