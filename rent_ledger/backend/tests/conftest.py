# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile

# settings are read at import time: point the app at a throwaway sqlite file first
_TMP = tempfile.mkdtemp(prefix="rent_ledger_tests_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["APP_ENV"] = "test"
os.environ["AUTH_MODE"] = "dev"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["AUDIT_ENABLED"] = "true"

from datetime import date, datetime  # noqa: E402
from decimal import Decimal  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402

from app.db import Base, SessionLocal, engine  # noqa: E402
from app.models import (  # noqa: E402
    AppUser,
    Building,
    Occupancy,
    OrgMembership,
    Organization,
    RentConfig,
    RentPeriod,
    Tenant,
    Unit,
)


@pytest.fixture(autouse=True)
def _fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


def _org(db, slug: str) -> Organization:
    now = datetime.utcnow()
    org = Organization(slug=slug, name=slug.title(), currency="NGN", created_at=now, updated_at=now)
    db.add(org)
    db.flush()
    return org


def _member(db, org: Organization, email: str, role: str) -> int:
    u = AppUser(email=email, display_name=email.split("@")[0], created_at=datetime.utcnow())
    db.add(u)
    db.flush()
    db.add(OrgMembership(org_id=org.id, user_id=u.id, role=role, created_at=datetime.utcnow()))
    db.flush()
    return int(u.id)


def _lease(db, org: Organization, *, active_from: date, active_to=None, cycle="MONTHLY", due_day=31):
    now = datetime.utcnow()
    b = Building(org_id=org.id, name=f"{org.slug} house", created_at=now, updated_at=now)
    db.add(b)
    db.flush()
    u = Unit(org_id=org.id, building_id=b.id, unit_number="1A", created_at=now, updated_at=now)
    t = Tenant(org_id=org.id, full_name="Tolu Bello", created_at=now, updated_at=now)
    db.add_all([u, t])
    db.flush()
    occ = Occupancy(
        org_id=org.id,
        unit_id=u.id,
        tenant_id=t.id,
        active_from=active_from,
        active_to=active_to,
        created_at=now,
        updated_at=now,
    )
    db.add(occ)
    db.flush()
    cfg = RentConfig(
        org_id=org.id,
        occupancy_id=occ.id,
        amount=Decimal("1000.00"),
        cycle=cycle,
        due_day=due_day,
        created_at=now,
        updated_at=now,
    )
    db.add(cfg)
    db.flush()
    return SimpleNamespace(building_id=b.id, unit_id=u.id, tenant_id=t.id, occupancy_id=occ.id, rent_config_id=cfg.id)


@pytest.fixture
def world(db):
    """
    Org "acme" with one member per role and a monthly lease (due_day 31, from
    2024-01-15); org "globex" with its own owner and lease.
    """
    acme = _org(db, "acme")
    globex = _org(db, "globex")

    w = SimpleNamespace(
        org_slug=acme.slug,
        org_id=acme.id,
        other_slug=globex.slug,
        other_org_id=globex.id,
        owner=_member(db, acme, "owner@acme.test", "OWNER"),
        manager=_member(db, acme, "manager@acme.test", "MANAGER"),
        ops=_member(db, acme, "ops@acme.test", "OPS"),
        director=_member(db, acme, "director@acme.test", "DIRECTOR"),
        outsider=_member(db, globex, "owner@globex.test", "OWNER"),
        lease=_lease(db, acme, active_from=date(2024, 1, 15)),
        other_lease=_lease(db, globex, active_from=date(2024, 1, 1)),
    )
    db.commit()
    return w


@pytest.fixture
def make_period(db, world):
    def _make(
        *,
        due_date: date,
        status: str = "DUE",
        period_start: date | None = None,
        period_end: date | None = None,
        rent_config_id: int | None = None,
        org_id: int | None = None,
    ) -> RentPeriod:
        start = period_start or due_date.replace(day=1)
        now = datetime.utcnow()
        p = RentPeriod(
            org_id=org_id or world.org_id,
            rent_config_id=rent_config_id or world.lease.rent_config_id,
            period_start=start,
            period_end=period_end or start,
            due_date=due_date,
            status=status,
            days_overdue=0,
            created_at=now,
            updated_at=now,
        )
        db.add(p)
        db.commit()
        return p

    return _make
