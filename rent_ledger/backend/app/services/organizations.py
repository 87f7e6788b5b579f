# backend/app/services/organizations.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.audit import ORGANIZATION_CURRENCY_UPDATED, record_audit
from ..models import AppUser, OrgMembership, Organization
from .org_guard import OWNER, OWNER_ONLY, READ_ROLES, require_org
from .results import ErrorKind, OpError, OpResult, run_op
from .validation import invalid

log = logging.getLogger("rentledger.organizations")

NAME_REQUIRED = "Company name is required"
NAME_INVALID = "Please enter a valid company name"
CURRENCY_INVALID = "Invalid currency code. Must be a 3-letter ISO 4217 code (e.g., NGN, USD)"
CURRENCY_OWNER_ONLY = "Only organization owners can update currency settings"

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
_NON_SLUG = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class MembershipView:
    org_id: int
    org_slug: str
    org_name: str
    currency: str
    role: str


def slugify(name: str) -> str:
    return _NON_SLUG.sub("-", str(name or "").strip().lower()).strip("-")[:70]


def unique_slug(base: str, taken: set[str]) -> str:
    if base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


def create_organization(
    db: Session,
    *,
    actor_user_id: Optional[int],
    name: Any,
    currency: Optional[str] = None,
) -> OpResult[Organization]:
    """New org with a slug derived from its name; the creator becomes OWNER."""

    def body() -> Organization:
        if actor_user_id is None or db.get(AppUser, int(actor_user_id)) is None:
            raise OpError(ErrorKind.DENIED, "Not authenticated")

        nm = str(name or "").strip()
        if not nm:
            raise invalid(NAME_REQUIRED)
        base = slugify(nm)
        if not base:
            raise invalid(NAME_INVALID)

        cur = (currency or settings.default_currency).strip().upper()
        if not _CURRENCY_RE.match(cur):
            raise invalid(CURRENCY_INVALID)

        taken = set(db.scalars(select(Organization.slug).where(Organization.slug.like(f"{base}%"))).all())
        slug = unique_slug(base, taken)

        now = datetime.utcnow()
        org = Organization(slug=slug, name=nm, currency=cur, created_at=now, updated_at=now)
        db.add(org)
        db.flush()
        db.add(OrgMembership(org_id=org.id, user_id=int(actor_user_id), role=OWNER, created_at=now))
        db.commit()

        log.info("organization created slug=%s", slug, extra={"org_id": org.id, "user_id": actor_user_id})
        return org

    # a concurrent creator can still win the slug; the unique index turns that into a conflict
    return run_op(
        db,
        body,
        failure_message="Failed to create organization. Please try again.",
        conflict_message="Organization slug already taken. Please try again.",
        log=log,
    )


def list_memberships(db: Session, *, actor_user_id: Optional[int]) -> OpResult[list[MembershipView]]:
    def body() -> list[MembershipView]:
        if actor_user_id is None:
            raise OpError(ErrorKind.DENIED, "Not authenticated")
        rows = db.execute(
            select(Organization, OrgMembership)
            .join(OrgMembership, OrgMembership.org_id == Organization.id)
            .where(OrgMembership.user_id == int(actor_user_id))
            .order_by(Organization.name, Organization.id)
        ).all()
        return [
            MembershipView(
                org_id=org.id,
                org_slug=org.slug,
                org_name=org.name,
                currency=org.currency,
                role=mem.role,
            )
            for org, mem in rows
        ]

    return run_op(db, body, failure_message="Failed to fetch memberships", log=log)


def get_organization(db: Session, *, actor_user_id: Optional[int], org_slug: str) -> OpResult[Organization]:
    def body() -> Organization:
        ctx = require_org(db, actor_user_id=actor_user_id, org_slug=org_slug, required_roles=READ_ROLES)
        org = db.get(Organization, ctx.org_id)
        if org is None:
            raise OpError(ErrorKind.NOT_FOUND, "Organization not found or access denied")
        return org

    return run_op(db, body, failure_message="Failed to fetch organization", log=log)


def update_organization_currency(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    currency: Any,
) -> OpResult[Organization]:
    def body() -> Organization:
        ctx = require_org(
            db,
            actor_user_id=actor_user_id,
            org_slug=org_slug,
            required_roles=OWNER_ONLY,
            denied_message=CURRENCY_OWNER_ONLY,
        )
        cur = str(currency or "")
        if not _CURRENCY_RE.match(cur):
            raise invalid(CURRENCY_INVALID)

        org = db.get(Organization, ctx.org_id)
        if org is None:
            raise OpError(ErrorKind.NOT_FOUND, "Organization not found or access denied")

        previous = org.currency
        if previous == cur:
            return org

        org.currency = cur
        org.updated_at = datetime.utcnow()
        db.commit()

        record_audit(
            db,
            org_id=ctx.org_id,
            actor_user_id=ctx.actor_user_id,
            action_type=ORGANIZATION_CURRENCY_UPDATED,
            entity_type="organization",
            entity_id=ctx.org_id,
            description=f"Organization currency updated from {previous or 'null'} to {cur}",
            before={"currency": previous},
            after={"currency": cur},
        )
        return org

    return run_op(db, body, failure_message="Failed to update currency", log=log)
