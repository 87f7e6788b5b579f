# backend/app/services/org_guard.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Organization, OrgMembership
from .results import ErrorKind, OpError

# -----------------------------------------------------------------------------
# Authorization guard
# -----------------------------------------------------------------------------
# One decision for every operation:
#   (actor, org slug, required roles) -> OrgContext | denial
#
# "org not found" and "not a member" produce the SAME message so callers can't
# probe which org slugs exist.
# -----------------------------------------------------------------------------

OWNER = "OWNER"
MANAGER = "MANAGER"
OPS = "OPS"
DIRECTOR = "DIRECTOR"  # read-only

ROLES = (OWNER, MANAGER, OPS, DIRECTOR)

READ_ROLES = frozenset(ROLES)
WRITE_ROLES = frozenset({OWNER, MANAGER, OPS})
OWNER_ONLY = frozenset({OWNER})

ACCESS_DENIED = "Organization not found or access denied"
INSUFFICIENT_PERMISSIONS = "Insufficient permissions"


@dataclass(frozen=True)
class OrgContext:
    org_id: int
    org_slug: str
    actor_user_id: int
    role: str


@dataclass(frozen=True)
class GuardResult:
    ok: bool
    ctx: Optional[OrgContext] = None
    error: Optional[str] = None


def owner_only_message(what: str) -> str:
    return f"Only organization owners can {what}"


def decide(
    org: Any,
    membership: Any,
    *,
    actor_user_id: Optional[int],
    required_roles: Iterable[str] = READ_ROLES,
    denied_message: Optional[str] = None,
) -> GuardResult:
    """
    Pure decision over the two lookups (org by slug, membership of actor in org).
    Either lookup missing -> uniform denial. Role outside required_roles ->
    denied_message (or "Insufficient permissions").
    """
    if actor_user_id is None or org is None or membership is None:
        return GuardResult(ok=False, error=ACCESS_DENIED)

    role = str(getattr(membership, "role", "") or "").strip().upper()
    if role not in ROLES:
        return GuardResult(ok=False, error=ACCESS_DENIED)

    if role not in frozenset(required_roles):
        return GuardResult(ok=False, error=denied_message or INSUFFICIENT_PERMISSIONS)

    return GuardResult(
        ok=True,
        ctx=OrgContext(
            org_id=int(org.id),
            org_slug=str(org.slug),
            actor_user_id=int(actor_user_id),
            role=role,
        ),
    )


def _lookup(db: Session, *, actor_user_id: Optional[int], org_slug: str) -> tuple[Any, Any]:
    slug = str(org_slug or "").strip()
    if not slug or actor_user_id is None:
        return None, None

    org = db.scalar(select(Organization).where(Organization.slug == slug))
    if org is None:
        return None, None

    mem = db.scalar(
        select(OrgMembership).where(
            OrgMembership.org_id == int(org.id),
            OrgMembership.user_id == int(actor_user_id),
        )
    )
    return org, mem


def resolve_org_context(db: Session, *, actor_user_id: Optional[int], org_slug: str) -> GuardResult:
    """Membership + role for (actor, org). Any member passes."""
    org, mem = _lookup(db, actor_user_id=actor_user_id, org_slug=org_slug)
    return decide(org, mem, actor_user_id=actor_user_id, required_roles=READ_ROLES)


def authorize(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    required_roles: Iterable[str] = READ_ROLES,
    denied_message: Optional[str] = None,
) -> GuardResult:
    org, mem = _lookup(db, actor_user_id=actor_user_id, org_slug=org_slug)
    return decide(
        org,
        mem,
        actor_user_id=actor_user_id,
        required_roles=required_roles,
        denied_message=denied_message,
    )


def require_org(
    db: Session,
    *,
    actor_user_id: Optional[int],
    org_slug: str,
    required_roles: Iterable[str] = READ_ROLES,
    denied_message: Optional[str] = None,
) -> OrgContext:
    """authorize() for service bodies: raises OpError(DENIED) instead of returning."""
    g = authorize(
        db,
        actor_user_id=actor_user_id,
        org_slug=org_slug,
        required_roles=required_roles,
        denied_message=denied_message,
    )
    if not g.ok or g.ctx is None:
        raise OpError(ErrorKind.DENIED, g.error or ACCESS_DENIED)
    return g.ctx
