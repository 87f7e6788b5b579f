# backend/app/routers/audit.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import Actor, get_actor
from ..db import get_db
from ..domain.audit import list_audit_logs
from ..schemas import AuditLogOut
from ..services.org_guard import resolve_org_context
from .deps import list_limit

router = APIRouter(prefix="/orgs/{org_slug}/audit-logs", tags=["audit"])


@router.get("", response_model=list[AuditLogOut])
def list_audit(
    org_slug: str,
    action_type: str | None = Query(default=None),
    entity_type: str | None = Query(default=None),
    entity_id: str | None = Query(default=None),
    limit: int = Depends(list_limit),
    db: Session = Depends(get_db),
    a: Actor = Depends(get_actor),
):
    g = resolve_org_context(db, actor_user_id=a.user_id, org_slug=org_slug)
    if not g.ok or g.ctx is None:
        raise HTTPException(status_code=403, detail=g.error)
    return list_audit_logs(
        db,
        org_id=g.ctx.org_id,
        action_type=action_type,
        entity_type=entity_type,
        entity_id=entity_id,
        limit=limit,
    )
