# backend/app/domain/audit.py
from __future__ import annotations

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..config import settings
from ..models import AuditLog

log = logging.getLogger("rentledger.audit")

PAYMENT_CREATED = "PAYMENT_CREATED"
PAYMENT_UPDATED = "PAYMENT_UPDATED"
PAYMENT_DELETED = "PAYMENT_DELETED"
RENT_PERIOD_STATUS_CHANGED = "RENT_PERIOD_STATUS_CHANGED"
ORGANIZATION_CURRENCY_UPDATED = "ORGANIZATION_CURRENCY_UPDATED"


def _jsonable(v: Any) -> Any:
    if isinstance(v, Decimal):
        return str(v)
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    return v


def row_snapshot(row: Any, fields: Iterable[str]) -> dict[str, Any]:
    """Plain-JSON view of selected attributes, for before/after payloads."""
    return {f: _jsonable(getattr(row, f, None)) for f in fields}


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if v is None:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def record_audit(
    db: Session,
    *,
    org_id: int,
    actor_user_id: Optional[int],
    action_type: str,
    entity_type: str,
    description: str,
    entity_id: Optional[Any] = None,
    before: Optional[dict[str, Any]] = None,
    after: Optional[dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> None:
    """
    Best-effort, at-most-once audit write.

    - Call AFTER the primary transaction has committed.
    - Uses its own short session on the caller's bind, so a failure here never
      touches the caller's session state.
    - Never raises. Failures are logged and dropped (no retry, no queue).
    """
    if not settings.audit_enabled:
        return

    try:
        bind = db.get_bind()
        with Session(bind=bind, future=True) as s:
            s.add(
                AuditLog(
                    org_id=int(org_id),
                    actor_user_id=int(actor_user_id) if actor_user_id is not None else None,
                    action_type=str(action_type),
                    entity_type=str(entity_type),
                    entity_id=str(entity_id) if entity_id is not None else None,
                    description=str(description),
                    before_json=_dumps(before),
                    after_json=_dumps(after),
                    ip_address=ip_address,
                    user_agent=str(user_agent)[:400] if user_agent else None,
                    created_at=datetime.utcnow(),
                )
            )
            s.commit()
    except Exception:
        log.warning(
            "audit write failed: %s %s/%s",
            action_type,
            entity_type,
            entity_id,
            exc_info=True,
            extra={"org_id": org_id, "user_id": actor_user_id},
        )


def list_audit_logs(
    db: Session,
    *,
    org_id: int,
    action_type: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    limit: int = 100,
) -> list[AuditLog]:
    q = select(AuditLog).where(AuditLog.org_id == int(org_id)).order_by(desc(AuditLog.created_at), desc(AuditLog.id))
    if action_type:
        q = q.where(AuditLog.action_type == action_type)
    if entity_type:
        q = q.where(AuditLog.entity_type == entity_type)
    if entity_id:
        q = q.where(AuditLog.entity_id == str(entity_id))
    return list(db.scalars(q.limit(int(limit))).all())
