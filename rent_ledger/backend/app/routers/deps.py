# backend/app/routers/deps.py
from __future__ import annotations

from typing import Any, Optional

from fastapi import HTTPException, Query

from ..config import settings
from ..services.results import ErrorKind, OpResult

_STATUS = {
    ErrorKind.DENIED: 403,
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.FAILED: 500,
}


def status_for(kind: Optional[ErrorKind]) -> int:
    return _STATUS.get(kind, 500) if kind is not None else 500


def unwrap(res: OpResult[Any]) -> Any:
    """OpResult -> data, or HTTPException carrying the service's message."""
    if not res.ok:
        raise HTTPException(status_code=status_for(res.kind), detail=res.error)
    return res.data


def list_limit(limit: Optional[int] = Query(default=None, ge=1)) -> int:
    if limit is None:
        return int(settings.default_list_limit)
    return min(int(limit), int(settings.max_list_limit))
