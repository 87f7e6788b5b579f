# backend/app/auth.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .models import AppUser

# Identity only. Which organization a request acts on comes from the URL slug and is
# decided by services.org_guard; nothing here looks at orgs or memberships.

JWT_ALGORITHM = "HS256"


@dataclass(frozen=True)
class Actor:
    user_id: int
    email: str


# -------------------------
# JWT helpers (PyJWT)
# -------------------------
def create_access_token(user: AppUser, *, expires_minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=int(expires_minutes or settings.jwt_exp_minutes))
    payload = {"sub": str(user.id), "email": str(user.email), "iat": now, "exp": exp}
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        return dict(jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM]))
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def _get_user_by_email(db: Session, email: str) -> AppUser | None:
    return db.scalar(select(AppUser).where(AppUser.email == email))


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if authorization and str(authorization).lower().startswith("bearer "):
        return str(authorization).split(" ", 1)[1].strip() or None
    return None


def _actor_from_token(db: Session, token: str) -> Actor:
    claims = decode_access_token(token)
    sub = str(claims.get("sub") or "")
    if not sub.isdigit():
        raise HTTPException(status_code=401, detail="Token missing sub")

    user = db.get(AppUser, int(sub))
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return Actor(user_id=int(user.id), email=str(user.email))


def _actor_from_dev_header(db: Session, request: Request) -> Actor:
    email = (request.headers.get(settings.dev_header_user_email) or "").strip().lower()
    if not email:
        raise HTTPException(status_code=401, detail=f"Missing {settings.dev_header_user_email} for dev auth")

    user = _get_user_by_email(db, email=email)
    if user is None and settings.dev_auto_provision:
        # users only; org membership is never provisioned here
        user = AppUser(email=email, display_name=email.split("@")[0], created_at=datetime.utcnow())
        db.add(user)
        db.commit()
        db.refresh(user)

    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return Actor(user_id=int(user.id), email=str(user.email))


def get_actor(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Actor:
    """
    Auth modes (in priority order):
      1) Authorization: Bearer <jwt>
      2) dev header (ONLY if settings.auth_mode == "dev")
    """
    token = _bearer(authorization)
    if token:
        return _actor_from_token(db, token)

    if (settings.auth_mode or "").strip().lower() == "dev":
        return _actor_from_dev_header(db, request)

    raise HTTPException(status_code=401, detail="Not authenticated")
