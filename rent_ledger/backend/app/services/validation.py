# backend/app/services/validation.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from .results import ErrorKind, OpError

# Sentinel for "field not supplied" in partial updates (None is a real value there).
UNSET: Any = object()

_CENTS = Decimal("0.01")


def invalid(message: str) -> OpError:
    return OpError(ErrorKind.VALIDATION, message)


def require_text(raw: Any, message: str) -> str:
    s = str(raw or "").strip()
    if not s:
        raise invalid(message)
    return s


def optional_text(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    s = str(raw).strip()
    return s or None


def require_id(raw: Any, message: str) -> int:
    if raw is None or str(raw).strip() == "":
        raise invalid(message)
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise invalid(message)


def positive_amount(raw: Any, message: str = "Amount must be greater than 0") -> Decimal:
    if raw is None or isinstance(raw, bool):
        raise invalid(message)
    try:
        amt = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise invalid(message)
    if not amt.is_finite() or amt <= 0:
        raise invalid(message)
    amt = amt.quantize(_CENTS, rounding=ROUND_HALF_UP)
    if amt <= 0:
        raise invalid(message)
    return amt


def parse_date(raw: Any, message: str) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    s = str(raw or "").strip()
    if not s:
        raise invalid(message)
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        raise invalid(message)


def optional_date(raw: Any, message: str) -> Optional[date]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    return parse_date(raw, message)


def parse_timestamp(raw: Any, message: str = "Invalid paid_at timestamp") -> datetime:
    if isinstance(raw, datetime):
        # stored naive UTC
        if raw.tzinfo is not None:
            return datetime.utcfromtimestamp(raw.timestamp())
        return raw
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day)
    s = str(raw or "").strip()
    if not s:
        raise invalid(message)
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        raise invalid(message)
    return parse_timestamp(dt, message)
