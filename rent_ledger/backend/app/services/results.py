# backend/app/services/results.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, Callable, Generic, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

T = TypeVar("T")

_log = logging.getLogger("rentledger.services")

CONCURRENT_MODIFICATION = "Record was modified concurrently; reload and try again"


class ErrorKind(str, Enum):
    DENIED = "denied"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FAILED = "failed"


class OpError(Exception):
    """
    Raised inside a service to abort the current operation.
    Never crosses the service boundary: public functions turn it into OpResult.fail().
    """

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass(frozen=True)
class OpResult(Generic[T]):
    """
    What every lifecycle operation returns.

    - ok=False: `error` is the user-facing message, `kind` says how to render it.
    - ok=True, degraded=True: the primary write succeeded but a follow-up step
      didn't; `warning` says what needs manual reconciliation.
    """

    ok: bool
    data: Optional[T] = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None
    degraded: bool = False
    warning: Optional[str] = None

    @classmethod
    def success(cls, data: Any = None) -> "OpResult[Any]":
        return cls(ok=True, data=data)

    @classmethod
    def degraded_success(cls, data: Any = None, *, warning: str) -> "OpResult[Any]":
        return cls(ok=True, data=data, degraded=True, warning=warning)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str) -> "OpResult[Any]":
        return cls(ok=False, error=error, kind=kind)

    @classmethod
    def from_error(cls, e: OpError) -> "OpResult[Any]":
        return cls(ok=False, error=e.message, kind=e.kind)


def run_op(
    db: Session,
    body: Callable[[], Any],
    *,
    failure_message: str,
    conflict_message: Optional[str] = None,
    log: Optional[logging.Logger] = None,
) -> OpResult[Any]:
    """
    Service boundary: run `body`, turn OpError / DB errors into OpResult, roll the
    session back on any failure. `body` may return an OpResult itself (e.g. a
    degraded success) or a plain value.
    """
    lg = log or _log
    try:
        out = body()
    except OpError as e:
        db.rollback()
        return OpResult.from_error(e)
    except StaleDataError:
        db.rollback()
        lg.warning("concurrent modification: %s", failure_message, exc_info=True)
        return OpResult.fail(ErrorKind.CONFLICT, conflict_message or CONCURRENT_MODIFICATION)
    except IntegrityError:
        db.rollback()
        if conflict_message:
            return OpResult.fail(ErrorKind.CONFLICT, conflict_message)
        lg.exception("integrity error: %s", failure_message)
        return OpResult.fail(ErrorKind.FAILED, failure_message)
    except SQLAlchemyError:
        db.rollback()
        lg.exception("database error: %s", failure_message)
        return OpResult.fail(ErrorKind.FAILED, failure_message)

    if isinstance(out, OpResult):
        return out
    return OpResult.success(out)
