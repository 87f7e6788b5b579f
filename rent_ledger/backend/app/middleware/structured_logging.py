# backend/app/middleware/structured_logging.py
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("rentledger.request")


def _org_slug_from_path(path: str) -> Optional[str]:
    # /api/orgs/{slug}/...
    parts = [p for p in path.split("/") if p]
    try:
        i = parts.index("orgs")
    except ValueError:
        return None
    return parts[i + 1] if len(parts) > i + 1 else None


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    One log line per request: method, path, status_code, latency_ms, org_slug.
    request_id is attached by the JSON formatter (RequestIDMiddleware must run first).
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            log.info(
                "%s %s -> %s",
                request.method,
                request.url.path,
                status_code,
                extra={
                    "event": "http_request",
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "latency_ms": int((time.perf_counter() - t0) * 1000),
                    "org_slug": _org_slug_from_path(request.url.path),
                },
            )
