# backend/app/main.py
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .logging_config import configure_logging

from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.organizations import router as organizations_router

from .routers.buildings import router as buildings_router
from .routers.tenants import router as tenants_router

from .routers.rent_configs import router as rent_configs_router
from .routers.rent_periods import router as rent_periods_router
from .routers.payments import router as payments_router

from .routers.audit import router as audit_router

API_PREFIX = "/api"


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Rent Ledger", version=settings.app_version)

    # added last = outermost: request id is set before the request log line is written
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Core
    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(organizations_router, prefix=API_PREFIX)

    # Property records
    app.include_router(buildings_router, prefix=API_PREFIX)
    app.include_router(tenants_router, prefix=API_PREFIX)

    # Rent lifecycle
    app.include_router(rent_configs_router, prefix=API_PREFIX)
    app.include_router(rent_periods_router, prefix=API_PREFIX)
    app.include_router(payments_router, prefix=API_PREFIX)

    # Audit trail
    app.include_router(audit_router, prefix=API_PREFIX)

    return app


app = create_app()
