# backoffice/main.py
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .logging_config import configure_logging
from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.properties import router as properties_router
from .routers.prospects import router as prospects_router
from .routers.applications import router as applications_router
from .routers.lease_offers import router as lease_offers_router
from .routers.leases import router as leases_router
from .routers.investment_pools import router as investment_pools_router
from .routers.audit import router as audit_router

API_PREFIX = "/api"


def _cors_origins() -> list[str]:
    val = settings.cors_allow_origins
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Residential Back Office", version=settings.app_version)

    # added last = outermost; request id must wrap the access log
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router, prefix=API_PREFIX)

    # Inventory + leads
    app.include_router(properties_router, prefix=API_PREFIX)
    app.include_router(prospects_router, prefix=API_PREFIX)

    # Workflows
    app.include_router(applications_router, prefix=API_PREFIX)
    app.include_router(lease_offers_router, prefix=API_PREFIX)
    app.include_router(leases_router, prefix=API_PREFIX)
    app.include_router(investment_pools_router, prefix=API_PREFIX)

    app.include_router(audit_router, prefix=API_PREFIX)
    return app


app = create_app()
