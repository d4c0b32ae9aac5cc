"""
FastAPI routes for the membership lookup service.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..services.customer_db import customer_db
from ..services.moonclerk import moonclerk_client
from ..utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Membership"])


# ===================
# Pydantic Models
# ===================

class MembershipResponse(BaseModel):
    """Membership status for an email address."""
    email: str
    found: bool
    active: bool = False
    customer_id: Optional[int] = None
    status: Optional[str] = None
    plan_name: Optional[str] = None
    current_period_end: Optional[str] = None


# ===================
# Endpoints
# ===================

@router.get("/membership", response_model=MembershipResponse)
async def get_membership(email: str = Query(..., min_length=3, max_length=320)):
    """Look up the latest MoonClerk subscription for an email."""
    customer = await customer_db.lookup(email)
    if customer is None:
        return MembershipResponse(email=email, found=False)

    sub = customer.subscription
    return MembershipResponse(
        email=email,
        found=True,
        active=customer.is_active,
        customer_id=customer.id,
        status=sub.status.value,
        plan_name=sub.plan.name if sub.plan else None,
        current_period_end=sub.current_period_end.isoformat() if sub.current_period_end else None,
    )


def create_api_app() -> FastAPI:
    """Create the FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await moonclerk_client.close()

    app = FastAPI(
        title="Membership API",
        description="Email to MoonClerk subscription lookup",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Logs duration and adds X-Response-Time header
    @app.middleware("http")
    async def timing_middleware(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Response-Time"] = f"{elapsed_ms:.1f}ms"
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round(elapsed_ms, 1),
        )
        return response

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.include_router(router)

    @app.get("/health")
    async def health_check():
        last_refresh = customer_db.last_refresh
        return {
            "status": "healthy",
            "service": "membership-api",
            "customers": customer_db.customer_count,
            "last_refresh": last_refresh.isoformat() if last_refresh else None,
            "refreshing": customer_db.is_refreshing,
        }

    return app
