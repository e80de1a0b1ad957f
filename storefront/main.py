"""
Main Application Entry Point

This module sets up the FastAPI application with:
- Database initialization and the rate-limit sweeper on startup
- The /api/* rate-limit middleware
- JSON error rendering ({"error": "..."}) for every failure
- Route registration for the storefront, customer and admin APIs

Run locally with:
    uvicorn storefront.main:app --reload
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.config import settings
from storefront.database import engine
from storefront.limiter import ALL_LIMITERS, api_limiter, client_key, run_sweeper
from storefront.models import Base
from storefront.routes import (
    admin_auth,
    admin_categories,
    admin_config,
    admin_discounts,
    admin_orders,
    admin_products,
    admin_users,
    catalog,
    checkout,
    contact,
    customer,
    discounts,
    subscriptions,
    webhooks,
)

logging.basicConfig(
    level=logging.INFO if settings.is_production else logging.DEBUG,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager - runs on startup and shutdown.

    Startup:
    - Create database tables if they don't exist
    - Start the background task that sweeps idle rate-limit keys

    Shutdown:
    - Cancel the sweeper
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    sweeper = asyncio.create_task(run_sweeper(ALL_LIMITERS, settings.RATE_LIMIT_SWEEP_SECONDS))
    logger.info(f"Storefront API started ({settings.ENVIRONMENT})")

    yield

    sweeper.cancel()
    try:
        await sweeper
    except asyncio.CancelledError:
        pass
    await engine.dispose()


app = FastAPI(title="Las Delicias del Campo", lifespan=lifespan)


@app.middleware("http")
async def rate_limit_api(request: Request, call_next):
    """
    Apply the blanket API limit to /api/* requests.

    Payment webhooks are exempt: the gateway retries from a handful of
    addresses and must never be throttled.
    """
    path = request.url.path
    if not path.startswith("/api/") or path.startswith("/api/webhooks/"):
        return await call_next(request)

    result = api_limiter.check(client_key(request))
    if not result.success:
        return JSONResponse(
            status_code=429,
            content={"error": "Too many requests. Please try again later."},
            headers={
                "Retry-After": str(int(api_limiter.window_seconds)),
                "X-RateLimit-Limit": str(api_limiter.limit),
                "X-RateLimit-Remaining": "0",
            },
        )

    response = await call_next(request)
    response.headers["X-RateLimit-Limit"] = str(api_limiter.limit)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Covers FastAPI HTTPException and routing errors (unknown path, wrong method)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Malformed JSON bodies and unparseable query parameters
    return JSONResponse(status_code=400, content={"error": "Datos inválidos"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Error interno del servidor"})


app.include_router(admin_auth.router)
app.include_router(admin_categories.router)
app.include_router(admin_products.router)
app.include_router(admin_discounts.router)
app.include_router(admin_orders.router)
app.include_router(admin_users.router)
app.include_router(admin_config.router)
app.include_router(catalog.router)
app.include_router(discounts.router)
app.include_router(contact.router)
app.include_router(customer.router)
app.include_router(checkout.router)
app.include_router(subscriptions.router)
app.include_router(webhooks.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
