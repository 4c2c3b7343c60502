# backend/drivebook/main.py
"""
FastAPI application for the driving-school booking and payment service.

Mounts the v1 routers under /api/v1, the health probes and the Prometheus
scrape endpoint. Domain errors become JSON ``{"detail": {...}}`` bodies
carrying the error kind.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator, Awaitable, Callable

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.responses import JSONResponse

from . import models  # noqa: F401  (registers tables on Base.metadata)
from .core.config import settings
from .core.exceptions import DomainException
from .core.logging_config import configure_logging
from .core.request_context import reset_request_id, set_request_id
from .core.ulid_helper import generate_ulid
from .database import Base, engine
from .routes import health, prometheus
from .routes.v1 import (
    booking as booking_v1,
    cart as cart_v1,
    instructors as instructors_v1,
    orders as orders_v1,
    payments as payments_v1,
    ticket_classes as ticket_classes_v1,
    transactions as transactions_v1,
)

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"drivebook API starting up (environment={settings.environment})")
    Base.metadata.create_all(bind=engine)
    yield
    logger.info("drivebook API shutting down")


app = FastAPI(
    title="drivebook API",
    description="Slot booking, checkout and payment settlement for a driving school",
    version="1.0.0",
    lifespan=app_lifespan,
)


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


@app.middleware("http")
async def attach_request_id(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    request_id = request.headers.get("X-Request-ID") or generate_ulid()
    token = set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        reset_request_id(token)
    response.headers["X-Request-ID"] = request_id
    return response


# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")

api_v1.include_router(booking_v1.router, prefix="/booking")
api_v1.include_router(instructors_v1.router, prefix="/instructors")
api_v1.include_router(ticket_classes_v1.router, prefix="/ticketclasses")
api_v1.include_router(orders_v1.router, prefix="/orders")
api_v1.include_router(payments_v1.router, prefix="/payments")
api_v1.include_router(transactions_v1.router, prefix="/transactions")
api_v1.include_router(cart_v1.router, prefix="/cart")

app.include_router(api_v1)
app.include_router(health.router)
app.include_router(prometheus.router)
