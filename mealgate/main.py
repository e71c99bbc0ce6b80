"""
MealGate — FastAPI application entry point.
Lifespan: create DB tables → verify connectivity → build the gate services.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mealgate.config import settings
from mealgate.database import AsyncSessionLocal, check_db_connectivity, engine
from mealgate.errors import ErrorKind, MealGateError, error_body
from mealgate.models import Base
from mealgate.routers import admission, allergen_checks, allergies, health, kitchens, menus
from mealgate.services.container import build_services

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan handler.
    1. Create all tables (idempotent — IF NOT EXISTS).
    2. Verify DB connectivity.
    3. Build the service graph unless one was already installed (tests).
    """
    logger.info("Starting MealGate (env=%s)", settings.app_env)

    # Step 1: create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created/verified.")

    # Step 2: connectivity check
    ok = await check_db_connectivity()
    if not ok:
        logger.error("Database connectivity check FAILED at startup.")
    else:
        logger.info("Database connectivity verified.")

    # Step 3: services
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(AsyncSessionLocal, settings)
    logger.info(
        "Gates ready (hygiene pass score %d/%d).",
        settings.hygiene_pass_score, settings.hygiene_item_max,
    )

    yield

    logger.info("Shutting down MealGate.")
    await engine.dispose()


app = FastAPI(
    title="MealGate",
    description="Allergen safety, kitchen hygiene and menu approval gates for school meal service.",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────────────────────

app.include_router(health.router)
app.include_router(allergen_checks.router)
app.include_router(allergies.router)
app.include_router(kitchens.router)
app.include_router(menus.router)
app.include_router(admission.router)


# ── Exception handlers ───────────────────────────────────────────────────────

@app.exception_handler(MealGateError)
async def mealgate_error_handler(request: Request, exc: MealGateError) -> JSONResponse:
    """Typed service errors → {"detail", "code"} with the kind's HTTP status."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.kind.value, request.method, request.url, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.kind, exc.message, exc.payload),
        headers={"X-Error-Code": exc.kind.value},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return a machine-readable error for any unhandled exception."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": ErrorKind.INTERNAL_ERROR.value},
    )
