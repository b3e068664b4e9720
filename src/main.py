"""Cyclewise API — FastAPI application entry point.

Run locally:
    uvicorn src.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.config import get_settings
from src.cycles.config_loader import get_cycle_config
from src.cycles.errors import CycleEngineError
from src.models.base import ErrorDetail
from src.routers import cycles, health

# ---------- Logging ----------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("cyclewise")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logging.getLogger("cyclewise").setLevel(settings.log_level.upper())
    logger.info(
        "Starting Cyclewise API v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    get_cycle_config()
    yield
    logger.info("Cyclewise API shut down")


# ---------- Error handling ----------

async def cycle_engine_exception_handler(request: Request, exc: CycleEngineError) -> JSONResponse:
    """Invalid engine input → 422 with a machine-readable code."""
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=422,
        content=ErrorDetail(code=exc.code, detail=str(exc)).model_dump(),
    )


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Cyclewise API",
        description=(
            "Cycle inference and forecasting — menstruation periods, ovulation "
            "episodes, luteal-phase numbering, forecasts, and forecast accuracy."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_exception_handler(CycleEngineError, cycle_engine_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------- Health check (outside the v1 prefix, always at /health) ----------
    app.include_router(health.router)

    # ---------- API v1 routes ----------
    app.include_router(cycles.router, prefix="/api/v1")

    return app


app = create_app()
