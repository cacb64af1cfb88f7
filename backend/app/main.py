"""
Lexi FastAPI Application Entry Point.

Run with: uvicorn app.main:app --reload
"""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings, sanitize_error
from app.api.routes import chat, kids
from app.errors import ProviderError, ServiceError
from app.services.stats_service import run_retention_sweeper

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    # Startup
    sweeper = None
    if settings.retention_sweep_interval_seconds > 0:
        sweeper = asyncio.create_task(
            run_retention_sweeper(settings.retention_sweep_interval_seconds, settings.retention_days)
        )
        logger.info("Retention sweeper every %ds", settings.retention_sweep_interval_seconds)
    yield
    # Shutdown
    if sweeper is not None:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper


app = FastAPI(
    title=settings.app_name,
    description="Lexi AI tutor API",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render service errors as {type, error_type, status, message, details}."""
    error_type = type(exc).__name__
    details = exc.details
    if isinstance(exc, ProviderError):
        details = sanitize_error(details, generic_message="No details provided.")

    logger.warning(
        "[error]: %s: %s >> %s >> Message: %s Details: %s",
        error_type, request.method, request.url.path, exc.message, exc.details,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "type": "error",
            "error_type": error_type,
            "status": exc.status_code,
            "message": exc.message,
            "details": details,
        },
    )


# Include routers
app.include_router(chat.router)
app.include_router(kids.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
