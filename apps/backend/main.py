"""
Tour Compare backend.

Compares holiday package prices across travel booking sites: one search
fans out to every configured source, results are merged, deduplicated
and served per search session.
"""
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from datetime import datetime, timezone
from pathlib import Path
import logging
import os

from dotenv import load_dotenv
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env", override=False)

from dependencies import get_coordinator, get_session_store, get_settings
from exceptions import RateLimitError, TourCompareError
from observability import ObservabilityMiddleware, metrics_registry, setup_logging
from observability.health import run_health_checks
from routes.clickout import router as clickout_router
from routes.destinations import router as destinations_router
from routes.search import router as search_router

setup_logging()
logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"

# Create FastAPI app (must be defined before any @app.* decorators)
app = FastAPI(
    title="Tour Compare Backend",
    description="Multi-source holiday package price comparison",
    version=APP_VERSION,
)


def cors_options(raw_origins: str) -> dict:
    """CORS settings from a comma-separated origin list; wildcard origins never allow credentials."""
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()] or ["*"]
    return {"allow_origins": origins, "allow_credentials": "*" not in origins}


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    **cors_options(os.getenv("CORS_ORIGINS", "*")),
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)

app.include_router(search_router)
app.include_router(destinations_router)
app.include_router(clickout_router)


class HealthResponse(BaseModel):
    status: str
    version: str


# Health check endpoint
@app.get("/health", response_model=HealthResponse)
async def health_check():
    return {
        "status": "healthy",
        "version": APP_VERSION,
    }


@app.get("/health/ready")
async def readiness_check(
    settings=Depends(get_settings),
    coordinator=Depends(get_coordinator),
    store=Depends(get_session_store),
):
    """Source configuration and session store status; 503 when unhealthy."""
    report = await run_health_checks(settings, coordinator, store)
    status_code = 503 if report["status"] == "unhealthy" else 200
    return JSONResponse(status_code=status_code, content=report)


@app.get("/metrics")
async def metrics():
    return Response(content=generate_latest(metrics_registry), media_type=CONTENT_TYPE_LATEST)


@app.exception_handler(TourCompareError)
async def tour_compare_exception_handler(request: Request, exc: TourCompareError):
    """Application errors carry their own status code and a safe message."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    headers = None
    if isinstance(exc, RateLimitError) and exc.retry_after:
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors.

    - Logs full traceback
    - Returns safe error message to client
    """
    error_id = f"ERR-{datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')}-{id(exc)}"

    logger.exception(
        f"[ERROR {error_id}] Unhandled exception",
        extra={
            "error_id": error_id,
            "error_type": type(exc).__name__,
            "path": str(request.url.path),
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "error_id": error_id,
            "message": "An unexpected error occurred. Please try again.",
        }
    )


# Startup event
@app.on_event("startup")
async def startup_event():
    """Run on application startup"""
    settings = get_settings()
    logger.info("FastAPI application starting...")
    logger.info(f"Environment: {os.getenv('ENVIRONMENT', 'development')}")
    logger.info(
        f"Package sources: {'live' if settings.use_live_sources else 'mock'} "
        f"{get_coordinator().source_ids} (timeout {settings.source_timeout_seconds}s)"
    )


# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    """Run on application shutdown"""
    logger.info("FastAPI application shutting down...")


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
