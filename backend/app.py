"""
Chiller Backend Application

FastAPI application serving the control and history endpoints and running
the sampling and retention services in the background.
"""

import os
import sys
from contextlib import asynccontextmanager

import log_config  # noqa: F401
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger

# Add core to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Import API router
import api
from api import router as api_router

from core.chiller.controller import PIDController
from core.chiller.recorder import Recorder
from core.chiller.sampling_service import SamplingService
from core.chiller.sensors import build_sensor_reader


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan manager for startup/shutdown."""
    # Startup
    logger.info("Chiller starting")

    settings = api.settings

    recorder = Recorder(
        settings.log_dir,
        retention_days=settings.retention_days,
        retention_mode=settings.retention_mode,
    )
    await recorder.start(interval_hours=settings.sweep_interval_hours)

    sampling_service = None
    try:
        sensor_reader = build_sensor_reader(settings)
    except Exception as e:
        logger.error(f"⚠️ Sampling disabled, cannot set up sensors: {e}")
    else:
        sampling_service = SamplingService(
            api.config_store,
            sensor_reader,
            recorder,
            api.live_channel,
            interval_seconds=settings.sample_interval_seconds,
            controller=PIDController() if settings.pid_enabled else None,
        )
        await sampling_service.start()
        logger.info(f"🌡️ Sampling {settings.sensor_backend} sensors: {sorted(settings.sensors)}")

        # Make sampling service available to API
        api.sampling_service = sampling_service

    yield

    # Shutdown
    logger.info("Chiller shutting down")
    if sampling_service:
        await sampling_service.stop()
        api.sampling_service = None
    await recorder.stop()


# Create FastAPI application
app = FastAPI(
    title="Chiller API",
    description="Refrigerator monitoring and control: live status, daily history and PID settings",
    version=api.VERSION,
    lifespan=lifespan,
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Handle all unhandled exceptions gracefully."""
    logger.opt(exception=exc).error(f"Unhandled exception on {request.url.path}: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc),
            "type": type(exc).__name__,
            "message": "Internal server error",
        },
    )


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)

# Mount static files
static_dir = os.path.join(os.path.dirname(__file__), "static")
if os.path.exists(static_dir):
    app.mount("/static", StaticFiles(directory=static_dir), name="static")
    logger.info(f"Mounted static files from {static_dir}")


@app.get("/")
async def root(request: Request):
    """Serve the chart UI when it is installed."""
    index_path = os.path.join(static_dir, "index.html")
    if not os.path.exists(index_path):
        return {"app": "Chiller", "docs": "/docs"}
    return FileResponse(index_path)


# For development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", 3000)))
