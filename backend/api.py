"""
Chiller API Endpoints
"""

import asyncio
import os
import sys
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, WebSocket, WebSocketDisconnect
from loguru import logger
from pydantic import BaseModel, ConfigDict

# Add core to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.chiller.auth import ApiKeyAuthorizer, Authorizer
from core.chiller.config_store import ConfigStore
from core.chiller.exceptions import (
    AuthorizationError,
    CorruptDataError,
    InvalidRequestError,
    NotFoundError,
)
from core.chiller.history import HistoryReader
from core.chiller.live import LiveChannel
from core.chiller.models import PartialConfiguration
from core.chiller.settings import load_settings

VERSION = "0.1.0"

router = APIRouter()

# Shared services, built from the deployment settings on import
settings = load_settings()
config_store = ConfigStore(settings.config_path, default=settings.default_configuration())
history_reader = HistoryReader(settings.log_dir)
live_channel = LiveChannel()
authorizer: Authorizer = ApiKeyAuthorizer(settings.api_key)

# Sampling service (set by app.py during startup)
sampling_service = None


class TemperatureUpdateRequest(BaseModel):
    """Request body for a control update; omitted fields keep their value."""

    model_config = ConfigDict(allow_inf_nan=False)

    target_temp: Optional[float] = None
    p: Optional[float] = None
    i: Optional[float] = None
    d: Optional[float] = None


@router.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": "Chiller",
        "version": VERSION,
        "sampling": sampling_service is not None,
    }


@router.get("/api/status")
async def get_status():
    """Get the most recent status sample."""
    record = sampling_service.last_record if sampling_service else None
    if record is None:
        raise HTTPException(status_code=404, detail="No status sampled yet")
    return record.to_dict()


@router.get("/api/config")
async def get_config():
    """Get the persisted controller configuration."""
    try:
        return config_store.read().to_dict()
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except CorruptDataError as e:
        logger.error(f"Stored configuration is corrupt: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.post("/api/temperature")
async def update_temperature(
    request: TemperatureUpdateRequest,
    authorization: Optional[str] = Header(None),
):
    """Update target temperature and/or PID gains.

    Fields that are not supplied keep their stored value, so a request with
    only target_temp does not reset the gains. An explicit 0 is applied.
    """
    try:
        authorizer.authorize(authorization)
    except AuthorizationError as e:
        logger.warning(f"Rejected control update: {e}")
        raise HTTPException(status_code=401, detail=str(e)) from e

    partial = PartialConfiguration(**request.model_dump())
    if partial.is_empty() and not settings.require_all_fields:
        raise HTTPException(status_code=422, detail="No configuration fields supplied")

    try:
        config = await asyncio.to_thread(
            config_store.update, partial, require_all=settings.require_all_fields
        )
    except InvalidRequestError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except CorruptDataError as e:
        logger.error(f"Cannot update corrupt configuration: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    logger.info(f"Updated settings to {config.to_dict()} (supplied: {partial.supplied()})")
    return {"status": "ok", "config": config.to_dict()}


@router.get("/api/chart")
async def get_chart_days():
    """Days that have recorded history."""
    return {"days": history_reader.available_days()}


@router.get("/api/chart/{day}")
async def get_chart(day: str):
    """Get all status records of one day (YYYY-MM-DD) for charting.

    Returns an empty list when nothing was recorded that day.
    """
    try:
        records = await asyncio.to_thread(history_reader.read_day, day)
    except NotFoundError:
        return []
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except CorruptDataError as e:
        logger.error(f"Corrupt history for {day}: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    return [record.to_dict() for record in records]


@router.websocket("/ws/status")
async def status_stream(websocket: WebSocket):
    """Stream every new status sample as JSON."""
    # Subscribe before accepting so nothing published after the handshake is missed
    subscription = live_channel.subscribe()
    await websocket.accept()
    try:
        while True:
            record = await subscription.get()
            if record is None:
                # Dropped as a slow consumer
                await websocket.close(code=1013)
                break
            await websocket.send_json(record.to_dict())
    except WebSocketDisconnect:
        pass
    finally:
        live_channel.unsubscribe(subscription)
