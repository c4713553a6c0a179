from fastapi import APIRouter, Body, HTTPException
from datetime import datetime, timezone
from typing import Any, Dict
from app.core.exceptions import ServiceError
from app.services.sensor_cache import sensor_cache
from app.services.valve_service import valve_relay
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ESP32"])


@router.post("/sensors")
def receive_sensors(payload: Dict[str, Any] = Body(...)):
    """
    Generic sensor push from the board: ``{"S1": 25.5, "RH1": 70.0, ...}``.
    Ids can be anything; admins map them to categories in the registry.
    """
    try:
        sensor_ids = sensor_cache.record_many(payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    logger.debug(f"Received {len(sensor_ids)} sensor values")
    return {
        "success": True,
        "received": len(sensor_ids),
        "sensorIds": sensor_ids,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/realtime")
def get_realtime():
    last_update = sensor_cache.last_update
    return {
        "success": True,
        "data": {
            "sensors": sensor_cache.snapshot(),
            "valve": valve_relay.last_status(),
        },
        "lastUpdate": last_update.isoformat() if last_update else None,
    }


@router.post("/valve")
def receive_valve_status(payload: Dict[str, Any] = Body(...)):
    status = valve_relay.update_status(payload)
    return {"success": True, "data": status}
