from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
from app.api.deps import require_admin
from app.api.routes_sensor_config.schemas import SensorConfigBulkIn, SensorConfigIn, SortOrderIn
from app.core.exceptions import ServiceError
from app.db.session import get_db
from app.models.user import User
from app.services import sensor_config_service
from app.services.sensor_cache import sensor_cache
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Sensor Config"])


def _payload(config: SensorConfigIn) -> dict:
    data = config.model_dump()
    data["sensor_type"] = config.sensor_type.value
    return data


@router.get("/")
def list_configs(sensor_type: Optional[str] = None, db: Session = Depends(get_db)):
    configs = sensor_config_service.list_configs(db, sensor_type)
    return {
        "success": True,
        "count": len(configs),
        "data": [sensor_config_service.to_dict(c) for c in configs],
    }


@router.get("/map")
def config_map(db: Session = Depends(get_db)):
    """Display metadata of the enabled sensors keyed by sensor id."""
    data = sensor_config_service.display_map(db)
    return {"success": True, "count": len(data), "data": data}


@router.get("/discovered")
def discovered_sensors(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    """Sensors seen in telemetry without a config, with a suggested category."""
    data = sensor_config_service.list_discovered(db, sensor_cache)
    return {"success": True, "count": len(data), "data": data}


@router.get("/{sensor_id}")
def get_config(sensor_id: str, db: Session = Depends(get_db)):
    try:
        config = sensor_config_service.get_config(db, sensor_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "data": sensor_config_service.to_dict(config)}


@router.post("/")
def upsert_config(payload: SensorConfigIn, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        config = sensor_config_service.upsert(db, _payload(payload))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {
        "success": True,
        "message": f"Sensor {config.sensor_id} configuration saved",
        "data": sensor_config_service.to_dict(config),
    }


@router.post("/bulk")
def bulk_upsert(payload: SensorConfigBulkIn, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    configs = sensor_config_service.bulk_upsert(db, [_payload(c) for c in payload.configs])
    return {
        "success": True,
        "count": len(configs),
        "data": [sensor_config_service.to_dict(c) for c in configs],
    }


@router.post("/auto-register")
def auto_register(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    created = sensor_config_service.auto_register(db, sensor_cache)
    return {
        "success": True,
        "registered": len(created),
        "data": [sensor_config_service.to_dict(c) for c in created],
    }


@router.patch("/{sensor_id}/toggle")
def toggle_config(sensor_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        config = sensor_config_service.toggle(db, sensor_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {
        "success": True,
        "message": f"Sensor {sensor_id} {'enabled' if config.is_enabled else 'disabled'}",
        "data": sensor_config_service.to_dict(config),
    }


@router.patch("/{sensor_id}/order")
def reorder_config(sensor_id: str, payload: SortOrderIn, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        config = sensor_config_service.reorder(db, sensor_id, payload.sort_order)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "data": sensor_config_service.to_dict(config)}


@router.delete("/{sensor_id}")
def delete_config(sensor_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        sensor_config_service.delete(db, sensor_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "message": f"Sensor {sensor_id} configuration deleted"}
