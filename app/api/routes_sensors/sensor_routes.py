from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from datetime import datetime
from typing import List, Optional
from app.api.deps import get_current_user, require_admin
from app.api.routes_sensors.schemas import ReadingCreate, ReadingOut
from app.core.exceptions import ServiceError
from app.models.user import User
from app.services import report_service
from app.services.reading_store import DEFAULT_LIMIT, ReadingFilter, get_reading_store
from app.services.sensor_config_service import default_unit
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Sensors"])


def _filter(sensor_id, sensor_type, start_date, end_date, interval_seconds=None, user_id=None) -> ReadingFilter:
    try:
        return report_service.build_filter(
            sensor_id=sensor_id,
            sensor_types=sensor_type,
            start=start_date,
            end=end_date,
            interval_seconds=interval_seconds,
            user_id=user_id,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/", response_model=List[ReadingOut])
def get_readings(
    sensor_id: Optional[str] = None,
    sensor_type: Optional[List[str]] = Query(default=None),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    interval_seconds: Optional[int] = None,
    user_id: Optional[int] = None,
    limit: int = Query(default=DEFAULT_LIMIT, gt=0, le=report_service.MAX_LIMIT),
    user: User = Depends(get_current_user),
):
    """
    Stored readings, most recent first, bounded by ``limit``.
    ``sensor_type`` may repeat or be comma separated.
    """
    reading_filter = _filter(sensor_id, sensor_type, start_date, end_date, interval_seconds, user_id)
    try:
        return report_service.query_readings(get_reading_store(), reading_filter, limit)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        logger.exception("Error retrieving readings")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/export")
def export_readings(
    sensor_id: Optional[str] = None,
    sensor_type: Optional[List[str]] = Query(default=None),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    user: User = Depends(get_current_user),
):
    reading_filter = _filter(sensor_id, sensor_type, start_date, end_date)
    content = report_service.export_csv(get_reading_store(), reading_filter)
    file_name = f"sensor_report_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )


@router.get("/stats")
def get_stats(user: User = Depends(get_current_user)):
    return {"success": True, "data": report_service.stats(get_reading_store())}


@router.get("/database-status")
def get_database_status(user: User = Depends(get_current_user)):
    try:
        return report_service.database_status(get_reading_store())
    except Exception:
        logger.exception("Error checking database status")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/", status_code=201, response_model=ReadingOut)
def create_reading(payload: ReadingCreate, admin: User = Depends(require_admin)):
    """Manual insert, e.g. for backfilling a reading taken by hand."""
    data = payload.model_dump()
    data["sensor_type"] = payload.sensor_type.value
    if data["unit"] is None:
        data["unit"] = default_unit(data["sensor_type"])
    try:
        return report_service.create_reading(get_reading_store(), data)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/sensor/{sensor_id}")
def delete_by_sensor(sensor_id: str, admin: User = Depends(require_admin)):
    deleted = report_service.delete_by_sensor(get_reading_store(), sensor_id)
    return {"success": True, "message": f"All data for sensor {sensor_id} deleted", "deletedCount": deleted}


@router.delete("/interval/{interval_seconds}")
def delete_by_interval(interval_seconds: int, admin: User = Depends(require_admin)):
    try:
        deleted = report_service.delete_by_interval(get_reading_store(), interval_seconds)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "message": f"Data with interval {interval_seconds}s deleted", "deletedCount": deleted}


@router.delete("/{reading_id}")
def delete_reading(reading_id: int, admin: User = Depends(require_admin)):
    try:
        report_service.delete_reading(get_reading_store(), reading_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "message": "Data deleted successfully"}


@router.delete("/")
def delete_readings(
    types: Optional[List[str]] = Query(default=None, description="Sensor types to delete; omit to delete everything"),
    admin: User = Depends(require_admin),
):
    try:
        if types is not None:
            deleted = report_service.delete_by_types(get_reading_store(), types)
        else:
            deleted = report_service.delete_all(get_reading_store())
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    logger.warning(f"Admin {admin.username} deleted {deleted} reading(s) (types={types or 'all'})")
    return {"success": True, "deletedCount": deleted}
