from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.orm import Session
from typing import Optional
from app.api.deps import get_current_user, require_admin
from app.api.routes_daily_logs.schemas import GenerateRequest
from app.core.exceptions import ServiceError
from app.db.session import get_db
from app.models.user import User
from app.services import daily_log_service
from app.services.reading_store import get_reading_store
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Daily Logs"])


@router.get("/")
def list_daily_logs(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    logs = daily_log_service.list_logs(db)
    return {"success": True, "data": [daily_log_service.to_dict(log) for log in logs]}


@router.get("/{log_id}/download")
def download_daily_log(log_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    try:
        log = daily_log_service.get_log(db, log_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(
        content=log.csv_content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{log.file_name}"'},
    )


@router.post("/generate")
def generate_daily_logs(payload: Optional[GenerateRequest] = None, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    """Run the nightly job on demand, for today or the given date."""
    day = payload.day if payload else None
    try:
        logs = daily_log_service.generate_daily_logs(db, get_reading_store(), day)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        db.rollback()
        logger.exception("Manual daily log generation failed")
        raise HTTPException(status_code=500, detail="Internal server error")
    return {"success": True, "generated": len(logs), "data": [daily_log_service.to_dict(log) for log in logs]}


@router.delete("/{log_id}")
def delete_daily_log(log_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        daily_log_service.delete_log(db, log_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "message": "Daily log deleted successfully"}
