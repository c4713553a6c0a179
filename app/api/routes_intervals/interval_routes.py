from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from app.api.deps import get_current_user, require_admin
from app.api.routes_intervals.schemas import IntervalCreate, IntervalUpdate
from app.core.exceptions import ServiceError
from app.db.session import get_db
from app.models.user import User
from app.services import interval_service

router = APIRouter(tags=["Intervals"])


@router.get("/")
def list_intervals(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """The global catalogue, with the caller's selection flagged."""
    intervals = interval_service.list_intervals(db)
    return {
        "success": True,
        "activeIntervalId": user.active_interval_id,
        "data": [interval_service.to_dict(i, user.active_interval_id) for i in intervals],
    }


@router.get("/active")
def get_active_interval(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    interval, is_default = interval_service.get_active_interval(db, user)
    return {
        "success": True,
        "isDefault": is_default,
        "data": interval_service.to_dict(interval, interval.id) if interval else None,
    }


@router.patch("/{interval_id}/activate")
def activate_interval(interval_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    try:
        interval = interval_service.set_active_interval(db, user, interval_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "data": interval_service.to_dict(interval, interval.id)}


@router.post("/", status_code=201)
def create_interval(payload: IntervalCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        interval = interval_service.create_interval(db, payload.interval_seconds, payload.interval_name)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "data": interval_service.to_dict(interval)}


@router.put("/{interval_id}")
def update_interval(interval_id: int, payload: IntervalUpdate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        interval = interval_service.update_interval(db, interval_id, payload.interval_seconds, payload.interval_name)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "data": interval_service.to_dict(interval)}


@router.delete("/{interval_id}")
def delete_interval(interval_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    """Users that had this interval selected fall back to the default."""
    try:
        cleared = interval_service.delete_interval(db, interval_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "clearedUsers": cleared}
