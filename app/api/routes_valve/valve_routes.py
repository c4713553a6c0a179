from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from app.api.deps import get_current_user
from app.api.routes_valve.schemas import ControlRequest, ModeRequest, ThresholdRequest
from app.core.exceptions import ServiceError
from app.db.session import get_db
from app.models.user import User
from app.services import valve_service
from app.services.valve_service import valve_relay

router = APIRouter(tags=["Valve"])


@router.get("/status")
def get_status(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    config = valve_service.get_or_create_config(db)
    data = valve_relay.get_status()
    data["thresholds"] = {"onThreshold": config.on_threshold, "offThreshold": config.off_threshold}
    return {"success": True, "data": data}


@router.post("/mode")
def set_mode(payload: ModeRequest, user: User = Depends(get_current_user)):
    try:
        data = valve_relay.set_mode(payload.mode)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "message": f"Valve mode changed to {data['mode'].upper()}", "data": data}


@router.post("/control")
def control(payload: ControlRequest, user: User = Depends(get_current_user)):
    try:
        data = valve_relay.control(payload.command)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "message": f"Valve {data['command'].upper()} command sent", "data": data}


@router.post("/thresholds")
def set_thresholds(payload: ThresholdRequest, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    try:
        config = valve_service.set_thresholds(db, valve_relay, payload.onThreshold, payload.offThreshold, user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {
        "success": True,
        "data": {"onThreshold": config.on_threshold, "offThreshold": config.off_threshold},
    }
