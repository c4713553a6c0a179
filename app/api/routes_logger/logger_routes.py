from fastapi import APIRouter, Depends, HTTPException
from app.api.deps import get_current_user, require_admin
from app.api.routes_logger.schemas import LoggerConfigRequest, LoggerStartRequest
from app.core.exceptions import ServiceError
from app.models.user import User
from app.services.logger_service import logging_controller
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Logger"])


@router.post("/start")
def start_logger(payload: LoggerStartRequest, user: User = Depends(get_current_user)):
    """
    Start the current user's logging session.
    Fails with 400 on an interval outside the catalogue or when no category is 'all',
    and with 409 when the session is already running.
    """
    try:
        status = logging_controller.start(
            user.id,
            selectors=payload.selectors(),
            interval_ms=payload.interval,
            username=user.username,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {
        "success": True,
        "isLogging": status["isLogging"],
        "intervalMs": status["intervalMs"],
        "status": status,
    }


@router.post("/stop")
def stop_logger(user: User = Depends(get_current_user)):
    was_logging = logging_controller.stop(user.id)
    return {"success": True, "wasLogging": was_logging, "status": logging_controller.status(user.id)}


@router.post("/config")
def configure_logger(payload: LoggerConfigRequest, user: User = Depends(get_current_user)):
    """Change interval and/or categories. Only allowed while logging is stopped (409 otherwise)."""
    try:
        status = logging_controller.configure(
            user.id,
            interval_ms=payload.interval,
            selectors=payload.selectors(),
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "status": status}


@router.get("/status")
def logger_status(user: User = Depends(get_current_user)):
    return logging_controller.status(user.id)


@router.get("/all")
def all_sessions(admin: User = Depends(require_admin)):
    """Every running session, for fleet-wide monitoring."""
    return logging_controller.list_all()


@router.post("/stop-all")
def stop_all_sessions(admin: User = Depends(require_admin)):
    stopped = logging_controller.stop_all()
    logger.info(f"Admin {admin.username} stopped {stopped} logging session(s)")
    return {"success": True, "stopped": stopped}


@router.post("/stop/{user_id}")
def stop_user_session(user_id: int, admin: User = Depends(require_admin)):
    was_logging = logging_controller.stop_for_user(user_id)
    if was_logging:
        logger.info(f"Admin {admin.username} stopped logging for user {user_id}")
    return {"success": True, "wasLogging": was_logging}
