from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from app.api.deps import get_current_user
from app.api.routes_auth.schemas import LoginRequest
from app.core.exceptions import ServiceError
from app.db.session import get_db
from app.models.user import User
from app.services import interval_service, user_service

router = APIRouter(tags=["Auth"])


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    try:
        data = user_service.authenticate(db, payload.username, payload.password)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "data": data}


@router.get("/me")
def me(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    interval, is_default = interval_service.get_active_interval(db, user)
    data = user_service.to_dict(user)
    data["active_interval"] = interval_service.to_dict(interval, interval.id) if interval and not is_default else None
    return {"success": True, "data": data}
