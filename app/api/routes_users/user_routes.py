from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from app.api.deps import get_current_user, require_admin
from app.api.routes_users.schemas import PasswordChange, UserCreate, UserUpdate
from app.core.exceptions import ServiceError
from app.db.session import get_db
from app.models.user import User
from app.services import user_service
from app.services.logger_service import logging_controller

router = APIRouter(tags=["Users"])


@router.patch("/change-password")
def change_password(payload: PasswordChange, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    try:
        user_service.change_password(db, user, payload.current_password, payload.new_password)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "message": "Password changed successfully"}


@router.get("/")
def list_users(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    users = user_service.list_users(db)
    return {"success": True, "data": [user_service.to_dict(u) for u in users]}


@router.get("/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        user = user_service.get_user(db, user_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "data": user_service.to_dict(user)}


@router.post("/", status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        user = user_service.create_user(db, payload.username, payload.email, payload.password, payload.role)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "data": user_service.to_dict(user)}


@router.put("/{user_id}")
def update_user(user_id: int, payload: UserUpdate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        user = user_service.update_user(db, user_id, **payload.model_dump(exclude_none=True))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "data": user_service.to_dict(user)}


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        user_service.delete_user(db, user_id, admin.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    logging_controller.stop_for_user(user_id)
    return {"success": True, "message": "User deleted successfully"}


@router.patch("/{user_id}/status")
def toggle_user_status(user_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        user = user_service.toggle_status(db, user_id, admin.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not user.is_active:
        logging_controller.stop_for_user(user_id)
    return {"success": True, "data": user_service.to_dict(user)}
