from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from app.api.deps import require_admin
from app.api.routes_schema.schemas import SchemaContentUpdate, SchemaUpload
from app.core.exceptions import ServiceError
from app.db.session import get_db
from app.models.user import User
from app.services import schema_service

router = APIRouter(tags=["Schema"])


@router.get("/")
def get_active_schema(db: Session = Depends(get_db)):
    schema = schema_service.get_active(db)
    if schema is None:
        raise HTTPException(status_code=404, detail="No active schema found")
    return {"success": True, "data": schema_service.to_dict(schema)}


@router.get("/all")
def list_schemas(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    schemas = schema_service.list_schemas(db)
    return {"success": True, "data": [schema_service.to_dict(s, include_content=False) for s in schemas]}


@router.get("/{schema_id}")
def get_schema(schema_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        schema = schema_service.get_schema(db, schema_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "data": schema_service.to_dict(schema)}


@router.post("/", status_code=201)
def upload_schema(payload: SchemaUpload, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        schema = schema_service.upload(db, payload.file_name, payload.svg_content, admin.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "data": schema_service.to_dict(schema, include_content=False)}


@router.put("/{schema_id}")
def update_schema(schema_id: int, payload: SchemaContentUpdate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        schema = schema_service.update_content(db, schema_id, payload.svg_content, admin.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "data": schema_service.to_dict(schema, include_content=False)}


@router.patch("/{schema_id}/activate")
def activate_schema(schema_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        schema = schema_service.set_active(db, schema_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "data": schema_service.to_dict(schema, include_content=False)}


@router.delete("/{schema_id}")
def delete_schema(schema_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    try:
        schema_service.delete(db, schema_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "message": "Schema deleted successfully"}
