import logging
from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, ValidationError
from app.models.schema import DesalinationSchema

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 200


def validate_svg(svg_content) -> None:
    if not svg_content or not isinstance(svg_content, str):
        raise ValidationError("Invalid SVG content")
    stripped = svg_content.strip()
    if not (stripped.startswith("<svg") or stripped.startswith("<?xml")):
        raise ValidationError("Content is not a valid SVG")
    if "</svg>" not in stripped:
        raise ValidationError("SVG is not properly closed")


def get_active(db: Session) -> Optional[DesalinationSchema]:
    return (
        db.query(DesalinationSchema)
        .filter(DesalinationSchema.is_active.is_(True))
        .order_by(DesalinationSchema.created_at.desc())
        .first()
    )


def list_schemas(db: Session) -> List[DesalinationSchema]:
    return db.query(DesalinationSchema).order_by(DesalinationSchema.version.desc()).all()


def get_schema(db: Session, schema_id: int) -> DesalinationSchema:
    schema = db.get(DesalinationSchema, schema_id)
    if schema is None:
        raise NotFound(f"Schema {schema_id} not found")
    return schema


def _deactivate_all(db: Session, keep_id: Optional[int] = None) -> None:
    query = update(DesalinationSchema).where(DesalinationSchema.is_active.is_(True))
    if keep_id is not None:
        query = query.where(DesalinationSchema.id != keep_id)
    db.execute(query.values(is_active=False))


def upload(db: Session, file_name: str, svg_content: str, uploaded_by: Optional[int] = None) -> DesalinationSchema:
    """Store a new version and make it the active one."""
    validate_svg(svg_content)
    if not file_name:
        raise ValidationError("file_name is required")

    latest_version = db.query(func.max(DesalinationSchema.version)).scalar() or 0
    try:
        _deactivate_all(db)
        schema = DesalinationSchema(
            file_name=file_name,
            svg_content=svg_content,
            version=latest_version + 1,
            is_active=True,
            uploaded_by=uploaded_by,
        )
        db.add(schema)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(schema)
    logger.info(f"New schema uploaded: v{schema.version} by user {uploaded_by}")
    return schema


def update_content(db: Session, schema_id: int, svg_content: str, uploaded_by: Optional[int] = None) -> DesalinationSchema:
    validate_svg(svg_content)
    schema = get_schema(db, schema_id)
    schema.svg_content = svg_content
    schema.uploaded_by = uploaded_by
    db.commit()
    db.refresh(schema)
    logger.info(f"Schema {schema_id} updated by user {uploaded_by}")
    return schema


def set_active(db: Session, schema_id: int) -> DesalinationSchema:
    """Deactivate every schema and activate one, in a single transaction."""
    schema = get_schema(db, schema_id)
    try:
        _deactivate_all(db, keep_id=schema.id)
        schema.is_active = True
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(schema)
    logger.info(f"Schema {schema_id} set as active")
    return schema


def delete(db: Session, schema_id: int) -> None:
    # deleting the active schema is allowed; the dashboard then shows none
    schema = get_schema(db, schema_id)
    db.delete(schema)
    db.commit()
    logger.info(f"Schema {schema_id} deleted")


def to_dict(schema: DesalinationSchema, include_content: bool = True) -> dict:
    data = {
        "id": schema.id,
        "file_name": schema.file_name,
        "version": schema.version,
        "is_active": schema.is_active,
        "uploaded_by": schema.uploaded_by,
        "created_at": schema.created_at,
        "updated_at": schema.updated_at,
    }
    if include_content:
        data["svg_content"] = schema.svg_content
    else:
        data["svg_preview"] = schema.svg_content[:PREVIEW_LENGTH]
    return data
