from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text
from datetime import datetime, timezone
from app.db.base_class import Base


class DesalinationSchema(Base):
    """Uploaded SVG diagram of the rig; at most one row is active."""
    __tablename__ = "schemas"

    id = Column(Integer, primary_key=True, index=True)
    file_name = Column(String(255), nullable=False)
    svg_content = Column(Text, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, default=False, nullable=False, index=True)
    uploaded_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
