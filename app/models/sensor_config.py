from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Text
from datetime import datetime, timezone
from app.db.base_class import Base


class SensorConfig(Base):
    __tablename__ = "sensor_configs"

    id = Column(Integer, primary_key=True, index=True)
    sensor_id = Column(String(50), unique=True, index=True, nullable=False)
    display_name = Column(String(100), nullable=False)
    sensor_type = Column(String(30), nullable=False, index=True)
    unit = Column(String(20), nullable=False, default="")
    is_enabled = Column(Boolean, default=True, nullable=False)
    is_configured = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    min_value = Column(Float, nullable=True)
    max_value = Column(Float, nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
