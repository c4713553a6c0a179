from sqlalchemy import Column, Integer, Float, DateTime
from datetime import datetime, timezone
from app.db.base_class import Base

DEFAULT_ON_THRESHOLD = 6.0   # valve ON when distance >= this (water low)
DEFAULT_OFF_THRESHOLD = 5.0  # valve OFF when distance <= this (water high)


class ValveConfig(Base):
    __tablename__ = "valve_configs"

    id = Column(Integer, primary_key=True, index=True)
    on_threshold = Column(Float, nullable=False, default=DEFAULT_ON_THRESHOLD)
    off_threshold = Column(Float, nullable=False, default=DEFAULT_OFF_THRESHOLD)
    updated_by_id = Column(Integer, nullable=True)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
