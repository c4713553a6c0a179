from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from app.db.base_class import Base


class LoggerInterval(Base):
    __tablename__ = "logger_intervals"

    id = Column(Integer, primary_key=True, index=True)
    interval_seconds = Column(Integer, unique=True, index=True, nullable=False)
    interval_name = Column(String(50), nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # passive_deletes: the FK is ON DELETE SET NULL, users are never cascaded
    users = relationship("User", back_populates="active_interval", passive_deletes=True)
