from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from app.db.base_class import Base

ROLE_ADMIN = "ADMIN"
ROLE_USER = "USER"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(10), default=ROLE_USER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    active_interval_id = Column(
        Integer, ForeignKey("logger_intervals.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    active_interval = relationship("LoggerInterval", back_populates="users")

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
