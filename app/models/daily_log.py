from sqlalchemy import Column, Integer, String, Date, DateTime, Text, UniqueConstraint
from datetime import datetime, timezone
from app.db.base_class import Base


class DailyLog(Base):
    __tablename__ = "daily_logs"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)
    user_id = Column(Integer, nullable=True, index=True)  # NULL = readings not tied to a session
    user_name = Column(String(50), nullable=False)
    file_name = Column(String(255), nullable=False)
    csv_content = Column(Text, nullable=False)
    record_count = Column(Integer, nullable=False, default=0)
    file_size = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (UniqueConstraint("date", "user_id", name="uq_daily_logs_date_user"),)
