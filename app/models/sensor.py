import enum
from sqlalchemy import Column, BigInteger, Integer, Float, String, DateTime, Index
from datetime import datetime, timezone
from app.db.base_class import Base


class SensorType(str, enum.Enum):
    HUMIDITY = "humidity"
    AIR_TEMPERATURE = "air_temperature"
    WATER_TEMPERATURE = "water_temperature"
    WATER_LEVEL = "water_level"
    UNCATEGORIZED = "uncategorized"


class SensorReading(Base):
    __tablename__ = "sensor_readings"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    sensor_id = Column(String(50), nullable=False, index=True)     # E.g.: "T7", "RH1", "WL1"
    sensor_type = Column(String(30), nullable=False, index=True)
    value = Column(Float, nullable=False)
    unit = Column(String(20), nullable=False, default="")
    status = Column(String(20), nullable=False, default="active")  # "active" | "inactive"
    interval_seconds = Column(Integer, nullable=True, index=True)
    # No FK: readings outlive the user that logged them
    user_id = Column(Integer, nullable=True, index=True)
    timestamp = Column(DateTime, default=lambda: datetime.now(timezone.utc), index=True)

    __table_args__ = (Index("ix_sensor_readings_type_timestamp", "sensor_type", "timestamp"),)

    def to_dict(self):
        return {
            "id": self.id,
            "sensor_id": self.sensor_id,
            "sensor_type": self.sensor_type,
            "value": self.value,
            "unit": self.unit,
            "status": self.status,
            "interval_seconds": self.interval_seconds,
            "user_id": self.user_id,
            "timestamp": self.timestamp,
        }
