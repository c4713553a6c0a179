from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from app.models.sensor import SensorType


class ReadingCreate(BaseModel):
    sensor_id: str = Field(..., min_length=1)
    sensor_type: SensorType
    value: float
    unit: Optional[str] = None
    status: str = "active"
    interval_seconds: Optional[int] = None


class ReadingOut(BaseModel):
    id: int
    sensor_id: str
    sensor_type: str
    value: float
    unit: str
    status: str
    interval_seconds: Optional[int] = None
    user_id: Optional[int] = None
    timestamp: datetime
