from pydantic import BaseModel, Field
from typing import List, Optional
from app.models.sensor import SensorType


class SensorConfigIn(BaseModel):
    """Full record; fields left out reset to their defaults."""
    sensor_id: str = Field(..., min_length=1, max_length=50)
    display_name: str = Field(..., min_length=1, max_length=100)
    sensor_type: SensorType
    unit: Optional[str] = None
    is_enabled: bool = True
    sort_order: int = 0
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    description: Optional[str] = None


class SensorConfigBulkIn(BaseModel):
    configs: List[SensorConfigIn]


class SortOrderIn(BaseModel):
    sort_order: int
