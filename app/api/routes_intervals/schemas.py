from pydantic import BaseModel, Field
from typing import Optional


class IntervalCreate(BaseModel):
    interval_seconds: int = Field(..., gt=0)
    interval_name: str = Field(..., min_length=1, max_length=50)


class IntervalUpdate(BaseModel):
    interval_seconds: Optional[int] = Field(default=None, gt=0)
    interval_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
