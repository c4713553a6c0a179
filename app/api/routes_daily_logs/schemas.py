from datetime import date
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day: Optional[date] = Field(default=None, alias="date")
