from pydantic import BaseModel, Field


class ModeRequest(BaseModel):
    mode: str = Field(..., description='"auto" or "manual"')


class ControlRequest(BaseModel):
    command: str = Field(..., description='"on" or "off"')


class ThresholdRequest(BaseModel):
    onThreshold: float
    offThreshold: float
