from pydantic import BaseModel, Field
from typing import Optional, Union

Selector = Optional[Union[bool, str]]


class SelectorFields(BaseModel):
    humidity: Selector = Field(default=None, description="'all' or 'none'")
    airTemperature: Selector = Field(default=None, description="'all' or 'none'")
    waterTemperature: Selector = Field(default=None, description="'all' or 'none'")

    def selectors(self):
        """Only the categories the client actually sent, or None."""
        sent = self.model_dump(include={"humidity", "airTemperature", "waterTemperature"}, exclude_none=True)
        return sent or None


class LoggerStartRequest(SelectorFields):
    interval: Optional[int] = Field(default=None, description="Sampling period in milliseconds")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"humidity": "all", "airTemperature": "none", "waterTemperature": "none", "interval": 60000}
            ]
        }
    }


class LoggerConfigRequest(SelectorFields):
    interval: Optional[int] = Field(default=None, description="Sampling period in milliseconds")
