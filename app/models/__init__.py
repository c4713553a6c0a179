from app.models.user import User
from app.models.interval import LoggerInterval
from app.models.sensor import SensorReading, SensorType
from app.models.sensor_config import SensorConfig
from app.models.schema import DesalinationSchema
from app.models.valve import ValveConfig
from app.models.daily_log import DailyLog

__all__ = [
    "User",
    "LoggerInterval",
    "SensorReading",
    "SensorType",
    "SensorConfig",
    "DesalinationSchema",
    "ValveConfig",
    "DailyLog",
]
