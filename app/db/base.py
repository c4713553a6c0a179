from app.db.base_class import Base

# Import all models here so Base.metadata knows every table
from app.models.user import User
from app.models.interval import LoggerInterval
from app.models.sensor import SensorReading
from app.models.sensor_config import SensorConfig
from app.models.schema import DesalinationSchema
from app.models.valve import ValveConfig
from app.models.daily_log import DailyLog
