from typing import List, Tuple
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Desalination Monitor"
    PROJECT_VERSION: str = "2.0.0"
    DATABASE_URL: str = "sqlite:///./desalination.db"
    READING_STORE: str = "database"  # "database" or "memory"
    TIMEZONE: str = "Asia/Jakarta"
    LOG_LEVEL: str = "INFO"

    SECRET_KEY: str = "change-me-in-production"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    DEFAULT_ADMIN_USERNAME: str = "admin"
    DEFAULT_ADMIN_EMAIL: str = "admin@iot-desalinasi.local"
    DEFAULT_ADMIN_PASSWORD: str = "admin123"
    DEFAULT_INTERVALS: str = "60:1 Minute,300:5 Minutes,600:10 Minutes"

    VALVE_RELAY_URL: str = "http://localhost:8080/valve"
    VALVE_RELAY_TIMEOUT: float = 5.0

    SENSOR_STALE_SECONDS: int = 8
    DB_WARNING_THRESHOLD: int = 100_000
    DB_CRITICAL_THRESHOLD: int = 500_000

    DAILY_LOG_HOUR: int = 23
    DAILY_LOG_MINUTE: int = 59

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def default_intervals(self) -> List[Tuple[int, str]]:
        """Parse DEFAULT_INTERVALS ("seconds:name,...") into pairs."""
        pairs = []
        for chunk in self.DEFAULT_INTERVALS.split(","):
            if ":" not in chunk:
                continue
            seconds, name = chunk.split(":", 1)
            pairs.append((int(seconds.strip()), name.strip()))
        return pairs


settings = Settings()
