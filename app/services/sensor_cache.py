"""
In-memory realtime cache of the latest sample per sensor.

This is the value source polled by the logging sessions: the ESP32 pushes
samples in (HTTP ingest), sessions read the latest value out. It also keeps
the discovery metadata the admin panel uses to find unconfigured sensors.
"""
import logging
import re
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Mapping, Optional

from app.core.config import settings
from app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_NATURAL_KEY = re.compile(r"(\d+)")


def natural_key(sensor_id: str):
    """Sort key so that S2 < S10."""
    return [int(part) if part.isdigit() else part.lower() for part in _NATURAL_KEY.split(sensor_id)]


class SensorValueCache:

    def __init__(self, stale_after_seconds: int = 8):
        self.stale_after = timedelta(seconds=stale_after_seconds)
        self._lock = threading.Lock()
        self._latest: Dict[str, dict] = {}
        self._discovered: Dict[str, dict] = {}
        self.last_update: Optional[datetime] = None

    def record(self, sensor_id: str, value: float, at: Optional[datetime] = None) -> None:
        sensor_id = str(sensor_id).strip()
        if not sensor_id:
            raise ValidationError("Sensor id must not be empty")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"Value for sensor {sensor_id} must be numeric")

        at = at or datetime.now(timezone.utc)
        with self._lock:
            self._latest[sensor_id] = {"value": float(value), "timestamp": at}
            info = self._discovered.get(sensor_id)
            if info is None:
                logger.info("New sensor discovered: %s", sensor_id)
                self._discovered[sensor_id] = {
                    "sensorId": sensor_id,
                    "firstSeenAt": at,
                    "lastSeenAt": at,
                    "lastValue": float(value),
                    "dataCount": 1,
                }
            else:
                info["lastSeenAt"] = at
                info["lastValue"] = float(value)
                info["dataCount"] += 1
            self.last_update = at

    def record_many(self, samples: Mapping[str, float], at: Optional[datetime] = None) -> List[str]:
        """Store a generic ``{"S1": 25.5, "S2": 70.0}`` payload; returns the ids stored."""
        if not samples:
            raise ValidationError("No sensor data received")
        # validate everything first so a bad payload stores nothing
        for sensor_id, value in samples.items():
            if not str(sensor_id).strip():
                raise ValidationError("Sensor id must not be empty")
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"Value for sensor {sensor_id} must be numeric")
        at = at or datetime.now(timezone.utc)
        for sensor_id, value in samples.items():
            self.record(sensor_id, value, at)
        return [str(sensor_id).strip() for sensor_id in samples]

    def _is_fresh(self, entry: dict, now: datetime) -> bool:
        return now - entry["timestamp"] <= self.stale_after

    def get_latest_value(self, sensor_id: str) -> Optional[float]:
        """Latest value, or None when the sensor has no recent sample."""
        with self._lock:
            entry = self._latest.get(sensor_id)
            if entry is None or not self._is_fresh(entry, datetime.now(timezone.utc)):
                return None
            return entry["value"]

    def snapshot(self) -> Dict[str, dict]:
        now = datetime.now(timezone.utc)
        with self._lock:
            return {
                sensor_id: {
                    "value": entry["value"],
                    "timestamp": entry["timestamp"].isoformat(),
                    "status": "active" if self._is_fresh(entry, now) else "inactive",
                }
                for sensor_id, entry in sorted(self._latest.items(), key=lambda kv: natural_key(kv[0]))
            }

    def discovered(self) -> List[dict]:
        with self._lock:
            items = [dict(info) for info in self._discovered.values()]
        return sorted(items, key=lambda info: natural_key(info["sensorId"]))

    def clear(self) -> None:
        with self._lock:
            self._latest.clear()
            self._discovered.clear()
            self.last_update = None


sensor_cache = SensorValueCache(stale_after_seconds=settings.SENSOR_STALE_SECONDS)
