import csv
import io
import logging
from collections import Counter
from datetime import datetime
from typing import Iterable, List, Optional

from app.core.config import settings
from app.core.exceptions import NotFound, ValidationError
from app.models.sensor import SensorType
from app.services.reading_store import DEFAULT_LIMIT, ReadingFilter, ReadingStore, to_naive_utc

logger = logging.getLogger(__name__)

MAX_LIMIT = 10_000

CSV_HEADERS = ["ID", "Sensor ID", "Type", "Value", "Unit", "Status", "Interval (s)", "Timestamp"]

CSV_SECTIONS = [
    ("Humidity", SensorType.HUMIDITY.value),
    ("Air Temperature", SensorType.AIR_TEMPERATURE.value),
    ("Water Temperature", SensorType.WATER_TEMPERATURE.value),
    ("Water Level", SensorType.WATER_LEVEL.value),
]

_KNOWN_TYPES = {t.value for t in SensorType}


def parse_sensor_types(raw: Optional[Iterable[str]]) -> Optional[set]:
    """Accepts repeated values or comma separated strings; "all" means no filter."""
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = [raw]
    types = set()
    for item in raw:
        for part in str(item).split(","):
            part = part.strip()
            if part and part != "all":
                types.add(part)
    if not types:
        return None
    unknown = types - _KNOWN_TYPES
    if unknown:
        raise ValidationError(f"Unknown sensor type(s): {sorted(unknown)}")
    return types


def build_filter(
    sensor_id: Optional[str] = None,
    sensor_types: Optional[Iterable[str]] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    interval_seconds: Optional[int] = None,
    user_id: Optional[int] = None,
) -> ReadingFilter:
    if start and end and to_naive_utc(start) > to_naive_utc(end):
        raise ValidationError("start_date must be before end_date")
    return ReadingFilter(
        sensor_id=sensor_id if sensor_id and sensor_id != "all" else None,
        sensor_types=parse_sensor_types(sensor_types),
        start=start,
        end=end,
        interval_seconds=interval_seconds,
        user_id=user_id,
    )


def query_readings(store: ReadingStore, reading_filter: ReadingFilter, limit: int = DEFAULT_LIMIT) -> List[dict]:
    """Most recent first, bounded by ``limit``."""
    if limit <= 0:
        raise ValidationError("limit must be positive")
    return store.list_where(reading_filter, limit=min(limit, MAX_LIMIT))


def create_reading(store: ReadingStore, payload: dict) -> dict:
    reading_id = store.insert_reading(payload)
    return store.list_where(ReadingFilter(ids={reading_id}), limit=1)[0]


def delete_reading(store: ReadingStore, reading_id: int) -> None:
    if store.delete_where(ReadingFilter(ids={reading_id})) == 0:
        raise NotFound(f"Reading {reading_id} not found")
    logger.info(f"Deleted reading {reading_id}")


def delete_readings(store: ReadingStore, reading_filter: ReadingFilter) -> int:
    deleted = store.delete_where(reading_filter)
    logger.info(f"Deleted {deleted} reading(s) matching {reading_filter}")
    return deleted


def delete_by_sensor(store: ReadingStore, sensor_id: str) -> int:
    return delete_readings(store, ReadingFilter(sensor_id=sensor_id))


def delete_by_interval(store: ReadingStore, interval_seconds: int) -> int:
    if interval_seconds < 0:
        raise ValidationError("Invalid interval")
    return delete_readings(store, ReadingFilter(interval_seconds=interval_seconds))


def delete_by_types(store: ReadingStore, raw_types: Optional[Iterable[str]]) -> int:
    """Deletes the given categories only. Wiping everything is delete_all."""
    sensor_types = parse_sensor_types(raw_types)
    if not sensor_types:
        raise ValidationError("No sensor types given; use delete_all to remove every reading")
    return delete_readings(store, ReadingFilter(sensor_types=sensor_types))


def delete_all(store: ReadingStore) -> int:
    return delete_readings(store, ReadingFilter())


def build_csv(readings: List[dict], title: Optional[str] = None) -> str:
    """CSV export with one section per sensor category."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    if title:
        writer.writerow([title])
        writer.writerow([])

    sections = [(label, [r for r in readings if r["sensor_type"] == sensor_type]) for label, sensor_type in CSV_SECTIONS]
    known = {sensor_type for _, sensor_type in CSV_SECTIONS}
    sections.append(("Other", [r for r in readings if r["sensor_type"] not in known]))

    for label, rows in sections:
        if not rows:
            continue
        writer.writerow([label])
        writer.writerow(CSV_HEADERS)
        for r in rows:
            writer.writerow([
                r["id"],
                r["sensor_id"],
                r["sensor_type"],
                r["value"],
                r["unit"],
                r["status"],
                r["interval_seconds"] if r["interval_seconds"] is not None else "N/A",
                r["timestamp"].isoformat() if r["timestamp"] else "",
            ])
        writer.writerow([])
    return buffer.getvalue()


def export_csv(store: ReadingStore, reading_filter: ReadingFilter, limit: Optional[int] = None) -> str:
    readings = store.list_where(reading_filter, limit=limit)
    readings.reverse()  # chronological in the file
    return build_csv(readings, title="Sensor Data Report")


def stats(store: ReadingStore) -> dict:
    readings = store.list_where(ReadingFilter(), limit=None)
    by_type = Counter(r["sensor_type"] for r in readings)
    by_sensor = Counter(r["sensor_id"] for r in readings)
    timestamps = [r["timestamp"] for r in readings if r["timestamp"]]
    return {
        "totalRecords": len(readings),
        "byType": dict(by_type),
        "bySensor": dict(sorted(by_sensor.items())),
        "oldest": min(timestamps).isoformat() if timestamps else None,
        "newest": max(timestamps).isoformat() if timestamps else None,
        "store": store.name,
    }


def database_status(store: ReadingStore) -> dict:
    total = store.count()
    warning = settings.DB_WARNING_THRESHOLD
    critical = settings.DB_CRITICAL_THRESHOLD

    if total >= critical:
        status = "CRITICAL"
        message = f"Database almost full: {total} records. Delete old data now."
    elif total >= warning:
        status = "WARNING"
        message = f"Database has reached {total} records. Consider deleting old data."
    else:
        status = "OK"
        message = "Database status normal"

    return {
        "total_records": total,
        "status": status,
        "message": message,
        "warning_threshold": warning,
        "critical_threshold": critical,
        "using_mock_data": store.name == "memory",
    }
