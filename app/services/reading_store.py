"""
Sensor Reading Store.

Two interchangeable backends behind the same ``insert_reading`` /
``delete_where`` / ``list_where`` interface:

  - SqlReadingStore: SQLAlchemy table ``sensor_readings``
  - MemoryReadingStore: process-local list, used when no real database is wanted

Records are plain dicts with the SensorReading columns. Timestamps are kept
as naive UTC on both backends so filters compare the same way.
"""
import itertools
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Set

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.exceptions import ValidationError, WriteFailure
from app.db.session import SessionLocal
from app.models.sensor import SensorReading

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100

_REQUIRED_FIELDS = ("sensor_id", "sensor_type", "value")


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass
class ReadingFilter:
    ids: Optional[Set[int]] = None
    sensor_id: Optional[str] = None
    sensor_types: Optional[Set[str]] = None
    interval_seconds: Optional[int] = None
    user_id: Optional[int] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def matches(self, record: dict) -> bool:
        if self.ids is not None and record["id"] not in self.ids:
            return False
        if self.sensor_id is not None and record["sensor_id"] != self.sensor_id:
            return False
        if self.sensor_types is not None and record["sensor_type"] not in self.sensor_types:
            return False
        if self.interval_seconds is not None and record["interval_seconds"] != self.interval_seconds:
            return False
        if self.user_id is not None and record["user_id"] != self.user_id:
            return False
        start, end = to_naive_utc(self.start), to_naive_utc(self.end)
        if start is not None and record["timestamp"] < start:
            return False
        if end is not None and record["timestamp"] > end:
            return False
        return True

    def clauses(self):
        clauses = []
        if self.ids is not None:
            clauses.append(SensorReading.id.in_(self.ids))
        if self.sensor_id is not None:
            clauses.append(SensorReading.sensor_id == self.sensor_id)
        if self.sensor_types is not None:
            clauses.append(SensorReading.sensor_type.in_(self.sensor_types))
        if self.interval_seconds is not None:
            clauses.append(SensorReading.interval_seconds == self.interval_seconds)
        if self.user_id is not None:
            clauses.append(SensorReading.user_id == self.user_id)
        if self.start is not None:
            clauses.append(SensorReading.timestamp >= to_naive_utc(self.start))
        if self.end is not None:
            clauses.append(SensorReading.timestamp <= to_naive_utc(self.end))
        return clauses


def _normalize(record: dict) -> dict:
    missing = [name for name in _REQUIRED_FIELDS if record.get(name) in (None, "")]
    if missing:
        raise ValidationError(f"Missing field(s): {', '.join(missing)}")
    return {
        "sensor_id": str(record["sensor_id"]),
        "sensor_type": str(record["sensor_type"]),
        "value": float(record["value"]),
        "unit": record.get("unit") or "",
        "status": record.get("status") or "active",
        "interval_seconds": record.get("interval_seconds"),
        "user_id": record.get("user_id"),
        "timestamp": to_naive_utc(record.get("timestamp") or datetime.now(timezone.utc)),
    }


class ReadingStore:
    """Interface shared by the persistence backends."""

    name = "abstract"

    def insert_reading(self, record: dict) -> int:
        raise NotImplementedError

    def delete_where(self, reading_filter: Optional[ReadingFilter] = None) -> int:
        raise NotImplementedError

    def list_where(self, reading_filter: Optional[ReadingFilter] = None, limit: Optional[int] = DEFAULT_LIMIT) -> List[dict]:
        raise NotImplementedError

    def count(self, reading_filter: Optional[ReadingFilter] = None) -> int:
        raise NotImplementedError


class SqlReadingStore(ReadingStore):
    name = "database"

    def __init__(self, session_factory: Callable = SessionLocal):
        self.session_factory = session_factory

    def insert_reading(self, record: dict) -> int:
        data = _normalize(record)
        db = self.session_factory()
        try:
            reading = SensorReading(**data)
            db.add(reading)
            db.commit()
            return reading.id
        except SQLAlchemyError as e:
            db.rollback()
            raise WriteFailure(f"Could not store reading for {data['sensor_id']}: {e}") from e
        finally:
            db.close()

    def delete_where(self, reading_filter=None) -> int:
        reading_filter = reading_filter or ReadingFilter()
        db = self.session_factory()
        try:
            result = db.execute(delete(SensorReading).where(*reading_filter.clauses()))
            db.commit()
            return result.rowcount or 0
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

    def list_where(self, reading_filter=None, limit=DEFAULT_LIMIT) -> List[dict]:
        reading_filter = reading_filter or ReadingFilter()
        db = self.session_factory()
        try:
            query = (
                select(SensorReading)
                .where(*reading_filter.clauses())
                .order_by(SensorReading.timestamp.desc(), SensorReading.id.desc())
            )
            if limit is not None:
                query = query.limit(limit)
            return [row.to_dict() for row in db.scalars(query).all()]
        finally:
            db.close()

    def count(self, reading_filter=None) -> int:
        reading_filter = reading_filter or ReadingFilter()
        db = self.session_factory()
        try:
            query = select(func.count(SensorReading.id)).where(*reading_filter.clauses())
            return db.scalar(query) or 0
        finally:
            db.close()


class MemoryReadingStore(ReadingStore):
    name = "memory"

    def __init__(self):
        self._lock = threading.Lock()
        self._rows: List[dict] = []
        self._ids = itertools.count(1)

    def insert_reading(self, record: dict) -> int:
        data = _normalize(record)
        with self._lock:
            data["id"] = next(self._ids)
            self._rows.append(data)
        return data["id"]

    def delete_where(self, reading_filter=None) -> int:
        reading_filter = reading_filter or ReadingFilter()
        with self._lock:
            kept = [row for row in self._rows if not reading_filter.matches(row)]
            removed = len(self._rows) - len(kept)
            self._rows = kept
        return removed

    def list_where(self, reading_filter=None, limit=DEFAULT_LIMIT) -> List[dict]:
        reading_filter = reading_filter or ReadingFilter()
        with self._lock:
            rows = [dict(row) for row in self._rows if reading_filter.matches(row)]
        rows.sort(key=lambda row: (row["timestamp"], row["id"]), reverse=True)
        return rows if limit is None else rows[:limit]

    def count(self, reading_filter=None) -> int:
        reading_filter = reading_filter or ReadingFilter()
        with self._lock:
            return sum(1 for row in self._rows if reading_filter.matches(row))


def build_reading_store(kind: str) -> ReadingStore:
    if kind == "memory":
        logger.warning("Using in-memory reading store; readings are lost on restart.")
        return MemoryReadingStore()
    if kind != "database":
        raise ValueError(f"Unknown READING_STORE: {kind!r}")
    return SqlReadingStore()


_store: Optional[ReadingStore] = None


def get_reading_store() -> ReadingStore:
    global _store
    if _store is None:
        _store = build_reading_store(settings.READING_STORE)
    return _store


def set_reading_store(store: ReadingStore) -> None:
    global _store
    _store = store
