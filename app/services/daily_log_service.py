import logging
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional

import pytz
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFound
from app.db.session import SessionLocal
from app.models.daily_log import DailyLog
from app.models.user import User
from app.services.reading_store import ReadingFilter, ReadingStore, get_reading_store
from app.services.report_service import build_csv

logger = logging.getLogger(__name__)

SYSTEM_USER_NAME = "System"


def _day_bounds(day: date, tz_name: Optional[str] = None):
    """Local midnight to local midnight of ``day``, as naive UTC (how readings are stored)."""
    tz = pytz.timezone(tz_name or settings.TIMEZONE)
    start = tz.localize(datetime.combine(day, time.min))
    end = tz.localize(datetime.combine(day + timedelta(days=1), time.min))
    start = start.astimezone(pytz.utc).replace(tzinfo=None)
    end = end.astimezone(pytz.utc).replace(tzinfo=None)
    return start, end - timedelta(microseconds=1)


def local_today(tz_name: Optional[str] = None) -> date:
    return datetime.now(pytz.timezone(tz_name or settings.TIMEZONE)).date()


def generate_daily_logs(db: Session, store: ReadingStore, day: Optional[date] = None) -> List[DailyLog]:
    """
    Build one CSV per user (plus one "System" CSV for readings without a
    user) out of the readings of ``day`` and upsert them as DailyLog rows.
    """
    day = day or local_today()
    start, end = _day_bounds(day)
    logger.info(f"Generating daily logs for {day.isoformat()}...")

    readings = store.list_where(ReadingFilter(start=start, end=end), limit=None)
    readings.reverse()

    grouped: Dict[Optional[int], List[dict]] = {}
    for reading in readings:
        grouped.setdefault(reading["user_id"], []).append(reading)

    results = []
    for user_id, rows in grouped.items():
        if user_id is None:
            user_name = SYSTEM_USER_NAME
        else:
            user = db.get(User, user_id)
            user_name = user.username if user else f"user_{user_id}"

        content = build_csv(rows, title=f"Sensor Data Report - {day.isoformat()}")
        file_name = f"sensor_report_{user_name.lower()}_{day.isoformat()}.csv"

        log = (
            db.query(DailyLog)
            .filter(DailyLog.date == day, DailyLog.user_id.is_(None) if user_id is None else DailyLog.user_id == user_id)
            .first()
        )
        if log is None:
            log = DailyLog(date=day, user_id=user_id)
            db.add(log)
        log.user_name = user_name
        log.file_name = file_name
        log.csv_content = content
        log.record_count = len(rows)
        log.file_size = len(content.encode("utf-8"))
        results.append(log)
        logger.info(f"Saved daily log for '{user_name}': {len(rows)} records, {log.file_size} bytes")

    db.commit()
    logger.info(f"Daily logs completed: {len(results)} log(s) for {day.isoformat()}")
    return results


def generate_daily_logs_job():
    """Scheduled entry point; opens its own session."""
    db = SessionLocal()
    try:
        generate_daily_logs(db, get_reading_store())
    except Exception as e:
        logger.exception("Error generating daily logs: %s", e)
        db.rollback()
    finally:
        db.close()


def list_logs(db: Session) -> List[DailyLog]:
    return db.query(DailyLog).order_by(DailyLog.date.desc(), DailyLog.user_name.asc()).all()


def get_log(db: Session, log_id: int) -> DailyLog:
    log = db.get(DailyLog, log_id)
    if log is None:
        raise NotFound(f"Daily log {log_id} not found")
    return log


def delete_log(db: Session, log_id: int) -> None:
    db.delete(get_log(db, log_id))
    db.commit()


def to_dict(log: DailyLog) -> dict:
    return {
        "id": log.id,
        "date": log.date.isoformat(),
        "user_id": log.user_id,
        "user_name": log.user_name,
        "file_name": log.file_name,
        "record_count": log.record_count,
        "file_size": log.file_size,
        "created_at": log.created_at,
    }
