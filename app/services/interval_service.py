import logging
from typing import List, Optional, Set, Tuple

from sqlalchemy.orm import Session

from app.core.exceptions import Conflict, NotFound, ValidationError
from app.models.interval import LoggerInterval
from app.models.user import User

logger = logging.getLogger(__name__)


def list_intervals(db: Session) -> List[LoggerInterval]:
    return db.query(LoggerInterval).order_by(LoggerInterval.interval_seconds.asc()).all()


def catalogue_seconds(db: Session) -> Set[int]:
    return {row[0] for row in db.query(LoggerInterval.interval_seconds).all()}


def get_interval(db: Session, interval_id: int) -> LoggerInterval:
    interval = db.get(LoggerInterval, interval_id)
    if interval is None:
        raise NotFound(f"Interval {interval_id} not found")
    return interval


def _check_seconds(interval_seconds) -> int:
    try:
        seconds = int(interval_seconds)
    except (TypeError, ValueError):
        raise ValidationError("interval_seconds must be an integer")
    if seconds <= 0:
        raise ValidationError("interval_seconds must be positive")
    return seconds


def create_interval(db: Session, interval_seconds: int, interval_name: str) -> LoggerInterval:
    seconds = _check_seconds(interval_seconds)
    if not interval_name:
        raise ValidationError("interval_name is required")
    if db.query(LoggerInterval).filter(LoggerInterval.interval_seconds == seconds).first():
        raise Conflict("Interval with these seconds already exists")

    interval = LoggerInterval(interval_seconds=seconds, interval_name=interval_name)
    db.add(interval)
    db.commit()
    db.refresh(interval)
    logger.info(f"Created interval '{interval_name}' ({seconds}s)")
    return interval


def update_interval(
    db: Session,
    interval_id: int,
    interval_seconds: Optional[int] = None,
    interval_name: Optional[str] = None,
) -> LoggerInterval:
    interval = get_interval(db, interval_id)
    if interval_seconds is not None:
        seconds = _check_seconds(interval_seconds)
        clash = (
            db.query(LoggerInterval)
            .filter(LoggerInterval.interval_seconds == seconds, LoggerInterval.id != interval_id)
            .first()
        )
        if clash:
            raise Conflict("Interval with these seconds already exists")
        interval.interval_seconds = seconds
    if interval_name:
        interval.interval_name = interval_name
    db.commit()
    db.refresh(interval)
    return interval


def delete_interval(db: Session, interval_id: int) -> int:
    """
    Delete an interval and clear it from every user that had it selected.
    Returns the number of users whose selection was cleared.
    """
    interval = get_interval(db, interval_id)
    cleared = (
        db.query(User)
        .filter(User.active_interval_id == interval_id)
        .update({User.active_interval_id: None}, synchronize_session="fetch")
    )
    db.delete(interval)
    db.commit()
    logger.info(f"Deleted interval {interval_id}; cleared {cleared} user selection(s)")
    return cleared


def set_active_interval(db: Session, user: User, interval_id: int) -> LoggerInterval:
    interval = get_interval(db, interval_id)
    user.active_interval_id = interval.id
    db.commit()
    return interval


def get_active_interval(db: Session, user: User) -> Tuple[Optional[LoggerInterval], bool]:
    """The user's selected interval, else the shortest one. Second item is True for the fallback."""
    if user.active_interval_id is not None:
        interval = db.get(LoggerInterval, user.active_interval_id)
        if interval is not None:
            return interval, False
    fallback = db.query(LoggerInterval).order_by(LoggerInterval.interval_seconds.asc()).first()
    return fallback, True


def seed_intervals(db: Session, pairs: List[Tuple[int, str]]) -> int:
    created = 0
    for seconds, name in pairs:
        existing = db.query(LoggerInterval).filter(LoggerInterval.interval_seconds == seconds).first()
        if existing:
            existing.interval_name = name
        else:
            db.add(LoggerInterval(interval_seconds=seconds, interval_name=name))
            created += 1
    db.commit()
    return created


def to_dict(interval: LoggerInterval, active_interval_id: Optional[int] = None) -> dict:
    return {
        "id": interval.id,
        "interval_seconds": interval.interval_seconds,
        "interval_name": interval.interval_name,
        "is_active": interval.id == active_interval_id,
    }
