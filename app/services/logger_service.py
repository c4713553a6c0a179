"""
Per-user data logging sessions.

Each user owns at most one session. A running session has its own APScheduler
interval job; on every tick it samples the enabled sensors of the categories
selected with ``"all"`` and appends one reading per sensor that has a recent
value. Sessions never share a timer, so changing one user's interval never
affects another user.

State per user::

    Idle --start--> Running --stop--> Idle

``configure`` is only accepted while Idle; the stored values become the
defaults of the next ``start``.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Mapping, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.triggers.interval import IntervalTrigger

from app.core.exceptions import (
    AlreadyLogging,
    CannotReconfigureWhileRunning,
    InvalidInterval,
    NoSensorsSelected,
    ValidationError,
)
from app.db.session import SessionLocal
from app.models.sensor import SensorType
from app.models.user import User
from app.services import interval_service, sensor_config_service
from app.services.reading_store import get_reading_store
from app.services.scheduler_service import scheduler_service
from app.services.sensor_cache import sensor_cache

logger = logging.getLogger(__name__)

SELECTOR_ALL = "all"
SELECTOR_NONE = "none"

# request key -> sensor category
CATEGORY_SELECTORS = {
    "humidity": SensorType.HUMIDITY.value,
    "airTemperature": SensorType.AIR_TEMPERATURE.value,
    "waterTemperature": SensorType.WATER_TEMPERATURE.value,
}


def default_selectors() -> Dict[str, str]:
    return {key: SELECTOR_NONE for key in CATEGORY_SELECTORS}


def normalize_selectors(selectors: Mapping[str, object]) -> Dict[str, str]:
    """
    Accepts ``"all"``/``"none"`` (or booleans) per category key.
    Keys that are left out count as ``"none"``.
    """
    unknown = set(selectors) - set(CATEGORY_SELECTORS)
    if unknown:
        raise ValidationError(f"Unknown sensor categories: {sorted(unknown)}")

    normalized = default_selectors()
    for key, raw in selectors.items():
        if raw is None:
            continue
        if raw is True:
            value = SELECTOR_ALL
        elif raw is False:
            value = SELECTOR_NONE
        else:
            value = str(raw).lower()
        if value not in (SELECTOR_ALL, SELECTOR_NONE):
            raise ValidationError(f"Selector for {key} must be 'all' or 'none'")
        normalized[key] = value
    return normalized


@dataclass
class LoggingSession:
    user_id: int
    username: Optional[str] = None
    is_logging: bool = False
    interval_ms: Optional[int] = None
    # set only by configure; interval_ms also reflects the last run
    configured_interval_ms: Optional[int] = None
    selectors: Dict[str, str] = field(default_factory=default_selectors)
    log_count: int = 0
    started_at: Optional[datetime] = None
    last_tick_at: Optional[datetime] = None
    # bumped on every start so a tick queued by an older run is ignored
    generation: int = 0

    def selected_types(self) -> List[str]:
        return [CATEGORY_SELECTORS[key] for key, value in self.selectors.items() if value == SELECTOR_ALL]

    def snapshot(self) -> dict:
        return {
            "userId": self.user_id,
            "username": self.username,
            "isLogging": self.is_logging,
            "intervalMs": self.interval_ms,
            "interval": self.interval_ms,
            "logCount": self.log_count,
            "sensorSelectors": dict(self.selectors),
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "lastTickAt": self.last_tick_at.isoformat() if self.last_tick_at else None,
        }


class LoggingSessionController:

    def __init__(self, scheduler, value_source, store_provider: Callable = get_reading_store, session_factory: Callable = SessionLocal):
        self.scheduler = scheduler
        self.value_source = value_source
        self.store_provider = store_provider
        self.session_factory = session_factory
        self._lock = threading.Lock()
        self._sessions: Dict[int, LoggingSession] = {}

    @staticmethod
    def job_id(user_id: int) -> str:
        return f"logger-session-{user_id}"

    def _session(self, user_id: int) -> LoggingSession:
        session = self._sessions.get(user_id)
        if session is None:
            session = LoggingSession(user_id=user_id)
            self._sessions[user_id] = session
        return session

    # ------------------------------------------------------------------
    # Interval resolution
    # ------------------------------------------------------------------

    def _validate_interval(self, db, interval_ms) -> int:
        try:
            interval_ms = int(interval_ms)
        except (TypeError, ValueError):
            raise InvalidInterval(f"Interval must be a number of milliseconds, got {interval_ms!r}")
        if interval_ms <= 0 or interval_ms % 1000:
            raise InvalidInterval(f"Interval {interval_ms}ms is not a whole number of seconds")
        if interval_ms // 1000 not in interval_service.catalogue_seconds(db):
            raise InvalidInterval(f"Interval {interval_ms}ms is not in the interval catalogue")
        return interval_ms

    def _resolve_interval(self, db, user_id: int, interval_ms: Optional[int], configured_ms: Optional[int]) -> int:
        """Explicit value, then the configured one, then the user's active interval."""
        if interval_ms is not None:
            return self._validate_interval(db, interval_ms)
        if configured_ms is not None:
            try:
                return self._validate_interval(db, configured_ms)
            except InvalidInterval:
                logger.warning("Configured interval %sms for user %s is no longer available; using the default", configured_ms, user_id)
        user = db.get(User, user_id)
        if user is not None:
            interval, _ = interval_service.get_active_interval(db, user)
            if interval is not None:
                return self._validate_interval(db, interval.interval_seconds * 1000)
        raise InvalidInterval("No logging interval configured")

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def start(self, user_id: int, selectors: Optional[Mapping[str, object]] = None,
              interval_ms: Optional[int] = None, username: Optional[str] = None) -> dict:
        with self._lock:
            session = self._session(user_id)
            if session.is_logging:
                raise AlreadyLogging()
            configured_ms = session.configured_interval_ms
            stored_selectors = dict(session.selectors)

        normalized = normalize_selectors(selectors) if selectors is not None else stored_selectors
        if SELECTOR_ALL not in normalized.values():
            raise NoSensorsSelected()

        db = self.session_factory()
        try:
            resolved_ms = self._resolve_interval(db, user_id, interval_ms, configured_ms)
        finally:
            db.close()

        with self._lock:
            # re-check: another request may have started it while we validated
            if session.is_logging:
                raise AlreadyLogging()
            session.username = username or session.username
            session.selectors = normalized
            session.interval_ms = resolved_ms
            session.log_count = 0
            session.last_tick_at = None
            session.started_at = datetime.now(timezone.utc)
            session.generation += 1
            session.is_logging = True
            self.scheduler.add_job(
                self.run_tick,
                trigger=IntervalTrigger(seconds=resolved_ms / 1000),
                args=[user_id, session.generation],
                id=self.job_id(user_id),
                name=f"Logging session for user {user_id}",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
            snapshot = session.snapshot()

        logger.info(
            "Logging started for user %s every %sms (categories: %s)",
            user_id, resolved_ms, ", ".join(session.selected_types()),
        )
        return snapshot

    def stop(self, user_id: int) -> bool:
        """Stop the user's session. Returns False when it was not running."""
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None or not session.is_logging:
                return False
            session.is_logging = False
            try:
                self.scheduler.remove_job(self.job_id(user_id))
            except JobLookupError:
                logger.warning("No scheduled job found for logging session of user %s", user_id)
            log_count = session.log_count

        logger.info("Logging stopped for user %s after %s tick(s)", user_id, log_count)
        return True

    def stop_for_user(self, user_id: int) -> bool:
        return self.stop(user_id)

    def stop_all(self) -> int:
        with self._lock:
            running = [uid for uid, s in self._sessions.items() if s.is_logging]
        stopped = sum(1 for uid in running if self.stop(uid))
        if stopped:
            logger.info("Stopped %s logging session(s)", stopped)
        return stopped

    def configure(self, user_id: int, interval_ms: Optional[int] = None,
                  selectors: Optional[Mapping[str, object]] = None) -> dict:
        if interval_ms is None and selectors is None:
            raise ValidationError("No valid configuration provided")

        with self._lock:
            session = self._session(user_id)
            if session.is_logging:
                logger.info("Rejected reconfigure for user %s: session is running", user_id)
                raise CannotReconfigureWhileRunning()

        normalized = normalize_selectors(selectors) if selectors is not None else None
        if interval_ms is not None:
            db = self.session_factory()
            try:
                interval_ms = self._validate_interval(db, interval_ms)
            finally:
                db.close()

        with self._lock:
            if session.is_logging:
                raise CannotReconfigureWhileRunning()
            if interval_ms is not None:
                session.interval_ms = interval_ms
                session.configured_interval_ms = interval_ms
            if normalized is not None:
                session.selectors = normalized
            return session.snapshot()

    def status(self, user_id: int) -> dict:
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                return LoggingSession(user_id=user_id).snapshot()
            return session.snapshot()

    def list_all(self) -> List[dict]:
        with self._lock:
            return [s.snapshot() for s in self._sessions.values() if s.is_logging]

    def is_logging(self, user_id: int) -> bool:
        with self._lock:
            session = self._sessions.get(user_id)
            return bool(session and session.is_logging)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def run_tick(self, user_id: int, generation: Optional[int] = None) -> int:
        """
        Sample every eligible sensor once and persist the readings.
        Returns the number of readings written. Store failures are logged and
        end this tick only; the session keeps running.
        """
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None or not session.is_logging:
                return 0
            if generation is not None and generation != session.generation:
                return 0
            generation = session.generation
            interval_ms = session.interval_ms
            selected_types = session.selected_types()

        now = datetime.now(timezone.utc)
        written = 0
        try:
            db = self.session_factory()
            try:
                eligible = [
                    (c.sensor_id, c.sensor_type, c.unit)
                    for c in sensor_config_service.enabled_sensors(db, selected_types)
                ]
            finally:
                db.close()

            store = self.store_provider()
            for sensor_id, sensor_type, unit in eligible:
                value = self.value_source.get_latest_value(sensor_id)
                if value is None:
                    continue
                store.insert_reading({
                    "sensor_id": sensor_id,
                    "sensor_type": sensor_type,
                    "value": value,
                    "unit": unit,
                    "status": "active",
                    "interval_seconds": interval_ms // 1000,
                    "user_id": user_id,
                    "timestamp": now,
                })
                written += 1
        except Exception:
            logger.exception("Logging tick for user %s failed after %s reading(s); session keeps running", user_id, written)
            return written

        with self._lock:
            if session.is_logging and session.generation == generation:
                session.log_count += 1
                session.last_tick_at = now
                count = session.log_count
            else:
                count = session.log_count

        logger.info("Logging tick #%s for user %s: %s reading(s) saved", count, user_id, written)
        return written


logging_controller = LoggingSessionController(scheduler_service.scheduler, sensor_cache)
