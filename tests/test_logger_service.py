"""
Unit tests for the per-user logging sessions.
Ticks are driven by calling run_tick directly; the process scheduler is never started.
"""
import time

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from app.core.exceptions import (
    AlreadyLogging,
    CannotReconfigureWhileRunning,
    InvalidInterval,
    NoSensorsSelected,
    ValidationError,
    WriteFailure,
)
from app.services import interval_service, sensor_config_service
from app.services.logger_service import LoggingSessionController, normalize_selectors
from app.services.reading_store import MemoryReadingStore, ReadingFilter
from app.services.sensor_cache import SensorValueCache
from app.services import user_service


class FakeValues:
    """Value source returning fixed values; None for unknown sensors."""

    def __init__(self, values=None):
        self.values = dict(values or {})

    def get_latest_value(self, sensor_id):
        return self.values.get(sensor_id)


class FailingStore(MemoryReadingStore):

    def insert_reading(self, record):
        raise WriteFailure("disk full")


def register(db, sensor_id, sensor_type, enabled=True):
    return sensor_config_service.upsert(db, {
        "sensor_id": sensor_id,
        "display_name": sensor_id,
        "sensor_type": sensor_type,
        "is_enabled": enabled,
    })


@pytest.fixture
def store():
    return MemoryReadingStore()


@pytest.fixture
def values():
    return FakeValues({"RH1": 65.0, "RH2": 70.5, "T1": 30.1, "T8": 27.4})


@pytest.fixture
def scheduler():
    return BackgroundScheduler()


@pytest.fixture
def controller(scheduler, values, store):
    return LoggingSessionController(scheduler, values, store_provider=lambda: store)


@pytest.fixture
def sensors(db_session):
    register(db_session, "RH1", "humidity")
    register(db_session, "RH2", "humidity")
    register(db_session, "T1", "air_temperature")
    register(db_session, "T8", "water_temperature")


@pytest.fixture
def users(db_session):
    a = user_service.create_user(db_session, "alice", "alice@example.com", "secret123")
    b = user_service.create_user(db_session, "bob", "bob@example.com", "secret123")
    return a.id, b.id


# ============================================================================
# SELECTORS
# ============================================================================

def test_normalize_selectors_defaults_missing_keys_to_none():
    assert normalize_selectors({"humidity": "all"}) == {
        "humidity": "all",
        "airTemperature": "none",
        "waterTemperature": "none",
    }


def test_normalize_selectors_accepts_booleans():
    assert normalize_selectors({"humidity": True, "waterTemperature": False})["humidity"] == "all"


def test_normalize_selectors_rejects_unknown_values():
    with pytest.raises(ValidationError):
        normalize_selectors({"humidity": "some"})
    with pytest.raises(ValidationError):
        normalize_selectors({"pressure": "all"})


# ============================================================================
# START / STOP
# ============================================================================

def test_start_transitions_to_running(controller, scheduler, users):
    alice, _ = users
    status = controller.start(alice, {"humidity": "all"}, 60000)

    assert status["isLogging"] is True
    assert status["intervalMs"] == 60000
    assert status["logCount"] == 0
    assert controller.is_logging(alice)
    assert scheduler.get_job(controller.job_id(alice)) is not None


def test_start_while_running_is_rejected(controller, users):
    alice, _ = users
    controller.start(alice, {"humidity": "all"}, 60000)
    with pytest.raises(AlreadyLogging):
        controller.start(alice, {"humidity": "all"}, 60000)


def test_start_rejects_interval_outside_catalogue(controller, users):
    alice, _ = users
    with pytest.raises(InvalidInterval):
        controller.start(alice, {"humidity": "all"}, 45000)
    assert not controller.is_logging(alice)


def test_start_rejects_fractional_seconds(controller, users):
    alice, _ = users
    with pytest.raises(InvalidInterval):
        controller.start(alice, {"humidity": "all"}, 60500)


def test_start_without_any_category_is_rejected(controller, users):
    alice, _ = users
    with pytest.raises(NoSensorsSelected):
        controller.start(alice, {"humidity": "none", "airTemperature": "none"}, 60000)
    assert controller.status(alice)["isLogging"] is False


def test_start_defaults_to_users_active_interval(controller, db_session, users):
    alice, _ = users
    five_minutes = next(i for i in interval_service.list_intervals(db_session) if i.interval_seconds == 300)
    user = user_service.get_user(db_session, alice)
    interval_service.set_active_interval(db_session, user, five_minutes.id)

    status = controller.start(alice, {"humidity": "all"})
    assert status["intervalMs"] == 300000


def test_start_without_selection_falls_back_to_smallest_interval(controller, users):
    alice, _ = users
    status = controller.start(alice, {"humidity": "all"})
    assert status["intervalMs"] == 60000


def test_stop_is_idempotent(controller, scheduler, users):
    alice, _ = users
    assert controller.stop(alice) is False

    controller.start(alice, {"humidity": "all"}, 60000)
    assert controller.stop(alice) is True
    assert controller.stop(alice) is False
    assert scheduler.get_job(controller.job_id(alice)) is None


def test_status_has_no_side_effects(controller, users):
    alice, _ = users
    first = controller.status(alice)
    second = controller.status(alice)
    assert first == second
    assert first["isLogging"] is False
    assert controller.list_all() == []


def test_restart_resets_log_count(controller, sensors, users):
    alice, _ = users
    controller.start(alice, {"humidity": "all"}, 60000)
    controller.run_tick(alice)
    controller.run_tick(alice)
    assert controller.status(alice)["logCount"] == 2

    controller.stop(alice)
    controller.start(alice, {"humidity": "all"}, 60000)
    assert controller.status(alice)["logCount"] == 0


# ============================================================================
# CONFIGURE
# ============================================================================

def test_configure_while_idle_sets_next_start_defaults(controller, users):
    alice, _ = users
    controller.configure(alice, interval_ms=300000, selectors={"waterTemperature": "all"})

    status = controller.start(alice)
    assert status["intervalMs"] == 300000
    assert status["sensorSelectors"]["waterTemperature"] == "all"
    assert status["sensorSelectors"]["humidity"] == "none"


def test_configured_interval_deleted_falls_back_to_default(controller, db_session, users):
    alice, _ = users
    controller.configure(alice, interval_ms=300000)
    five_minutes = next(i for i in interval_service.list_intervals(db_session) if i.interval_seconds == 300)
    interval_service.delete_interval(db_session, five_minutes.id)

    status = controller.start(alice, {"humidity": "all"})
    assert status["intervalMs"] == 60000


def test_previous_run_interval_is_not_reused_as_configuration(controller, users):
    alice, _ = users
    controller.start(alice, {"humidity": "all"}, 300000)
    controller.stop(alice)

    status = controller.start(alice, {"humidity": "all"})
    assert status["intervalMs"] == 60000


def test_configure_while_running_is_rejected(controller, users):
    alice, _ = users
    controller.start(alice, {"humidity": "all"}, 60000)
    with pytest.raises(CannotReconfigureWhileRunning):
        controller.configure(alice, interval_ms=300000)
    assert controller.status(alice)["intervalMs"] == 60000


def test_configure_validates_interval(controller, users):
    alice, _ = users
    with pytest.raises(InvalidInterval):
        controller.configure(alice, interval_ms=1234)


def test_configure_requires_something(controller, users):
    alice, _ = users
    with pytest.raises(ValidationError):
        controller.configure(alice)


# ============================================================================
# TICKS
# ============================================================================

def test_tick_writes_one_reading_per_selected_sensor(controller, store, sensors, users):
    alice, _ = users
    controller.start(alice, {"humidity": "all"}, 60000)

    written = controller.run_tick(alice)

    assert written == 2
    rows = store.list_where(ReadingFilter(user_id=alice), limit=None)
    assert {r["sensor_id"] for r in rows} == {"RH1", "RH2"}
    assert all(r["interval_seconds"] == 60 for r in rows)
    assert all(r["sensor_type"] == "humidity" for r in rows)
    assert controller.status(alice)["logCount"] == 1


def test_tick_skips_disabled_sensors(controller, store, db_session, sensors, users):
    alice, _ = users
    sensor_config_service.toggle(db_session, "RH2")
    controller.start(alice, {"humidity": "all"}, 60000)

    controller.run_tick(alice)

    assert [r["sensor_id"] for r in store.list_where(limit=None)] == ["RH1"]


def test_tick_skips_sensors_without_value(controller, store, values, sensors, users):
    alice, _ = users
    del values.values["RH2"]
    controller.start(alice, {"humidity": "all"}, 60000)

    assert controller.run_tick(alice) == 1
    assert controller.status(alice)["logCount"] == 1


def test_tick_with_no_eligible_sensor_writes_nothing(controller, store, users):
    alice, _ = users
    controller.start(alice, {"airTemperature": "all"}, 60000)

    assert controller.run_tick(alice) == 0
    assert store.count() == 0
    assert controller.is_logging(alice)


def test_tick_after_stop_writes_nothing(controller, store, sensors, users):
    alice, _ = users
    controller.start(alice, {"humidity": "all"}, 60000)
    controller.stop(alice)

    assert controller.run_tick(alice) == 0
    assert store.count() == 0


def test_stale_tick_from_previous_run_is_ignored(controller, store, sensors, users):
    alice, _ = users
    controller.start(alice, {"humidity": "all"}, 60000)
    controller.stop(alice)
    controller.start(alice, {"humidity": "all"}, 60000)
    old_generation = controller._sessions[alice].generation - 1

    assert controller.run_tick(alice, old_generation) == 0
    assert store.count() == 0


def test_store_failure_keeps_session_running(scheduler, values, sensors, users):
    alice, _ = users
    controller = LoggingSessionController(scheduler, values, store_provider=FailingStore)
    controller.start(alice, {"humidity": "all"}, 60000)

    assert controller.run_tick(alice) == 0
    assert controller.is_logging(alice)
    assert controller.status(alice)["logCount"] == 0


# ============================================================================
# MULTI-USER
# ============================================================================

def test_sessions_are_independent(controller, store, sensors, users):
    alice, bob = users
    controller.start(alice, {"humidity": "all"}, 60000)
    controller.start(bob, {"waterTemperature": "all"}, 300000)

    controller.run_tick(alice)

    assert controller.status(alice)["logCount"] == 1
    assert controller.status(bob)["logCount"] == 0
    assert store.count(ReadingFilter(user_id=bob)) == 0

    controller.stop(alice)
    assert controller.is_logging(bob)


def test_list_all_and_stop_all(controller, users):
    alice, bob = users
    controller.start(alice, {"humidity": "all"}, 60000)
    controller.start(bob, {"humidity": "all"}, 300000)

    running = controller.list_all()
    assert {s["userId"] for s in running} == {alice, bob}

    assert controller.stop_all() == 2
    assert controller.list_all() == []
    assert controller.stop_all() == 0


def test_stop_for_user_leaves_others_running(controller, users):
    alice, bob = users
    controller.start(alice, {"humidity": "all"}, 60000)
    controller.start(bob, {"humidity": "all"}, 60000)

    assert controller.stop_for_user(alice) is True
    assert not controller.is_logging(alice)
    assert controller.is_logging(bob)


def test_sessions_tick_on_their_own_timers(db_session, sensors, users):
    alice, bob = users
    interval_service.create_interval(db_session, 1, "1 Second")
    cache = SensorValueCache(stale_after_seconds=60)
    cache.record_many({"RH1": 60.0, "RH2": 61.0})
    store = MemoryReadingStore()
    scheduler = BackgroundScheduler()
    controller = LoggingSessionController(scheduler, cache, store_provider=lambda: store)

    scheduler.start()
    try:
        controller.start(alice, {"humidity": "all"}, 1000)
        controller.start(bob, {"humidity": "all"}, 60000)
        time.sleep(2.5)
        controller.stop_all()
    finally:
        scheduler.shutdown(wait=True)

    assert store.count(ReadingFilter(user_id=alice)) >= 2
    assert store.count(ReadingFilter(user_id=bob)) == 0
    assert controller.status(alice)["logCount"] >= 1
