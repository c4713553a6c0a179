"""
Telemetry ingestion and the realtime cache.
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import ValidationError
from app.services.sensor_cache import SensorValueCache, natural_key
from app.services.valve_service import valve_relay


def test_natural_sort():
    assert sorted(["T10", "T2", "RH1", "T1"], key=natural_key) == ["RH1", "T1", "T2", "T10"]


def test_latest_value_and_staleness():
    cache = SensorValueCache(stale_after_seconds=8)
    cache.record("RH1", 55.0)
    cache.record("RH1", 56.0)
    assert cache.get_latest_value("RH1") == 56.0
    assert cache.get_latest_value("RH2") is None

    cache.record("T1", 30.0, at=datetime.now(timezone.utc) - timedelta(seconds=30))
    assert cache.get_latest_value("T1") is None
    assert cache.snapshot()["T1"]["status"] == "inactive"
    assert cache.discovered()[0]["dataCount"] == 2


def test_bad_payload_stores_nothing():
    cache = SensorValueCache()
    with pytest.raises(ValidationError):
        cache.record_many({"RH1": 50.0, "RH2": "wet"})
    assert cache.snapshot() == {}
    with pytest.raises(ValidationError):
        cache.record_many({})


def test_blank_sensor_id_stores_nothing():
    cache = SensorValueCache()
    with pytest.raises(ValidationError):
        cache.record_many({"T1": 1.0, "  ": 2.0})
    assert cache.get_latest_value("T1") is None
    assert cache.snapshot() == {}
    assert cache.discovered() == []


def test_ingest_and_realtime(client):
    response = client.post("/esp32/sensors", json={"S2": 25.5, "S10": 26.0, "S1": 24.0})
    assert response.status_code == 200
    assert response.json()["received"] == 3

    realtime = client.get("/esp32/realtime").json()
    assert list(realtime["data"]["sensors"]) == ["S1", "S2", "S10"]
    assert realtime["data"]["sensors"]["S10"]["status"] == "active"
    assert realtime["lastUpdate"] is not None


def test_ingest_rejects_invalid_payload(client):
    assert client.post("/esp32/sensors", json={}).status_code == 400
    assert client.post("/esp32/sensors", json={"S1": "high"}).status_code == 400


def test_device_valve_push(client, monkeypatch):
    monkeypatch.setattr(valve_relay, "_status", dict(valve_relay._status))
    response = client.post("/esp32/valve", json={"status": "open", "mode": "AUTO", "level": 70})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["mode"] == "auto"
    assert client.get("/esp32/realtime").json()["data"]["valve"]["level"] == 70


def test_health(client):
    body = client.get("/").json()
    assert body["status"] == "ok"
