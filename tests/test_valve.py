"""
Valve relay and /valve endpoints. The HTTP session is mocked.
"""
from unittest import mock

import pytest
import requests

from app.core.exceptions import RelayUnavailable, ValidationError, WrongMode
from app.services import valve_service
from app.services.valve_service import ValveRelay, valve_relay


def fake_http(payload=None, error=None):
    http = mock.Mock(spec=requests.Session)
    if error is not None:
        http.request.side_effect = error
        return http
    response = mock.Mock()
    response.raise_for_status.return_value = None
    response.content = b"{}" if payload is not None else b""
    response.json.return_value = payload or {}
    http.request.return_value = response
    return http


@pytest.fixture
def relay():
    return ValveRelay("http://board.local/valve", session=fake_http({"status": "closed", "mode": "MANUAL", "level": 42}))


@pytest.fixture
def api_relay(monkeypatch):
    """The shared relay used by the routes, with a mocked HTTP session and a clean status."""
    monkeypatch.setattr(valve_relay, "http", fake_http({"status": "closed", "mode": "manual"}))
    monkeypatch.setattr(valve_relay, "_status", dict(valve_relay._status, mode="unknown", status="unknown"))
    return valve_relay


def test_get_status_updates_last_known(relay):
    status = relay.get_status()
    assert status["reachable"] is True
    assert status["mode"] == "manual"
    assert status["level"] == 42
    relay.http.request.assert_called_once()
    method, url = relay.http.request.call_args[0]
    assert (method, url) == ("GET", "http://board.local/valve/status")


def test_get_status_when_unreachable_returns_last_known():
    relay = ValveRelay("http://board.local", session=fake_http(error=requests.ConnectionError("down")))
    relay.update_status({"mode": "auto", "status": "open"})

    status = relay.get_status()
    assert status["reachable"] is False
    assert status["mode"] == "auto"


def test_control_refused_in_auto_mode(relay):
    relay.update_status({"mode": "AUTO"})
    with pytest.raises(WrongMode):
        relay.control("on")
    relay.http.request.assert_not_called()


def test_control_in_manual_mode(relay):
    relay.update_status({"mode": "manual"})
    result = relay.control("ON")
    assert result["command"] == "on"
    assert relay.last_status()["status"] == "open"
    assert relay.http.request.call_args.kwargs["json"] == {"command": "on"}


def test_invalid_mode_and_command(relay):
    with pytest.raises(ValidationError):
        relay.set_mode("turbo")
    with pytest.raises(ValidationError):
        relay.control("toggle")


def test_relay_failure_is_raised():
    relay = ValveRelay("http://board.local", session=fake_http(error=requests.Timeout("slow")))
    with pytest.raises(RelayUnavailable):
        relay.set_mode("manual")


def test_set_thresholds_validation(db_session, relay):
    with pytest.raises(ValidationError):
        valve_service.set_thresholds(db_session, relay, 5.0, 6.0)
    with pytest.raises(ValidationError):
        valve_service.set_thresholds(db_session, relay, -1, -2)
    with pytest.raises(ValidationError):
        valve_service.set_thresholds(db_session, relay, "high", 1.0)

    config = valve_service.set_thresholds(db_session, relay, 8, 4.5)
    assert (config.on_threshold, config.off_threshold) == (8.0, 4.5)
    assert relay.http.request.call_args.kwargs["json"]["onThreshold"] == 8.0


# ============================================================================
# ENDPOINTS
# ============================================================================

def test_valve_status_endpoint(client, user_headers, api_relay):
    data = client.get("/valve/status", headers=user_headers).json()["data"]
    assert data["reachable"] is True
    assert data["thresholds"] == {"onThreshold": 6.0, "offThreshold": 5.0}


def test_valve_control_flow(client, user_headers, api_relay):
    assert client.post("/valve/mode", json={"mode": "auto"}, headers=user_headers).status_code == 200
    assert client.post("/valve/control", json={"command": "on"}, headers=user_headers).status_code == 409

    client.post("/valve/mode", json={"mode": "manual"}, headers=user_headers)
    response = client.post("/valve/control", json={"command": "off"}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["data"]["command"] == "off"


def test_valve_relay_down_returns_502(client, user_headers, monkeypatch):
    monkeypatch.setattr(valve_relay, "http", fake_http(error=requests.ConnectionError("down")))
    assert client.post("/valve/mode", json={"mode": "manual"}, headers=user_headers).status_code == 502


def test_thresholds_endpoint(client, user_headers, api_relay):
    response = client.post("/valve/thresholds", json={"onThreshold": 7, "offThreshold": 3}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["data"] == {"onThreshold": 7.0, "offThreshold": 3.0}

    response = client.post("/valve/thresholds", json={"onThreshold": 3, "offThreshold": 7}, headers=user_headers)
    assert response.status_code == 400
