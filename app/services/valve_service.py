"""
Valve Command Relay.

Forwards mode and on/off commands to the valve controller board over HTTP and
remembers the last status it reported. Manual on/off commands are refused
locally while the valve runs in automatic mode, so an operator can never race
the board's own level control loop. Relay failures are raised to the caller
as they are; nothing is retried.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Optional

import requests
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import RelayUnavailable, ValidationError, WrongMode
from app.models.valve import DEFAULT_OFF_THRESHOLD, DEFAULT_ON_THRESHOLD, ValveConfig

logger = logging.getLogger(__name__)

MODES = ("auto", "manual")
COMMANDS = ("on", "off")


class ValveRelay:

    def __init__(self, base_url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()
        self._lock = threading.Lock()
        self._status = {
            "status": "unknown",
            "mode": "unknown",
            "level": 0,
            "distance": 0,
            "timestamp": None,
        }

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = self.http.request(
                method,
                url,
                json=payload,
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Valve relay {method} {url} failed: {e}")
            raise RelayUnavailable(f"Valve relay unavailable: {e}") from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    def last_status(self) -> dict:
        with self._lock:
            return dict(self._status)

    @property
    def mode(self) -> str:
        with self._lock:
            return self._status["mode"]

    def update_status(self, payload: dict) -> dict:
        """Merge a status report (from the relay or pushed by the board)."""
        known = {k: v for k, v in payload.items() if k in ("status", "mode", "level", "distance")}
        if "mode" in known and known["mode"] is not None:
            known["mode"] = str(known["mode"]).lower()
        with self._lock:
            self._status.update(known)
            self._status["timestamp"] = payload.get("timestamp") or datetime.now(timezone.utc).isoformat()
            return dict(self._status)

    def get_status(self) -> dict:
        """
        Ask the relay for the current status. When it cannot be reached the
        last known status is returned with ``reachable`` set to False.
        """
        try:
            payload = self._request("GET", "/status")
        except RelayUnavailable:
            return {**self.last_status(), "reachable": False}
        return {**self.update_status(payload), "reachable": True}

    def set_mode(self, mode: str) -> dict:
        mode = (mode or "").lower()
        if mode not in MODES:
            raise ValidationError('Invalid mode. Use "auto" or "manual"')
        self._request("POST", "/mode", {"command": mode})
        self.update_status({"mode": mode})
        logger.info(f"Valve mode changed to {mode.upper()}")
        return {"mode": mode, "timestamp": datetime.now(timezone.utc).isoformat()}

    def control(self, command: str) -> dict:
        command = (command or "").lower()
        if command not in COMMANDS:
            raise ValidationError('Invalid command. Use "on" or "off"')
        if self.mode == "auto":
            raise WrongMode("Valve is in AUTO mode; switch to MANUAL before sending on/off commands")
        self._request("POST", "/control", {"command": command})
        self.update_status({"status": "open" if command == "on" else "closed"})
        logger.info(f"Valve {command.upper()} command sent")
        return {"command": command, "timestamp": datetime.now(timezone.utc).isoformat()}

    def send_thresholds(self, on_threshold: float, off_threshold: float) -> None:
        self._request(
            "POST",
            "/thresholds",
            {"command": "set_thresholds", "onThreshold": on_threshold, "offThreshold": off_threshold},
        )


def get_or_create_config(db: Session) -> ValveConfig:
    config = db.query(ValveConfig).first()
    if config is None:
        config = ValveConfig(on_threshold=DEFAULT_ON_THRESHOLD, off_threshold=DEFAULT_OFF_THRESHOLD)
        db.add(config)
        db.commit()
        db.refresh(config)
    return config


def set_thresholds(db: Session, relay: ValveRelay, on_threshold, off_threshold, user_id: Optional[int] = None) -> ValveConfig:
    """Persist new auto-control thresholds, then forward them to the board."""
    for value in (on_threshold, off_threshold):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError("onThreshold and offThreshold must be numbers")
    if on_threshold < 0 or off_threshold < 0:
        raise ValidationError("Thresholds must be positive numbers")
    if off_threshold >= on_threshold:
        raise ValidationError("offThreshold must be less than onThreshold")

    config = get_or_create_config(db)
    config.on_threshold = float(on_threshold)
    config.off_threshold = float(off_threshold)
    config.updated_by_id = user_id
    db.commit()
    db.refresh(config)

    relay.send_thresholds(config.on_threshold, config.off_threshold)
    logger.info(f"Valve thresholds updated: ON >= {config.on_threshold}cm, OFF <= {config.off_threshold}cm")
    return config


valve_relay = ValveRelay(settings.VALVE_RELAY_URL, timeout=settings.VALVE_RELAY_TIMEOUT)
