import logging
import re
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, ValidationError
from app.models.sensor import SensorType
from app.models.sensor_config import SensorConfig
from app.services.sensor_cache import SensorValueCache

logger = logging.getLogger(__name__)

_DEFAULT_UNITS = {
    SensorType.AIR_TEMPERATURE.value: "°C",
    SensorType.WATER_TEMPERATURE.value: "°C",
    SensorType.HUMIDITY.value: "%",
    SensorType.WATER_LEVEL.value: "%",
    SensorType.UNCATEGORIZED.value: "",
}

_FIELDS = ("display_name", "sensor_type", "unit", "is_enabled", "sort_order", "min_value", "max_value", "description")

_TEMPERATURE_ID = re.compile(r"^T(\d+)$", re.IGNORECASE)

# Probes T1..T7 hang in the air chamber, T8 and up sit in the water
_LAST_AIR_PROBE = 7


def default_unit(sensor_type: str) -> str:
    return _DEFAULT_UNITS.get(sensor_type, "")


def suggest_category(sensor_id: str) -> str:
    """Guess a category from the sensor id prefix. Advisory only."""
    sid = sensor_id.strip().upper()
    if sid.startswith("RH") or sid.startswith("H"):
        return SensorType.HUMIDITY.value
    if sid.startswith("WL"):
        return SensorType.WATER_LEVEL.value
    if sid.startswith("TW"):
        return SensorType.WATER_TEMPERATURE.value
    if sid.startswith("TA"):
        return SensorType.AIR_TEMPERATURE.value
    match = _TEMPERATURE_ID.match(sid)
    if match:
        if int(match.group(1)) <= _LAST_AIR_PROBE:
            return SensorType.AIR_TEMPERATURE.value
        return SensorType.WATER_TEMPERATURE.value
    return SensorType.UNCATEGORIZED.value


def _check_type(sensor_type: str) -> str:
    allowed = {t.value for t in SensorType}
    if sensor_type not in allowed:
        raise ValidationError(f"sensor_type must be one of: {sorted(allowed)}")
    return sensor_type


def list_configs(db: Session, sensor_type: Optional[str] = None) -> List[SensorConfig]:
    query = db.query(SensorConfig)
    if sensor_type:
        query = query.filter(SensorConfig.sensor_type == sensor_type)
    return query.order_by(SensorConfig.sensor_type, SensorConfig.sort_order, SensorConfig.sensor_id).all()


def get_config(db: Session, sensor_id: str) -> SensorConfig:
    config = db.query(SensorConfig).filter(SensorConfig.sensor_id == sensor_id).first()
    if config is None:
        raise NotFound(f"Sensor config for {sensor_id} not found")
    return config


def upsert(db: Session, payload: dict) -> SensorConfig:
    """
    Create or fully replace the config for ``payload["sensor_id"]``.
    Fields left out of the payload fall back to their defaults, not to the
    previous values.
    """
    sensor_id = (payload.get("sensor_id") or "").strip()
    display_name = payload.get("display_name")
    sensor_type = payload.get("sensor_type")
    if not sensor_id or not display_name or not sensor_type:
        raise ValidationError("sensor_id, display_name, and sensor_type are required")
    _check_type(sensor_type)

    values = {
        "display_name": display_name,
        "sensor_type": sensor_type,
        "unit": payload.get("unit") if payload.get("unit") is not None else default_unit(sensor_type),
        "is_enabled": payload.get("is_enabled", True),
        "sort_order": payload.get("sort_order", 0),
        "min_value": payload.get("min_value"),
        "max_value": payload.get("max_value"),
        "description": payload.get("description"),
        "is_configured": True,
    }

    config = db.query(SensorConfig).filter(SensorConfig.sensor_id == sensor_id).first()
    if config is None:
        config = SensorConfig(sensor_id=sensor_id, **values)
        db.add(config)
    else:
        for field, value in values.items():
            setattr(config, field, value)
    db.commit()
    db.refresh(config)
    logger.info(f"Upserted sensor config: {sensor_id} -> '{display_name}' ({sensor_type})")
    return config


def bulk_upsert(db: Session, payloads: Iterable[dict]) -> List[SensorConfig]:
    results = []
    for payload in payloads:
        try:
            results.append(upsert(db, payload))
        except ValidationError as e:
            logger.warning("Skipping sensor config %s: %s", payload.get("sensor_id"), e)
    logger.info(f"Bulk upserted {len(results)} sensor configs")
    return results


def toggle(db: Session, sensor_id: str) -> SensorConfig:
    config = get_config(db, sensor_id)
    config.is_enabled = not config.is_enabled
    db.commit()
    db.refresh(config)
    logger.info(f"Toggled {sensor_id}: {'enabled' if config.is_enabled else 'disabled'}")
    return config


def delete(db: Session, sensor_id: str) -> None:
    """Remove the config only; readings already logged for this sensor stay."""
    config = get_config(db, sensor_id)
    db.delete(config)
    db.commit()
    logger.info(f"Deleted sensor config: {sensor_id}")


def reorder(db: Session, sensor_id: str, new_sort_order: int) -> SensorConfig:
    config = get_config(db, sensor_id)
    config.sort_order = int(new_sort_order)
    db.commit()
    db.refresh(config)
    return config


def list_discovered(db: Session, cache: SensorValueCache) -> List[dict]:
    """Sensors seen in telemetry that have no config yet, with a suggested category."""
    configured = {row[0] for row in db.query(SensorConfig.sensor_id).all()}
    return [
        {**info, "suggestedCategory": suggest_category(info["sensorId"])}
        for info in cache.discovered()
        if info["sensorId"] not in configured
    ]


def auto_register(db: Session, cache: SensorValueCache) -> List[SensorConfig]:
    """Create placeholder configs for every discovered sensor; admins still need to review them."""
    created = []
    for info in list_discovered(db, cache):
        category = info["suggestedCategory"]
        config = SensorConfig(
            sensor_id=info["sensorId"],
            display_name=info["sensorId"],
            sensor_type=category,
            unit=default_unit(category),
            is_enabled=True,
            is_configured=False,
        )
        db.add(config)
        created.append(config)
    db.commit()
    for config in created:
        db.refresh(config)
    logger.info(f"Auto-registered {len(created)} new sensors")
    return created


def display_map(db: Session) -> Dict[str, dict]:
    configs = db.query(SensorConfig).filter(SensorConfig.is_enabled.is_(True)).all()
    return {
        c.sensor_id: {
            "displayName": c.display_name,
            "sensorType": c.sensor_type,
            "unit": c.unit,
            "minValue": c.min_value,
            "maxValue": c.max_value,
            "description": c.description,
        }
        for c in configs
    }


def enabled_sensors(db: Session, sensor_types: Iterable[str]) -> List[SensorConfig]:
    types = list(sensor_types)
    if not types:
        return []
    return (
        db.query(SensorConfig)
        .filter(SensorConfig.sensor_type.in_(types), SensorConfig.is_enabled.is_(True))
        .order_by(SensorConfig.sensor_type, SensorConfig.sort_order, SensorConfig.sensor_id)
        .all()
    )


def to_dict(config: SensorConfig) -> dict:
    data = {"sensor_id": config.sensor_id, "is_configured": config.is_configured}
    data.update({field: getattr(config, field) for field in _FIELDS})
    return data
