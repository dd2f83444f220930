import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sensorhub.sensors.models import ConfigEntry, SensorReading
from sensorhub.sensors.schemas import Alert

logger = logging.getLogger(__name__)

THRESHOLD_KEYS = ("temperatura_max", "humedad_max", "gas_max")

PERIODS: dict[str, timedelta] = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
DEFAULT_PERIOD = "24h"


def load_thresholds(db: Session) -> dict[str, float]:
    rows = db.execute(
        select(ConfigEntry).where(ConfigEntry.key.in_(THRESHOLD_KEYS))
    ).scalars().all()
    limits: dict[str, float] = {}
    for row in rows:
        try:
            limits[row.key] = float(row.value)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric threshold %s=%r", row.key, row.value)
    return limits


def evaluate_alerts(limits: dict[str, float], temperature: float, humidity: float, gas: float) -> list[Alert]:
    alerts: list[Alert] = []

    temp_max = limits.get("temperatura_max")
    if temp_max is not None and temperature > temp_max:
        alerts.append(
            Alert(
                tipo="temperatura",
                nivel="warning",
                mensaje=f"High temperature: {temperature}°C (max: {temp_max}°C)",
                valor=temperature,
                limite=temp_max,
            )
        )

    hum_max = limits.get("humedad_max")
    if hum_max is not None and humidity > hum_max:
        alerts.append(
            Alert(
                tipo="humedad",
                nivel="warning",
                mensaje=f"High humidity: {humidity}% (max: {hum_max}%)",
                valor=humidity,
                limite=hum_max,
            )
        )

    gas_max = limits.get("gas_max")
    if gas_max is not None and gas > gas_max:
        alerts.append(
            Alert(
                tipo="gas",
                nivel="danger",
                mensaje=f"High gas level: {gas} (max: {gas_max})",
                valor=gas,
                limite=gas_max,
            )
        )

    return alerts


def check_alerts(db: Session, temperature: float, humidity: float, gas: float) -> list[Alert]:
    # a missing or unreadable config table must not block ingestion
    try:
        limits = load_thresholds(db)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not load alert thresholds")
        return []
    return evaluate_alerts(limits, temperature, humidity, gas)


def _round(value) -> float | None:
    if value is None:
        return None
    return round(float(value), 2)


def sensor_stats(
    db: Session,
    device_id: str | None = None,
    period: str = DEFAULT_PERIOD,
    now: datetime | None = None,
) -> dict:
    if period not in PERIODS:
        period = DEFAULT_PERIOD
    since = (now or datetime.utcnow()) - PERIODS[period]

    stmt = select(
        func.count(SensorReading.id),
        func.avg(SensorReading.temperature),
        func.min(SensorReading.temperature),
        func.max(SensorReading.temperature),
        func.avg(SensorReading.humidity),
        func.min(SensorReading.humidity),
        func.max(SensorReading.humidity),
        func.avg(SensorReading.gas),
        func.min(SensorReading.gas),
        func.max(SensorReading.gas),
        func.max(SensorReading.recorded_at),
        func.min(SensorReading.recorded_at),
    ).where(SensorReading.recorded_at >= since)
    if device_id:
        stmt = stmt.where(SensorReading.device_id == device_id)

    (
        total,
        temp_avg,
        temp_min,
        temp_max,
        hum_avg,
        hum_min,
        hum_max,
        gas_avg,
        gas_min,
        gas_max,
        last_at,
        first_at,
    ) = db.execute(stmt).one()

    return {
        "total_registros": int(total or 0),
        "temp_promedio": _round(temp_avg),
        "temp_minima": temp_min,
        "temp_maxima": temp_max,
        "hum_promedio": _round(hum_avg),
        "hum_minima": hum_min,
        "hum_maxima": hum_max,
        "gas_promedio": _round(gas_avg),
        "gas_minimo": gas_min,
        "gas_maximo": gas_max,
        "ultimo_registro": last_at,
        "primer_registro": first_at,
        "periodo": period,
        "esp32_id": device_id or "todos",
    }
