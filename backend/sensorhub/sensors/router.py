import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from sensorhub.auth.deps import Identity, authenticate_token, optional_auth
from sensorhub.core.errors import NotFoundError, ValidationError
from sensorhub.core.pagination import pagination_out
from sensorhub.db.session import get_db
from sensorhub.sensors.models import SensorReading
from sensorhub.sensors.schemas import SensorReadingIn
from sensorhub.sensors.service import DEFAULT_PERIOD, check_alerts, sensor_stats

logger = logging.getLogger(__name__)

router = APIRouter()


def reading_out(row: SensorReading) -> dict:
    return {
        "id": row.id,
        "temperatura": row.temperature,
        "humedad": row.humidity,
        "gas": row.gas,
        "esp32_id": row.device_id,
        "fecha_registro": row.recorded_at,
    }


@router.post("")
def ingest_reading(payload: SensorReadingIn, request: Request, db: Session = Depends(get_db)):
    reading = SensorReading(
        temperature=payload.temperature,
        humidity=payload.humidity,
        gas=payload.gas,
        device_id=payload.device_id,
        recorded_at=datetime.utcnow(),
    )
    db.add(reading)
    db.commit()
    db.refresh(reading)

    alerts = check_alerts(db, payload.temperature, payload.humidity, payload.gas)
    client_ip = request.client.host if request.client else "unknown"
    logger.info(
        "Reading from %s temp=%s hum=%s gas=%s ip=%s",
        payload.device_id,
        payload.temperature,
        payload.humidity,
        payload.gas,
        client_ip,
    )
    if alerts:
        logger.warning("Alerts for %s: %s", payload.device_id, [a.mensaje for a in alerts])

    return {
        "success": True,
        "message": "Sensor data received",
        "data": {
            **reading_out(reading),
            "alertas": [a.model_dump() for a in alerts],
        },
    }


@router.get("")
def list_readings(
    limit: int = Query(default=50, ge=1, le=1000),
    page: int = Query(default=1, ge=1),
    esp32_id: str | None = Query(default=None, max_length=50),
    desde: datetime | None = Query(default=None),
    hasta: datetime | None = Query(default=None),
    db: Session = Depends(get_db),
    viewer: Identity | None = Depends(optional_auth),
):
    conditions = []
    if esp32_id:
        conditions.append(SensorReading.device_id == esp32_id)
    if desde:
        conditions.append(SensorReading.recorded_at >= desde)
    if hasta:
        conditions.append(SensorReading.recorded_at <= hasta)

    rows = db.execute(
        select(SensorReading)
        .where(*conditions)
        .order_by(SensorReading.recorded_at.desc(), SensorReading.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    ).scalars().all()
    total = db.execute(select(func.count(SensorReading.id)).where(*conditions)).scalar_one()

    return {
        "success": True,
        "data": {
            "datos": [reading_out(r) for r in rows],
            "estadisticas": sensor_stats(db, esp32_id),
            "pagination": pagination_out(page, limit, int(total or 0)),
        },
    }


@router.get("/latest")
def latest_reading(
    esp32_id: str | None = Query(default=None, max_length=50),
    db: Session = Depends(get_db),
):
    stmt = select(SensorReading)
    if esp32_id:
        stmt = stmt.where(SensorReading.device_id == esp32_id)
    row = db.execute(
        stmt.order_by(SensorReading.recorded_at.desc(), SensorReading.id.desc()).limit(1)
    ).scalar_one_or_none()
    if not row:
        raise NotFoundError("No sensor data found")

    alerts = check_alerts(db, row.temperature, row.humidity, row.gas)
    return {
        "success": True,
        "data": {**reading_out(row), "alertas": [a.model_dump() for a in alerts]},
    }


@router.get("/stats")
def reading_stats(
    esp32_id: str | None = Query(default=None, max_length=50),
    periodo: str = Query(default=DEFAULT_PERIOD),
    db: Session = Depends(get_db),
):
    return {"success": True, "data": sensor_stats(db, esp32_id, periodo)}


@router.delete("/cleanup")
def cleanup_readings(
    dias: int = Query(default=30),
    db: Session = Depends(get_db),
    identity: Identity = Depends(authenticate_token),
):
    if dias < 1:
        raise ValidationError("Days must be greater than 0")

    cutoff = datetime.utcnow() - timedelta(days=dias)
    result = db.execute(delete(SensorReading).where(SensorReading.recorded_at < cutoff))
    db.commit()
    removed = result.rowcount or 0
    logger.info("User %s removed %s readings older than %s days", identity.id, removed, dias)

    return {
        "success": True,
        "message": f"Data older than {dias} days removed",
        "data": {"registrosEliminados": removed},
    }
