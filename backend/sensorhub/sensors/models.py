from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from sensorhub.db.base import Base

DEFAULT_DEVICE_ID = "ESP32_001"


class SensorReading(Base):
    __tablename__ = "datos_sensores"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    temperature: Mapped[float] = mapped_column("temperatura", Float, nullable=False)
    humidity: Mapped[float] = mapped_column("humedad", Float, nullable=False)
    gas: Mapped[float] = mapped_column(Float, nullable=False)
    device_id: Mapped[str] = mapped_column("esp32_id", String(50), nullable=False, default=DEFAULT_DEVICE_ID)
    recorded_at: Mapped[datetime] = mapped_column(
        "fecha_registro", DateTime, nullable=False, default=datetime.utcnow
    )


Index("ix_datos_sensores_device_recorded_at", SensorReading.device_id, SensorReading.recorded_at)


class ConfigEntry(Base):
    __tablename__ = "configuracion"

    key: Mapped[str] = mapped_column("clave", String(64), primary_key=True)  # e.g. temperatura_max
    value: Mapped[str] = mapped_column("valor", String(255), nullable=False)
