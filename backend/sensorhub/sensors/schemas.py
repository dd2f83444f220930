from pydantic import BaseModel, ConfigDict, Field

from sensorhub.sensors.models import DEFAULT_DEVICE_ID


class SensorReadingIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    temperature: float = Field(alias="temperatura", ge=-50, le=100)
    humidity: float = Field(alias="humedad", ge=0, le=100)
    gas: float = Field(ge=0, le=1023)
    device_id: str = Field(alias="esp32_id", default=DEFAULT_DEVICE_ID, min_length=1, max_length=50)


class Alert(BaseModel):
    tipo: str
    nivel: str
    mensaje: str
    valor: float
    limite: float
