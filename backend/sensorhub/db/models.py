from sensorhub.auth.models import User, UserSession  # noqa: F401
from sensorhub.audit.models import LoginLog  # noqa: F401
from sensorhub.sensors.models import ConfigEntry, SensorReading  # noqa: F401
