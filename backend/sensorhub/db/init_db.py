from sensorhub.db.base import Base
from sensorhub.db.session import engine
import sensorhub.db.models  # noqa


def init_db():
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    init_db()
