import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.engine.url import make_url

from sensorhub.auth.reaper import SessionReaper
from sensorhub.auth.router import router as auth_router
from sensorhub.core.config import settings
from sensorhub.core.errors import register_exception_handlers
from sensorhub.db.init_db import init_db
from sensorhub.db.session import SessionLocal, engine
from sensorhub.sensors.router import router as sensors_router
from sensorhub.system.middleware import RequestLogMiddleware, SecurityHeadersMiddleware
from sensorhub.users.router import router as users_router

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    db_url = make_url(settings.DATABASE_URL)
    logger.info(
        "Config sanity: env=%s db_host=%s cors_origins=%s access_exp_min=%s refresh_exp_days=%s sweep_s=%s",
        settings.ENV,
        db_url.host or "local",
        len(settings.CORS_ORIGINS),
        settings.JWT_ACCESS_EXP_MINUTES,
        settings.JWT_REFRESH_EXP_DAYS,
        settings.SESSION_SWEEP_INTERVAL_SECONDS,
    )
    init_db()

    reaper = SessionReaper(SessionLocal, settings.SESSION_SWEEP_INTERVAL_SECONDS)
    reaper.start()
    app.state.session_reaper = reaper
    try:
        yield
    finally:
        await reaper.stop()
        engine.dispose()


app = FastAPI(
    title="ESP32 Sensor Hub",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLogMiddleware)

register_exception_handlers(app)


# --- Routers ---
app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(sensors_router, prefix="/api/sensors", tags=["sensors"])
app.include_router(users_router, prefix="/api/users", tags=["users"])


# --- System ---
@app.get("/", tags=["system"])
def root():
    return {
        "message": "ESP32 Sensor Hub API",
        "version": settings.APP_VERSION,
        "endpoints": {
            "health": "/api/health",
            "auth": "/api/auth",
            "sensors": "/api/sensors",
            "users": "/api/users",
        },
    }


@app.get("/api/health", tags=["system"])
def health():
    return {
        "status": "OK",
        "timestamp": datetime.utcnow().isoformat(),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "environment": settings.ENV,
        "version": settings.APP_VERSION,
    }


@app.get("/api/ready", tags=["system"])
def readiness():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Readiness check failed")
        raise HTTPException(status_code=503, detail="Database not ready")
    return {"status": "ready"}
