import asyncio
import logging

from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from sensorhub.auth.ledger import reap

logger = logging.getLogger(__name__)


class SessionReaper:
    """Periodically deletes expired and revoked sessions.

    Owned by the application lifespan: ``start()`` at boot, ``stop()`` at
    shutdown. Revocation never depends on this sweep; a late or failed run
    only leaves dead rows around a little longer.
    """

    def __init__(self, session_factory: sessionmaker[Session], interval_seconds: float):
        self.session_factory = session_factory
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.interval_seconds = float(interval_seconds)
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> int | None:
        try:
            with self.session_factory() as db:
                removed = reap(db)
                db.commit()
        except Exception:
            logger.exception("Session sweep failed; retrying next tick")
            return None
        logger.info("Expired sessions cleaned: %s", removed)
        return removed

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await run_in_threadpool(self.run_once)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="session-reaper")
        logger.info("Session reaper started (interval=%ss)", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Session reaper stopped")
