import asyncio
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from portfolio_api.db.base import Database
from portfolio_api.services.access import expire_sessions

logger = logging.getLogger(__name__)


class SessionSweeper:
    """
    Background task that flips expired ACTIVE sessions to INACTIVE.

    Sweeps once when started, then every `interval_seconds` until stopped.
    """

    def __init__(self, database: Database, interval_seconds: int = 3600, sweep_on_start: bool = True):
        self.database = database
        self.interval_seconds = interval_seconds
        self.sweep_on_start = sweep_on_start
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep(self) -> int:
        db = self.database.session()
        try:
            count = await expire_sessions(db)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error cleaning up sessions: {e}")
            return 0
        finally:
            db.close()

        if count:
            logger.info(f"Cleaned up {count} expired sessions")
        return count

    async def _safe_sweep(self) -> None:
        try:
            await self.sweep()
        except Exception as e:
            logger.error(f"Unexpected error during session sweep: {e}", exc_info=True)

    async def _run(self) -> None:
        if self.sweep_on_start:
            await self._safe_sweep()
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self._safe_sweep()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Session sweeper started (every {self.interval_seconds}s)")

    async def stop(self) -> None:
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Session sweeper stopped")
