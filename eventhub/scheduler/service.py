import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventhub.db.session import AsyncSessionLocal
from eventhub.scheduler.ticker import run_maintenance_tasks

logger = logging.getLogger(__name__)

class MaintenanceService:
    def __init__(self, interval: int = 60, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal):
        self.interval = interval
        self.session_factory = session_factory
        self._running = False
        self._task = None

    async def start(self):
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Maintenance service started.")

    async def stop(self):
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Maintenance service stopped.")

    async def _loop(self):
        while self._running:
            try:
                async with self.session_factory() as session:
                    requeued = await run_maintenance_tasks(session)
                if requeued:
                    logger.info("Maintenance reset %s stale jobs", requeued)
            except Exception as e:
                logger.error(f"Error in maintenance ticker: {e}", exc_info=True)

            await asyncio.sleep(self.interval)
