import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from eventhub.settings import settings
from eventhub.logging_config import configure_logging
from eventhub.api.v1.jobs import router as jobs_router
from eventhub.api.v1.workers import router as workers_router
from eventhub.api.v1.evaluations import router as evaluations_router
from eventhub.api.v1.admin import router as admin_router
from eventhub.api.v1.metrics import router as metrics_router

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    from eventhub.db.session import AsyncSessionLocal
    from eventhub.scheduler.service import MaintenanceService

    configure_logging()

    # 1. Maintenance (queue gauges, optional stale reset)
    maintenance = MaintenanceService(
        interval=settings.MAINTENANCE_INTERVAL_SECONDS,
        session_factory=AsyncSessionLocal,
    )
    await maintenance.start()

    # 2. In-process worker, for single-node deployments
    worker = None
    if settings.WORKER_EMBEDDED:
        from worker_sdk import PollWorker
        from eventhub.processors.registry import build_registry
        from eventhub.services.job_queue import JobQueue

        worker = PollWorker(
            JobQueue(AsyncSessionLocal),
            build_registry(AsyncSessionLocal),
            interval=settings.WORKER_POLL_INTERVAL_SECONDS,
            batch_size=settings.WORKER_BATCH_SIZE,
        )
        await worker.start()
        logger.info("Embedded worker %s running", worker.worker_id)

    yield

    # Shutdown
    if worker:
        await worker.stop()
    await maintenance.stop()

app = FastAPI(
    title=settings.PROJECT_NAME,
    lifespan=lifespan
)

app.include_router(jobs_router, prefix="/api/v1/jobs", tags=["jobs"])
app.include_router(workers_router, prefix="/api/v1/workers", tags=["workers"])
app.include_router(evaluations_router, prefix="/api/v1", tags=["evaluations"])
app.include_router(admin_router, prefix="/api/v1/admin", tags=["admin"])
app.include_router(metrics_router, tags=["metrics"])

@app.get("/health")
async def health():
    return {"status": "ok"}
