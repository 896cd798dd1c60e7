"""
Standalone poll worker.

    python -m eventhub.worker_main                 # claims straight from the database
    python -m eventhub.worker_main --api http://core:8000   # claims over the worker API
"""

import asyncio
import logging

import click

from worker_sdk import PollWorker, WorkerClient

from eventhub.logging_config import configure_logging
from eventhub.settings import settings

logger = logging.getLogger(__name__)


async def _run(api_url: str | None, worker_id: str | None, interval: float, batch_size: int) -> None:
    from eventhub.db.session import AsyncSessionLocal, engine
    from eventhub.processors.registry import build_registry
    from eventhub.services.job_queue import JobQueue

    registry = build_registry(AsyncSessionLocal)

    client = None
    if api_url:
        client = WorkerClient(api_url, worker_id or "eventhub-worker", shared_secret=settings.WORKER_SHARED_SECRET or None)
        backend = client
    else:
        backend = JobQueue(AsyncSessionLocal)

    worker = PollWorker(backend, registry, interval=interval, batch_size=batch_size, worker_id=worker_id)
    try:
        await worker.run_forever()
    finally:
        if client:
            await client.close()
        await engine.dispose()


@click.command()
@click.option("--api", "api_url", default=None, help="Claim through the HTTP worker API at this base URL.")
@click.option("--worker-id", default=None, help="Worker identity recorded on claimed jobs.")
@click.option("--interval", default=None, type=float, help="Seconds between ticks.")
@click.option("--batch-size", default=None, type=int, help="Max jobs claimed per tick.")
def main(api_url, worker_id, interval, batch_size):
    """Run the job poll worker until SIGINT/SIGTERM."""
    configure_logging()
    asyncio.run(_run(
        api_url,
        worker_id,
        interval if interval is not None else settings.WORKER_POLL_INTERVAL_SECONDS,
        batch_size if batch_size is not None else settings.WORKER_BATCH_SIZE,
    ))


if __name__ == "__main__":
    main()
