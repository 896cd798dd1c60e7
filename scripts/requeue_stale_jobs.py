#!/usr/bin/env python3
"""Manual reset of jobs stuck in PROCESSING (worker crashed mid-job)."""
import asyncio
from datetime import timedelta

import click

from eventhub.commands.requeue_stale import requeue_stale_jobs
from eventhub.db.session import AsyncSessionLocal, engine
from eventhub.logging_config import configure_logging
from eventhub.settings import settings


@click.command()
@click.option("--older-than-minutes", default=settings.STALE_JOB_MINUTES, show_default=True, type=int)
@click.option("--limit", default=100, show_default=True, type=int)
def main(older_than_minutes, limit):
    configure_logging()

    async def _run():
        async with AsyncSessionLocal() as session:
            async with session.begin():
                count = await requeue_stale_jobs(session, timedelta(minutes=older_than_minutes), limit=limit)
        await engine.dispose()
        click.echo(f"Reset {count} stale jobs")

    asyncio.run(_run())

if __name__ == "__main__":
    main()
