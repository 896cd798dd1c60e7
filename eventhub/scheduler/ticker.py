from datetime import timedelta
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.api.v1.metrics import QUEUE_DEPTH, JOBS_PROCESSING
from eventhub.commands.requeue_stale import requeue_stale_jobs
from eventhub.db.models import Job
from eventhub.domain.states import JobStatus
from eventhub.settings import settings

async def run_maintenance_tasks(session: AsyncSession, auto_requeue: bool | None = None) -> int:
    """
    Periodic maintenance:
    1. Reset stale PROCESSING jobs, only when STALE_JOB_AUTO_REQUEUE is on
    2. Refresh queue gauges
    Returns number of stale jobs reset.
    """
    auto_requeue = settings.STALE_JOB_AUTO_REQUEUE if auto_requeue is None else auto_requeue

    requeued = 0
    if auto_requeue:
        requeued = await requeue_stale_jobs(session, timedelta(minutes=settings.STALE_JOB_MINUTES))

    await refresh_queue_gauges(session)
    await session.commit()
    return requeued

async def refresh_queue_gauges(session: AsyncSession) -> None:
    q_depth = (
        select(Job.status, func.count(Job.id))
        .where(Job.status.in_([JobStatus.PENDING, JobStatus.PROCESSING]))
        .group_by(Job.status)
    )
    counts = {status: count for status, count in (await session.execute(q_depth)).all()}
    QUEUE_DEPTH.set(counts.get(JobStatus.PENDING, 0))
    JOBS_PROCESSING.set(counts.get(JobStatus.PROCESSING, 0))
