from datetime import timedelta
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.db.models import Job, JobEventLog
from eventhub.domain.states import JobStatus, JobEvent
from eventhub.api.v1.metrics import STALE_JOBS_REQUEUED
from eventhub.utils.time import utcnow

logger = logging.getLogger(__name__)

STALE_ERROR = "stale: worker did not report an outcome"

async def requeue_stale_jobs(session: AsyncSession, older_than: timedelta, limit: int = 100) -> int:
    """
    Resets jobs stuck in PROCESSING (claimed longer ago than `older_than`).

    This is the out-of-band recovery for crashed workers; nothing in the
    claim/complete/fail path calls it. Jobs with attempts left go back to
    PENDING; jobs that already used their last attempt become FAILED, so a
    pending job never carries attempts == max_attempts into another claim.
    Returns number of jobs recovered.
    """
    now = utcnow()
    cutoff = now - older_than

    stmt = select(Job).where(
        Job.status == JobStatus.PROCESSING,
        Job.started_at < cutoff,
    ).order_by(Job.started_at.asc()).limit(limit).with_for_update(skip_locked=True)

    result = await session.execute(stmt)
    stale_jobs = result.scalars().all()

    if not stale_jobs:
        return 0

    count = 0
    for job in stale_jobs:
        count += 1
        worker_id = job.claimed_by

        if job.attempts >= job.max_attempts:
            job.status = JobStatus.FAILED
            job.error = STALE_ERROR
            job.completed_at = now
            event_type = JobEvent.FAILED
            outcome = "failed"
        else:
            job.status = JobStatus.PENDING
            job.started_at = None
            event_type = JobEvent.REQUEUED
            outcome = "pending"

        job.claimed_by = None
        job.updated_at = now

        session.add(JobEventLog(
            job_id=job.id,
            event_type=event_type,
            timestamp=now,
            meta={"reason": "stale", "worker_id": worker_id, "attempts": job.attempts}
        ))
        STALE_JOBS_REQUEUED.labels(outcome=outcome).inc()

    await session.flush()
    logger.warning("Reset %s stale processing jobs (claimed before %s)", count, cutoff.isoformat())
    return count
