from typing import Optional
from uuid import UUID
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.db.models import Job, JobEventLog
from eventhub.domain.states import JobStatus, JobEvent, can_transition
from eventhub.api.v1.metrics import JOB_FAILURES
from eventhub.utils.time import utcnow

logger = logging.getLogger(__name__)

async def fail_job(
    session: AsyncSession,
    job_id: UUID,
    error: str,
) -> Optional[Job]:
    """
    Reports a failed attempt for a PROCESSING job.

    attempts < max_attempts  -> back to PENDING (retried on a later claim)
    attempts >= max_attempts -> FAILED, terminal

    The attempt counter was already bumped by the claim, so it is not
    touched here. Returns None when the job is not in PROCESSING.
    """
    now = utcnow()

    stmt = select(Job).where(Job.id == job_id).with_for_update()
    res = await session.execute(stmt)
    job = res.scalar_one_or_none()

    if job is None:
        logger.info("Ignoring failure for job %s: not found", job_id)
        return None

    observed_attempts = job.attempts
    exhausted = observed_attempts >= job.max_attempts
    target = JobStatus.FAILED if exhausted else JobStatus.PENDING
    if not can_transition(job.status, target):
        logger.info("Ignoring failure for job %s: cannot move %s -> %s", job_id, job.status, target)
        return None

    next_event: JobEvent

    if exhausted:
        values = dict(
            status=JobStatus.FAILED,
            error=error,
            completed_at=now,
        )
        failure_type = "final"
        next_event = JobEvent.FAILED
    else:
        # Retry
        values = dict(
            status=JobStatus.PENDING,
            error=error,
            started_at=None,
        )
        failure_type = "retryable"
        next_event = JobEvent.RETRIED

    stmt = update(Job).where(
        Job.id == job_id,
        Job.status == JobStatus.PROCESSING,
        Job.attempts == observed_attempts,
    ).values(
        claimed_by=None,
        updated_at=now,
        **values,
    ).returning(Job)

    res = await session.execute(stmt)
    job = res.scalar_one_or_none()
    if job is None:
        return None

    JOB_FAILURES.labels(job_type=job.job_type, type=failure_type).inc()

    session.add(JobEventLog(
        job_id=job.id,
        event_type=next_event,
        timestamp=now,
        meta={
            "error": error,
            "attempts": job.attempts,
            "max": job.max_attempts,
        }
    ))

    await session.flush()

    if next_event == JobEvent.FAILED:
        logger.warning("Job %s failed permanently after %s attempts: %s", job.id, job.attempts, error)
    else:
        logger.info("Job %s failed attempt %s/%s, will retry: %s", job.id, job.attempts, job.max_attempts, error)
    return job
