from typing import Any, Optional
from uuid import UUID
import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.db.models import Job, JobEventLog
from eventhub.domain.states import JobStatus, JobEvent, can_transition
from eventhub.api.v1.metrics import JOB_DURATION, JOB_COMPLETIONS
from eventhub.utils.time import utcnow, as_utc

logger = logging.getLogger(__name__)

async def complete_job(
    session: AsyncSession,
    job_id: UUID,
    result_data: Optional[dict[str, Any]] = None,
) -> Optional[Job]:
    """
    Marks a PROCESSING job as COMPLETED and stores its result.
    Returns None, touching nothing, when the job is not in PROCESSING
    (unknown, still pending, or already terminal).
    """
    now = utcnow()
    # States the transition table lets reach COMPLETED
    sources = [s for s in JobStatus if can_transition(s, JobStatus.COMPLETED)]

    stmt = update(Job).where(
        Job.id == job_id,
        Job.status.in_(sources),
    ).values(
        status=JobStatus.COMPLETED,
        result=result_data,
        completed_at=now,
        claimed_by=None,
        updated_at=now,
    ).returning(Job)

    res = await session.execute(stmt)
    job = res.scalar_one_or_none()

    if job is None:
        logger.info("Ignoring completion for job %s: not in processing", job_id)
        return None

    if job.started_at:
        duration = (now - as_utc(job.started_at)).total_seconds()
        if duration > 0:
            JOB_DURATION.observe(duration)

    JOB_COMPLETIONS.labels(job_type=job.job_type).inc()

    session.add(JobEventLog(
        job_id=job.id,
        event_type=JobEvent.COMPLETED,
        timestamp=now,
        meta={"attempt": job.attempts},
    ))

    await session.flush()
    return job
