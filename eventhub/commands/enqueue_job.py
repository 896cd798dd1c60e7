import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.db.models import Job, JobEventLog
from eventhub.domain.states import JobStatus, JobEvent
from eventhub.domain.errors import InvalidJobRequestError
from eventhub.api.v1.metrics import JOBS_ENQUEUED
from eventhub.settings import settings

logger = logging.getLogger(__name__)

async def enqueue_job(
    session: AsyncSession,
    job_type: str,
    payload: dict[str, Any],
    owner: str,
    priority: Optional[int] = None,
    max_attempts: Optional[int] = None,
) -> Job:
    """
    Creates a PENDING job owned by `owner`.
    Priority runs 1 (served first) .. 10 (served last).
    """
    priority = settings.JOB_DEFAULT_PRIORITY if priority is None else priority
    max_attempts = settings.JOB_DEFAULT_MAX_ATTEMPTS if max_attempts is None else max_attempts

    if not job_type or not job_type.strip():
        raise InvalidJobRequestError("job_type is required")
    if not owner:
        raise InvalidJobRequestError("owner is required")
    if not isinstance(payload, dict):
        raise InvalidJobRequestError("payload must be a JSON object")
    if not settings.JOB_MIN_PRIORITY <= priority <= settings.JOB_MAX_PRIORITY:
        raise InvalidJobRequestError(
            f"priority must be between {settings.JOB_MIN_PRIORITY} and {settings.JOB_MAX_PRIORITY}"
        )
    if max_attempts < 1:
        raise InvalidJobRequestError("max_attempts must be at least 1")

    job = Job(
        job_type=job_type.strip(),
        payload=payload,
        created_by=owner,
        priority=priority,
        max_attempts=max_attempts,
        attempts=0,
        status=JobStatus.PENDING,
    )
    session.add(job)
    await session.flush()

    session.add(JobEventLog(
        job_id=job.id,
        event_type=JobEvent.CREATED,
        meta={"owner": owner, "priority": priority},
    ))
    await session.flush()

    JOBS_ENQUEUED.labels(job_type=job.job_type).inc()
    logger.info("Enqueued job %s type=%s owner=%s priority=%s", job.id, job.job_type, owner, priority)
    return job
