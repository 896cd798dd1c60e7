from typing import Iterable, Optional
from uuid import UUID
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.db.models import Job, JobEventLog
from eventhub.domain.states import JobStatus, JobEvent
from eventhub.api.v1.metrics import JOB_CLAIMS, JOB_CLAIM_CONFLICTS
from eventhub.settings import settings
from eventhub.utils.time import utcnow

logger = logging.getLogger(__name__)

async def claim_job(
    session: AsyncSession,
    worker_id: Optional[str] = None,
    job_types: Optional[Iterable[str]] = None,
    max_candidates: Optional[int] = None,
) -> Optional[Job]:
    """
    Atomically claims the next pending job.

    Order: lowest priority number first, then oldest created_at.

    Two layers keep concurrent workers from claiming the same row:
    1. The candidate SELECT uses FOR UPDATE SKIP LOCKED, so on Postgres a
       row another transaction is claiming is invisible to us.
    2. The flip is a compare-and-swap UPDATE guarded by status='pending'.
       Stores without row locks (SQLite) still cannot double-claim; the
       loser sees zero rows and moves on to the next candidate.

    Returns None when nothing is claimable; that is the idle steady state,
    not an error.
    """
    types = list(job_types) if job_types is not None else None
    if types is not None and not types:
        # An explicit empty filter means the caller handles nothing
        return None
    tries = max_candidates or settings.JOB_CLAIM_CANDIDATES

    for _ in range(tries):
        sel_res = await session.execute(_build_candidate_query(types))
        candidate_id = sel_res.scalar_one_or_none()
        if candidate_id is None:
            return None

        job = await _try_claim(session, candidate_id, worker_id)
        if job is not None:
            return job

        # Lost the race for this row; look again
        JOB_CLAIM_CONFLICTS.inc()
        logger.debug("Worker %s lost claim race for job %s", worker_id, candidate_id)

    return None

def _build_candidate_query(job_types: Optional[list[str]]):
    stmt = select(Job.id).where(Job.status == JobStatus.PENDING)
    if job_types:
        stmt = stmt.where(Job.job_type.in_(job_types))
    return stmt.order_by(
        Job.priority.asc(),
        Job.created_at.asc()
    ).with_for_update(skip_locked=True).limit(1)

async def _try_claim(session: AsyncSession, job_id: UUID, worker_id: Optional[str]) -> Optional[Job]:
    now = utcnow()

    # UPDATE jobs SET status='processing', attempts=attempts+1 ... WHERE id=:id AND status='pending' RETURNING *
    stmt = update(Job).where(
        Job.id == job_id,
        Job.status == JobStatus.PENDING,
    ).values(
        status=JobStatus.PROCESSING,
        attempts=Job.attempts + 1,
        started_at=now,
        completed_at=None,
        claimed_by=worker_id,
        updated_at=now,
    ).returning(Job)

    result = await session.execute(stmt)
    job = result.scalar_one_or_none()
    if job is None:
        return None

    session.add(JobEventLog(
        job_id=job.id,
        event_type=JobEvent.CLAIMED,
        timestamp=now,
        meta={"worker_id": worker_id, "attempt": job.attempts},
    ))
    await session.flush()

    JOB_CLAIMS.labels(job_type=job.job_type).inc()
    logger.info("Worker %s claimed job %s (attempt %s/%s)", worker_id, job.id, job.attempts, job.max_attempts)
    return job
