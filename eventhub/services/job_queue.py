import logging
from datetime import timedelta
from typing import Any, Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventhub.commands.claim_job import claim_job
from eventhub.commands.complete_job import complete_job
from eventhub.commands.enqueue_job import enqueue_job
from eventhub.commands.fail_job import fail_job
from eventhub.commands.requeue_stale import requeue_stale_jobs
from eventhub.db.models import Job
from eventhub.domain.states import JobStatus

logger = logging.getLogger(__name__)

class JobQueue:
    """
    Job Store facade. Every operation runs in its own transaction, so a
    claim is committed (and visible to other workers) before the processor
    starts working on it.

    Doubles as the in-process backend of ``worker_sdk.PollWorker``.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def enqueue(
        self,
        job_type: str,
        payload: dict[str, Any],
        owner: str,
        priority: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ) -> UUID:
        async with self.session_factory() as session:
            async with session.begin():
                job = await enqueue_job(session, job_type, payload, owner, priority, max_attempts)
                return job.id

    async def claim_next(
        self,
        job_types: Optional[Iterable[str]] = None,
        worker_id: Optional[str] = None,
    ) -> Optional[Job]:
        async with self.session_factory() as session:
            async with session.begin():
                return await claim_job(session, worker_id=worker_id, job_types=job_types)

    async def complete(self, job_id: UUID, result: Optional[dict[str, Any]] = None) -> bool:
        async with self.session_factory() as session:
            async with session.begin():
                return await complete_job(session, job_id, result) is not None

    async def fail(self, job_id: UUID, error_message: str) -> bool:
        async with self.session_factory() as session:
            async with session.begin():
                return await fail_job(session, job_id, error_message) is not None

    async def get_job(self, job_id: UUID) -> Optional[Job]:
        async with self.session_factory() as session:
            return await session.get(Job, job_id)

    async def list_jobs(
        self,
        owner: Optional[str] = None,
        status: Optional[JobStatus] = None,
        limit: int = 100,
    ) -> list[Job]:
        async with self.session_factory() as session:
            return await list_jobs(session, owner=owner, status=status, limit=limit)

    async def requeue_stale(self, older_than: timedelta) -> int:
        async with self.session_factory() as session:
            async with session.begin():
                return await requeue_stale_jobs(session, older_than)

async def list_jobs(
    session: AsyncSession,
    owner: Optional[str] = None,
    status: Optional[JobStatus] = None,
    limit: int = 100,
) -> list[Job]:
    """Newest first; used for progress display."""
    stmt = select(Job)
    if owner:
        stmt = stmt.where(Job.created_by == owner)
    if status:
        stmt = stmt.where(Job.status == status)
    stmt = stmt.order_by(Job.created_at.desc()).limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())
