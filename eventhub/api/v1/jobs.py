from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from eventhub.api.deps import DbSession, CurrentUser
from eventhub.commands.enqueue_job import enqueue_job
from eventhub.db.models import Job
from eventhub.domain.errors import InvalidJobRequestError
from eventhub.domain.states import JobStatus
from eventhub.services.job_queue import list_jobs

router = APIRouter()

class JobCreate(BaseModel):
    job_type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    priority: Optional[int] = None
    max_attempts: Optional[int] = None

class JobResponse(BaseModel):
    id: UUID
    job_type: str
    status: JobStatus
    priority: int
    payload: dict[str, Any]
    result: Optional[dict[str, Any]] = None
    attempts: int
    max_attempts: int
    error: Optional[str] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)

@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def create_job(body: JobCreate, session: DbSession, user_id: CurrentUser):
    try:
        job = await enqueue_job(
            session,
            job_type=body.job_type,
            payload=body.payload,
            owner=user_id,
            priority=body.priority,
            max_attempts=body.max_attempts,
        )
    except InvalidJobRequestError as e:
        raise HTTPException(status_code=422, detail=str(e))

    await session.commit()
    return job

@router.get("", response_model=list[JobResponse])
async def list_own_jobs(
    session: DbSession,
    user_id: CurrentUser,
    status_filter: Optional[JobStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
):
    return await list_jobs(session, owner=user_id, status=status_filter, limit=limit)

@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: UUID, session: DbSession, user_id: CurrentUser):
    job = await session.get(Job, job_id)
    # Other users' jobs are indistinguishable from missing ones
    if not job or job.created_by != user_id:
        raise HTTPException(status_code=404, detail="Job not found")
    return job
