from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from eventhub.api.deps import DbSession
from eventhub.auth.security import SignatureVerifier
from eventhub.commands.claim_job import claim_job
from eventhub.commands.complete_job import complete_job
from eventhub.commands.fail_job import fail_job
from eventhub.domain.states import JobStatus

router = APIRouter(dependencies=[Depends(SignatureVerifier())])

class ClaimRequest(BaseModel):
    worker_id: str
    job_types: Optional[list[str]] = None

class JobDTO(BaseModel):
    id: UUID
    job_type: str
    status: JobStatus
    priority: int
    payload: dict[str, Any]
    attempts: int
    max_attempts: int
    model_config = ConfigDict(from_attributes=True)

class ClaimResponse(BaseModel):
    job: Optional[JobDTO] = None

class CompleteRequest(BaseModel):
    worker_id: str
    result: Optional[dict[str, Any]] = None

class FailRequest(BaseModel):
    worker_id: str
    error: str

class OutcomeResponse(BaseModel):
    # False when the job was not PROCESSING (already reported or reset)
    updated: bool

@router.post("/claim", response_model=ClaimResponse)
async def claim(body: ClaimRequest, session: DbSession):
    job = await claim_job(session, worker_id=body.worker_id, job_types=body.job_types)
    await session.commit()
    if not job:
        return ClaimResponse(job=None)
    return ClaimResponse(job=JobDTO.model_validate(job))

@router.post("/{job_id}/complete", response_model=OutcomeResponse)
async def job_complete(job_id: UUID, body: CompleteRequest, session: DbSession):
    job = await complete_job(session, job_id=job_id, result_data=body.result)
    await session.commit()
    return OutcomeResponse(updated=job is not None)

@router.post("/{job_id}/fail", response_model=OutcomeResponse)
async def job_fail(job_id: UUID, body: FailRequest, session: DbSession):
    job = await fail_job(session, job_id=job_id, error=body.error)
    await session.commit()
    return OutcomeResponse(updated=job is not None)
