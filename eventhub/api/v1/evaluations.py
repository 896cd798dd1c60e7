from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from eventhub.api.deps import DbSession, CurrentUser
from eventhub.domain.errors import (
    DuplicateResponseError,
    EvaluationError,
    EvaluationNotFoundError,
    EvaluationUnavailableError,
    EventNotFoundError,
    InvalidScheduleError,
    NotEvaluationOwnerError,
)
from eventhub.services import evaluations as evaluation_service
from eventhub.settings import settings

router = APIRouter()

class EvaluationCreate(BaseModel):
    event_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    questions: list[dict[str, Any]] = Field(default_factory=list)
    is_open: bool = False
    opens_at: Optional[datetime] = None
    closes_at: Optional[datetime] = None

class ScheduleRequest(BaseModel):
    opens_at: Optional[datetime] = None
    closes_at: Optional[datetime] = None

class ResponseCreate(BaseModel):
    answers: dict[str, Any]

class EvaluationOut(BaseModel):
    id: UUID
    event_id: UUID
    title: str
    description: Optional[str] = None
    questions: list[dict[str, Any]]
    is_active: bool
    is_open: bool
    opens_at: Optional[datetime] = None
    closes_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)

class ResponseOut(BaseModel):
    id: UUID
    evaluation_id: UUID
    user_id: str
    answers: dict[str, Any]
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)

def _http_error(e: EvaluationError) -> HTTPException:
    if isinstance(e, EvaluationUnavailableError):
        return HTTPException(status_code=403, detail=e.decision.to_error())
    if isinstance(e, (EventNotFoundError, EvaluationNotFoundError)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, NotEvaluationOwnerError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, DuplicateResponseError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, InvalidScheduleError):
        return HTTPException(status_code=422, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))

@router.get("/events/{event_id}/evaluation")
async def get_participant_evaluation(event_id: UUID, session: DbSession, user_id: CurrentUser):
    decision = await evaluation_service.get_evaluation_for_participant(
        session, event_id, user_id, require_check_in=settings.EVALUATION_REQUIRE_CHECK_IN,
    )
    if not decision.allowed:
        raise HTTPException(status_code=403, detail=decision.to_error())

    return {
        "evaluation": EvaluationOut.model_validate(decision.evaluation),
        "availability": decision.availability.to_dict(),
        "has_responded": await evaluation_service.has_responded(session, decision.evaluation.id, user_id),
    }

@router.post("/evaluations", response_model=EvaluationOut, status_code=status.HTTP_201_CREATED)
async def create_evaluation(body: EvaluationCreate, session: DbSession, user_id: CurrentUser):
    try:
        evaluation = await evaluation_service.create_evaluation(
            session,
            event_id=body.event_id,
            organizer_id=user_id,
            title=body.title,
            questions=body.questions,
            description=body.description,
            is_open=body.is_open,
            opens_at=body.opens_at,
            closes_at=body.closes_at,
        )
    except EvaluationError as e:
        raise _http_error(e)
    await session.commit()
    return evaluation

@router.post("/evaluations/{evaluation_id}/open", response_model=EvaluationOut)
async def open_evaluation(evaluation_id: UUID, session: DbSession, user_id: CurrentUser):
    try:
        evaluation = await evaluation_service.open_evaluation(session, evaluation_id, user_id)
    except EvaluationError as e:
        raise _http_error(e)
    await session.commit()
    return evaluation

@router.post("/evaluations/{evaluation_id}/close", response_model=EvaluationOut)
async def close_evaluation(evaluation_id: UUID, session: DbSession, user_id: CurrentUser):
    try:
        evaluation = await evaluation_service.close_evaluation(session, evaluation_id, user_id)
    except EvaluationError as e:
        raise _http_error(e)
    await session.commit()
    return evaluation

@router.post("/evaluations/{evaluation_id}/toggle", response_model=EvaluationOut)
async def toggle_evaluation(evaluation_id: UUID, session: DbSession, user_id: CurrentUser):
    try:
        evaluation = await evaluation_service.toggle_evaluation(session, evaluation_id, user_id)
    except EvaluationError as e:
        raise _http_error(e)
    await session.commit()
    return evaluation

@router.put("/evaluations/{evaluation_id}/schedule", response_model=EvaluationOut)
async def schedule_evaluation(evaluation_id: UUID, body: ScheduleRequest, session: DbSession, user_id: CurrentUser):
    try:
        evaluation = await evaluation_service.schedule_evaluation(
            session, evaluation_id, user_id, opens_at=body.opens_at, closes_at=body.closes_at,
        )
    except EvaluationError as e:
        raise _http_error(e)
    await session.commit()
    return evaluation

@router.post(
    "/evaluations/{evaluation_id}/responses",
    response_model=ResponseOut,
    status_code=status.HTTP_201_CREATED,
)
async def submit_response(evaluation_id: UUID, body: ResponseCreate, session: DbSession, user_id: CurrentUser):
    try:
        response = await evaluation_service.submit_response(
            session, evaluation_id, user_id, body.answers,
            require_check_in=settings.EVALUATION_REQUIRE_CHECK_IN,
        )
    except EvaluationError as e:
        await session.rollback()
        raise _http_error(e)
    await session.commit()
    return response
