import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.api.v1.metrics import EVALUATION_ACCESS_DENIED
from eventhub.db.models import Evaluation, EvaluationResponse, Event, EventRegistration
from eventhub.domain.access import EvaluationAccessValidator
from eventhub.domain.errors import (
    DuplicateResponseError,
    EvaluationNotFoundError,
    EvaluationUnavailableError,
    EventNotFoundError,
    InvalidScheduleError,
    NotEvaluationOwnerError,
)
from eventhub.domain.models import AccessDecision
from eventhub.services.activity import log_activity
from eventhub.utils.time import utcnow, as_utc

logger = logging.getLogger(__name__)


class SqlParticipationLoader:
    """Fetches the rows the access validator asks for, one stage at a time."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_event(self, event_id: UUID) -> Optional[Event]:
        return await self.session.get(Event, event_id)

    async def get_registration(self, event_id: UUID, user_id: str) -> Optional[EventRegistration]:
        stmt = select(EventRegistration).where(
            EventRegistration.event_id == event_id,
            EventRegistration.user_id == user_id,
        )
        return await self.session.scalar(stmt)

    async def get_current_evaluation(self, event_id: UUID) -> Optional[Evaluation]:
        # Most recently created active evaluation wins
        stmt = select(Evaluation).where(
            Evaluation.event_id == event_id,
            Evaluation.is_active.is_(True),
        ).order_by(Evaluation.created_at.desc()).limit(1)
        return await self.session.scalar(stmt)


async def get_evaluation_for_participant(
    session: AsyncSession,
    event_id: UUID,
    user_id: str,
    now: Optional[datetime] = None,
    require_check_in: bool = False,
) -> AccessDecision:
    validator = EvaluationAccessValidator(SqlParticipationLoader(session), require_check_in=require_check_in)
    decision = await validator.validate(event_id, user_id, now or utcnow())
    _record_denial(decision, event_id, user_id)
    return decision


def _record_denial(decision: AccessDecision, event_id: UUID, user_id: str) -> None:
    if decision.allowed:
        return
    EVALUATION_ACCESS_DENIED.labels(stage=str(decision.stage), reason=decision.reason).inc()
    logger.info(
        "Evaluation access denied for user=%s event=%s at stage=%s reason=%s",
        user_id, event_id, decision.stage, decision.reason,
    )


def _validate_window(opens_at: Optional[datetime], closes_at: Optional[datetime]) -> None:
    if opens_at is not None and closes_at is not None and as_utc(closes_at) <= as_utc(opens_at):
        raise InvalidScheduleError("closes_at must be later than opens_at")


async def create_evaluation(
    session: AsyncSession,
    event_id: UUID,
    organizer_id: str,
    title: str,
    questions: list[dict[str, Any]],
    description: Optional[str] = None,
    is_open: bool = False,
    opens_at: Optional[datetime] = None,
    closes_at: Optional[datetime] = None,
) -> Evaluation:
    if await session.get(Event, event_id) is None:
        raise EventNotFoundError(event_id)
    _validate_window(opens_at, closes_at)

    evaluation = Evaluation(
        event_id=event_id,
        created_by=organizer_id,
        title=title,
        description=description,
        questions=questions,
        is_active=True,
        is_open=is_open,
        opens_at=opens_at,
        closes_at=closes_at,
    )
    session.add(evaluation)
    await session.flush()

    await log_activity(
        session, organizer_id, "create", "evaluation", evaluation.id,
        details={"title": title, "event_id": str(event_id)},
    )
    return evaluation


async def _get_owned_evaluation(session: AsyncSession, evaluation_id: UUID, user_id: str) -> Evaluation:
    stmt = select(Evaluation).where(Evaluation.id == evaluation_id).with_for_update()
    evaluation = await session.scalar(stmt)
    if evaluation is None:
        raise EvaluationNotFoundError(evaluation_id)
    if evaluation.created_by != user_id:
        raise NotEvaluationOwnerError(evaluation_id, user_id)
    return evaluation


async def open_evaluation(session: AsyncSession, evaluation_id: UUID, user_id: str) -> Evaluation:
    evaluation = await _get_owned_evaluation(session, evaluation_id, user_id)
    evaluation.is_open = True
    await session.flush()
    await log_activity(session, user_id, "open", "evaluation", evaluation.id)
    return evaluation


async def close_evaluation(session: AsyncSession, evaluation_id: UUID, user_id: str) -> Evaluation:
    evaluation = await _get_owned_evaluation(session, evaluation_id, user_id)
    evaluation.is_open = False
    await session.flush()
    await log_activity(session, user_id, "close", "evaluation", evaluation.id)
    return evaluation


async def toggle_evaluation(session: AsyncSession, evaluation_id: UUID, user_id: str) -> Evaluation:
    evaluation = await _get_owned_evaluation(session, evaluation_id, user_id)
    evaluation.is_open = not evaluation.is_open
    await session.flush()
    await log_activity(
        session, user_id, "toggle", "evaluation", evaluation.id,
        details={"is_open": evaluation.is_open},
    )
    return evaluation


async def schedule_evaluation(
    session: AsyncSession,
    evaluation_id: UUID,
    user_id: str,
    opens_at: Optional[datetime] = None,
    closes_at: Optional[datetime] = None,
) -> Evaluation:
    """
    Sets whichever schedule bounds are given and opens the evaluation.
    With neither bound given nothing changes.
    """
    evaluation = await _get_owned_evaluation(session, evaluation_id, user_id)
    if opens_at is None and closes_at is None:
        return evaluation

    new_opens_at = opens_at if opens_at is not None else evaluation.opens_at
    new_closes_at = closes_at if closes_at is not None else evaluation.closes_at
    _validate_window(new_opens_at, new_closes_at)

    evaluation.opens_at = new_opens_at
    evaluation.closes_at = new_closes_at
    evaluation.is_open = True
    await session.flush()

    await log_activity(
        session, user_id, "schedule", "evaluation", evaluation.id,
        details={
            "opens_at": as_utc(new_opens_at).isoformat() if new_opens_at else None,
            "closes_at": as_utc(new_closes_at).isoformat() if new_closes_at else None,
        },
    )
    return evaluation


async def has_responded(session: AsyncSession, evaluation_id: UUID, user_id: str) -> bool:
    stmt = select(EvaluationResponse.id).where(
        EvaluationResponse.evaluation_id == evaluation_id,
        EvaluationResponse.user_id == user_id,
    )
    return (await session.scalar(stmt)) is not None


async def submit_response(
    session: AsyncSession,
    evaluation_id: UUID,
    user_id: str,
    answers: dict[str, Any],
    event_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
    require_check_in: bool = False,
) -> EvaluationResponse:
    """
    Stores a participant's answers. The same access pipeline that guards
    retrieval runs again here, against this specific evaluation.
    Responses are write-once per (evaluation, user).
    """
    evaluation = await session.get(Evaluation, evaluation_id)
    if evaluation is None:
        raise EvaluationNotFoundError(evaluation_id)

    target_event = event_id or evaluation.event_id
    validator = EvaluationAccessValidator(SqlParticipationLoader(session), require_check_in=require_check_in)
    decision = await validator.validate(target_event, user_id, now or utcnow(), evaluation=evaluation)
    if not decision.allowed:
        _record_denial(decision, target_event, user_id)
        raise EvaluationUnavailableError(decision)

    if await has_responded(session, evaluation_id, user_id):
        raise DuplicateResponseError(evaluation_id, user_id)

    response = EvaluationResponse(
        evaluation_id=evaluation_id,
        user_id=user_id,
        answers=answers,
    )
    session.add(response)
    try:
        await session.flush()
    except IntegrityError as e:
        # Concurrent submission from the same user
        raise DuplicateResponseError(evaluation_id, user_id) from e

    await log_activity(
        session, user_id, "submit", "evaluation_response", response.id,
        details={"evaluation_id": str(evaluation_id)},
    )
    return response
