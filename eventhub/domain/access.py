"""
Staged access checks guarding evaluation retrieval and submission.

Stages run in order and stop at the first rejection:

    1. event         the event exists, is published and has not ended
    2. registration  the user is registered (or checked in) for the event
    3. evaluation    a current evaluation exists and belongs to the event
    4. availability  the availability gate passes

Each stage loads only what it needs, so a user who is not registered never
causes the evaluation row to be read. Rejections come back as
``AccessDecision`` values tagged with their stage; nothing here raises for
an expected user-facing condition.
"""
from datetime import datetime
from typing import Any, Optional, Protocol
from uuid import UUID

from eventhub.domain.availability import check_availability
from eventhub.domain.models import AccessDecision
from eventhub.domain.states import EventStatus, RegistrationStatus, ValidationStage
from eventhub.utils.time import as_utc


class ParticipationLoader(Protocol):
    async def get_event(self, event_id: UUID) -> Optional[Any]: ...
    async def get_registration(self, event_id: UUID, user_id: str) -> Optional[Any]: ...
    async def get_current_evaluation(self, event_id: UUID) -> Optional[Any]: ...


NOT_REGISTERED_MESSAGE = (
    "You are not registered for this event. Please register first before accessing the evaluation."
)
NOT_CHECKED_IN_MESSAGE = (
    "You have not checked in to this event. Please check in before accessing the evaluation."
)


def check_event(event, now: datetime) -> Optional[AccessDecision]:
    if event is None or event.status != EventStatus.PUBLISHED:
        return AccessDecision.deny(
            ValidationStage.EVENT, "not-found",
            "Event not found or not accessible. The event may not be published yet.",
        )

    starts_at, ends_at = as_utc(event.starts_at), as_utc(event.ends_at)
    if ends_at < starts_at:
        return AccessDecision.deny(
            ValidationStage.EVENT, "invalid-event",
            "Invalid event configuration. Please contact the event organizer.",
        )
    if as_utc(now) > ends_at:
        return AccessDecision.deny(
            ValidationStage.EVENT, "event-ended",
            "This event has already ended. Evaluation access is no longer available.",
        )
    return None


def check_registration(registration, require_check_in: bool = False) -> Optional[AccessDecision]:
    if registration is None or registration.status != RegistrationStatus.REGISTERED:
        return AccessDecision.deny(ValidationStage.REGISTRATION, "not-registered", NOT_REGISTERED_MESSAGE)
    if require_check_in and registration.checked_in_at is None:
        return AccessDecision.deny(ValidationStage.REGISTRATION, "not-checked-in", NOT_CHECKED_IN_MESSAGE)
    return None


def check_evaluation(evaluation, event_id: UUID) -> Optional[AccessDecision]:
    if evaluation is None:
        return AccessDecision.deny(
            ValidationStage.EVALUATION, "not-found",
            "No evaluation is available for this event yet.",
        )
    # Guards against an evaluation id being replayed against another event
    if str(evaluation.event_id) != str(event_id):
        return AccessDecision.deny(
            ValidationStage.EVALUATION, "event-mismatch",
            "Evaluation does not belong to the specified event.",
        )
    return None


class EvaluationAccessValidator:
    def __init__(self, loader: ParticipationLoader, require_check_in: bool = False):
        self.loader = loader
        self.require_check_in = require_check_in

    async def validate(
        self,
        event_id: UUID,
        user_id: str,
        now: datetime,
        evaluation: Optional[Any] = None,
    ) -> AccessDecision:
        """
        Runs the four stages for ``(event_id, user_id)``.

        When ``evaluation`` is given (response submission) it is checked
        instead of the event's current evaluation.
        """
        event = await self.loader.get_event(event_id)
        denied = check_event(event, now)
        if denied:
            return denied

        registration = await self.loader.get_registration(event_id, user_id)
        denied = check_registration(registration, self.require_check_in)
        if denied:
            return denied

        if evaluation is None:
            evaluation = await self.loader.get_current_evaluation(event_id)
        denied = check_evaluation(evaluation, event_id)
        if denied:
            return denied

        availability = check_availability(evaluation, now)
        if not availability.is_available:
            return AccessDecision.deny(
                ValidationStage.AVAILABILITY, str(availability.status), availability.message, availability,
            )

        return AccessDecision.allow(evaluation, availability)
