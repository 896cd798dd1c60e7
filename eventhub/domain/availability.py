from datetime import datetime

from eventhub.domain.models import AvailabilityResult
from eventhub.domain.states import AvailabilityStatus
from eventhub.utils.time import as_utc

def check_availability(evaluation, now: datetime) -> AvailabilityResult:
    """
    Decides whether an evaluation is currently open to participants.

    The evaluation must be active, opened by its organizer, and `now` must
    fall inside the optional [opens_at, closes_at] window (bounds inclusive,
    each bound independently nullable). Pure: reads only its arguments.

    Used both when serving an evaluation and when accepting a response, so
    "visible" and "submittable" cannot disagree.
    """
    now = as_utc(now)
    opens_at = as_utc(evaluation.opens_at)
    closes_at = as_utc(evaluation.closes_at)

    if not evaluation.is_active:
        return AvailabilityResult(
            False, AvailabilityStatus.INACTIVE,
            "This evaluation is not active.",
            opens_at, closes_at,
        )

    if not evaluation.is_open:
        return AvailabilityResult(
            False, AvailabilityStatus.CLOSED_BY_ORGANIZER,
            "This evaluation is currently closed. The organizer will open it when ready.",
            opens_at, closes_at,
        )

    if opens_at is not None and now < opens_at:
        return AvailabilityResult(
            False, AvailabilityStatus.SCHEDULED_TO_OPEN,
            f"Evaluation will be available starting {opens_at.isoformat()}",
            opens_at, closes_at,
        )

    if closes_at is not None and now > closes_at:
        return AvailabilityResult(
            False, AvailabilityStatus.CLOSED_BY_SCHEDULE,
            f"Evaluation closed on {closes_at.isoformat()}",
            opens_at, closes_at,
        )

    return AvailabilityResult(
        True, AvailabilityStatus.AVAILABLE,
        "Evaluation is open.",
        opens_at, closes_at,
    )

def is_available(evaluation, now: datetime) -> bool:
    return check_availability(evaluation, now).is_available
