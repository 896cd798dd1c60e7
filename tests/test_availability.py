from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from eventhub.domain.availability import check_availability, is_available
from eventhub.domain.states import AvailabilityStatus

NOW = datetime(2024, 5, 18, 12, 0, tzinfo=timezone.utc)


def evaluation(is_active=True, is_open=True, opens_at=None, closes_at=None):
    return SimpleNamespace(is_active=is_active, is_open=is_open, opens_at=opens_at, closes_at=closes_at)


def test_open_without_schedule_is_available():
    result = check_availability(evaluation(), NOW)

    assert result.is_available
    assert result.status == AvailabilityStatus.AVAILABLE


def test_inactive_wins_over_everything():
    result = check_availability(evaluation(is_active=False, is_open=False), NOW)

    assert not result.is_available
    assert result.status == AvailabilityStatus.INACTIVE


def test_closed_by_organizer_ignores_schedule():
    ev = evaluation(is_open=False, opens_at=NOW - timedelta(days=1), closes_at=NOW + timedelta(days=1))

    result = check_availability(ev, NOW)

    assert result.status == AvailabilityStatus.CLOSED_BY_ORGANIZER


def test_scheduled_to_open():
    opens_at = NOW + timedelta(hours=1)

    result = check_availability(evaluation(opens_at=opens_at), NOW)

    assert not result.is_available
    assert result.status == AvailabilityStatus.SCHEDULED_TO_OPEN
    assert result.message == f"Evaluation will be available starting {opens_at.isoformat()}"
    assert result.opens_at == opens_at


def test_closed_by_schedule():
    closes_at = NOW - timedelta(minutes=1)

    result = check_availability(evaluation(closes_at=closes_at), NOW)

    assert not result.is_available
    assert result.status == AvailabilityStatus.CLOSED_BY_SCHEDULE
    assert result.message == f"Evaluation closed on {closes_at.isoformat()}"


@pytest.mark.parametrize("opens_at,closes_at", [
    (NOW, None),
    (None, NOW),
    (NOW, NOW),
    (NOW - timedelta(hours=1), NOW + timedelta(hours=1)),
])
def test_window_bounds_are_inclusive(opens_at, closes_at):
    assert is_available(evaluation(opens_at=opens_at, closes_at=closes_at), NOW)


def test_naive_timestamps_are_treated_as_utc():
    ev = evaluation(opens_at=datetime(2024, 5, 18, 13, 0))

    result = check_availability(ev, NOW)

    assert result.status == AvailabilityStatus.SCHEDULED_TO_OPEN
    assert result.opens_at.tzinfo is not None


def test_same_inputs_same_result():
    ev = evaluation(opens_at=NOW - timedelta(hours=1), closes_at=NOW + timedelta(hours=1))

    assert check_availability(ev, NOW) == check_availability(ev, NOW)


def test_to_dict_serializes_status_and_bounds():
    closes_at = NOW - timedelta(days=1)

    data = check_availability(evaluation(closes_at=closes_at), NOW).to_dict()

    assert data == {
        "is_available": False,
        "status": "closed-by-schedule",
        "message": f"Evaluation closed on {closes_at.isoformat()}",
        "opens_at": None,
        "closes_at": closes_at.isoformat(),
    }
