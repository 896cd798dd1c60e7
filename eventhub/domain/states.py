from enum import StrEnum, auto

class JobStatus(StrEnum):
    PENDING = auto()      # Enqueued or waiting for a retry
    PROCESSING = auto()   # Claimed by a worker
    COMPLETED = auto()    # Terminal
    FAILED = auto()       # Terminal, attempts exhausted

class JobEvent(StrEnum):
    CREATED = auto()
    CLAIMED = auto()
    COMPLETED = auto()
    RETRIED = auto()
    FAILED = auto()
    REQUEUED = auto()

ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PROCESSING}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.PENDING, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}

def can_transition(current: JobStatus, target: JobStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(JobStatus(current), frozenset())


class AvailabilityStatus(StrEnum):
    AVAILABLE = "available"
    INACTIVE = "inactive"
    CLOSED_BY_ORGANIZER = "closed-by-organizer"
    SCHEDULED_TO_OPEN = "scheduled-to-open"
    CLOSED_BY_SCHEDULE = "closed-by-schedule"

class ValidationStage(StrEnum):
    EVENT = "event"
    REGISTRATION = "registration"
    EVALUATION = "evaluation"
    AVAILABILITY = "availability"
    COMPLETE = "complete"

class EventStatus(StrEnum):
    DRAFT = auto()
    PUBLISHED = auto()
    CANCELLED = auto()
    ARCHIVED = auto()

class RegistrationStatus(StrEnum):
    REGISTERED = auto()
    CANCELLED = auto()
