class EventHubError(Exception):
    """Base exception for eventhub errors."""
    pass

class JobError(EventHubError):
    pass

class InvalidJobRequestError(JobError):
    pass

class InvalidJobPayloadError(JobError):
    pass

class EvaluationError(EventHubError):
    pass

class EventNotFoundError(EvaluationError):
    def __init__(self, event_id):
        super().__init__(f"Event {event_id} not found")

class EvaluationNotFoundError(EvaluationError):
    def __init__(self, evaluation_id):
        super().__init__(f"Evaluation {evaluation_id} not found")

class NotEvaluationOwnerError(EvaluationError):
    def __init__(self, evaluation_id, user_id):
        super().__init__(f"User {user_id} does not own evaluation {evaluation_id}")

class InvalidScheduleError(EvaluationError):
    pass

class DuplicateResponseError(EvaluationError):
    def __init__(self, evaluation_id, user_id):
        super().__init__(f"User {user_id} already responded to evaluation {evaluation_id}")

class EvaluationUnavailableError(EvaluationError):
    def __init__(self, decision):
        self.decision = decision
        super().__init__(decision.message)
