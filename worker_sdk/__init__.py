from .client import ClaimedJob, WorkerClient
from .worker import Handler, JobBackend, PollWorker, Processor, ProcessorRegistry, TickResult, UnknownJobTypeError

__all__ = [
    "ClaimedJob",
    "Handler",
    "JobBackend",
    "PollWorker",
    "Processor",
    "ProcessorRegistry",
    "TickResult",
    "UnknownJobTypeError",
    "WorkerClient",
]
