import asyncio
from types import SimpleNamespace
from uuid import uuid4

import pytest

from worker_sdk import PollWorker, ProcessorRegistry, UnknownJobTypeError


class FakeBackend:
    """In-memory claim/complete/fail recorder."""

    def __init__(self, jobs=()):
        self.pending = list(jobs)
        self.claim_calls = []
        self.completed = {}
        self.failed = {}

    async def claim_next(self, job_types=None, worker_id=None):
        self.claim_calls.append((tuple(job_types or ()), worker_id))
        for job in self.pending:
            if not job_types or job.job_type in job_types:
                self.pending.remove(job)
                return job
        return None

    async def complete(self, job_id, result=None):
        self.completed[job_id] = result
        return True

    async def fail(self, job_id, error_message):
        self.failed[job_id] = error_message
        return True


def job(job_type="notification", payload=None):
    return SimpleNamespace(id=uuid4(), job_type=job_type, payload=payload or {})


async def echo(payload):
    return {"echo": payload}


def test_registry_rejects_duplicate_job_type():
    registry = ProcessorRegistry()
    registry.register("notification", echo)

    with pytest.raises(ValueError):
        registry.register("notification", echo)


def test_registry_accepts_processor_objects():
    class Processor:
        async def run(self, payload):
            return {}

    registry = ProcessorRegistry()
    registry.register("b_type", Processor())
    registry.register("a_type", echo)

    assert registry.job_types() == ["a_type", "b_type"]
    assert "b_type" in registry
    assert len(registry) == 2
    with pytest.raises(UnknownJobTypeError):
        registry.get("c_type")


async def test_tick_processes_batch_and_reports_outcomes():
    jobs = [job(payload={"n": i}) for i in range(3)]
    backend = FakeBackend(jobs)
    registry = ProcessorRegistry()
    registry.register("notification", echo)

    result = await PollWorker(backend, registry, batch_size=10, worker_id="w1").tick()

    assert (result.processed, result.succeeded, result.failed) == (3, 3, 0)
    assert backend.completed[jobs[1].id] == {"echo": {"n": 1}}
    assert backend.claim_calls[0] == (("notification",), "w1")


async def test_tick_respects_batch_size():
    backend = FakeBackend([job() for _ in range(5)])
    registry = ProcessorRegistry()
    registry.register("notification", echo)

    result = await PollWorker(backend, registry, batch_size=2).tick()

    assert result.processed == 2
    assert len(backend.pending) == 3


async def test_processor_exception_becomes_fail_call():
    async def explode(payload):
        raise ValueError("template missing")

    bad = job(job_type="certificate_generation")
    backend = FakeBackend([bad])
    registry = ProcessorRegistry()
    registry.register("certificate_generation", explode)

    result = await PollWorker(backend, registry).tick()

    assert result.failed == 1
    assert backend.failed[bad.id] == "ValueError: template missing"
    assert bad.id not in backend.completed


async def test_unknown_job_type_fails_job():
    backend = FakeBackend()
    worker = PollWorker(backend, ProcessorRegistry())
    orphan = job(job_type="mystery")

    assert await worker.process_job(orphan) is False
    assert backend.failed[orphan.id].startswith("UnknownJobTypeError:")


async def test_overlapping_tick_is_skipped():
    release = asyncio.Event()
    started = asyncio.Event()

    async def slow(payload):
        started.set()
        await release.wait()
        return {}

    backend = FakeBackend([job()])
    registry = ProcessorRegistry()
    registry.register("notification", slow)
    worker = PollWorker(backend, registry)

    first = asyncio.create_task(worker.tick())
    await started.wait()
    assert worker.is_processing

    second = await worker.tick()
    assert second.skipped
    assert len(backend.claim_calls) == 1

    release.set()
    first_result = await first
    assert first_result.processed == 1
    assert not worker.is_processing


async def test_guard_is_released_after_backend_error():
    class BrokenBackend(FakeBackend):
        async def claim_next(self, job_types=None, worker_id=None):
            raise ConnectionError("database unavailable")

    registry = ProcessorRegistry()
    registry.register("notification", echo)
    worker = PollWorker(BrokenBackend(), registry)

    with pytest.raises(ConnectionError):
        await worker.tick()
    assert not worker.is_processing


async def test_start_ticks_immediately_and_stop_waits():
    backend = FakeBackend([job()])
    registry = ProcessorRegistry()
    registry.register("notification", echo)
    worker = PollWorker(backend, registry, interval=60)

    await worker.start()
    for _ in range(50):
        if backend.completed:
            break
        await asyncio.sleep(0.01)
    await asyncio.wait_for(worker.stop(), timeout=2)

    assert len(backend.completed) == 1
    assert not worker.running
    assert worker._task is None


async def test_two_workers_share_a_queue_without_double_processing():
    backend = FakeBackend([job() for _ in range(4)])
    registry = ProcessorRegistry()
    registry.register("notification", echo)

    a = PollWorker(backend, registry, batch_size=2, worker_id="a")
    b = PollWorker(backend, registry, batch_size=2, worker_id="b")
    results = await asyncio.gather(a.tick(), b.tick())

    assert sum(r.processed for r in results) == 4
    assert len(backend.completed) == 4


async def test_empty_registry_claims_nothing():
    backend = FakeBackend([job(job_type="certificate_generation")])

    result = await PollWorker(backend, ProcessorRegistry()).tick()

    assert result.processed == 0
    assert backend.claim_calls == []
    assert len(backend.pending) == 1
    assert not backend.failed


async def test_completion_error_is_reported_as_failure():
    class RejectingBackend(FakeBackend):
        async def complete(self, job_id, result=None):
            raise TypeError("Object of type datetime is not JSON serializable")

    jobs = [job(), job()]
    backend = RejectingBackend(jobs)
    registry = ProcessorRegistry()
    registry.register("notification", echo)

    result = await PollWorker(backend, registry).tick()

    assert (result.processed, result.succeeded, result.failed) == (2, 0, 2)
    assert backend.failed[jobs[0].id].startswith("Could not record result: TypeError")
