import asyncio
from collections import Counter
from datetime import timedelta

from sqlalchemy import select

from worker_sdk import PollWorker, ProcessorRegistry

from eventhub.commands.claim_job import _build_candidate_query, _try_claim, claim_job
from eventhub.db.models import Job, JobEventLog
from eventhub.domain.states import JobEvent, JobStatus
from eventhub.utils.time import utcnow


async def test_stale_candidate_cannot_be_claimed_twice(session_factory, make_job):
    job = await make_job()

    # Worker B reads the head of the queue...
    async with session_factory() as session_b:
        candidate_id = (await session_b.execute(_build_candidate_query(None))).scalar_one()
    assert candidate_id == job.id

    # ...worker A claims and commits first...
    async with session_factory() as session_a:
        async with session_a.begin():
            winner = await claim_job(session_a, worker_id="worker-a")
    assert winner.id == job.id

    # ...so B's compare-and-swap finds nothing to flip.
    async with session_factory() as session_b:
        async with session_b.begin():
            loser = await _try_claim(session_b, candidate_id, "worker-b")
    assert loser is None

    async with session_factory() as session:
        stored = await session.get(Job, job.id)
        claims = (await session.scalars(
            select(JobEventLog).where(JobEventLog.job_id == job.id, JobEventLog.event_type == JobEvent.CLAIMED)
        )).all()

    assert stored.status == JobStatus.PROCESSING
    assert stored.attempts == 1
    assert stored.claimed_by == "worker-a"
    assert len(claims) == 1


async def test_lost_race_moves_on_to_next_candidate(session_factory, make_job, mocker):
    now = utcnow()
    first = await make_job(priority=1, created_at=now - timedelta(minutes=2))
    second = await make_job(priority=1, created_at=now - timedelta(minutes=1))

    async with session_factory() as session:
        async with session.begin():
            await claim_job(session, worker_id="worker-a")

    # Replay the stale read: the first candidate lookup still sees `first`
    real_query = _build_candidate_query
    calls = {"n": 0}

    def stale_then_fresh(job_types):
        calls["n"] += 1
        if calls["n"] == 1:
            return select(Job.id).where(Job.id == first.id)
        return real_query(job_types)

    mocker.patch("eventhub.commands.claim_job._build_candidate_query", side_effect=stale_then_fresh)

    async with session_factory() as session:
        async with session.begin():
            claimed = await claim_job(session, worker_id="worker-b")

    assert claimed.id == second.id
    assert claimed.claimed_by == "worker-b"


async def test_concurrent_workers_each_job_claimed_once(queue, make_job, session_factory):
    for _ in range(3):
        await make_job()

    async def drain(worker_id):
        claimed = []
        while (job := await queue.claim_next(worker_id=worker_id)) is not None:
            claimed.append(job.id)
        return claimed

    results = await asyncio.gather(*(drain(f"worker-{i}") for i in range(4)))

    counts = Counter(job_id for batch in results for job_id in batch)
    assert len(counts) == 3
    assert all(n == 1 for n in counts.values())

    async with session_factory() as session:
        jobs = (await session.scalars(select(Job))).all()
    assert all(j.status == JobStatus.PROCESSING and j.attempts == 1 for j in jobs)


async def test_two_workers_alternate_without_overlap(queue, make_job):
    now = utcnow()
    a = await make_job(created_at=now - timedelta(seconds=2))
    b = await make_job(created_at=now - timedelta(seconds=1))

    first = await queue.claim_next(worker_id="worker-1")
    second = await queue.claim_next(worker_id="worker-2")

    assert {first.id, second.id} == {a.id, b.id}
    assert first.id != second.id
    assert await queue.claim_next(worker_id="worker-1") is None


async def test_two_poll_workers_one_job(queue, make_job):
    job = await make_job(job_type="notification")
    handled = []

    async def record(payload):
        handled.append(payload)
        return {}

    registry = ProcessorRegistry()
    registry.register("notification", record)
    a = PollWorker(queue, registry, worker_id="tab-a")
    b = PollWorker(queue, registry, worker_id="tab-b")

    results = await asyncio.gather(a.tick(), b.tick())

    assert sorted(r.processed for r in results) == [0, 1]
    assert len(handled) == 1
    assert (await queue.get_job(job.id)).status == JobStatus.COMPLETED
