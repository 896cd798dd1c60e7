# tests/conftest.py
from datetime import timedelta
from typing import Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from eventhub.db.session import Base, get_db_session
from eventhub.db.models import Evaluation, Event, EventRegistration, Job
from eventhub.domain.states import EventStatus, JobStatus, RegistrationStatus
from eventhub.main import app
from eventhub.services.job_queue import JobQueue
from eventhub.utils.time import utcnow


@pytest.fixture(scope="function")
async def test_engine(tmp_path):
    """File-backed SQLite so several sessions can see each other's commits."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'eventhub-test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Provide a database session for tests"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def queue(session_factory):
    return JobQueue(session_factory)


@pytest.fixture
async def client(session_factory):
    """HTTP client against the app, bound to the test database. Lifespan is not run."""
    async def _get_test_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = _get_test_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_job(session_factory):
    """Insert a job row directly, with full control over ordering columns."""
    async def _make(
        job_type: str = "notification",
        priority: int = 5,
        status: JobStatus = JobStatus.PENDING,
        attempts: int = 0,
        max_attempts: int = 3,
        created_at=None,
        started_at=None,
        payload: Optional[dict] = None,
        created_by: str = "user-1",
        claimed_by: Optional[str] = None,
    ) -> Job:
        job = Job(
            job_type=job_type,
            priority=priority,
            status=status,
            attempts=attempts,
            max_attempts=max_attempts,
            created_at=created_at or utcnow(),
            started_at=started_at,
            payload=payload or {},
            created_by=created_by,
            claimed_by=claimed_by,
        )
        async with session_factory() as session:
            async with session.begin():
                session.add(job)
        return job
    return _make


@pytest.fixture
def make_event(session_factory):
    async def _make(
        status: EventStatus = EventStatus.PUBLISHED,
        starts_at=None,
        ends_at=None,
        title: str = "Community Tech Summit",
    ) -> Event:
        now = utcnow()
        event = Event(
            title=title,
            status=status,
            starts_at=starts_at or now - timedelta(hours=2),
            ends_at=ends_at or now + timedelta(days=1),
        )
        async with session_factory() as session:
            async with session.begin():
                session.add(event)
        return event
    return _make


@pytest.fixture
def make_registration(session_factory):
    async def _make(
        event_id,
        user_id: str,
        status: RegistrationStatus = RegistrationStatus.REGISTERED,
        checked_in: bool = False,
    ) -> EventRegistration:
        registration = EventRegistration(
            event_id=event_id,
            user_id=user_id,
            status=status,
            checked_in_at=utcnow() if checked_in else None,
        )
        async with session_factory() as session:
            async with session.begin():
                session.add(registration)
        return registration
    return _make


@pytest.fixture
def make_evaluation(session_factory):
    async def _make(
        event_id,
        created_by: str = "organizer-1",
        is_open: bool = True,
        is_active: bool = True,
        opens_at=None,
        closes_at=None,
        title: str = "Post-event feedback",
        created_at=None,
    ) -> Evaluation:
        evaluation = Evaluation(
            event_id=event_id,
            created_by=created_by,
            title=title,
            questions=[{"id": "q1", "type": "rating", "text": "How was the event?"}],
            is_open=is_open,
            is_active=is_active,
            opens_at=opens_at,
            closes_at=closes_at,
            created_at=created_at or utcnow(),
        )
        async with session_factory() as session:
            async with session.begin():
                session.add(evaluation)
        return evaluation
    return _make


@pytest.fixture
def sample_certificate_payload():
    """Provide sample certificate job data for tests"""
    return {
        "event_id": "evt-2024-summit",
        "user_id": "user-42",
        "participant_name": "Jordan Reyes",
        "event_title": "Community Tech Summit",
        "completion_date": "2024-05-18",
        "venue": "Main Hall",
    }
