import json
from uuid import uuid4

import httpx

from worker_sdk import WorkerClient
from worker_sdk.client import sign_body

JOB_ID = uuid4()


def recording_transport(routes, seen):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        status, body = routes[request.url.path]
        return httpx.Response(status, json=body)
    return httpx.MockTransport(handler)


async def test_claim_parses_job_and_signs_body():
    seen = []
    transport = recording_transport({
        "/api/v1/workers/claim": (200, {"job": {
            "id": str(JOB_ID), "job_type": "notification", "payload": {"user_id": "u1"},
            "attempts": 1, "max_attempts": 3, "status": "processing", "priority": 5,
        }}),
    }, seen)
    client = WorkerClient("http://core", "w1", shared_secret="s3cret", transport=transport)

    job = await client.claim_next(["notification"])
    await client.close()

    assert job.id == JOB_ID
    assert job.job_type == "notification"
    assert job.payload == {"user_id": "u1"}
    assert job.attempts == 1

    request = seen[0]
    assert json.loads(request.content) == {"worker_id": "w1", "job_types": ["notification"]}
    assert request.headers["X-Worker-Signature"] == sign_body("s3cret", request.content)


async def test_claim_returns_none_on_empty_queue():
    transport = recording_transport({"/api/v1/workers/claim": (200, {"job": None})}, [])
    client = WorkerClient("http://core", "w1", transport=transport)

    assert await client.claim_next() is None
    await client.close()


async def test_claim_rejection_is_idle_not_error():
    seen = []
    transport = recording_transport({"/api/v1/workers/claim": (401, {"detail": "Invalid Signature"})}, seen)
    client = WorkerClient("http://core", "w1", transport=transport)

    assert await client.claim_next() is None
    assert "X-Worker-Signature" not in seen[0].headers
    await client.close()


async def test_claim_sends_explicit_empty_type_filter():
    seen = []
    transport = recording_transport({"/api/v1/workers/claim": (200, {"job": None})}, seen)
    client = WorkerClient("http://core", "w1", transport=transport)

    assert await client.claim_next([]) is None
    await client.close()

    assert json.loads(seen[0].content) == {"worker_id": "w1", "job_types": []}


async def test_complete_and_fail_report_updated_flag():
    seen = []
    transport = recording_transport({
        f"/api/v1/workers/{JOB_ID}/complete": (200, {"updated": True}),
        f"/api/v1/workers/{JOB_ID}/fail": (200, {"updated": False}),
    }, seen)
    client = WorkerClient("http://core", "w1", transport=transport)

    assert await client.complete(JOB_ID, {"sent": 2}) is True
    assert await client.fail(JOB_ID, "ValueError: bad") is False
    await client.close()

    assert json.loads(seen[0].content) == {"worker_id": "w1", "result": {"sent": 2}}
    assert json.loads(seen[1].content) == {"worker_id": "w1", "error": "ValueError: bad"}


async def test_server_error_reports_not_updated():
    transport = recording_transport({f"/api/v1/workers/{JOB_ID}/complete": (500, {"detail": "boom"})}, [])
    client = WorkerClient("http://core", "w1", transport=transport)

    assert await client.complete(JOB_ID, {}) is False
    await client.close()
