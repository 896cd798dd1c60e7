#!/usr/bin/env python3
import asyncio
import httpx
import os
import uuid

from worker_sdk.client import WorkerClient

API_URL = os.environ.get("EVENTHUB_API_URL", "http://localhost:8000")
SECRET = os.environ.get("WORKER_SHARED_SECRET") or None
JOB_TYPE = "verify_retry"

async def verify_retry_to_failed():
    user_id = f"verify-{uuid.uuid4()}"
    headers = {"X-User-ID": user_id}

    # 1. Create a job with max_attempts=2
    async with httpx.AsyncClient(base_url=API_URL) as client:
        print("1. Creating job with max_attempts=2...")
        resp = await client.post("/api/v1/jobs", headers=headers, json={
            "job_type": JOB_TYPE,
            "max_attempts": 2,
            "payload": {"task": "fail_test"}
        })
        resp.raise_for_status()
        job_id = resp.json()["id"]
        print(f"   Job created: {job_id}")

    worker = WorkerClient(API_URL, worker_id="worker-fail-test", shared_secret=SECRET)

    # 2. Attempt 1
    print("2. Worker claiming (attempt 1)...")
    job = await worker.claim_next([JOB_TYPE])
    if not job or str(job.id) != job_id:
        print("   FAILURE: Could not claim job for attempt 1")
        await worker.close()
        return

    print("   Claimed job for attempt 1. Failing it...")
    await worker.fail(job.id, "Simulated failure 1")

    # 3. Verify state: back in the queue, no backoff
    async with httpx.AsyncClient(base_url=API_URL) as client:
        data = (await client.get(f"/api/v1/jobs/{job_id}", headers=headers)).json()
        print(f"   Status after fail 1: {data['status']} attempts={data['attempts']}")
        if data['status'] != 'pending':
            print(f"   FAILURE: Status should be pending, got {data['status']}")
        if data['attempts'] != 1:
            print(f"   FAILURE: Attempts should be 1, got {data['attempts']}")

    # 4. Attempt 2, claimable immediately
    print("4. Worker claiming (attempt 2)...")
    job = await worker.claim_next([JOB_TYPE])
    if not job or str(job.id) != job_id:
        print("   FAILURE: Could not claim job for attempt 2")
        await worker.close()
        return

    print("   Claimed job for attempt 2. Failing it...")
    await worker.fail(job.id, "Simulated failure 2")

    # 5. Verify terminal failure
    async with httpx.AsyncClient(base_url=API_URL) as client:
        data = (await client.get(f"/api/v1/jobs/{job_id}", headers=headers)).json()
        print(f"   Status after fail 2: {data['status']}")
        if data['status'] == 'failed' and data['completed_at']:
            print("SUCCESS: Job is failed after exhausting its attempts.")
        else:
            print(f"FAILURE: Job status is {data['status']}, expected failed")

    await worker.close()

if __name__ == "__main__":
    asyncio.run(verify_retry_to_failed())
