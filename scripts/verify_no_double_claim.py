#!/usr/bin/env python3
import asyncio
import httpx
import os
import uuid

from worker_sdk.client import sign_body

API_URL = os.environ.get("EVENTHUB_API_URL", "http://localhost:8000")
SECRET = os.environ.get("WORKER_SHARED_SECRET", "")
JOB_TYPE = "verify_concurrency"

async def attempt_claim(worker_id):
    body = f'{{"job_types":["{JOB_TYPE}"],"worker_id":"{worker_id}"}}'.encode()
    headers = {"Content-Type": "application/json"}
    if SECRET:
        headers["X-Worker-Signature"] = sign_body(SECRET, body)
    async with httpx.AsyncClient(base_url=API_URL) as client:
        try:
            resp = await client.post("/api/v1/workers/claim", content=body, headers=headers, timeout=5.0)
            if resp.status_code == 200 and resp.json().get("job"):
                result = resp.json()
                result['worker_id'] = worker_id
                return result
        except httpx.HTTPError:
            pass
    return None

async def verify_no_double_claim():
    user_id = f"verify-{uuid.uuid4()}"
    # 1. Create 1 job
    async with httpx.AsyncClient(base_url=API_URL) as client:
        print("1. Creating 1 job...")
        resp = await client.post("/api/v1/jobs", headers={"X-User-ID": user_id}, json={
            "job_type": JOB_TYPE,
            "payload": {"task": "concurrency_test"}
        })
        resp.raise_for_status()
        job_id = resp.json()["id"]
        print(f"   Job created: {job_id}")

    # 2. Spawn 20 concurrent workers trying to claim
    print("2. Spawning 20 concurrent claim attempts...")
    results = await asyncio.gather(*[attempt_claim(f"worker-{i}") for i in range(20)])

    # 3. Analyze results
    claims = [r for r in results if r is not None]
    print(f"3. Results: {len(claims)} successful claims.")

    if len(claims) == 1:
        if claims[0]['job']['id'] != job_id:
            print(f"FAILURE: Worker claimed WRONG job: {claims[0]['job']['id']}")
        else:
            print("SUCCESS: Exactly one worker claimed the job.")
            print(f"   Winner: {claims[0]['worker_id']} (attempts={claims[0]['job']['attempts']})")
    elif len(claims) == 0:
        print("FAILURE: No one claimed the job (unexpected).")
    else:
        print(f"FAILURE: {len(claims)} workers claimed the job! Double claim detected.")
        for c in claims:
            print(f"   - {c['worker_id']}")

if __name__ == "__main__":
    asyncio.run(verify_no_double_claim())
