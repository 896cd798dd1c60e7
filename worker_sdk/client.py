import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

import httpx

logger = logging.getLogger(__name__)

@dataclass
class ClaimedJob:
    id: UUID
    job_type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    attempts: int = 0
    max_attempts: int = 0

def sign_body(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()

class WorkerClient:
    """
    Job backend that reaches the queue over the HTTP worker API.
    Plugs into PollWorker exactly like the in-process JobQueue.
    """

    def __init__(
        self,
        base_url: str,
        worker_id: str,
        shared_secret: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.worker_id = worker_id
        self.shared_secret = shared_secret
        self.client = httpx.AsyncClient(base_url=self.base_url, timeout=10.0, transport=transport)

    @staticmethod
    def _serialize_body(json_body: Dict[str, Any]) -> bytes:
        # Stable encoding keeps signatures deterministic and payloads compact.
        return json.dumps(json_body, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")

    async def _post(self, path: str, json_body: Dict[str, Any]) -> httpx.Response:
        content = self._serialize_body(json_body)
        headers = {"Content-Type": "application/json"}
        if self.shared_secret:
            headers["X-Worker-Signature"] = sign_body(self.shared_secret, content)
        return await self.client.post(path, content=content, headers=headers)

    async def claim_next(self, job_types: Optional[Iterable[str]] = None, worker_id: Optional[str] = None) -> Optional[ClaimedJob]:
        payload: Dict[str, Any] = {"worker_id": worker_id or self.worker_id}
        if job_types is not None:
            payload["job_types"] = list(job_types)

        try:
            resp = await self._post("/api/v1/workers/claim", json_body=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            log_fn = logger.info if status_code in (401, 403, 422) else logger.warning
            log_fn("Claim rejected for worker=%s status=%s", self.worker_id, status_code)
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Claim failed for worker=%s: %s", self.worker_id, e)
            return None

        job = (data or {}).get("job")
        if not job:
            return None
        return ClaimedJob(
            id=UUID(job["id"]),
            job_type=job["job_type"],
            payload=job.get("payload") or {},
            attempts=job.get("attempts", 0),
            max_attempts=job.get("max_attempts", 0),
        )

    async def complete(self, job_id: UUID, result: Optional[Dict[str, Any]] = None) -> bool:
        try:
            resp = await self._post(
                f"/api/v1/workers/{job_id}/complete",
                json_body={"worker_id": self.worker_id, "result": result},
            )
            resp.raise_for_status()
            return bool(resp.json().get("updated"))
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Complete failed for worker=%s job=%s: %s", self.worker_id, job_id, e)
            return False

    async def fail(self, job_id: UUID, error_message: str) -> bool:
        try:
            resp = await self._post(
                f"/api/v1/workers/{job_id}/fail",
                json_body={"worker_id": self.worker_id, "error": error_message},
            )
            resp.raise_for_status()
            return bool(resp.json().get("updated"))
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Fail request failed for worker=%s job=%s: %s", self.worker_id, job_id, e)
            return False

    async def close(self):
        await self.client.aclose()
