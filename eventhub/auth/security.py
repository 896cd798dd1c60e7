import hmac
import hashlib
import logging
from typing import Optional

from fastapi import Security, HTTPException, Request, Header
from fastapi.security import APIKeyHeader

from eventhub.settings import settings

logger = logging.getLogger(__name__)

API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)
USER_ID_HEADER = APIKeyHeader(name="X-User-ID", auto_error=False)

async def get_current_user(user_id: Optional[str] = Security(USER_ID_HEADER)) -> str:
    """
    Identity of the caller. Authentication itself happens upstream (the
    managed auth provider / gateway), which forwards the verified user id.
    """
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing user identity")
    return user_id

async def require_admin(api_key: Optional[str] = Security(API_KEY_HEADER)) -> None:
    if not settings.ADMIN_API_KEY:
        raise HTTPException(status_code=403, detail="Admin API disabled")
    if not api_key or not hmac.compare_digest(api_key, settings.ADMIN_API_KEY):
        raise HTTPException(status_code=403, detail="Invalid API Key")

def compute_signature(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()

class SignatureVerifier:
    """
    Verifies the HMAC-SHA256 of the raw request body, keyed with
    WORKER_SHARED_SECRET. Signing is off when no secret is configured.
    """

    async def __call__(self, request: Request, x_signature: Optional[str] = Header(None, alias="X-Worker-Signature")) -> None:
        secret = settings.WORKER_SHARED_SECRET
        if not secret:
            return

        if not x_signature:
            raise HTTPException(status_code=401, detail="Missing Signature")

        body = await request.body()
        computed = compute_signature(secret, body)

        if not hmac.compare_digest(computed, x_signature):
            logger.warning("Rejected worker request with invalid signature on %s", request.url.path)
            raise HTTPException(status_code=401, detail="Invalid Signature")
