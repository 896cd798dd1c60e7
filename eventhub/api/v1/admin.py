import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from eventhub.api.deps import DbSession
from eventhub.auth.security import require_admin
from eventhub.commands.requeue_stale import requeue_stale_jobs
from eventhub.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])

class RequeueStaleRequest(BaseModel):
    older_than_minutes: Optional[int] = Field(None, ge=1)

@router.post("/requeue_stale")
async def trigger_requeue_stale(session: DbSession, body: Optional[RequeueStaleRequest] = None):
    minutes = (body.older_than_minutes if body else None) or settings.STALE_JOB_MINUTES
    count = await requeue_stale_jobs(session, timedelta(minutes=minutes))
    await session.commit()
    logger.info("Admin stale reset: %s jobs older than %s minutes", count, minutes)
    return {"requeued_count": count}
