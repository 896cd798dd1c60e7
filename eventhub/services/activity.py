import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.db.models import ActivityLog

logger = logging.getLogger(__name__)

async def log_activity(
    session: AsyncSession,
    user_id: Optional[str],
    action: str,
    resource_type: str,
    resource_id: Any,
    details: Optional[dict[str, Any]] = None,
) -> ActivityLog:
    """
    Records a user or system action in the activity log.

    Args:
        user_id: who performed the action (None for system actions)
        action: create, open, close, schedule, toggle, submit, notify
        resource_type: evaluation, evaluation_response, notification, ...
        resource_id: id of the affected resource
        details: extra context stored as JSON

    Flushes without committing; the caller owns the transaction.
    """
    entry = ActivityLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id),
        details=details,
    )
    session.add(entry)
    await session.flush()

    logger.debug("Activity logged: %s %s %s by %s", action, resource_type, resource_id, user_id)
    return entry
