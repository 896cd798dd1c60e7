from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.db.models import Notification

async def create_notifications(
    session: AsyncSession,
    user_ids: Sequence[str],
    title: str,
    message: str,
    type: str = "info",
    priority: str = "normal",
    action_url: Optional[str] = None,
    action_text: Optional[str] = None,
    expires_at: Optional[datetime] = None,
) -> list[Notification]:
    """Inserts one unread notification per user."""
    notifications = [
        Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            priority=priority,
            action_url=action_url,
            action_text=action_text,
            expires_at=expires_at,
            read=False,
        )
        for user_id in user_ids
    ]
    session.add_all(notifications)
    await session.flush()
    return notifications
