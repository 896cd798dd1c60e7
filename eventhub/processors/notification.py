import logging
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventhub.processors.base import parse_payload
from eventhub.services.activity import log_activity
from eventhub.services.notifications import create_notifications

logger = logging.getLogger(__name__)

NotificationType = Literal["success", "warning", "error", "info"]

class NotificationOptions(BaseModel):
    action_url: Optional[str] = None
    action_text: Optional[str] = None
    priority: Literal["low", "normal", "high", "urgent"] = "normal"
    expires_at: Optional[datetime] = None

class BulkNotificationJobData(BaseModel):
    user_ids: list[str] = Field(min_length=1)
    title: str = Field(min_length=1)
    message: str
    type: NotificationType = "info"
    options: NotificationOptions = Field(default_factory=NotificationOptions)
    created_by: Optional[str] = None

class SingleNotificationJobData(BaseModel):
    user_id: str
    title: str = Field(min_length=1)
    message: str
    type: NotificationType = "info"
    options: NotificationOptions = Field(default_factory=NotificationOptions)


class BulkNotificationProcessor:
    job_type = "bulk_notification"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def run(self, payload: dict) -> dict:
        data = parse_payload(BulkNotificationJobData, payload)
        # Not idempotent: a retried job notifies every user again
        user_ids = list(dict.fromkeys(data.user_ids))

        async with self.session_factory() as session:
            async with session.begin():
                sent = await create_notifications(
                    session,
                    user_ids,
                    data.title,
                    data.message,
                    type=data.type,
                    priority=data.options.priority,
                    action_url=data.options.action_url,
                    action_text=data.options.action_text,
                    expires_at=data.options.expires_at,
                )
                if data.created_by:
                    await log_activity(
                        session, data.created_by, "create", "notification", "bulk",
                        details={"title": data.title, "type": data.type, "sent": len(sent)},
                    )

        logger.info("Bulk notification '%s' sent to %s users", data.title, len(sent))
        return {"sent": len(sent)}


class NotificationProcessor:
    job_type = "notification"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def run(self, payload: dict) -> dict:
        data = parse_payload(SingleNotificationJobData, payload)

        async with self.session_factory() as session:
            async with session.begin():
                (notification,) = await create_notifications(
                    session,
                    [data.user_id],
                    data.title,
                    data.message,
                    type=data.type,
                    priority=data.options.priority,
                    action_url=data.options.action_url,
                    action_text=data.options.action_text,
                    expires_at=data.options.expires_at,
                )

        return {"notification_id": str(notification.id)}
