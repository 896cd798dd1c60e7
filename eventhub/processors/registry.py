from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worker_sdk import ProcessorRegistry

from eventhub.processors.certificate import CertificateProcessor
from eventhub.processors.notification import BulkNotificationProcessor, NotificationProcessor
from eventhub.settings import settings


def build_registry(session_factory: async_sessionmaker[AsyncSession], certificate_dir: str | None = None) -> ProcessorRegistry:
    registry = ProcessorRegistry()
    registry.register(
        CertificateProcessor.job_type,
        CertificateProcessor(session_factory, certificate_dir or settings.CERTIFICATE_STORAGE_DIR),
    )
    registry.register(BulkNotificationProcessor.job_type, BulkNotificationProcessor(session_factory))
    registry.register(NotificationProcessor.job_type, NotificationProcessor(session_factory))
    return registry
