import asyncio
import html
import logging
from pathlib import Path
from typing import Optional
from uuid import NAMESPACE_URL, uuid5

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventhub.processors.base import parse_payload
from eventhub.services.notifications import create_notifications

logger = logging.getLogger(__name__)

class CertificateJobData(BaseModel):
    event_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    participant_name: str = Field(min_length=1)
    event_title: str = Field(min_length=1)
    completion_date: str
    venue: Optional[str] = None
    cert_id_prefix: Optional[str] = None

def certificate_number(data: CertificateJobData) -> str:
    """
    Same participant + event always yields the same number, so a retried
    job overwrites its own file instead of minting a second certificate.
    """
    key = f"{data.event_id}:{data.participant_name.strip().lower()}"
    digest = uuid5(NAMESPACE_URL, key).hex[:10].upper()
    prefix = (data.cert_id_prefix or "CERT").strip().upper()
    return f"{prefix}-{digest}"

def render_certificate(data: CertificateJobData, number: str) -> str:
    esc = html.escape
    venue = f"<p class=\"venue\">{esc(data.venue)}</p>" if data.venue else ""
    return (
        "<!DOCTYPE html>\n"
        "<html><head><meta charset=\"utf-8\">"
        f"<title>Certificate {esc(number)}</title></head>\n"
        "<body class=\"certificate\">\n"
        "<h1>Certificate of Participation</h1>\n"
        f"<p class=\"participant\">{esc(data.participant_name.strip())}</p>\n"
        f"<p class=\"event\">{esc(data.event_title)}</p>\n"
        f"{venue}\n"
        f"<p class=\"date\">{esc(data.completion_date)}</p>\n"
        f"<p class=\"number\">{esc(number)}</p>\n"
        "</body></html>\n"
    )

class CertificateProcessor:
    """Renders a participant certificate and tells the participant it is ready."""

    job_type = "certificate_generation"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], storage_dir: str):
        self.session_factory = session_factory
        self.storage_dir = Path(storage_dir)

    async def run(self, payload: dict) -> dict:
        data = parse_payload(CertificateJobData, payload)
        number = certificate_number(data)

        target = self.storage_dir / data.event_id / f"{number}.html"
        document = render_certificate(data, number)
        await asyncio.to_thread(_write_file, target, document)
        logger.info("Certificate %s written to %s", number, target)

        async with self.session_factory() as session:
            async with session.begin():
                await create_notifications(
                    session,
                    [data.user_id],
                    "Certificate Ready",
                    f"Your certificate for {data.event_title} is ready.",
                    type="success",
                )

        return {"certificate_number": number, "file_path": str(target)}

def _write_file(target: Path, document: str) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(document, encoding="utf-8")
