from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

from src.adapters.email_client import EmailClient
from src.schemas.contact import ContactRecord, StoredContact

logger = logging.getLogger(__name__)


class ContactSinkError(RuntimeError):
    """The contact store did not accept a record."""


class ContactSink(Protocol):
    def save(self, record: ContactRecord) -> Dict[str, Any]:  # pragma: no cover - interface
        ...


class MongoContactSink:
    """Persists contact records to MongoDB and notifies the sales inbox."""

    def __init__(
        self,
        collection,
        email_client: Optional[EmailClient] = None,
        notify_email: str = "",
    ) -> None:
        self._collection = collection
        self._email_client = email_client
        self._notify_email = notify_email

    def save(self, record: ContactRecord) -> Dict[str, Any]:
        document = StoredContact(**record.model_dump()).model_dump()
        try:
            result = self._collection.insert_one(document)
        except Exception as exc:
            raise ContactSinkError(f"Failed to store contact: {exc}") from exc

        contact_id = str(result.inserted_id)
        logger.info("Stored contact %s for %s", contact_id, record.from_email)
        self._notify(contact_id, record)
        return {"ok": True, "id": contact_id}

    def _notify(self, contact_id: str, record: ContactRecord) -> None:
        if not self._notify_email or self._email_client is None or not self._email_client.configured:
            return
        try:
            self._email_client.send(
                recipient=self._notify_email,
                subject=f"New {record.service_category} inquiry from {record.from_name}",
                body=build_notification_body(contact_id, record),
                reply_to=record.from_email,
            )
        except Exception:
            # The record is already stored; a retry would duplicate it.
            logger.exception("Contact notification failed", extra={"contact_id": contact_id})


def build_notification_body(contact_id: str, record: ContactRecord) -> str:
    lines = [
        f"Name: {record.from_name}",
        f"Email: {record.from_email}",
    ]
    if record.phone:
        lines.append(f"Phone: {record.phone}")
    lines.extend(
        [
            f"Service: {record.service_category}",
            f"Budget: {record.budget}",
            "",
            record.project_details,
        ]
    )
    if record.message and record.message != record.project_details:
        lines.extend(["", record.message])
    lines.extend(["", f"Reference: {contact_id}"])
    return "\n".join(lines)
