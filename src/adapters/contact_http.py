from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

import requests

from src.schemas.contact import ContactRecord
from src.services.contact import ContactSinkError

logger = logging.getLogger(__name__)


@dataclass
class HttpContactSink:
    """Posts contact records to an external save-contact endpoint."""

    url: str
    timeout: float = 10.0

    def save(self, record: ContactRecord) -> Dict[str, Any]:
        if not self.url:
            raise ContactSinkError("Contact save endpoint is not configured")

        try:
            response = requests.post(
                self.url,
                json=record.model_dump(exclude_none=True),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ContactSinkError(f"Contact save request failed: {exc}") from exc

        if not response.ok:
            logger.error(
                "Contact save endpoint rejected record",
                extra={"status": response.status_code, "body": response.text},
            )
            raise ContactSinkError(
                f"Contact save endpoint returned status {response.status_code}: {response.text}"
            )

        if not response.content:
            return {"ok": True}
        try:
            payload = response.json()
        except ValueError:
            return {"ok": True, "body": response.text}
        if isinstance(payload, dict):
            return payload
        return {"ok": True, "result": payload}
