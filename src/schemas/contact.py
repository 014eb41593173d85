from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ContactRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    from_name: str
    from_email: str
    phone: Optional[str] = None
    service_category: str
    budget: str
    project_details: str
    message: Optional[str] = None


class StoredContact(ContactRecord):
    lead_status: str = Field(default="NEW")
    capture_timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
