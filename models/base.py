from __future__ import annotations

from datetime import datetime, timezone
from beanie import Document
from pydantic import Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseDoc(Document):
    """Documents are written by the app backend; this service only reads them."""

    # naive when read back from Mongo, always UTC
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
