from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from beanie.odm.fields import PydanticObjectId
from pydantic import BaseModel, Field
from pymongo import IndexModel, ASCENDING

from .base import BaseDoc


class DailyCount(BaseModel):
    # shape written by the app; the ledger reads the raw arrays
    date: Optional[datetime] = None
    count: int = 0


class MediaClick(BaseDoc):
    user_id: PydanticObjectId

    ai_edit_complete: int = 0
    ai_edit_last_date: Optional[datetime] = None
    ai_edit_daily_count: List[DailyCount] = Field(default_factory=list)

    ai_edit_saved_count: int = 0
    ai_edit_saved_entry: List[DailyCount] = Field(default_factory=list)

    ai_edit_shared_count: int = 0
    ai_edit_shared_entry: List[DailyCount] = Field(default_factory=list)

    paywall_opened_count: int = 0
    paywall_opened_entry: List[DailyCount] = Field(default_factory=list)

    paywall_dismissed_count: int = 0
    paywall_dismissed_entry: List[DailyCount] = Field(default_factory=list)

    style_opened_count: int = 0
    style_opened_entry: List[DailyCount] = Field(default_factory=list)

    class Settings:
        name = "media_clicks"
        indexes = [
            IndexModel([("user_id", ASCENDING)]),
        ]
