from __future__ import annotations
from pydantic import BaseModel, Field

from datetime import datetime
from typing import Any, Dict, List, Optional

from models.enums import OutcomeStatus, SegmentKey


class UserOutcome(BaseModel):
    user_id: Optional[str] = None
    status: OutcomeStatus
    message_id: Optional[str] = None
    error: Optional[str] = None
    title: Optional[str] = None
    metrics: Dict[str, Any] = Field(default_factory=dict)


class SegmentReport(BaseModel):
    segment: SegmentKey
    rank: int
    country_gated: bool
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    # set when the candidate query itself failed
    error: Optional[str] = None
    skip_reasons: Dict[str, int] = Field(default_factory=dict)
    outcomes: List[UserOutcome] = Field(default_factory=list)

    def sent_user_ids(self) -> List[str]:
        return [o.user_id for o in self.outcomes if o.status == OutcomeStatus.sent and o.user_id]


class RunReport(BaseModel):
    skipped: bool = False
    message: str = ""
    active_countries: List[str] = Field(default_factory=list)
    segments: List[SegmentReport] = Field(default_factory=list)
    total_notifications: int = 0
    unique_users_notified: int = 0
    total_processed: int = 0
    started_at: datetime
    finished_at: Optional[datetime] = None
    execution_ms: int = 0

    def segment(self, key: SegmentKey) -> Optional[SegmentReport]:
        for s in self.segments:
            if s.segment == key:
                return s
        return None


class WindowStatusOut(BaseModel):
    now: datetime
    active_countries: List[str] = Field(default_factory=list)
    supported_countries: List[str] = Field(default_factory=list)
