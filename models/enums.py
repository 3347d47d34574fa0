from __future__ import annotations
from enum import Enum


class EventKind(str, Enum):
    ai_edit = "ai_edit"
    paywall_opened = "paywall_opened"
    paywall_dismissed = "paywall_dismissed"
    edit_saved = "edit_saved"
    edit_shared = "edit_shared"
    style_opened = "style_opened"


# media_clicks array that stores the daily counters of each kind
EVENT_FIELDS = {
    EventKind.ai_edit: "ai_edit_daily_count",
    EventKind.paywall_opened: "paywall_opened_entry",
    EventKind.paywall_dismissed: "paywall_dismissed_entry",
    EventKind.edit_saved: "ai_edit_saved_entry",
    EventKind.edit_shared: "ai_edit_shared_entry",
    EventKind.style_opened: "style_opened_entry",
}


class SegmentKey(str, Enum):
    brand_new = "brand_new"
    ai_edit_reminder = "ai_edit_reminder"
    core_active = "core_active"
    recently_active = "recently_active"
    inactive = "inactive"
    churned = "churned"
    viral = "viral"
    saved_edit = "saved_edit"
    style_opened = "style_opened"
    streak_broken = "streak_broken"
    almost_subscriber = "almost_subscriber"
    paywall_dismissed = "paywall_dismissed"


class OutcomeStatus(str, Enum):
    sent = "sent"
    failed = "failed"
    error = "error"
    duplicate = "duplicate"
