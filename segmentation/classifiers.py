"""Lifecycle segments and their eligibility rules.

Each segment is a small strategy object. :data:`SEGMENTS` lists them in
priority order; the orchestrator walks that tuple and a user notified by an
earlier segment is never notified again by a later one in the same run.

Segments 1-6 only consider users whose country is currently inside its
evening notification window. Segments 7-12 ignore the window.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, NamedTuple, Optional, Tuple
from zoneinfo import ZoneInfo

from models.enums import EventKind, SegmentKey
from segmentation.ledger import LedgerRecord
from segmentation.series import (
    DailyCounts,
    daily_counts,
    elapsed_since,
    entry_day,
    last_active_day,
    rolling_sum,
    streak_before_yesterday,
    whole_days,
    whole_hours,
)

BRAND_NEW_MAX_AGE_DAYS = 3


class RunContext:
    """Inputs shared by every classification in one run."""

    def __init__(self, now: datetime, tz: ZoneInfo, active_countries: Iterable[str] = ()):
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        self.now = now
        self.tz = tz
        self.today: date = now.astimezone(tz).date()
        self.active_countries = frozenset(active_countries)


class Verdict(NamedTuple):
    qualifies: bool
    reason: str
    metrics: Dict[str, Any]


def qualify(**metrics: Any) -> Verdict:
    return Verdict(True, "", metrics)


def reject(reason: str, **metrics: Any) -> Verdict:
    return Verdict(False, reason, metrics)


class Subject:
    """A ledger record being classified. Series are normalized on first use."""

    def __init__(self, record: LedgerRecord, ctx: RunContext):
        self.record = record
        self.user = record.user
        self.ctx = ctx
        self._counts: Dict[EventKind, DailyCounts] = {}

    def counts(self, kind: EventKind) -> DailyCounts:
        if kind not in self._counts:
            self._counts[kind] = daily_counts(self.record.entries(kind), self.ctx.tz)
        return self._counts[kind]

    def window_sum(self, kind: EventKind, days: int) -> int:
        return rolling_sum(self.counts(kind), self.ctx.today, days)

    def account_age_days(self) -> Optional[int]:
        created = self.user.created_at if self.user else None
        if created is None:
            return None
        return (self.ctx.today - entry_day(created, self.ctx.tz)).days

    def since_last_edit(self) -> Optional[Tuple[int, int]]:
        """(days, hours) from the start of the last edit day to now."""
        last = last_active_day(self.counts(EventKind.ai_edit))
        if last is None:
            return None
        delta = elapsed_since(last, self.ctx.now, self.ctx.tz)
        return whole_days(delta), whole_hours(delta)


class SegmentClassifier:
    key: SegmentKey
    rank: int
    source: EventKind
    country_gated: bool = False

    def evaluate(self, subject: Subject) -> Verdict:
        reason = self.precheck(subject)
        if reason:
            return reject(reason)
        return self.classify(subject)

    def precheck(self, subject: Subject) -> str:
        user = subject.user
        if user is None:
            return "missing_user"
        if user.is_deleted:
            return "deleted"
        if not user.push_token:
            return "no_push_token"
        if self.country_gated and (not user.country or user.country not in subject.ctx.active_countries):
            return "country_not_active"
        return ""

    def classify(self, subject: Subject) -> Verdict:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} #{self.rank} {self.key.value}>"


class BrandNew(SegmentClassifier):
    key = SegmentKey.brand_new
    rank = 1
    source = EventKind.ai_edit
    country_gated = True

    def classify(self, subject: Subject) -> Verdict:
        age = subject.account_age_days()
        if age is None or age > BRAND_NEW_MAX_AGE_DAYS:
            return reject("not_brand_new", account_age_days=age)
        edits = subject.window_sum(EventKind.ai_edit, 3)
        if edits < 1:
            return reject("no_recent_edit", account_age_days=age)
        return qualify(account_age_days=age, edits_last_3_days=edits)


class AiEditReminder(SegmentClassifier):
    key = SegmentKey.ai_edit_reminder
    rank = 2
    source = EventKind.ai_edit
    country_gated = True

    def classify(self, subject: Subject) -> Verdict:
        age = subject.account_age_days()
        if age is not None and age <= BRAND_NEW_MAX_AGE_DAYS:
            return reject("brand_new", account_age_days=age)
        edits = subject.window_sum(EventKind.ai_edit, 7)
        if not 1 <= edits < 3:
            return reject("edit_volume", edits_last_7_days=edits)
        days, _ = subject.since_last_edit()
        if days >= 2:
            return reject("last_edit_too_old", days_since_last_edit=days)
        return qualify(edits_last_7_days=edits, days_since_last_edit=days)


class CoreActive(SegmentClassifier):
    key = SegmentKey.core_active
    rank = 3
    source = EventKind.ai_edit
    country_gated = True

    def classify(self, subject: Subject) -> Verdict:
        edits = subject.window_sum(EventKind.ai_edit, 7)
        if edits < 3:
            return reject("edit_volume", edits_last_7_days=edits)
        days, _ = subject.since_last_edit()
        if days >= 2:
            return reject("last_edit_too_old", days_since_last_edit=days)
        return qualify(edits_last_7_days=edits, days_since_last_edit=days)


class RecentlyActive(SegmentClassifier):
    key = SegmentKey.recently_active
    rank = 4
    source = EventKind.ai_edit
    country_gated = True

    def classify(self, subject: Subject) -> Verdict:
        since = subject.since_last_edit()
        if since is None:
            return reject("no_edits")
        days, hours = since
        if hours <= 48 or days > 7:
            return reject("outside_range", days_since_last_edit=days, hours_since_last_edit=hours)
        return qualify(days_since_last_edit=days, hours_since_last_edit=hours)


class Inactive(SegmentClassifier):
    key = SegmentKey.inactive
    rank = 5
    source = EventKind.ai_edit
    country_gated = True

    def classify(self, subject: Subject) -> Verdict:
        since = subject.since_last_edit()
        if since is None:
            return reject("no_edits")
        days = since[0]
        if not 7 < days <= 30:
            return reject("outside_range", days_since_last_edit=days)
        return qualify(days_since_last_edit=days)


class Churned(SegmentClassifier):
    key = SegmentKey.churned
    rank = 6
    source = EventKind.ai_edit
    country_gated = True

    def classify(self, subject: Subject) -> Verdict:
        since = subject.since_last_edit()
        if since is None:
            return reject("no_edits")
        days = since[0]
        if days <= 30:
            return reject("outside_range", days_since_last_edit=days)
        return qualify(days_since_last_edit=days)


class Viral(SegmentClassifier):
    key = SegmentKey.viral
    rank = 7
    source = EventKind.edit_shared

    def classify(self, subject: Subject) -> Verdict:
        shares = subject.window_sum(EventKind.edit_shared, 90)
        if shares < 1:
            return reject("no_recent_shares")
        return qualify(shared_edits=shares)


class SavedEdit(SegmentClassifier):
    key = SegmentKey.saved_edit
    rank = 8
    source = EventKind.edit_saved

    def classify(self, subject: Subject) -> Verdict:
        saved = subject.window_sum(EventKind.edit_saved, 30)
        if saved < 2:
            return reject("too_few_saves", saved_edits=saved)
        return qualify(saved_edits=saved)


class StyleOpened(SegmentClassifier):
    key = SegmentKey.style_opened
    rank = 9
    source = EventKind.style_opened

    def classify(self, subject: Subject) -> Verdict:
        opens = subject.window_sum(EventKind.style_opened, 14)
        if opens < 3:
            return reject("too_few_style_opens", style_opens=opens)
        return qualify(style_opens=opens)


class StreakBroken(SegmentClassifier):
    key = SegmentKey.streak_broken
    rank = 10
    source = EventKind.ai_edit

    def classify(self, subject: Subject) -> Verdict:
        counts = subject.counts(EventKind.ai_edit)
        if subject.ctx.today - timedelta(days=1) in counts:
            return reject("streak_alive")
        streak = streak_before_yesterday(counts, subject.ctx.today)
        if streak < 3:
            return reject("streak_too_short", streak_days=streak)
        return qualify(streak_days=streak)


class AlmostSubscriber(SegmentClassifier):
    key = SegmentKey.almost_subscriber
    rank = 11
    source = EventKind.paywall_opened

    def classify(self, subject: Subject) -> Verdict:
        if subject.user.is_subscribed:
            return reject("subscribed")
        opens = subject.window_sum(EventKind.paywall_opened, 14)
        if opens < 1:
            return reject("no_recent_paywall")
        return qualify(paywall_opens=opens)


class PaywallDismissed(SegmentClassifier):
    key = SegmentKey.paywall_dismissed
    rank = 12
    source = EventKind.paywall_dismissed

    def classify(self, subject: Subject) -> Verdict:
        if subject.user.is_subscribed:
            return reject("subscribed")
        dismissals = subject.window_sum(EventKind.paywall_dismissed, 7)
        if dismissals < 1:
            return reject("no_recent_dismissal")
        return qualify(paywall_dismissals=dismissals)


SEGMENTS: Tuple[SegmentClassifier, ...] = tuple(
    sorted(
        (
            BrandNew(),
            AiEditReminder(),
            CoreActive(),
            RecentlyActive(),
            Inactive(),
            Churned(),
            Viral(),
            SavedEdit(),
            StyleOpened(),
            StreakBroken(),
            AlmostSubscriber(),
            PaywallDismissed(),
        ),
        key=lambda s: s.rank,
    )
)
