"""Day-granular arithmetic over sparse activity counters.

Counter series are lists of ``(date, count)`` entries with at most one entry
per calendar day. Everything here works on the normalized form produced by
:func:`daily_counts`: a ``{day: count}`` mapping with absent days (and days
whose count is below 1) left out. Because it is a mapping, nothing downstream
depends on the order the entries were stored in.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Iterable, Optional
from zoneinfo import ZoneInfo

from segmentation.errors import LedgerDataError

DailyCounts = Dict[date, int]

ONE_DAY = timedelta(days=1)
ONE_HOUR = timedelta(hours=1)


def entry_day(raw: Any, tz: ZoneInfo) -> date:
    """Calendar day of a stored entry date, in the ledger timezone.

    Mongo hands back naive datetimes that are UTC.
    """
    if raw is None:
        raise LedgerDataError("counter entry has no date")
    if isinstance(raw, datetime):
        if raw.tzinfo is None:
            raw = raw.replace(tzinfo=timezone.utc)
        return raw.astimezone(tz).date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, str):
        value = raw.strip()
        try:
            if len(value) == 10:
                return date.fromisoformat(value)
            return entry_day(datetime.fromisoformat(value.replace("Z", "+00:00")), tz)
        except ValueError:
            raise LedgerDataError(f"unparseable counter date: {raw!r}") from None
    raise LedgerDataError(f"unsupported counter date type: {type(raw).__name__}")


def entry_count(raw: Any) -> int:
    if raw is None:
        return 0
    if isinstance(raw, bool):
        raise LedgerDataError(f"invalid counter value: {raw!r}")
    try:
        count = int(raw)
    except (TypeError, ValueError):
        raise LedgerDataError(f"invalid counter value: {raw!r}") from None
    if count < 0:
        raise LedgerDataError(f"negative counter value: {count}")
    return count


def daily_counts(entries: Iterable[Any], tz: ZoneInfo) -> DailyCounts:
    """Collapse raw entries into ``{day: count}``.

    Entries with ``count < 1`` are absent. Two entries on the same day should
    not exist; if they do, the larger count wins.
    """
    out: DailyCounts = {}
    for entry in entries:
        count = entry_count(getattr(entry, "count", None))
        if count < 1:
            continue
        day = entry_day(getattr(entry, "date", None), tz)
        out[day] = max(out.get(day, 0), count)
    return out


def rolling_sum(counts: DailyCounts, today: date, days: int) -> int:
    """Sum of counts over the inclusive window ``[today - days, today]``."""
    start = today - timedelta(days=days)
    return sum(c for d, c in counts.items() if start <= d <= today)


def last_active_day(counts: DailyCounts) -> Optional[date]:
    return max(counts) if counts else None


def start_of_day(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min).replace(tzinfo=tz)


def elapsed_since(day: date, now: datetime, tz: ZoneInfo) -> timedelta:
    """Time from the start of ``day`` (ledger timezone) to ``now``."""
    return now - start_of_day(day, tz)


def whole_days(delta: timedelta) -> int:
    return delta // ONE_DAY


def whole_hours(delta: timedelta) -> int:
    return delta // ONE_HOUR


def streak_before_yesterday(counts: DailyCounts, today: date) -> int:
    """Consecutive active days walking back from two days ago.

    Today is still in progress and yesterday is the day being checked for a
    miss, so neither contributes to the length.
    """
    streak = 0
    day = today - timedelta(days=2)
    while day in counts:
        streak += 1
        day -= ONE_DAY
    return streak
