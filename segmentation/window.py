"""Per-country local-evening notification windows."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from pydantic import BaseModel, ConfigDict, Field

from segmentation.errors import ConfigurationError

logger = structlog.get_logger()

NEXT_HOUR_MINUTES = 30

DEFAULT_WINDOWS: Dict[str, Dict[str, str]] = {
    "India": {"timezone": "Asia/Kolkata", "target_time": "20:30"},
    "USA": {"timezone": "America/New_York", "target_time": "21:00"},
    "Peru": {"timezone": "America/Lima", "target_time": "20:30"},
    "Saudi Arabia": {"timezone": "Asia/Riyadh", "target_time": "21:00"},
    "Brazil": {"timezone": "America/Sao_Paulo", "target_time": "21:00"},
}


class CountryWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    country: str = Field(min_length=1)
    timezone: str = Field(min_length=1)
    target_hour: int = Field(ge=0, le=23)
    target_minute: int = Field(ge=0, le=59)

    @property
    def target_time(self) -> str:
        return f"{self.target_hour:02d}:{self.target_minute:02d}"


def parse_hhmm(value: str) -> tuple[int, int]:
    try:
        hh, mm = str(value).strip().split(":")
        hour, minute = int(hh), int(mm)
    except (TypeError, ValueError):
        raise ConfigurationError(f"invalid target time {value!r}, expected HH:MM") from None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ConfigurationError(f"target time out of range: {value!r}")
    return hour, minute


def parse_windows(table: Mapping[str, Mapping[str, Any]]) -> List[CountryWindow]:
    windows: List[CountryWindow] = []
    for country, entry in table.items():
        if not isinstance(entry, Mapping):
            raise ConfigurationError(f"window for {country!r} must be an object")
        tz_name = str(entry.get("timezone") or "").strip()
        if not tz_name:
            raise ConfigurationError(f"window for {country!r} has no timezone")
        if "target_time" in entry:
            hour, minute = parse_hhmm(entry["target_time"])
        else:
            try:
                hour, minute = int(entry["target_hour"]), int(entry.get("target_minute", 0))
            except (KeyError, TypeError, ValueError):
                raise ConfigurationError(f"window for {country!r} has no valid target time") from None
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ConfigurationError(f"window for {country!r} has target time out of range")
        windows.append(
            CountryWindow(country=country, timezone=tz_name, target_hour=hour, target_minute=minute)
        )
    return windows


def load_windows(raw_json: str = "") -> List[CountryWindow]:
    """Window table from JSON, or the built-in table when ``raw_json`` is empty."""
    if not raw_json:
        return parse_windows(DEFAULT_WINDOWS)
    try:
        table = json.loads(raw_json)
    except ValueError as exc:
        raise ConfigurationError(f"NOTIFICATION_WINDOWS_JSON is not valid JSON: {exc}") from exc
    if not isinstance(table, dict) or not table:
        raise ConfigurationError("NOTIFICATION_WINDOWS_JSON must be a non-empty object")
    return parse_windows(table)


def in_window(local: datetime, target_hour: int, target_minute: int) -> bool:
    """Target hour from the target minute on, or the first half of the following hour.

    A 20:30 target is open 20:30-21:29, a 21:00 target 21:00-22:29. The
    following hour wraps past midnight.
    """
    if local.hour == target_hour:
        return local.minute >= target_minute
    if local.hour == (target_hour + 1) % 24:
        return local.minute < NEXT_HOUR_MINUTES
    return False


class TimeWindowGate:
    """Answers which configured countries are inside their notification window."""

    def __init__(self, windows: Iterable[CountryWindow]):
        self._windows: Dict[str, CountryWindow] = {}
        self._zones: Dict[str, ZoneInfo] = {}
        for w in windows:
            if w.country in self._windows:
                raise ConfigurationError(f"duplicate window for {w.country!r}")
            try:
                zone = ZoneInfo(w.timezone)
            except (ZoneInfoNotFoundError, ValueError):
                raise ConfigurationError(f"unknown timezone {w.timezone!r} for {w.country!r}") from None
            self._windows[w.country] = w
            self._zones[w.country] = zone

    @classmethod
    def from_json(cls, raw_json: str = "") -> "TimeWindowGate":
        return cls(load_windows(raw_json))

    def supported_countries(self) -> List[str]:
        return list(self._windows)

    def local_time(self, country: str, now: datetime) -> datetime:
        return now.astimezone(self._zones[country])

    def is_active(self, country: str, now: Optional[datetime] = None) -> bool:
        w = self._windows.get(country)
        if w is None:
            logger.warning("window.unknown_country", country=country)
            return False
        now = now or datetime.now(timezone.utc)
        return in_window(self.local_time(country, now), w.target_hour, w.target_minute)

    def active_countries(self, now: Optional[datetime] = None) -> List[str]:
        now = now or datetime.now(timezone.utc)
        active: List[str] = []
        for country, w in self._windows.items():
            local = self.local_time(country, now)
            if in_window(local, w.target_hour, w.target_minute):
                logger.info(
                    "window.country_active",
                    country=country,
                    local_time=local.strftime("%H:%M"),
                    target_time=w.target_time,
                )
                active.append(country)
        if active:
            logger.info("window.active_countries", countries=active)
        else:
            logger.info("window.none_active")
        return active
