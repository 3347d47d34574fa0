"""Notification window boundaries and window configuration."""

import json
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from segmentation.errors import ConfigurationError
from segmentation.window import CountryWindow, TimeWindowGate, in_window, load_windows

KOLKATA = ZoneInfo("Asia/Kolkata")


def kolkata(hour: int, minute: int) -> datetime:
    """UTC instant for a Kolkata wall-clock time on 2026-03-10."""
    return datetime(2026, 3, 10, hour, minute, tzinfo=KOLKATA).astimezone(timezone.utc)


@pytest.fixture
def india_gate():
    return TimeWindowGate([CountryWindow(country="India", timezone="Asia/Kolkata", target_hour=20, target_minute=30)])


class TestWindowBoundaries:
    """Target 20:30 is open from 20:30 through 21:29 local time."""

    @pytest.mark.parametrize(
        "hour,minute,expected",
        [
            (20, 29, False),
            (20, 30, True),
            (20, 31, True),
            (20, 59, True),
            (21, 0, True),
            (21, 29, True),
            (21, 30, False),
            (21, 31, False),
        ],
    )
    def test_half_hour_target(self, india_gate, hour, minute, expected):
        assert india_gate.is_active("India", kolkata(hour, minute)) is expected

    def test_on_the_hour_target(self):
        local = datetime(2026, 3, 10, 21, 15)
        assert in_window(local, 21, 0)
        assert in_window(local.replace(hour=22, minute=29), 21, 0)
        assert not in_window(local.replace(hour=22, minute=30), 21, 0)
        assert not in_window(local.replace(hour=20, minute=59), 21, 0)

    def test_window_wraps_past_midnight(self):
        assert in_window(datetime(2026, 3, 11, 0, 29), 23, 50)
        assert not in_window(datetime(2026, 3, 11, 0, 30), 23, 50)
        assert not in_window(datetime(2026, 3, 10, 23, 49), 23, 50)

    def test_active_countries_uses_each_zone(self):
        gate = TimeWindowGate(load_windows())
        # 20:45 in Kolkata, 11:15 in New York, 18:15 in Riyadh
        now = kolkata(20, 45)
        assert gate.active_countries(now) == ["India"]

    def test_nothing_active_at_noon_utc(self):
        gate = TimeWindowGate(load_windows())
        assert gate.active_countries(datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)) == []

    def test_unknown_country_is_inactive(self, india_gate):
        assert india_gate.is_active("Atlantis", kolkata(20, 45)) is False


class TestWindowConfig:
    def test_default_table(self):
        windows = load_windows()
        by_country = {w.country: w for w in windows}
        assert set(by_country) == {"India", "USA", "Peru", "Saudi Arabia", "Brazil"}
        assert by_country["India"].target_time == "20:30"
        assert by_country["USA"].timezone == "America/New_York"

    def test_json_override(self):
        raw = json.dumps({"Japan": {"timezone": "Asia/Tokyo", "target_time": "19:45"}})
        gate = TimeWindowGate.from_json(raw)
        assert gate.supported_countries() == ["Japan"]

    def test_hour_minute_keys(self):
        raw = json.dumps({"Chile": {"timezone": "America/Santiago", "target_hour": 21, "target_minute": 15}})
        (w,) = load_windows(raw)
        assert (w.target_hour, w.target_minute) == (21, 15)

    def test_unknown_timezone_fails_fast(self):
        with pytest.raises(ConfigurationError):
            TimeWindowGate([CountryWindow(country="X", timezone="Mars/Olympus", target_hour=20, target_minute=0)])

    def test_missing_timezone(self):
        with pytest.raises(ConfigurationError):
            load_windows(json.dumps({"X": {"target_time": "20:00"}}))

    @pytest.mark.parametrize("value", ["25:00", "20:75", "8pm", ""])
    def test_bad_target_time(self, value):
        with pytest.raises(ConfigurationError):
            load_windows(json.dumps({"X": {"timezone": "UTC", "target_time": value}}))

    def test_bad_json(self):
        with pytest.raises(ConfigurationError):
            load_windows("{not json")

    def test_empty_object(self):
        with pytest.raises(ConfigurationError):
            load_windows("{}")

    def test_duplicate_country(self):
        w = CountryWindow(country="India", timezone="Asia/Kolkata", target_hour=20, target_minute=30)
        with pytest.raises(ConfigurationError):
            TimeWindowGate([w, w])
