"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import random
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Set
from zoneinfo import ZoneInfo

import pytest

from models.enums import EventKind
from segmentation.classifiers import RunContext, Subject
from segmentation.creatives import CreativeSelector
from segmentation.dispatcher import DispatchResult
from segmentation.ledger import CounterEntry, InMemoryLedger, LedgerRecord, UserSnapshot
from segmentation.orchestrator import Orchestrator
from segmentation.window import CountryWindow, TimeWindowGate

UTC = ZoneInfo("UTC")

# 20:45 in Kolkata, 11:15 in New York (EDT)
NOW = datetime(2026, 3, 10, 15, 15, tzinfo=timezone.utc)
TODAY = NOW.date()


def days_ago(n: int) -> date:
    return TODAY - timedelta(days=n)


def series(by_offset: Dict[int, int]) -> tuple:
    """{days_ago: count} -> counter entries."""
    return tuple(CounterEntry(date=days_ago(offset), count=count) for offset, count in by_offset.items())


def make_record(
    user_id: str = "u1",
    *,
    created_days_ago: int = 10,
    country: Optional[str] = "India",
    token: Optional[str] = "tok-u1",
    deleted: bool = False,
    subscribed: bool = False,
    edits: Optional[Dict[int, int]] = None,
    paywall_opened: Optional[Dict[int, int]] = None,
    paywall_dismissed: Optional[Dict[int, int]] = None,
    saved: Optional[Dict[int, int]] = None,
    shared: Optional[Dict[int, int]] = None,
    style_opened: Optional[Dict[int, int]] = None,
    with_user: bool = True,
) -> LedgerRecord:
    user = UserSnapshot(
        id=user_id,
        push_token=token,
        is_deleted=deleted,
        country=country,
        is_subscribed=subscribed,
        created_at=NOW - timedelta(days=created_days_ago),
    )
    return LedgerRecord(
        user=user if with_user else None,
        series={
            EventKind.ai_edit: series(edits or {}),
            EventKind.paywall_opened: series(paywall_opened or {}),
            EventKind.paywall_dismissed: series(paywall_dismissed or {}),
            EventKind.edit_saved: series(saved or {}),
            EventKind.edit_shared: series(shared or {}),
            EventKind.style_opened: series(style_opened or {}),
        },
    )


def subject_for(record: LedgerRecord, active: Iterable[str] = ("India",), now: datetime = NOW) -> Subject:
    return Subject(record, RunContext(now, UTC, active))


class FakeDispatcher:
    """Records every send; can fail, raise or hang for chosen tokens."""

    def __init__(self, fail_tokens: Iterable[str] = (), raise_tokens: Iterable[str] = (), hang_tokens: Iterable[str] = ()):
        self.fail_tokens: Set[str] = set(fail_tokens)
        self.raise_tokens: Set[str] = set(raise_tokens)
        self.hang_tokens: Set[str] = set(hang_tokens)
        self.calls: List[dict] = []

    async def send(self, token, title, body, image=None) -> DispatchResult:
        self.calls.append({"token": token, "title": title, "body": body, "image": image})
        await asyncio.sleep(0)
        if token in self.hang_tokens:
            await asyncio.sleep(3600)
        if token in self.raise_tokens:
            raise RuntimeError("channel exploded")
        if token in self.fail_tokens:
            return DispatchResult(success=False, error="registration-token-not-registered")
        return DispatchResult(success=True, message_id=f"msg-{len(self.calls)}")

    def tokens(self) -> List[str]:
        return [c["token"] for c in self.calls]


@pytest.fixture
def gate() -> TimeWindowGate:
    return TimeWindowGate([
        CountryWindow(country="India", timezone="Asia/Kolkata", target_hour=20, target_minute=30),
        CountryWindow(country="USA", timezone="America/New_York", target_hour=21, target_minute=0),
    ])


@pytest.fixture
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def orchestrator(gate, ledger, dispatcher) -> Orchestrator:
    return Orchestrator(
        gate=gate,
        ledger=ledger,
        dispatcher=dispatcher,
        selector=CreativeSelector(rng=random.Random(7)),
        tz=UTC,
        dispatch_timeout=5,
        concurrency=1,
    )
