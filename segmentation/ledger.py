"""Read-only access to users and their per-kind daily activity counters."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pymongo.errors import PyMongoError

from models import MediaClick, User
from models.enums import EVENT_FIELDS, EventKind
from segmentation.errors import LedgerQueryError

logger = structlog.get_logger()


class CounterEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    # validated per user when the record is classified
    date: Any = None
    count: Any = 0


class UserSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    push_token: Optional[str] = None
    is_deleted: bool = False
    country: Optional[str] = None
    is_subscribed: bool = False
    # raw stored value, parsed when account age is needed
    created_at: Any = None


class LedgerRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    # None when the counters reference a user that no longer exists
    user: Optional[UserSnapshot] = None
    series: Dict[EventKind, Tuple[CounterEntry, ...]] = Field(default_factory=dict)

    def entries(self, kind: EventKind) -> Tuple[CounterEntry, ...]:
        return self.series.get(kind, ())


class ActivityLedger(Protocol):
    async def users_with_any_entry(self, kind: EventKind) -> List[LedgerRecord]:
        ...


def _text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def snapshot_user(user: Mapping[str, Any]) -> UserSnapshot:
    """Snapshot of a raw ``users`` document."""
    return UserSnapshot(
        id=str(user.get("_id")),
        push_token=_text(user.get("fcm_token")),
        is_deleted=bool(user.get("is_deleted", False)),
        country=_text(user.get("country")),
        is_subscribed=bool(user.get("is_subscribed", False)),
        created_at=user.get("created_at"),
    )


def counter_entry(raw: Any) -> CounterEntry:
    if isinstance(raw, Mapping):
        return CounterEntry(date=raw.get("date"), count=raw.get("count", 0))
    # not an object; fails its user once the series is read
    return CounterEntry(date=None, count=raw)


def record_from_documents(click: Mapping[str, Any], user: Optional[Mapping[str, Any]]) -> LedgerRecord:
    """Record from raw ``media_clicks`` and ``users`` documents.

    Nothing is validated here. A malformed entry or user field only fails
    that user when it is classified.
    """
    series: Dict[EventKind, Tuple[CounterEntry, ...]] = {}
    for kind, field in EVENT_FIELDS.items():
        raw = click.get(field) or []
        if not isinstance(raw, (list, tuple)):
            raw = [raw]
        series[kind] = tuple(counter_entry(e) for e in raw)
    return LedgerRecord(user=snapshot_user(user) if user is not None else None, series=series)


class MongoActivityLedger:
    """Ledger over the ``media_clicks`` and ``users`` collections.

    Reads raw documents through the Motor collections, so one broken row
    never fails the whole query. Collections default to the Beanie models'.
    """

    def __init__(self, clicks: Any = None, users: Any = None):
        self._clicks = clicks
        self._users = users

    def clicks(self) -> Any:
        return self._clicks if self._clicks is not None else MediaClick.get_motor_collection()

    def users(self) -> Any:
        return self._users if self._users is not None else User.get_motor_collection()

    async def users_with_any_entry(self, kind: EventKind) -> List[LedgerRecord]:
        field = EVENT_FIELDS[kind]
        try:
            clicks = await self.clicks().find({f"{field}.0": {"$exists": True}}).to_list(length=None)
            user_ids = list({c["user_id"] for c in clicks if c.get("user_id") is not None})
            users = (
                await self.users().find({"_id": {"$in": user_ids}}).to_list(length=None)
                if user_ids
                else []
            )
        except PyMongoError as exc:
            raise LedgerQueryError(f"{kind.value}: {exc}") from exc

        by_id = {u["_id"]: u for u in users}
        logger.info("ledger.query", kind=kind.value, records=len(clicks), users=len(by_id))
        return [record_from_documents(c, by_id.get(c.get("user_id"))) for c in clicks]


class InMemoryLedger:
    """Ledger backed by a list of records, for local runs and tests."""

    def __init__(self, records: Iterable[LedgerRecord] = ()):
        self.records: List[LedgerRecord] = list(records)
        self.queries: List[EventKind] = []

    def add(self, record: LedgerRecord) -> None:
        self.records.append(record)

    async def users_with_any_entry(self, kind: EventKind) -> List[LedgerRecord]:
        self.queries.append(kind)
        return [r for r in self.records if r.entries(kind)]
