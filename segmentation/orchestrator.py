"""One notification run: gate, classify, dedup, pick, dispatch, report.

A run is a single pass::

    Idle -> Gating -> Skipped
                   -> Classifying(segment 1..12) -> Done

Segments run strictly one after another. Inside a segment users may be
dispatched concurrently (``concurrency > 1``), but the next segment only
starts once every user of the current one is settled, so a user sent by a
higher-priority segment is always visible to the lower-priority ones.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Set
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

import config
from models.base import utcnow
from models.enums import OutcomeStatus
from schemas.notifications import RunReport, SegmentReport, UserOutcome
from segmentation.classifiers import SEGMENTS, RunContext, SegmentClassifier, Subject
from segmentation.creatives import Creative, CreativeSelector
from segmentation.dedup import DedupRegistry
from segmentation.dispatcher import DispatchResult, PushDispatcher, build_dispatcher, failure
from segmentation.errors import ConfigurationError
from segmentation.ledger import ActivityLedger, LedgerRecord, MongoActivityLedger
from segmentation.window import TimeWindowGate

logger = structlog.get_logger()


def ledger_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigurationError(f"unknown LEDGER_TIMEZONE {name!r}") from None


class _SegmentRun:
    """Mutable state of one segment pass."""

    def __init__(self, segment: SegmentClassifier):
        self.segment = segment
        self.report = SegmentReport(
            segment=segment.key,
            rank=segment.rank,
            country_gated=segment.country_gated,
        )
        self.lock = asyncio.Lock()
        self.in_flight: Set[str] = set()

    def skip(self, reason: str) -> None:
        self.report.skipped += 1
        self.report.skip_reasons[reason] = self.report.skip_reasons.get(reason, 0) + 1

    def duplicate(self, user_id: str, metrics: Optional[Dict[str, Any]] = None) -> None:
        self.skip("already_notified")
        self.report.outcomes.append(
            UserOutcome(user_id=user_id, status=OutcomeStatus.duplicate, metrics=metrics or {})
        )


class Orchestrator:
    def __init__(
        self,
        gate: TimeWindowGate,
        ledger: ActivityLedger,
        dispatcher: PushDispatcher,
        selector: Optional[CreativeSelector] = None,
        segments: Iterable[SegmentClassifier] = SEGMENTS,
        tz: Optional[ZoneInfo] = None,
        dispatch_timeout: float = config.DISPATCH_TIMEOUT_SECONDS,
        concurrency: int = config.DISPATCH_CONCURRENCY,
    ):
        if concurrency < 1:
            raise ConfigurationError("dispatch concurrency must be >= 1")
        if dispatch_timeout <= 0:
            raise ConfigurationError("dispatch timeout must be positive")
        self.gate = gate
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.selector = selector or CreativeSelector()
        self.segments = tuple(sorted(segments, key=lambda s: s.rank))
        self.tz = tz or ZoneInfo("UTC")
        self.dispatch_timeout = dispatch_timeout
        self.concurrency = concurrency

    async def run(self, now: Optional[datetime] = None) -> RunReport:
        started_at = utcnow()
        now = now or started_at
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        logger.info("run.start", now=now.isoformat())

        active = self.gate.active_countries(now)
        if not active:
            logger.info("run.skipped", reason="no countries in notification window")
            finished_at = utcnow()
            return RunReport(
                skipped=True,
                message="No countries in notification window",
                started_at=started_at,
                finished_at=finished_at,
                execution_ms=int((finished_at - started_at).total_seconds() * 1000),
            )

        registry = DedupRegistry()
        ctx = RunContext(now, self.tz, active)
        reports = []
        for segment in self.segments:
            reports.append(await self.run_segment(segment, ctx, registry))

        finished_at = utcnow()
        report = RunReport(
            message="Segment notification run completed",
            active_countries=active,
            segments=reports,
            total_notifications=sum(r.succeeded for r in reports),
            unique_users_notified=len(registry),
            total_processed=sum(r.processed for r in reports),
            started_at=started_at,
            finished_at=finished_at,
            execution_ms=int((finished_at - started_at).total_seconds() * 1000),
        )
        logger.info(
            "run.complete",
            total_notifications=report.total_notifications,
            unique_users=report.unique_users_notified,
            execution_ms=report.execution_ms,
        )
        return report

    async def run_segment(self, segment: SegmentClassifier, ctx: RunContext, registry: DedupRegistry) -> SegmentReport:
        state = _SegmentRun(segment)
        log = logger.bind(segment=segment.key.value, rank=segment.rank)

        try:
            records = await self.ledger.users_with_any_entry(segment.source)
        except Exception as exc:
            log.error("segment.query_failed", error=str(exc), exc_info=True)
            state.report.error = f"{exc.__class__.__name__}: {exc}"
            return state.report

        state.report.processed = len(records)
        sem = asyncio.Semaphore(self.concurrency)

        async def guarded(record: LedgerRecord) -> None:
            async with sem:
                await self.process_user(state, record, ctx, registry)

        await asyncio.gather(*(guarded(r) for r in records))

        r = state.report
        log.info(
            "segment.complete",
            processed=r.processed,
            succeeded=r.succeeded,
            failed=r.failed,
            skipped=r.skipped,
        )
        return r

    async def process_user(
        self,
        state: _SegmentRun,
        record: LedgerRecord,
        ctx: RunContext,
        registry: DedupRegistry,
    ) -> None:
        report = state.report
        user = record.user
        user_id = user.id if user else None

        # users notified earlier in the run are never classified again
        if user_id is not None:
            async with state.lock:
                if registry.is_notified(user_id):
                    state.duplicate(user_id)
                    return

        try:
            verdict = state.segment.evaluate(Subject(record, ctx))
            if not verdict.qualifies:
                state.skip(verdict.reason)
                logger.debug("user.skipped", segment=state.segment.key.value, user_id=user_id, reason=verdict.reason)
                return

            async with state.lock:
                if registry.is_notified(user_id) or user_id in state.in_flight:
                    state.duplicate(user_id, verdict.metrics)
                    return
                state.in_flight.add(user_id)

            result: Optional[DispatchResult] = None
            try:
                creative = self.selector.pick(state.segment.key, verdict.metrics)
                result = await self.dispatch(user.push_token, creative)
            finally:
                async with state.lock:
                    if result is not None and result.success:
                        registry.mark_notified(user_id)
                    state.in_flight.discard(user_id)
        except Exception as exc:
            report.failed += 1
            report.outcomes.append(
                UserOutcome(user_id=user_id, status=OutcomeStatus.error, error=f"{exc.__class__.__name__}: {exc}")
            )
            logger.error(
                "user.error",
                segment=state.segment.key.value,
                user_id=user_id,
                error=str(exc),
                exc_info=True,
            )
            return

        if result.success:
            report.succeeded += 1
            report.outcomes.append(
                UserOutcome(
                    user_id=user_id,
                    status=OutcomeStatus.sent,
                    message_id=result.message_id,
                    title=creative.title,
                    metrics=verdict.metrics,
                )
            )
            logger.info("user.sent", segment=state.segment.key.value, user_id=user_id, **verdict.metrics)
        else:
            report.failed += 1
            report.outcomes.append(
                UserOutcome(
                    user_id=user_id,
                    status=OutcomeStatus.failed,
                    error=result.error,
                    title=creative.title,
                    metrics=verdict.metrics,
                )
            )
            logger.warning("user.send_failed", segment=state.segment.key.value, user_id=user_id, error=result.error)

    async def dispatch(self, token: Optional[str], creative: Creative) -> DispatchResult:
        try:
            return await asyncio.wait_for(
                self.dispatcher.send(token, creative.title, creative.body, creative.image),
                timeout=self.dispatch_timeout,
            )
        except asyncio.TimeoutError:
            return failure(f"push timed out after {self.dispatch_timeout}s")


def build_orchestrator(
    ledger: Optional[ActivityLedger] = None,
    dispatcher: Optional[PushDispatcher] = None,
    gate: Optional[TimeWindowGate] = None,
) -> Orchestrator:
    """Orchestrator wired from ``config``. Raises ConfigurationError on bad settings."""
    return Orchestrator(
        gate=gate or TimeWindowGate.from_json(config.NOTIFICATION_WINDOWS_JSON),
        ledger=ledger or MongoActivityLedger(),
        dispatcher=dispatcher or build_dispatcher(),
        tz=ledger_zone(config.LEDGER_TIMEZONE),
    )


async def run_orchestration(now: Optional[datetime] = None, orchestrator: Optional[Orchestrator] = None) -> RunReport:
    """Entry point for the periodic trigger (every 30 minutes in the evening hours)."""
    orchestrator = orchestrator or build_orchestrator()
    return await orchestrator.run(now)
