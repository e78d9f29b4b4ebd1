"""One monitor pass: acquire → diff → alert policy → notify → persist.

Prior state is read from the snapshot store at the start of the cycle and
the merged state is written back once at the end, so every comparison is
made against the last successful cycle. Categories that exhaust their
retries keep their previous state and are reported as unavailable; if all
of them fail nothing is persisted and an error notification replaces the
summary.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Optional

from stockpulse.api.schemas import (CategoryDescriptor, CategorySnapshot, CategoryState,
                                    CycleReport)
from stockpulse.config import MonitorConfig
from stockpulse.db.database import RunHistory
from stockpulse.db.snapshot_store import SnapshotStore
from stockpulse.notify.dispatcher import NotificationDispatcher
from stockpulse.notify.telegram import LogTransport, TelegramTransport, TransportError
from stockpulse.pipeline import formatter
from stockpulse.pipeline.alert_policy import AlertPolicy
from stockpulse.pipeline.diff_engine import diff
from stockpulse.resilience.retrier import acquire_all
from stockpulse.scraper.adapter_factory import AdapterRegistry
from stockpulse.scraper.base_adapter import AcquisitionError, BaseSourceAdapter
from stockpulse.scraper.deliverability import DeliverabilityChecker

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MonitorCycle:
    def __init__(
        self,
        config: MonitorConfig,
        store: SnapshotStore,
        dispatcher: NotificationDispatcher,
        adapter_for: Callable[[CategoryDescriptor], BaseSourceAdapter],
        history: Optional[RunHistory] = None,
        enricher: Optional[DeliverabilityChecker] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.config = config
        self.store = store
        self.dispatcher = dispatcher
        self.adapter_for = adapter_for
        self.history = history
        self.enricher = enricher
        self.policy = AlertPolicy(
            thresholds=config.alert_thresholds,
            floors=config.notify_floors,
            labels={c.key: c.label for c in config.categories},
            alert_on_cold_start=config.alert_on_cold_start,
        )
        self._sleep = sleep
        self._clock = clock

    async def run_once(self) -> CycleReport:
        started_at = self._clock()
        logger.info("Monitor cycle started for %d categories", len(self.config.categories))
        try:
            report = await self._run(started_at)
        except Exception as e:
            if self.history is not None:
                await self.history.record_failure(started_at, f"{type(e).__name__}: {e}")
            raise

        if self.history is not None:
            await self.history.record(report)
        logger.info(
            "Monitor cycle %s: %d ok, %d failed, %d alerts",
            report.status, len(report.succeeded), len(report.failed), len(report.alerts),
        )
        return report

    async def _run(self, started_at: datetime) -> CycleReport:
        cfg = self.config
        report = CycleReport(started_at=started_at)
        prior = self.store.load()

        results = await acquire_all(
            cfg.categories,
            self.adapter_for,
            cfg.max_retries,
            cfg.retry_delay_seconds,
            parallel=cfg.parallel_acquisition,
            isolate_failures=cfg.isolate_failures,
            sleep=self._sleep,
        )
        current: Dict[str, CategorySnapshot] = {}
        for key, outcome in results.items():
            if isinstance(outcome, AcquisitionError):
                report.failed[key] = str(outcome) or type(outcome).__name__
            else:
                current[key] = outcome
                report.succeeded.append(key)

        if not current:
            report.status = "failed"
            await self._notify(report, formatter.format_error(
                cfg.title,
                "All categories unavailable this cycle:\n"
                + "\n".join(f"• {k}: {v}" for k, v in report.failed.items()),
                started_at, cfg.timezone,
            ))
            report.completed_at = self._clock()
            return report

        for key, snapshot in current.items():
            report.diffs[key] = diff(prior.get(key), snapshot)

        decision = self.policy.evaluate(prior, current)
        report.alerts = decision.crossings

        if decision.crossings:
            await self._notify(report, formatter.format_alert(decision.crossings))
        if decision.send_routine:
            summary = formatter.format_summary(
                cfg.title, await self._sections(report, current), started_at, cfg.timezone,
            )
            await self._notify(report, summary)

        observed_at = self._clock()
        new_state = dict(prior)
        for key, snapshot in current.items():
            new_state[key] = CategoryState(
                total_count=snapshot.total_count,
                items=list(snapshot.items),
                observed_at=observed_at,
            )
        self.store.save(new_state)

        report.status = "partial" if report.failed else "completed"
        report.completed_at = self._clock()
        return report

    async def _sections(self, report: CycleReport, current: Dict[str, CategorySnapshot]):
        cfg = self.config
        sections = []
        for index, descriptor in enumerate(cfg.categories, start=1):
            if descriptor.key in current:
                sections.append(formatter.format_section(
                    index, descriptor, current[descriptor.key],
                    report.diffs[descriptor.key], cfg.max_items_per_section,
                ))
            else:
                sections.append(formatter.format_unavailable(index, descriptor, "acquisition failed"))

        enrichment = cfg.enrichment
        if self.enricher is not None and enrichment and enrichment.category_key in current:
            try:
                links = await self.enricher.check(current[enrichment.category_key].items)
                sections.append(formatter.format_deliverable(
                    enrichment.pincode, links, cfg.max_items_per_section,
                ))
            except Exception as e:
                logger.warning("Deliverability enrichment failed: %s", e, exc_info=True)
        return sections

    async def _notify(self, report: CycleReport, message: str):
        try:
            await self.dispatcher.send(message)
            report.notified = True
        except TransportError as e:
            logger.error("Notification failed: %s", e)
            report.notification_errors.append(str(e))

    async def notify_error(self, error: Exception):
        """Best-effort operator notification for a cycle-level failure."""
        message = formatter.format_error(
            self.config.title, f"Cycle error: {type(error).__name__}: {error}",
            self._clock(), self.config.timezone,
        )
        try:
            await self.dispatcher.send(message)
        except TransportError as e:
            logger.error("Could not deliver error notification: %s", e)


def build_monitor(config: MonitorConfig) -> MonitorCycle:
    """Wire a MonitorCycle from config with the production collaborators."""
    if config.bot_token and config.recipient:
        transport = TelegramTransport(config.bot_token)
    else:
        logger.warning("TELEGRAM_BOT_TOKEN/TELEGRAM_CHAT_ID not set, messages will only be logged")
        transport = LogTransport()

    dispatcher = NotificationDispatcher(
        transport,
        config.recipient or "",
        chunk_limit=config.chunk_limit,
        pacing_delay=config.chunk_pacing_seconds,
    )
    return MonitorCycle(
        config,
        SnapshotStore(config.snapshot_file),
        dispatcher,
        AdapterRegistry().for_descriptor,
        history=RunHistory(config.history_db) if config.history_db else None,
        enricher=DeliverabilityChecker(config.enrichment) if config.enrichment else None,
    )
