"""Periodic promotion of scheduled catalog records."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from ..records.records_repository import CatalogRepository
from ..utils.clock import to_naive_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SweepReport:
    """Outcome of one sweep; ``skipped`` when another sweep was running."""

    attempted: int = 0
    published: int = 0
    failed: int = 0
    skipped: bool = False
    started_at: datetime | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "attempted": self.attempted,
            "published": self.published,
            "failed": self.failed,
            "skipped": self.skipped,
            "started_at": self.started_at.isoformat() if self.started_at else None,
        }


@dataclass(slots=True)
class SchedulerStatus:
    running: bool
    interval_seconds: float
    last_sweep_at: datetime | None
    last_report: SweepReport | None


@dataclass(slots=True)
class PublishScheduler:
    """Promote due ``scheduled`` records to ``published`` on a fixed interval.

    Sweeps never overlap: a tick (or a manual sweep) that arrives while one is
    still running is reported as skipped. Promotion of each record is a single
    conditional update, so even two schedulers sharing a database cannot
    publish the same record twice.
    """

    repo: CatalogRepository
    interval_seconds: float = 60.0
    clock: Callable[[], datetime] = utcnow
    log: logging.Logger = field(default_factory=lambda: logger)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _shutdown_event: asyncio.Event | None = field(default=None, init=False, repr=False)
    _task: asyncio.Task[None] | None = field(default=None, init=False, repr=False)
    _last_report: SweepReport | None = field(default=None, init=False, repr=False)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Begin ticking on the running event loop; a second call is a no-op."""
        if self.running:
            return
        self._shutdown_event = asyncio.Event()
        self._task = asyncio.create_task(
            self._run(self._shutdown_event), name="catalog-publish-scheduler"
        )
        self.log.info(
            "scheduler.started", extra={"interval_seconds": self.interval_seconds}
        )

    async def stop(self) -> None:
        """Stop future ticks and wait for an in-flight sweep to finish."""
        if self._shutdown_event is not None:
            self._shutdown_event.set()
        task = self._task
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._task = None
        self._shutdown_event = None
        self.log.info("scheduler.stopped")

    async def sweep_once(self, now: datetime | None = None) -> SweepReport:
        """Promote every record that is due at ``now``."""
        if self._lock.locked():
            self.log.warning("scheduler.sweep.skipped")
            return SweepReport(skipped=True, started_at=self._current(now))

        async with self._lock:
            current = self._current(now)
            report = SweepReport(started_at=current)
            try:
                due_ids = await asyncio.to_thread(self.repo.list_due_ids, current)
            except Exception:
                self.log.exception("scheduler.sweep.list_failed")
                report.failed += 1
                self._last_report = report
                return report

            for record_id in due_ids:
                report.attempted += 1
                try:
                    promoted = await asyncio.to_thread(
                        self.repo.promote_if_due, record_id, current
                    )
                except Exception:
                    report.failed += 1
                    self.log.exception(
                        "scheduler.record.promote_failed",
                        extra={"record_id": record_id},
                    )
                    continue
                if promoted:
                    report.published += 1
                    self.log.info(
                        "scheduler.record.published", extra={"record_id": record_id}
                    )

            self._last_report = report
            self.log.info("scheduler.sweep.done", extra=report.as_dict())
            return report

    def status(self) -> SchedulerStatus:
        last = self._last_report
        return SchedulerStatus(
            running=self.running,
            interval_seconds=self.interval_seconds,
            last_sweep_at=last.started_at if last else None,
            last_report=last,
        )

    async def _run(self, shutdown_event: asyncio.Event) -> None:
        interval = max(1.0, float(self.interval_seconds))
        while not shutdown_event.is_set():
            try:
                await self.sweep_once()
            except Exception:  # pragma: no cover - unexpected sweep error
                self.log.exception("scheduler.sweep.crashed")
            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

    def _current(self, now: datetime | None) -> datetime:
        return to_naive_utc(now) if now is not None else self.clock()


__all__ = ["PublishScheduler", "SchedulerStatus", "SweepReport"]
