"""Scheduler status and manual sweep routes."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from .publish_scheduler import PublishScheduler, SweepReport

router = APIRouter(prefix="/api/scheduler", tags=["scheduler"])


class SweepReportResponse(BaseModel):
    attempted: int
    published: int
    failed: int
    skipped: bool
    started_at: datetime | None = None

    @classmethod
    def from_report(cls, report: SweepReport) -> "SweepReportResponse":
        return cls(
            attempted=report.attempted,
            published=report.published,
            failed=report.failed,
            skipped=report.skipped,
            started_at=report.started_at,
        )


class SchedulerStatusResponse(BaseModel):
    running: bool
    interval_seconds: float
    last_sweep_at: datetime | None = None
    last_report: SweepReportResponse | None = None


def get_publish_scheduler(request: Request) -> PublishScheduler:
    try:
        return request.app.state.publish_scheduler  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - app wiring error
        raise RuntimeError("PublishScheduler is not configured") from exc


@router.get("/status")
def scheduler_status(
    scheduler: PublishScheduler = Depends(get_publish_scheduler),
) -> SchedulerStatusResponse:
    current = scheduler.status()
    return SchedulerStatusResponse(
        running=current.running,
        interval_seconds=current.interval_seconds,
        last_sweep_at=current.last_sweep_at,
        last_report=(
            SweepReportResponse.from_report(current.last_report)
            if current.last_report
            else None
        ),
    )


@router.post("/sweep")
async def trigger_sweep(
    scheduler: PublishScheduler = Depends(get_publish_scheduler),
) -> SweepReportResponse:
    """Run one sweep now; reports ``skipped`` if a sweep is already running."""
    report = await scheduler.sweep_once()
    return SweepReportResponse.from_report(report)
