"""Request schema for scheduling a record's publication."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..utils.clock import to_naive_utc, utcnow


class ScheduleRequest(BaseModel):
    """Either ``publishAt`` or ``scheduledDate`` + ``scheduledTime`` (UTC)."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    publish_at: datetime | None = Field(default=None, alias="publishAt")
    scheduled_date: str | None = Field(
        default=None, alias="scheduledDate", pattern=r"^\d{4}-\d{2}-\d{2}$"
    )
    scheduled_time: str | None = Field(
        default=None, alias="scheduledTime", pattern=r"^\d{2}:\d{2}$"
    )

    @model_validator(mode="after")
    def _require_moment(self) -> "ScheduleRequest":
        if self.publish_at is not None:
            return self
        if not self.scheduled_date or not self.scheduled_time:
            raise ValueError(
                "Provide publishAt or both scheduledDate and scheduledTime"
            )
        self._combine(self.scheduled_date, self.scheduled_time)
        return self

    def resolve_publish_at(self) -> datetime:
        """Return the publication moment as naive UTC."""
        if self.publish_at is not None:
            return to_naive_utc(self.publish_at)
        if not self.scheduled_date or not self.scheduled_time:
            raise ValueError("Provide publishAt or both scheduledDate and scheduledTime")
        return self._combine(self.scheduled_date, self.scheduled_time)

    def date_and_time(self) -> tuple[str, str]:
        """``YYYY-MM-DD`` / ``HH:MM`` pair stored alongside ``publish_at``."""
        moment = self.resolve_publish_at()
        return moment.strftime("%Y-%m-%d"), moment.strftime("%H:%M")

    @staticmethod
    def _combine(day: str, time_of_day: str) -> datetime:
        try:
            moment = datetime.strptime(f"{day} {time_of_day}", "%Y-%m-%d %H:%M")
        except ValueError as exc:
            raise ValueError(f"Invalid scheduled date/time: {day} {time_of_day}") from exc
        return moment


def ensure_in_future(moment: datetime, *, now: datetime | None = None) -> None:
    """Raise ``ValueError`` unless ``moment`` is strictly after ``now``."""
    current = now or utcnow()
    if moment <= current:
        raise ValueError("Scheduled time must be in the future")


__all__ = ["ScheduleRequest", "ensure_in_future"]
