"""Parsed date/time values, appointment requests and calendar intervals."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class ParsedDate:
    """A normalized calendar date plus the phrase to echo back."""
    iso: str
    readable: str

    @property
    def value(self) -> date:
        return date.fromisoformat(self.iso)


@dataclass(frozen=True)
class ParsedTime:
    """A normalized 24-hour time of day plus the phrase to echo back."""
    iso: str
    readable: str

    @property
    def value(self) -> time:
        return time.fromisoformat(self.iso)


class AppointmentRequest(BaseModel):
    """Everything needed to check and create one appointment.

    Date and time are civil values in the business timezone; they become
    absolute instants only through ``start_in``/``utc_interval``.
    """
    conversation_id: str
    requester_name: str
    day: date
    start_time: time
    service_type: str
    service_label: str
    duration_minutes: int = Field(gt=0)

    @property
    def start_local(self) -> datetime:
        return datetime.combine(self.day, self.start_time)

    @property
    def end_local(self) -> datetime:
        return self.start_local + timedelta(minutes=self.duration_minutes)

    def start_in(self, tz: ZoneInfo) -> datetime:
        return self.start_local.replace(tzinfo=tz)

    def utc_interval(self, tz: ZoneInfo) -> tuple[datetime, datetime]:
        """Absolute [start, end) of the appointment in UTC."""
        start = self.start_in(tz).astimezone(timezone.utc)
        return start, start + timedelta(minutes=self.duration_minutes)


@dataclass(frozen=True)
class BusyInterval:
    """An occupied [start, end) block on the calendar, timezone-aware."""
    start: datetime
    end: datetime

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open comparison: back-to-back blocks do not overlap."""
        return self.start < end and self.end > start
