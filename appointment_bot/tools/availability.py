"""
Slot availability against the external calendar.

A requested slot is a civil date and time in the business timezone plus a
duration. It is converted to an absolute UTC interval, the calendar is asked
for events in that window, and every returned event is checked with a
half-open overlap test, so an appointment ending at 11:00 does not block one
starting at 11:00.

A failed calendar query is raised, never reported as a free slot.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Union
from zoneinfo import ZoneInfo

from appointment_bot.schemas.booking_schema import BusyInterval
from appointment_bot.tools.calendar import CalendarError, CalendarPort, CalendarUnavailableError

logger = logging.getLogger(__name__)


def to_utc_interval(
    day: Union[str, date],
    start: Union[str, time],
    duration_minutes: int,
    tz: ZoneInfo,
) -> tuple[datetime, datetime]:
    """Civil date + time in ``tz`` to an absolute [start, end) in UTC."""
    day = day if isinstance(day, date) else date.fromisoformat(day)
    start = start if isinstance(start, time) else time.fromisoformat(start)
    begin = datetime.combine(day, start, tzinfo=tz).astimezone(timezone.utc)
    return begin, begin + timedelta(minutes=duration_minutes)


def find_conflicts(
    busy: list[BusyInterval], start: datetime, end: datetime
) -> list[BusyInterval]:
    """Return the busy blocks that overlap [start, end)."""
    return [interval for interval in busy if interval.overlaps(start, end)]


class AvailabilityResolver:
    """Answers "is this slot free?" for one calendar."""

    def __init__(self, calendar: CalendarPort, calendar_id: str, timezone_name: str) -> None:
        self._calendar = calendar
        self._calendar_id = calendar_id
        self._tz = ZoneInfo(timezone_name)

    async def conflicts(
        self, day: Union[str, date], start: Union[str, time], duration_minutes: int
    ) -> list[BusyInterval]:
        """
        List calendar blocks overlapping the requested slot.

        Raises:
            CalendarAuthError: Credentials were refused.
            CalendarUnavailableError: Any other failure querying the calendar.
        """
        if duration_minutes <= 0:
            raise ValueError(f"duration_minutes must be positive, got {duration_minutes}")
        begin, end = to_utc_interval(day, start, duration_minutes, self._tz)
        try:
            busy = await self._calendar.query_busy(begin, end, self._calendar_id)
        except CalendarError:
            raise
        except Exception as exc:
            raise CalendarUnavailableError(f"Availability query failed: {exc}") from exc

        overlapping = find_conflicts(busy, begin, end)
        logger.debug(
            "Availability %s..%s: %d busy block(s), %d conflicting",
            begin.isoformat(), end.isoformat(), len(busy), len(overlapping),
        )
        return overlapping

    async def is_free(
        self, day: Union[str, date], start: Union[str, time], duration_minutes: int
    ) -> bool:
        """True when no existing event overlaps the slot."""
        return not await self.conflicts(day, start, duration_minutes)
