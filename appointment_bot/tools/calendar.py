"""
Calendar port and its adapters.

``GoogleCalendar`` talks to Google Calendar v3 through the discovery client
with an OAuth refresh token. ``InMemoryCalendar`` keeps events in a list and
backs the console demo and the tests.

Both raise ``CalendarAuthError`` when the credentials are refused and
``CalendarUnavailableError`` for anything else, so callers can tell "ask a
human" apart from "try again later".
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Optional, Protocol
from zoneinfo import ZoneInfo

from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from appointment_bot.config import GoogleConfig
from appointment_bot.schemas.booking_schema import BusyInterval

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]
AUTH_HTTP_STATUSES = frozenset({401, 403})


class CalendarError(Exception):
    """Base class for calendar failures."""


class CalendarAuthError(CalendarError):
    """Credentials missing, revoked, or refused by the provider."""


class CalendarUnavailableError(CalendarError):
    """Transient or unexpected failure talking to the calendar."""


class CalendarPort(Protocol):
    """What the scheduling core needs from a calendar."""

    async def query_busy(
        self, time_min: datetime, time_max: datetime, calendar_id: str
    ) -> list[BusyInterval]:
        ...

    async def insert_event(
        self,
        calendar_id: str,
        summary: str,
        description: str,
        start_local: datetime,
        end_local: datetime,
        timezone_name: str,
    ) -> str:
        ...


def _parse_event_time(value: dict[str, str], tz: ZoneInfo) -> datetime:
    """Convert a Google event start/end to an aware datetime.

    All-day events only carry ``date``; they block from local midnight.
    """
    if "dateTime" in value:
        parsed = datetime.fromisoformat(value["dateTime"].replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=tz)
    return datetime.combine(date.fromisoformat(value["date"]), time.min, tzinfo=tz)


def _translate_error(exc: Exception) -> CalendarError:
    if isinstance(exc, RefreshError):
        return CalendarAuthError(f"Calendar authorization refused: {exc}")
    if isinstance(exc, HttpError) and exc.resp.status in AUTH_HTTP_STATUSES:
        return CalendarAuthError(f"Calendar authorization refused (HTTP {exc.resp.status})")
    return CalendarUnavailableError(f"Calendar request failed: {exc}")


class GoogleCalendar:
    """Google Calendar v3 adapter using an OAuth refresh token."""

    def __init__(self, config: GoogleConfig, timezone_name: str) -> None:
        self._config = config
        self._tz = ZoneInfo(timezone_name)
        self._service: Any = None

    def _get_service(self) -> Any:
        if self._service is None:
            if not self._config.configured:
                raise CalendarAuthError(
                    "Missing GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET / GOOGLE_REFRESH_TOKEN"
                )
            credentials = Credentials(
                token=None,
                refresh_token=self._config.refresh_token,
                client_id=self._config.client_id,
                client_secret=self._config.client_secret,
                token_uri=self._config.token_uri,
                scopes=SCOPES,
            )
            self._service = build("calendar", "v3", credentials=credentials, cache_discovery=False)
        return self._service

    def _list_busy(self, time_min: datetime, time_max: datetime, calendar_id: str) -> list[BusyInterval]:
        service = self._get_service()
        intervals: list[BusyInterval] = []
        page_token: Optional[str] = None
        while True:
            result = service.events().list(
                calendarId=calendar_id,
                timeMin=time_min.isoformat(),
                timeMax=time_max.isoformat(),
                singleEvents=True,
                orderBy="startTime",
                pageToken=page_token,
            ).execute()
            for event in result.get("items", []):
                if event.get("status") == "cancelled" or event.get("transparency") == "transparent":
                    continue
                intervals.append(BusyInterval(
                    start=_parse_event_time(event["start"], self._tz),
                    end=_parse_event_time(event["end"], self._tz),
                ))
            page_token = result.get("nextPageToken")
            if not page_token:
                return intervals

    def _insert(self, calendar_id: str, body: dict[str, Any]) -> str:
        event = self._get_service().events().insert(calendarId=calendar_id, body=body).execute()
        logger.info("Calendar event created: %s %s", event.get("id"), event.get("htmlLink", ""))
        return event["id"]

    async def query_busy(
        self, time_min: datetime, time_max: datetime, calendar_id: str
    ) -> list[BusyInterval]:
        try:
            return await asyncio.to_thread(self._list_busy, time_min, time_max, calendar_id)
        except CalendarError:
            raise
        except Exception as exc:
            logger.error("Calendar query failed: %s", exc)
            raise _translate_error(exc) from exc

    async def insert_event(
        self,
        calendar_id: str,
        summary: str,
        description: str,
        start_local: datetime,
        end_local: datetime,
        timezone_name: str,
    ) -> str:
        body = {
            "summary": summary,
            "description": description,
            "start": {"dateTime": start_local.isoformat(), "timeZone": timezone_name},
            "end": {"dateTime": end_local.isoformat(), "timeZone": timezone_name},
        }
        try:
            return await asyncio.to_thread(self._insert, calendar_id, body)
        except CalendarError:
            raise
        except Exception as exc:
            logger.error("Calendar insert failed: %s", exc)
            raise _translate_error(exc) from exc


@dataclass
class StoredEvent:
    """An event held by the in-memory calendar."""
    event_id: str
    calendar_id: str
    summary: str
    description: str
    start: datetime
    end: datetime


class InMemoryCalendar:
    """Calendar kept in process memory, for the console demo and tests.

    ``fail_with`` makes every call raise the given error, to rehearse outages.
    """

    def __init__(self, timezone_name: str) -> None:
        self._tz = ZoneInfo(timezone_name)
        self.events: list[StoredEvent] = []
        self.fail_with: Optional[CalendarError] = None
        self.query_count = 0

    def add_busy(self, start: datetime, end: datetime, calendar_id: str = "primary") -> StoredEvent:
        """Seed an existing appointment (aware or business-local datetimes)."""
        start = start if start.tzinfo else start.replace(tzinfo=self._tz)
        end = end if end.tzinfo else end.replace(tzinfo=self._tz)
        event = StoredEvent(uuid.uuid4().hex[:12], calendar_id, "Ocupado", "", start, end)
        self.events.append(event)
        return event

    async def query_busy(
        self, time_min: datetime, time_max: datetime, calendar_id: str
    ) -> list[BusyInterval]:
        self.query_count += 1
        if self.fail_with is not None:
            raise self.fail_with
        return [
            BusyInterval(e.start.astimezone(timezone.utc), e.end.astimezone(timezone.utc))
            for e in self.events
            if e.calendar_id == calendar_id and e.start < time_max and e.end > time_min
        ]

    async def insert_event(
        self,
        calendar_id: str,
        summary: str,
        description: str,
        start_local: datetime,
        end_local: datetime,
        timezone_name: str,
    ) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        tz = ZoneInfo(timezone_name)
        event = StoredEvent(
            event_id=uuid.uuid4().hex[:12],
            calendar_id=calendar_id,
            summary=summary,
            description=description,
            start=start_local.replace(tzinfo=tz),
            end=end_local.replace(tzinfo=tz),
        )
        self.events.append(event)
        logger.info("In-memory event created: %s (%s)", event.event_id, summary)
        return event.event_id

    def reset(self) -> None:
        """Clear all events. Used by test fixtures for isolation."""
        self.events.clear()
        self.fail_with = None
        self.query_count = 0
