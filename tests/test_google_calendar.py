"""Tests for the Google Calendar adapter and appointment creation."""

from datetime import date, datetime, time, timezone
from unittest.mock import MagicMock, patch
from zoneinfo import ZoneInfo

import pytest
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from appointment_bot.config import GoogleConfig
from appointment_bot.schemas.booking_schema import AppointmentRequest
from appointment_bot.tools.booking import (
    build_event_description,
    build_event_summary,
    create_appointment,
)
from appointment_bot.tools.calendar import (
    CalendarAuthError,
    CalendarUnavailableError,
    GoogleCalendar,
)

from tests.conftest import TZ_NAME

CONFIGURED = GoogleConfig(client_id="cid", client_secret="secret", refresh_token="refresh")
WINDOW = (
    datetime(2025, 8, 18, 0, 0, tzinfo=timezone.utc),
    datetime(2025, 8, 19, 0, 0, tzinfo=timezone.utc),
)


def http_error(status: int) -> HttpError:
    response = MagicMock(status=status, reason="error")
    return HttpError(resp=response, content=b"{}")


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def google_calendar(service):
    with patch("appointment_bot.tools.calendar.build", return_value=service) as build:
        yield GoogleCalendar(CONFIGURED, TZ_NAME)
    build.assert_called_once()


@pytest.fixture
def appointment():
    return AppointmentRequest(
        conversation_id="5215512345678@c.us",
        requester_name="Ana López",
        day=date(2025, 8, 18),
        start_time=time(15, 0),
        service_type="individual",
        service_label="Terapia individual",
        duration_minutes=50,
    )


class TestQueryBusy:
    @pytest.mark.asyncio
    async def test_parses_events_and_pages(self, google_calendar, service):
        list_call = service.events.return_value.list
        list_call.return_value.execute.side_effect = [
            {
                "items": [
                    {
                        "start": {"dateTime": "2025-08-18T15:00:00-06:00"},
                        "end": {"dateTime": "2025-08-18T16:00:00-06:00"},
                    },
                    {
                        "status": "cancelled",
                        "start": {"dateTime": "2025-08-18T10:00:00-06:00"},
                        "end": {"dateTime": "2025-08-18T11:00:00-06:00"},
                    },
                ],
                "nextPageToken": "page-2",
            },
            {
                "items": [
                    {
                        "transparency": "transparent",
                        "start": {"dateTime": "2025-08-18T12:00:00Z"},
                        "end": {"dateTime": "2025-08-18T13:00:00Z"},
                    },
                    {"start": {"date": "2025-08-18"}, "end": {"date": "2025-08-19"}},
                ],
            },
        ]

        busy = await google_calendar.query_busy(*WINDOW, "primary")

        assert len(busy) == 2
        assert busy[0].start == datetime(2025, 8, 18, 21, 0, tzinfo=timezone.utc)
        assert busy[1].start.hour == 0
        assert str(busy[1].start.tzinfo) == TZ_NAME

        first_kwargs = list_call.call_args_list[0].kwargs
        assert first_kwargs["calendarId"] == "primary"
        assert first_kwargs["singleEvents"] is True
        assert first_kwargs["timeMin"] == WINDOW[0].isoformat()
        assert list_call.call_args_list[1].kwargs["pageToken"] == "page-2"

    @pytest.mark.asyncio
    async def test_refresh_error_is_auth(self, google_calendar, service):
        service.events.return_value.list.return_value.execute.side_effect = RefreshError(
            "invalid_grant"
        )
        with pytest.raises(CalendarAuthError):
            await google_calendar.query_busy(*WINDOW, "primary")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_forbidden_is_auth(self, google_calendar, service, status):
        service.events.return_value.list.return_value.execute.side_effect = http_error(status)
        with pytest.raises(CalendarAuthError):
            await google_calendar.query_busy(*WINDOW, "primary")

    @pytest.mark.asyncio
    async def test_server_error_is_unavailable(self, google_calendar, service):
        service.events.return_value.list.return_value.execute.side_effect = http_error(503)
        with pytest.raises(CalendarUnavailableError):
            await google_calendar.query_busy(*WINDOW, "primary")


class TestInsertEvent:
    @pytest.mark.asyncio
    async def test_creates_event_in_business_timezone(self, google_calendar, service, appointment):
        insert_call = service.events.return_value.insert
        insert_call.return_value.execute.return_value = {"id": "evt123", "htmlLink": "https://x"}

        event_id = await create_appointment(google_calendar, appointment, "primary", TZ_NAME)

        assert event_id == "evt123"
        body = insert_call.call_args.kwargs["body"]
        assert body["summary"] == "Cita (Terapia individual) con Ana López"
        assert body["start"] == {"dateTime": "2025-08-18T15:00:00", "timeZone": TZ_NAME}
        assert body["end"] == {"dateTime": "2025-08-18T15:50:00", "timeZone": TZ_NAME}
        assert "5215512345678@c.us" in body["description"]

    @pytest.mark.asyncio
    async def test_insert_failure_is_unavailable(self, google_calendar, service, appointment):
        service.events.return_value.insert.return_value.execute.side_effect = http_error(500)
        with pytest.raises(CalendarUnavailableError):
            await create_appointment(google_calendar, appointment, "primary", TZ_NAME)


class TestCredentials:
    @pytest.mark.asyncio
    async def test_missing_credentials_is_auth(self):
        calendar = GoogleCalendar(GoogleConfig(client_id="", client_secret="", refresh_token=""),
                                  TZ_NAME)
        with patch("appointment_bot.tools.calendar.build") as build:
            with pytest.raises(CalendarAuthError, match="GOOGLE_REFRESH_TOKEN"):
                await calendar.query_busy(*WINDOW, "primary")
        build.assert_not_called()

    def test_configured_flag(self):
        assert CONFIGURED.configured
        assert not GoogleConfig(client_id="cid", client_secret="", refresh_token="r").configured


class TestEventText:
    def test_summary_and_description(self, appointment):
        assert build_event_summary(appointment) == "Cita (Terapia individual) con Ana López"
        description = build_event_description(appointment)
        assert "Duración: 50 minutos" in description

    def test_utc_interval(self, appointment):
        start, end = appointment.utc_interval(ZoneInfo(TZ_NAME))
        assert start == datetime(2025, 8, 18, 21, 0, tzinfo=timezone.utc)
        assert (end - start).total_seconds() == 50 * 60
