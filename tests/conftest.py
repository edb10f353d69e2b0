"""Shared test fixtures and helpers."""

from dataclasses import replace
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import pytest

from appointment_bot.config import AppConfig, SchedulingConfig, settings
from appointment_bot.conversation.dispatcher import MessageDispatcher
from appointment_bot.conversation.mute_registry import MuteRegistry
from appointment_bot.conversation.session_store import SessionStore
from appointment_bot.conversation.state_machine import ConversationStateMachine
from appointment_bot.schemas.session_schema import InboundMessage, Reply
from appointment_bot.tools.availability import AvailabilityResolver
from appointment_bot.tools.calendar import InMemoryCalendar
from appointment_bot.tools.notifier import NotificationDispatcher

TZ_NAME = "America/Mexico_City"
# A Sunday; "mañana" is Monday 2025-08-18.
TODAY = date(2025, 8, 17)

PATIENT_ID = "5215512345678@c.us"
ADMIN_NUMBER = "5215500000000"
ADMIN_ID = f"{ADMIN_NUMBER}@c.us"
IGNORED_ID = "status@broadcast"
BOT_SELF_ID = "5215599999999@c.us"
GROUP_ID = "120363000000000000@g.us"


class FakeClock:
    """Controllable UTC clock for stores and mutes."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2025, 8, 17, 16, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier:
    """Notifier double that records every outbound message."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.media: list[tuple[str, str, str]] = []
        self.text_ok = True
        self.media_ok = True
        self.raise_error: Optional[Exception] = None

    async def send_text(self, destination_id: str, text: str) -> bool:
        if self.raise_error is not None:
            raise self.raise_error
        self.sent.append((destination_id, text))
        return self.text_ok

    async def send_media(self, destination_id: str, media_path: str, caption: str) -> bool:
        if self.raise_error is not None:
            raise self.raise_error
        self.media.append((destination_id, media_path, caption))
        return self.media_ok

    def texts_to(self, destination_id: str) -> list[str]:
        return [text for dest, text in self.sent if dest == destination_id]


def make_config(**messaging_overrides) -> AppConfig:
    """Settings pinned to the values the tests assert against."""
    scheduling = replace(
        settings.scheduling,
        timezone=TZ_NAME,
        calendar_id="primary",
        weekday_open=time(10, 0),
        weekday_close=time(18, 0),
        saturday_open=time(10, 0),
        saturday_close=time(15, 0),
        default_therapy="individual",
    )
    messaging_fields = {
        "admin_number": ADMIN_NUMBER,
        "group_trigger": "!psico",
        "direct_chat_suffix": "@c.us",
        "ignored_conversations": (IGNORED_ID,),
        "mute_hours": 24,
        "max_input_length": 500,
        **messaging_overrides,
    }
    messaging = replace(settings.messaging, **messaging_fields)
    return replace(settings, scheduling=scheduling, messaging=messaging)


def make_message(text: str, conversation_id: str = PATIENT_ID, **kwargs) -> InboundMessage:
    return InboundMessage(conversation_id=conversation_id, text=text, **kwargs)


def texts(replies: list[Reply]) -> list[str]:
    return [reply.text for reply in replies]


@pytest.fixture
def test_config():
    return make_config()


@pytest.fixture
def scheduling(test_config) -> SchedulingConfig:
    return test_config.scheduling


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def calendar():
    cal = InMemoryCalendar(TZ_NAME)
    yield cal
    cal.reset()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def sessions(clock):
    return SessionStore(clock=clock)


@pytest.fixture
def mutes(clock):
    return MuteRegistry(clock=clock)


@pytest.fixture
def alerts(notifier):
    return NotificationDispatcher(notifier, ADMIN_ID)


@pytest.fixture
def machine(sessions, mutes, calendar, alerts, test_config):
    return ConversationStateMachine(
        sessions=sessions,
        mutes=mutes,
        resolver=AvailabilityResolver(calendar, "primary", TZ_NAME),
        calendar=calendar,
        alerts=alerts,
        config=test_config,
        today=lambda: TODAY,
    )


@pytest.fixture
def dispatcher(machine, sessions, mutes, notifier, test_config):
    return MessageDispatcher(
        machine, sessions, mutes, notifier, config=test_config, self_id=BOT_SELF_ID
    )


async def say(machine: ConversationStateMachine, *lines: str,
              conversation_id: str = PATIENT_ID) -> list[Reply]:
    """Feed several lines to the machine; returns the replies to the last one."""
    replies: list[Reply] = []
    for line in lines:
        replies = await machine.handle(conversation_id, line)
    return replies
