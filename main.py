"""
Console entry point for the appointment bot.

Feeds terminal input through the full dispatcher (mute gate, operator
commands, dialogue) as if it arrived from one WhatsApp chat. Books against
Google Calendar when OAuth credentials are configured, otherwise against an
in-memory calendar.

Usage:
    Patient chat:  python main.py
    Operator chat: python main.py operator
"""

import asyncio
import logging
import sys

from appointment_bot.config import settings
from appointment_bot.conversation.dispatcher import create_dispatcher
from appointment_bot.schemas.session_schema import InboundMessage
from appointment_bot.tools.calendar import CalendarPort, GoogleCalendar, InMemoryCalendar
from appointment_bot.tools.notifier import ConsoleNotifier

logger = logging.getLogger(__name__)

PATIENT_ID = "5215512345678@c.us"


def _build_calendar() -> CalendarPort:
    """Google Calendar when credentials exist, in-memory otherwise."""
    if settings.google.configured:
        logger.info("Using Google Calendar '%s'", settings.scheduling.calendar_id)
        return GoogleCalendar(settings.google, settings.scheduling.timezone)
    logger.warning("Google credentials not configured; using an in-memory calendar")
    return InMemoryCalendar(settings.scheduling.timezone)


async def _chat(conversation_id: str) -> None:
    dispatcher = create_dispatcher(_build_calendar(), ConsoleNotifier())
    print(f"Chat as {conversation_id}. Type 'quit' to exit.")
    while True:
        text = await asyncio.to_thread(input, "> ")
        if text.strip().lower() in ("quit", "exit", "q"):
            return
        await dispatcher.handle(InboundMessage(conversation_id=conversation_id, text=text))


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "operator":
        if not settings.messaging.admin_configured:
            sys.exit("ADMIN_NUMBER is not configured")
        target = settings.messaging.admin_conversation_id
    else:
        target = PATIENT_ID
    try:
        asyncio.run(_chat(target))
    except (KeyboardInterrupt, EOFError):
        print()
