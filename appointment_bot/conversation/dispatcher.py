"""
Inbound message gate between the messaging transport and the dialogue.

For every message the dispatcher decides whether the bot should answer at
all (self-echo, ignored chats, group trigger, handoff mute), runs operator
commands, and otherwise hands the text to the state machine. Messages of one
conversation are processed strictly one after another in arrival order;
different conversations run concurrently.

Usage:
    dispatcher = create_dispatcher(calendar, notifier)
    await dispatcher.handle(InboundMessage(conversation_id="5215512345678@c.us", text="hola"))
"""

import asyncio
import re
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncIterator, Callable, Optional

from appointment_bot.config import AppConfig, settings
from appointment_bot.conversation.mute_registry import MuteRegistry
from appointment_bot.conversation.session_store import SessionStore
from appointment_bot.conversation.state_machine import ConversationStateMachine
from appointment_bot.logging_context import get_conversation_logger, set_conversation_id
from appointment_bot.prompts import messages
from appointment_bot.schemas.session_schema import InboundMessage, Reply
from appointment_bot.tools.availability import AvailabilityResolver
from appointment_bot.tools.calendar import CalendarPort
from appointment_bot.tools.notifier import NotificationDispatcher, Notifier
from appointment_bot.utils import preview

logger = get_conversation_logger(__name__)

REACTIVATE_COMMAND = re.compile(r"^activate\s+bot(?:\s+(\d{9,15}))?$", re.IGNORECASE)
HELP_COMMAND = re.compile(r"^(help|ayuda)$", re.IGNORECASE)


def strip_group_trigger(text: str, trigger: str) -> Optional[str]:
    """Text after a leading trigger word, or None when the message lacks one.

    The trigger must stand alone: "!psico 1" yields "1", "!psicologia" is None.
    """
    if not text.lower().startswith(trigger):
        return None
    rest = text[len(trigger):]
    if rest and not rest[0].isspace():
        return None
    return rest.strip()


class MessageDispatcher:
    """Routes transport messages into the state machine and sends the replies."""

    def __init__(
        self,
        machine: ConversationStateMachine,
        sessions: SessionStore,
        mutes: MuteRegistry,
        notifier: Notifier,
        config: AppConfig = settings,
        self_id: Optional[str] = None,
    ) -> None:
        self._machine = machine
        self._sessions = sessions
        self._mutes = mutes
        self._notifier = notifier
        self._config = config
        self._self_id = self_id
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_holders: dict[str, int] = {}

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    @property
    def mutes(self) -> MuteRegistry:
        return self._mutes

    @property
    def active_conversations(self) -> int:
        """Conversations with a message currently queued or in progress."""
        return len(self._locks)

    def is_operator(self, conversation_id: str) -> bool:
        messaging = self._config.messaging
        return messaging.admin_configured and conversation_id == messaging.admin_conversation_id

    async def handle(self, message: InboundMessage) -> list[Reply]:
        """Process one inbound message; returns the replies that were sent."""
        conversation_id = message.conversation_id
        set_conversation_id(conversation_id)
        text = (message.text or "").strip()
        logger.debug("Inbound message: %s", preview(text))

        if message.sender_is_self and conversation_id != self._self_id:
            return []
        if conversation_id in self._config.messaging.ignored_conversations:
            logger.debug("Conversation is on the ignore list")
            return []

        if self.is_operator(conversation_id):
            replies = await self._handle_operator_command(text)
            if replies is not None:
                return await self._deliver(conversation_id, replies)

        if message.is_group_context:
            trigger = self._config.messaging.group_trigger
            stripped = strip_group_trigger(text, trigger)
            if stripped is None and not message.mentioned_self:
                return []
            if not stripped:
                logger.debug("Group message without a request after trigger or mention")
                return await self._deliver(
                    conversation_id, [Reply(text=messages.build_group_trigger_hint(trigger))]
                )
            text = stripped

        async with self._conversation_lock(conversation_id):
            # Checked under the conversation lock so a message queued behind
            # the one that triggered a handoff is also silenced.
            if self._mutes.is_muted(conversation_id) and not self.is_operator(conversation_id):
                logger.debug("Conversation muted; message ignored")
                return []

            if len(text) > self._config.messaging.max_input_length:
                return await self._deliver(conversation_id, [Reply(text=messages.INPUT_TOO_LONG)])

            try:
                replies = await self._machine.handle(conversation_id, text)
            except Exception:
                logger.exception("Unhandled error while processing message")
                self._sessions.reset(conversation_id)
                replies = [Reply(text=messages.GENERIC_ERROR)]
            return await self._deliver(conversation_id, replies)

    async def _handle_operator_command(self, text: str) -> Optional[list[Reply]]:
        """Run an operator command; None means the text is not a command."""
        command = REACTIVATE_COMMAND.match(text)
        if command:
            digits = command.group(1)
            if digits is None:
                count = self._mutes.unmute_all()
                logger.info("Operator reactivated the bot for all chats (%d muted)", count)
                return [Reply(text=messages.ADMIN_REACTIVATED_ALL)]

            target = f"{digits}{self._config.messaging.direct_chat_suffix}"
            async with self._conversation_lock(target):
                self._mutes.unmute(target)
                self._sessions.reset(target)
            logger.info("Operator reactivated the bot for %s", target)
            return [Reply(text=messages.build_admin_reactivated(target))]

        if HELP_COMMAND.match(text):
            return [Reply(text=messages.ADMIN_HELP)]
        return None

    async def _deliver(self, conversation_id: str, replies: list[Reply]) -> list[Reply]:
        for reply in replies:
            try:
                if reply.media_path:
                    sent = await self._notifier.send_media(
                        conversation_id, reply.media_path, reply.text
                    )
                    if not sent:
                        logger.warning("Media %s not sent, falling back to text", reply.media_path)
                        sent = await self._notifier.send_text(conversation_id, reply.text)
                else:
                    sent = await self._notifier.send_text(conversation_id, reply.text)
            except Exception as exc:
                logger.error("Reply delivery failed: %s", exc)
                continue
            if not sent:
                logger.error("Reply was not delivered")
        return replies

    @asynccontextmanager
    async def _conversation_lock(self, conversation_id: str) -> AsyncIterator[None]:
        """Serialize work per conversation; the lock is dropped once nobody waits on it."""
        lock = self._locks.setdefault(conversation_id, asyncio.Lock())
        self._lock_holders[conversation_id] = self._lock_holders.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[conversation_id] -= 1
            if not self._lock_holders[conversation_id]:
                del self._lock_holders[conversation_id]
                del self._locks[conversation_id]


def create_dispatcher(
    calendar: CalendarPort,
    notifier: Notifier,
    config: AppConfig = settings,
    self_id: Optional[str] = None,
    clock: Optional[Callable[[], datetime]] = None,
    today: Optional[Callable[[], date]] = None,
) -> MessageDispatcher:
    """Wire the stores, resolver, alerts and state machine around one calendar."""
    store_kwargs = {"clock": clock} if clock else {}
    sessions = SessionStore(**store_kwargs)
    mutes = MuteRegistry(**store_kwargs)
    scheduling = config.scheduling
    messaging = config.messaging
    admin_destination = messaging.admin_conversation_id if messaging.admin_configured else None
    machine = ConversationStateMachine(
        sessions=sessions,
        mutes=mutes,
        resolver=AvailabilityResolver(calendar, scheduling.calendar_id, scheduling.timezone),
        calendar=calendar,
        alerts=NotificationDispatcher(notifier, admin_destination),
        config=config,
        today=today,
    )
    return MessageDispatcher(machine, sessions, mutes, notifier, config=config, self_id=self_id)
