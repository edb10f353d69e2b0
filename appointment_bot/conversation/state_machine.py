"""
The booking dialogue, one inbound message at a time.

``ConversationStateMachine.handle`` reads the conversation's session, runs the
handler for its current state and returns the replies to send. Every state
change goes through the transition table, and every exit to IDLE clears the
collected data, so a conversation is always either idle or at a well-defined
step it can resume.

Flows:
    booking   IDLE -> CITA_NOMBRE -> CITA_FECHA_FREEFORM <-> CITA_FECHA_CONFIRM
              -> CITA_HORA_FREEFORM <-> CITA_HORA_CONFIRM -> IDLE
    therapies IDLE -> THERAPY_TYPE -> THERAPY_DETAIL (-> CITA_NOMBRE)
    business  IDLE -> EMPRESAS_CONFIRM -> EMPRESAS_DATOS -> IDLE
    forgot    IDLE -> FORGOT_NAME -> FORGOT_DATE -> IDLE
    handoff   IDLE -> HUMANO (muted until expiry or operator release)

Usage:
    machine = ConversationStateMachine(sessions, mutes, resolver, calendar, alerts)
    replies = await machine.handle("5215512345678@c.us", "1")
"""

from datetime import date, timedelta
from typing import Awaitable, Callable, Optional

from appointment_bot.config import AppConfig, settings
from appointment_bot.conversation.datetime_parser import parse_date, parse_time, today_in
from appointment_bot.conversation.intent import (
    Intent,
    MenuOption,
    classify_intent,
    is_menu_request,
    parse_menu_option,
    parse_therapy_choice,
)
from appointment_bot.conversation.mute_registry import MuteRegistry
from appointment_bot.conversation.session_store import SessionStore
from appointment_bot.conversation.slot_policy import is_allowed
from appointment_bot.conversation.transitions import TransitionTrigger, resolve_transition
from appointment_bot.logging_context import get_conversation_logger
from appointment_bot.prompts import messages
from appointment_bot.schemas.booking_schema import AppointmentRequest
from appointment_bot.schemas.session_schema import (
    BookingData,
    BusinessLeadData,
    ConversationState,
    FlowData,
    ForgotData,
    Reply,
    Session,
    TherapyData,
)
from appointment_bot.tools.availability import AvailabilityResolver
from appointment_bot.tools.booking import create_appointment
from appointment_bot.tools.calendar import CalendarAuthError, CalendarError, CalendarPort
from appointment_bot.tools.notifier import NotificationDispatcher
from appointment_bot.tools.services import (
    get_duration_minutes,
    get_therapy_details,
    get_therapy_label,
)
from appointment_bot.utils import only_digits

logger = get_conversation_logger(__name__)

S = ConversationState
T = TransitionTrigger

Handler = Callable[[Session, str], Awaitable[list[Reply]]]


class SessionDataError(Exception):
    """Raised when a state is reached without the flow data it needs."""


_CLEARED_DATE = {"date_text": None, "date_iso": None, "date_readable": None}
_CLEARED_TIME = {"time_text": None, "time_iso": None, "time_readable": None}


def _reply(text: str) -> list[Reply]:
    return [Reply(text=text)]


class ConversationStateMachine:
    """
    Orchestrates the patient dialogue across all flows.

    Holds no per-conversation state itself: sessions live in the injected
    SessionStore and handoff mutes in the MuteRegistry, so one machine serves
    every conversation. Callers must serialize messages per conversation.
    """

    def __init__(
        self,
        sessions: SessionStore,
        mutes: MuteRegistry,
        resolver: AvailabilityResolver,
        calendar: CalendarPort,
        alerts: NotificationDispatcher,
        config: AppConfig = settings,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._sessions = sessions
        self._mutes = mutes
        self._resolver = resolver
        self._calendar = calendar
        self._alerts = alerts
        self._config = config
        self._today = today or (lambda: today_in(config.scheduling.timezone))
        self._handlers: dict[ConversationState, Handler] = {
            S.IDLE: self._on_idle,
            S.CITA_NOMBRE: self._on_name,
            S.CITA_FECHA_FREEFORM: self._on_date,
            S.CITA_FECHA_CONFIRM: self._on_date_confirm,
            S.CITA_HORA_FREEFORM: self._on_time,
            S.CITA_HORA_CONFIRM: self._on_time_confirm,
            S.THERAPY_TYPE: self._on_therapy_type,
            S.THERAPY_DETAIL: self._on_therapy_detail,
            S.EMPRESAS_CONFIRM: self._on_business_confirm,
            S.EMPRESAS_DATOS: self._on_business_details,
            S.FORGOT_NAME: self._on_forgot_name,
            S.FORGOT_DATE: self._on_forgot_date,
            S.HUMANO: self._on_human,
        }

    async def handle(self, conversation_id: str, text: str) -> list[Reply]:
        """Process one message and return the replies for the patient."""
        text = (text or "").strip()

        if is_menu_request(text):
            self._sessions.reset(conversation_id)
            logger.debug("Menu requested; session reset")
            return _reply(messages.WELCOME_MENU)

        session = self._sessions.get(conversation_id)
        logger.debug("Handling message in state %s", session.state.value)
        return await self._handlers[session.state](session, text)

    # ------------------------------------------------------------------ #
    # Transition plumbing
    # ------------------------------------------------------------------ #

    def _advance(
        self,
        session: Session,
        trigger: TransitionTrigger,
        data: Optional[FlowData] = None,
        **patch: Optional[str],
    ) -> Session:
        """Apply a declared transition; entering IDLE always clears the data."""
        target = resolve_transition(session.state, trigger)
        if target == S.IDLE:
            updated = self._sessions.reset(session.conversation_id)
        else:
            updated = self._sessions.set_state(session.conversation_id, target, data=data, **patch)
        logger.debug(
            "State transition: %s -> %s (trigger: %s)",
            session.state.value, target.value, trigger.value,
        )
        return updated

    @staticmethod
    def _booking_data(session: Session) -> BookingData:
        if not isinstance(session.data, BookingData):
            raise SessionDataError(f"State {session.state.value} has no booking data")
        return session.data

    # ------------------------------------------------------------------ #
    # Main menu
    # ------------------------------------------------------------------ #

    async def _on_idle(self, session: Session, text: str) -> list[Reply]:
        option = parse_menu_option(text)
        if option is None:
            return _reply(messages.WELCOME_MENU)

        if option == MenuOption.BOOKING:
            self._advance(
                session, T.MENU_BOOKING,
                data=BookingData(therapy_key=self._config.scheduling.default_therapy),
            )
            return _reply(messages.ASK_NAME)

        if option == MenuOption.LOCATION:
            return [Reply(
                text=messages.LOCATION_COPY,
                media_path=self._config.clinic.location_image,
            )]

        if option == MenuOption.HOURS:
            return _reply(messages.HOURS_COPY)

        if option == MenuOption.EMERGENCY:
            return await self._start_handoff(session)

        if option == MenuOption.FORGOT:
            self._advance(session, T.MENU_FORGOT, data=ForgotData())
            return _reply(messages.FORGOT_ASK_NAME)

        if option == MenuOption.THERAPIES:
            self._advance(session, T.MENU_THERAPIES, data=TherapyData())
            return _reply(messages.THERAPIES_COPY)

        self._advance(session, T.MENU_BUSINESS, data=BusinessLeadData())
        return _reply(messages.BUSINESS_COPY)

    async def _start_handoff(self, session: Session) -> list[Reply]:
        """Mute the bot for this chat, park it in HUMANO and alert the operator."""
        hours = self._config.messaging.mute_hours
        self._mutes.mute(session.conversation_id, timedelta(hours=hours))
        self._advance(session, T.MENU_EMERGENCY)
        logger.info("Human handoff requested; bot paused for %gh", hours)
        await self._alerts.notify_admin(messages.build_emergency_alert(
            session.conversation_id, only_digits(session.conversation_id), hours,
        ))
        return _reply(messages.EMERGENCY_COPY)

    # ------------------------------------------------------------------ #
    # Booking: name, date, time
    # ------------------------------------------------------------------ #

    async def _on_name(self, session: Session, text: str) -> list[Reply]:
        if not text:
            return _reply(messages.ASK_NAME)
        self._booking_data(session)
        self._advance(session, T.NAME_RECEIVED, requester_name=text)
        return _reply(messages.ASK_DATE)

    async def _on_date(self, session: Session, text: str) -> list[Reply]:
        parsed = parse_date(text, reference=self._today(), tz=self._config.scheduling.timezone)
        logger.debug("Parsed date %r -> %s", text, parsed)
        if parsed is None:
            return _reply(messages.DATE_NOT_RECOGNIZED)
        self._advance(
            session, T.DATE_PARSED,
            date_text=text, date_iso=parsed.iso, date_readable=parsed.readable,
        )
        return _reply(messages.build_date_confirmation(parsed.readable, parsed.iso))

    async def _on_date_confirm(self, session: Session, text: str) -> list[Reply]:
        intent = classify_intent(text)
        if intent == Intent.AFFIRMATIVE:
            self._advance(session, T.DATE_CONFIRMED)
            return _reply(messages.ASK_TIME)
        if intent == Intent.NEGATIVE:
            self._advance(session, T.DATE_REJECTED)
            return _reply(messages.ASK_DATE_AGAIN)
        return _reply(messages.ASK_YES_NO)

    async def _on_time(self, session: Session, text: str) -> list[Reply]:
        parsed = parse_time(text)
        logger.debug("Parsed time %r -> %s", text, parsed)
        if parsed is None:
            return _reply(messages.TIME_NOT_RECOGNIZED)
        self._advance(
            session, T.TIME_PARSED,
            time_text=text, time_iso=parsed.iso, time_readable=parsed.readable,
        )
        return _reply(messages.build_time_confirmation(parsed.readable, parsed.iso))

    async def _on_time_confirm(self, session: Session, text: str) -> list[Reply]:
        intent = classify_intent(text)
        if intent == Intent.AFFIRMATIVE:
            return await self._book(session)
        if intent == Intent.NEGATIVE:
            self._advance(session, T.TIME_REJECTED)
            return _reply(messages.ASK_TIME_AGAIN)
        return _reply(messages.ASK_YES_NO)

    # ------------------------------------------------------------------ #
    # Booking: policy, availability, creation
    # ------------------------------------------------------------------ #

    def _build_request(self, session: Session) -> AppointmentRequest:
        data = self._booking_data(session)
        if not (data.requester_name and data.date_iso and data.time_iso):
            raise SessionDataError("Booking confirmed before name, date and time were collected")
        return AppointmentRequest(
            conversation_id=session.conversation_id,
            requester_name=data.requester_name,
            day=date.fromisoformat(data.date_iso),
            start_time=data.time_iso,
            service_type=data.therapy_key,
            service_label=get_therapy_label(data.therapy_key, self._config.scheduling),
            duration_minutes=get_duration_minutes(data.therapy_key, self._config.scheduling),
        )

    async def _book(self, session: Session) -> list[Reply]:
        request = self._build_request(session)
        scheduling = self._config.scheduling

        decision = is_allowed(request.day, request.start_time, scheduling)
        if not decision.ok:
            self._advance(session, T.POLICY_REJECTED, **_CLEARED_TIME)
            return _reply(messages.build_policy_rejection(decision.reason or ""))

        try:
            free = await self._resolver.is_free(
                request.day, request.start_time, request.duration_minutes
            )
            if not free:
                logger.info("Slot %s %s is busy", request.day, request.start_time)
                self._advance(session, T.SLOT_BUSY, **_CLEARED_DATE, **_CLEARED_TIME)
                return _reply(messages.SLOT_BUSY)
            event_id = await create_appointment(
                self._calendar, request, scheduling.calendar_id, scheduling.timezone
            )
        except CalendarAuthError as exc:
            logger.error("Calendar authorization failure: %s", exc)
            self._advance(session, T.BOOKING_FAILED)
            return _reply(messages.CALENDAR_AUTH_FAILURE)
        except CalendarError as exc:
            logger.error("Calendar failure: %s", exc)
            self._advance(session, T.BOOKING_FAILED)
            return _reply(messages.CALENDAR_TRANSIENT_FAILURE)

        self._advance(session, T.BOOKING_CREATED)
        date_iso, time_iso = request.day.isoformat(), f"{request.start_time:%H:%M}"
        await self._alerts.notify_admin(messages.build_booking_alert(
            session.conversation_id, request.requester_name, date_iso, time_iso,
            request.service_label, event_id,
        ))
        return _reply(messages.build_booking_confirmation(date_iso, time_iso))

    # ------------------------------------------------------------------ #
    # Therapy catalog
    # ------------------------------------------------------------------ #

    async def _on_therapy_type(self, session: Session, text: str) -> list[Reply]:
        therapy_key = parse_therapy_choice(text)
        details = (
            get_therapy_details(therapy_key, self._config.scheduling) if therapy_key else None
        )
        if details is None:
            return _reply(messages.THERAPY_CHOOSE)
        self._advance(session, T.THERAPY_SELECTED, therapy_key=therapy_key)
        return _reply(messages.build_therapy_detail(details))

    async def _on_therapy_detail(self, session: Session, text: str) -> list[Reply]:
        if text != MenuOption.BOOKING.value:
            return _reply(messages.THERAPY_NUDGE)
        therapy_key = (
            session.data.therapy_key
            if isinstance(session.data, TherapyData) and session.data.therapy_key
            else self._config.scheduling.default_therapy
        )
        self._advance(session, T.THERAPY_BOOK, data=BookingData(therapy_key=therapy_key))
        return _reply(messages.ASK_NAME_FROM_THERAPY)

    # ------------------------------------------------------------------ #
    # Business services
    # ------------------------------------------------------------------ #

    async def _on_business_confirm(self, session: Session, text: str) -> list[Reply]:
        intent = classify_intent(text)
        if intent == Intent.AFFIRMATIVE:
            self._advance(session, T.LEAD_ACCEPTED)
            return _reply(messages.BUSINESS_ASK_DETAILS)
        if intent == Intent.NEGATIVE:
            self._advance(session, T.LEAD_DECLINED)
            return _reply(messages.BUSINESS_DECLINED)
        return _reply(messages.ASK_YES_NO)

    async def _on_business_details(self, session: Session, text: str) -> list[Reply]:
        await self._alerts.notify_admin(
            messages.build_business_lead_alert(session.conversation_id, text)
        )
        self._advance(session, T.LEAD_DETAILS_RECEIVED)
        return _reply(messages.BUSINESS_THANKS)

    # ------------------------------------------------------------------ #
    # Forgotten appointment / meeting link
    # ------------------------------------------------------------------ #

    async def _on_forgot_name(self, session: Session, text: str) -> list[Reply]:
        self._advance(session, T.FORGOT_NAME_RECEIVED, name=text)
        return _reply(messages.FORGOT_ASK_DATE)

    async def _on_forgot_date(self, session: Session, text: str) -> list[Reply]:
        name = session.data.name if isinstance(session.data, ForgotData) else None
        await self._alerts.notify_admin(messages.build_forgot_alert(
            session.conversation_id, name or "N/D", text.lower(),
        ))
        self._advance(session, T.FORGOT_DATE_RECEIVED)
        return _reply(messages.FORGOT_THANKS)

    # ------------------------------------------------------------------ #
    # Human handoff
    # ------------------------------------------------------------------ #

    async def _on_human(self, session: Session, text: str) -> list[Reply]:
        return _reply(messages.HUMAN_ACK)
