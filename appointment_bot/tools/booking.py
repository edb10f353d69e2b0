"""
Calendar event creation for confirmed appointments.

The event is written with business-local start/end times and the business
timezone name, so the calendar shows exactly what the patient agreed to.
"""

import logging

from appointment_bot.schemas.booking_schema import AppointmentRequest
from appointment_bot.tools.calendar import CalendarError, CalendarPort, CalendarUnavailableError

logger = logging.getLogger(__name__)


def build_event_summary(request: AppointmentRequest) -> str:
    return f"Cita ({request.service_label}) con {request.requester_name}"


def build_event_description(request: AppointmentRequest) -> str:
    return (
        f"Cita agendada vía WhatsApp ({request.conversation_id}).\n"
        f"Servicio: {request.service_label}\n"
        f"Duración: {request.duration_minutes} minutos"
    )


async def create_appointment(
    calendar: CalendarPort,
    request: AppointmentRequest,
    calendar_id: str,
    timezone_name: str,
) -> str:
    """
    Insert the appointment into the calendar and return the event id.

    Raises:
        CalendarAuthError: Credentials were refused.
        CalendarUnavailableError: Any other failure creating the event.
    """
    try:
        event_id = await calendar.insert_event(
            calendar_id,
            build_event_summary(request),
            build_event_description(request),
            request.start_local,
            request.end_local,
            timezone_name,
        )
    except CalendarError:
        raise
    except Exception as exc:
        raise CalendarUnavailableError(f"Event creation failed: {exc}") from exc

    logger.info(
        "Appointment booked: %s for %s on %s at %s",
        event_id, request.requester_name, request.day, request.start_time,
    )
    return event_id
