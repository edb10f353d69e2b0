"""
Explicit transition table for the patient dialogue.

Every edge the dialogue may take is listed here with the trigger that causes
it. The state machine resolves each move through this table, so a handler
that tries an undeclared move fails loudly instead of leaving the session in
an unexpected state.

Usage:
    resolve_transition(ConversationState.IDLE, TransitionTrigger.MENU_BOOKING)
    # ConversationState.CITA_NOMBRE
"""

from dataclasses import dataclass
from enum import Enum

from appointment_bot.schemas.session_schema import ConversationState


class TransitionTrigger(str, Enum):
    """Events that cause state transitions."""
    MENU_BOOKING = "menu_booking"
    MENU_EMERGENCY = "menu_emergency"
    MENU_FORGOT = "menu_forgot"
    MENU_THERAPIES = "menu_therapies"
    MENU_BUSINESS = "menu_business"
    NAME_RECEIVED = "name_received"
    DATE_PARSED = "date_parsed"
    DATE_CONFIRMED = "date_confirmed"
    DATE_REJECTED = "date_rejected"
    TIME_PARSED = "time_parsed"
    TIME_REJECTED = "time_rejected"
    POLICY_REJECTED = "policy_rejected"
    SLOT_BUSY = "slot_busy"
    BOOKING_CREATED = "booking_created"
    BOOKING_FAILED = "booking_failed"
    THERAPY_SELECTED = "therapy_selected"
    THERAPY_BOOK = "therapy_book"
    LEAD_ACCEPTED = "lead_accepted"
    LEAD_DECLINED = "lead_declined"
    LEAD_DETAILS_RECEIVED = "lead_details_received"
    FORGOT_NAME_RECEIVED = "forgot_name_received"
    FORGOT_DATE_RECEIVED = "forgot_date_received"
    RESET = "reset"


@dataclass(frozen=True)
class Transition:
    """A single valid state transition."""
    from_state: ConversationState
    to_state: ConversationState
    trigger: TransitionTrigger


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


S = ConversationState
T = TransitionTrigger

TRANSITIONS: list[Transition] = [
    # --- Main menu ---
    Transition(S.IDLE, S.CITA_NOMBRE, T.MENU_BOOKING),
    Transition(S.IDLE, S.HUMANO, T.MENU_EMERGENCY),
    Transition(S.IDLE, S.FORGOT_NAME, T.MENU_FORGOT),
    Transition(S.IDLE, S.THERAPY_TYPE, T.MENU_THERAPIES),
    Transition(S.IDLE, S.EMPRESAS_CONFIRM, T.MENU_BUSINESS),

    # --- Booking: name and date ---
    Transition(S.CITA_NOMBRE, S.CITA_FECHA_FREEFORM, T.NAME_RECEIVED),
    Transition(S.CITA_FECHA_FREEFORM, S.CITA_FECHA_CONFIRM, T.DATE_PARSED),
    Transition(S.CITA_FECHA_CONFIRM, S.CITA_HORA_FREEFORM, T.DATE_CONFIRMED),
    Transition(S.CITA_FECHA_CONFIRM, S.CITA_FECHA_FREEFORM, T.DATE_REJECTED),

    # --- Booking: time ---
    Transition(S.CITA_HORA_FREEFORM, S.CITA_HORA_CONFIRM, T.TIME_PARSED),
    Transition(S.CITA_HORA_CONFIRM, S.CITA_HORA_FREEFORM, T.TIME_REJECTED),

    # --- Booking: final confirmation outcomes ---
    Transition(S.CITA_HORA_CONFIRM, S.CITA_HORA_FREEFORM, T.POLICY_REJECTED),
    Transition(S.CITA_HORA_CONFIRM, S.CITA_FECHA_FREEFORM, T.SLOT_BUSY),
    Transition(S.CITA_HORA_CONFIRM, S.IDLE, T.BOOKING_CREATED),
    Transition(S.CITA_HORA_CONFIRM, S.IDLE, T.BOOKING_FAILED),

    # --- Therapy catalog ---
    Transition(S.THERAPY_TYPE, S.THERAPY_DETAIL, T.THERAPY_SELECTED),
    Transition(S.THERAPY_DETAIL, S.CITA_NOMBRE, T.THERAPY_BOOK),

    # --- Business services ---
    Transition(S.EMPRESAS_CONFIRM, S.EMPRESAS_DATOS, T.LEAD_ACCEPTED),
    Transition(S.EMPRESAS_CONFIRM, S.IDLE, T.LEAD_DECLINED),
    Transition(S.EMPRESAS_DATOS, S.IDLE, T.LEAD_DETAILS_RECEIVED),

    # --- Forgotten appointment ---
    Transition(S.FORGOT_NAME, S.FORGOT_DATE, T.FORGOT_NAME_RECEIVED),
    Transition(S.FORGOT_DATE, S.IDLE, T.FORGOT_DATE_RECEIVED),
]


def get_valid_triggers(state: ConversationState) -> list[TransitionTrigger]:
    """Return all triggers valid from a state (RESET is always valid)."""
    return [t.trigger for t in TRANSITIONS if t.from_state == state] + [T.RESET]


def resolve_transition(state: ConversationState, trigger: TransitionTrigger) -> ConversationState:
    """
    Look up the target state for a trigger.

    Raises:
        InvalidTransitionError: If no transition is declared for the pair.
    """
    if trigger == T.RESET:
        return S.IDLE
    for t in TRANSITIONS:
        if t.from_state == state and t.trigger == trigger:
            return t.to_state

    valid = [t.value for t in get_valid_triggers(state)]
    raise InvalidTransitionError(
        f"No valid transition from '{state.value}' "
        f"with trigger '{trigger.value}'. Valid triggers: {valid}"
    )
