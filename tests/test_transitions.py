"""Tests for the dialogue transition table."""

import pytest

from appointment_bot.conversation.transitions import (
    TRANSITIONS,
    InvalidTransitionError,
    TransitionTrigger,
    get_valid_triggers,
    resolve_transition,
)
from appointment_bot.schemas.session_schema import ConversationState

S = ConversationState
T = TransitionTrigger


class TestMainMenu:
    @pytest.mark.parametrize("trigger,expected", [
        (T.MENU_BOOKING, S.CITA_NOMBRE),
        (T.MENU_EMERGENCY, S.HUMANO),
        (T.MENU_FORGOT, S.FORGOT_NAME),
        (T.MENU_THERAPIES, S.THERAPY_TYPE),
        (T.MENU_BUSINESS, S.EMPRESAS_CONFIRM),
    ])
    def test_menu_routes(self, trigger, expected):
        assert resolve_transition(S.IDLE, trigger) == expected

    def test_cannot_skip_to_confirmation(self):
        with pytest.raises(InvalidTransitionError, match="No valid transition"):
            resolve_transition(S.IDLE, T.DATE_CONFIRMED)


class TestBookingPath:
    def test_happy_path(self):
        state = S.IDLE
        for trigger in (
            T.MENU_BOOKING, T.NAME_RECEIVED, T.DATE_PARSED, T.DATE_CONFIRMED,
            T.TIME_PARSED, T.BOOKING_CREATED,
        ):
            state = resolve_transition(state, trigger)
        assert state == S.IDLE

    def test_date_rejected_returns_to_freeform(self):
        assert resolve_transition(S.CITA_FECHA_CONFIRM, T.DATE_REJECTED) == S.CITA_FECHA_FREEFORM

    @pytest.mark.parametrize("trigger,expected", [
        (T.TIME_REJECTED, S.CITA_HORA_FREEFORM),
        (T.POLICY_REJECTED, S.CITA_HORA_FREEFORM),
        (T.SLOT_BUSY, S.CITA_FECHA_FREEFORM),
        (T.BOOKING_CREATED, S.IDLE),
        (T.BOOKING_FAILED, S.IDLE),
    ])
    def test_final_confirmation_outcomes(self, trigger, expected):
        assert resolve_transition(S.CITA_HORA_CONFIRM, trigger) == expected


class TestOtherFlows:
    def test_therapy_detail_leads_to_booking(self):
        assert resolve_transition(S.THERAPY_DETAIL, T.THERAPY_BOOK) == S.CITA_NOMBRE

    def test_human_handoff_has_no_exit_but_reset(self):
        assert get_valid_triggers(S.HUMANO) == [T.RESET]


class TestTableIntegrity:
    @pytest.mark.parametrize("state", list(S))
    def test_reset_valid_everywhere(self, state):
        assert T.RESET in get_valid_triggers(state)
        assert resolve_transition(state, T.RESET) == S.IDLE

    def test_no_ambiguous_edges(self):
        keys = [(t.from_state, t.trigger) for t in TRANSITIONS]
        assert len(keys) == len(set(keys))

    def test_every_state_reachable_from_idle(self):
        reachable = {S.IDLE}
        frontier = [S.IDLE]
        while frontier:
            current = frontier.pop()
            for t in TRANSITIONS:
                if t.from_state == current and t.to_state not in reachable:
                    reachable.add(t.to_state)
                    frontier.append(t.to_state)
        assert reachable == set(S)
