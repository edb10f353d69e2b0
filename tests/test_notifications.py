"""Tests for operator alerts and the console notifier."""

import pytest

from appointment_bot.prompts import messages
from appointment_bot.tools.notifier import ConsoleNotifier, NotificationDispatcher

from tests.conftest import ADMIN_ID, RecordingNotifier


class CountingNotifier(RecordingNotifier):
    def __init__(self):
        super().__init__()
        self.attempts = 0

    async def send_text(self, destination_id, text):
        self.attempts += 1
        return await super().send_text(destination_id, text)


class TestNotificationDispatcher:
    @pytest.mark.asyncio
    async def test_delivers_to_operator(self, notifier):
        alerts = NotificationDispatcher(notifier, ADMIN_ID)
        assert await alerts.notify_admin("hola") is True
        assert notifier.sent == [(ADMIN_ID, "hola")]

    @pytest.mark.asyncio
    async def test_disabled_without_destination(self, notifier):
        alerts = NotificationDispatcher(notifier, "")
        assert not alerts.enabled
        assert await alerts.notify_admin("hola") is False
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_undelivered_is_reported_once(self):
        notifier = CountingNotifier()
        notifier.text_ok = False
        alerts = NotificationDispatcher(notifier, ADMIN_ID)
        assert await alerts.notify_admin("hola") is False
        assert notifier.attempts == 1

    @pytest.mark.asyncio
    async def test_transport_error_swallowed_without_retry(self):
        notifier = CountingNotifier()
        notifier.raise_error = TimeoutError("no route")
        alerts = NotificationDispatcher(notifier, ADMIN_ID)
        assert await alerts.notify_admin("hola") is False
        assert notifier.attempts == 1


class TestConsoleNotifier:
    @pytest.mark.asyncio
    async def test_prints_text_and_media(self):
        lines = []
        notifier = ConsoleNotifier(printer=lines.append)
        assert await notifier.send_text("a@c.us", "hola")
        assert await notifier.send_media("a@c.us", "assets/mapa.png", "Ubicación")
        assert lines == ["[to a@c.us] hola", "[to a@c.us] <assets/mapa.png> Ubicación"]


class TestAlertCopy:
    def test_emergency_alert_has_reactivation_hint(self):
        text = messages.build_emergency_alert("5215512345678@c.us", "5215512345678", 24)
        assert "activate bot 5215512345678" in text
        assert "pausado 24h" in text

    def test_booking_alert_without_event_id(self):
        text = messages.build_booking_alert(
            "a@c.us", "Ana", "2025-08-18", "15:00", "Terapia individual", ""
        )
        assert "Evento ID: N/D" in text

    def test_therapy_detail(self):
        text = messages.build_therapy_detail(
            {"id": "individual", "label": "Terapia individual", "price": 600, "duration_min": 50}
        )
        assert "$600 MXN" in text
        assert "50 minutos" in text
