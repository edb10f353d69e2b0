"""
Outbound messaging port and best-effort operator alerts.

The transport implements ``Notifier``. ``NotificationDispatcher`` wraps it for
alerts to the operator: one attempt, failures logged, never retried and never
raised, so an alert problem cannot change what the patient sees.
"""

from typing import Optional, Protocol

from appointment_bot.logging_context import get_conversation_logger

logger = get_conversation_logger(__name__)


class Notifier(Protocol):
    """What the core needs from the messaging transport."""

    async def send_text(self, destination_id: str, text: str) -> bool:
        ...

    async def send_media(self, destination_id: str, media_path: str, caption: str) -> bool:
        ...


class NotificationDispatcher:
    """Delivers operational alerts to the designated operator."""

    def __init__(self, notifier: Notifier, admin_destination: Optional[str]) -> None:
        self._notifier = notifier
        self._admin_destination = admin_destination or None

    @property
    def enabled(self) -> bool:
        return self._admin_destination is not None

    async def notify_admin(self, text: str) -> bool:
        """Send one alert to the operator. Returns whether it was delivered."""
        if not self.enabled:
            logger.warning("No operator destination configured; alert dropped")
            return False
        try:
            delivered = await self._notifier.send_text(self._admin_destination, text)
        except Exception as exc:
            logger.error("Operator alert failed: %s", exc)
            return False
        if not delivered:
            logger.error("Operator alert was not delivered to %s", self._admin_destination)
            return False
        logger.info("Operator alert delivered")
        return True


class ConsoleNotifier:
    """Prints outbound messages; used by the console entry points."""

    def __init__(self, printer=print) -> None:
        self._print = printer

    async def send_text(self, destination_id: str, text: str) -> bool:
        self._print(f"[to {destination_id}] {text}")
        return True

    async def send_media(self, destination_id: str, media_path: str, caption: str) -> bool:
        self._print(f"[to {destination_id}] <{media_path}> {caption}")
        return True
