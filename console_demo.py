"""
Offline console demo: scripted chats against an in-memory calendar.

Runs the real dispatcher, state machine, parsers, slot policy and
availability checks with a printing notifier. No Google credentials and no
network calls needed.

Usage:
    python console_demo.py
    python console_demo.py --scenario conflict
    python console_demo.py --scenario emergency
"""

import argparse
import asyncio
from dataclasses import replace
from datetime import datetime, time, timedelta
from typing import Optional

from appointment_bot.config import AppConfig, settings
from appointment_bot.conversation.datetime_parser import parse_date
from appointment_bot.conversation.dispatcher import MessageDispatcher, create_dispatcher
from appointment_bot.schemas.session_schema import InboundMessage
from appointment_bot.tools.calendar import InMemoryCalendar

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

PATIENT_ID = "5215512345678@c.us"
DEMO_OPERATOR = "5215500000000"


class ColorNotifier:
    """Prints bot replies and operator alerts in different colors."""

    def __init__(self, operator_id: str) -> None:
        self._operator_id = operator_id

    async def send_text(self, destination_id: str, text: str) -> bool:
        if destination_id == self._operator_id:
            print(f"{YELLOW}{BOLD}[Alerta -> operador]{RESET} {YELLOW}{text}{RESET}")
        else:
            print(f"{GREEN}{BOLD}[Bot]{RESET} {GREEN}{text}{RESET}")
        return True

    async def send_media(self, destination_id: str, media_path: str, caption: str) -> bool:
        print(f"{GREEN}{BOLD}[Bot]{RESET} {DIM}<imagen {media_path}>{RESET}")
        return await self.send_text(destination_id, caption)


def _demo_config() -> AppConfig:
    """Settings with an operator number, so alerts show up in the demo."""
    if settings.messaging.admin_configured:
        return settings
    return replace(settings, messaging=replace(settings.messaging, admin_number=DEMO_OPERATOR))


class ConsoleSession:
    """Drives the dispatcher from the terminal or from a script."""

    SCENARIOS: dict[str, list[str]] = {
        "booking": [
            "hola",
            "1",
            "Ana López",
            "próximo martes",
            "sí",
            "4 pm",
            "sí",
        ],
        "conflict": [
            "1",
            "Ana López",
            "próximo martes",
            "sí",
            "4:30 pm",
            "sí",
            "próximo miércoles",
            "si",
            "4:30 pm",
            "si",
        ],
        "policy": [
            "1",
            "Ana López",
            "próximo sábado",
            "sí",
            "5 pm",
            "sí",
            "12",
            "sí",
        ],
        "therapies": [
            "6",
            "2",
            "1",
            "Ana y Luis",
            "mañana",
            "no",
            "menú",
        ],
        "emergency": [
            "4",
            "¿Sigue ahí el bot?",
            "@operator activate bot 5215512345678",
            "hola",
        ],
    }

    def __init__(self) -> None:
        self.config = _demo_config()
        self.calendar = InMemoryCalendar(self.config.scheduling.timezone)
        self.operator_id = self.config.messaging.admin_conversation_id
        self.dispatcher: MessageDispatcher = create_dispatcher(
            self.calendar, ColorNotifier(self.operator_id), config=self.config
        )
        self._seed_calendar()

    def _seed_calendar(self) -> None:
        """Block next Tuesday 16:00-17:00 so the conflict scenario hits it."""
        tuesday = parse_date("próximo martes", tz=self.config.scheduling.timezone)
        start = datetime.combine(tuesday.value, time(16, 0))
        self.calendar.add_busy(start, start + timedelta(hours=1))

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    async def send(self, text: str, conversation_id: Optional[str] = None) -> None:
        conversation_id = conversation_id or PATIENT_ID
        sender = "Operador" if conversation_id == self.operator_id else "Paciente"
        print(f"\n{BLUE}[{sender}] {RESET}{text}")
        replies = await self.dispatcher.handle(
            InboundMessage(conversation_id=conversation_id, text=text)
        )
        if not replies:
            self.system_log("(sin respuesta)")
        self.system_log(f"State: {self.dispatcher.sessions.get(PATIENT_ID).state.value}")

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  APPOINTMENT BOT - {title}{RESET}")
        print(f"{BOLD}  Clínica: {self.config.clinic.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    async def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted chat."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        for step in steps:
            if step.startswith("@operator "):
                await self.send(step.removeprefix("@operator "), self.operator_id)
            else:
                await self.send(step)

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        for event in self.calendar.events:
            print(f"{DIM}  Event: {event.summary} {event.start:%Y-%m-%d %H:%M}-{event.end:%H:%M}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    async def run(self) -> None:
        self._banner("Console Demo")
        print(f"{BOLD}  Type 'quit' to exit, prefix with '@operator ' to act as operator{RESET}")
        while True:
            user_input = (await asyncio.to_thread(input, f"\n{BLUE}> {RESET}")).strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                return
            if user_input.startswith("@operator "):
                await self.send(user_input.removeprefix("@operator "), self.operator_id)
            else:
                await self.send(user_input)


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        asyncio.run(session.run_scenario(args.scenario))
    else:
        asyncio.run(session.run())


if __name__ == "__main__":
    main()
