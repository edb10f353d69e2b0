"""
Intent classification for short patient replies.

Yes/no confirmations, menu requests and numeric menu choices are decided
here from pattern tables, so the rules can be tested without running the
dialogue.
"""

import re
from enum import Enum
from typing import Optional

from appointment_bot.utils import normalize_text


class Intent(str, Enum):
    """What a short reply means to the dialogue."""
    AFFIRMATIVE = "affirmative"
    NEGATIVE = "negative"
    MENU_REQUEST = "menu_request"
    UNRECOGNIZED = "unrecognized"


class MenuOption(str, Enum):
    """Main menu entries, keyed by the digit the patient sends."""
    BOOKING = "1"
    LOCATION = "2"
    HOURS = "3"
    EMERGENCY = "4"
    FORGOT = "5"
    THERAPIES = "6"
    BUSINESS = "7"


MENU_KEYWORDS: frozenset[str] = frozenset({
    "menú", "menu", "salir", "inicio", "cancelar", "cancel",
})

GREETING_PATTERN = re.compile(
    r"\b(hola|buenos d[ií]as|buenas|buenas tardes|buenas noches)\b", re.IGNORECASE
)

YES_PATTERN = re.compile(
    r"\b(si|sí|correcto|confirmo|ok|de acuerdo|así es|asi es|vale|yes)\b", re.IGNORECASE
)

NO_PATTERN = re.compile(
    r"\b(no|negativo|cambiar|no es|otra|equivocado)\b", re.IGNORECASE
)

THERAPY_CHOICES: dict[str, str] = {
    "1": "individual",
    "2": "pareja",
    "3": "adolescentes",
}


def is_menu_request(text: str) -> bool:
    """Menu/cancel keywords and greetings both bring the menu back."""
    normalized = normalize_text(text)
    return normalized in MENU_KEYWORDS or bool(GREETING_PATTERN.search(normalized))


def classify_intent(text: str) -> Intent:
    """
    Classify a reply as yes, no, menu request, or unrecognized.

    When a reply matches both yes and no ("no, no es correcto"), the earliest
    match in the text wins.
    """
    if is_menu_request(text):
        return Intent.MENU_REQUEST

    normalized = normalize_text(text)
    yes = YES_PATTERN.search(normalized)
    no = NO_PATTERN.search(normalized)

    if yes and no:
        return Intent.AFFIRMATIVE if yes.start() < no.start() else Intent.NEGATIVE
    if yes:
        return Intent.AFFIRMATIVE
    if no:
        return Intent.NEGATIVE
    return Intent.UNRECOGNIZED


def parse_menu_option(text: str) -> Optional[MenuOption]:
    """Return the menu entry for an exact single-digit selection."""
    try:
        return MenuOption(text.strip())
    except ValueError:
        return None


def parse_therapy_choice(text: str) -> Optional[str]:
    """Map a 1/2/3 reply to a therapy key."""
    return THERAPY_CHOICES.get(text.strip())
