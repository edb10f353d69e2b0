"""
Rule-based parsing of free-text dates and times.

Turns what patients actually type ("mañana", "próximo jueves", "17 de agosto",
"3 pm", "medio día") into ISO values. Rules are tried in priority order and
the first match wins; anything unmatched returns ``None`` so the caller can
ask again.

Relative dates are anchored to "today" in the business timezone, never the
process's local clock.

Usage:
    parse_date("próximo jueves", reference=date(2025, 8, 11))
    # ParsedDate(iso='2025-08-14', readable='próximo jueves')
    parse_time("3")
    # ParsedTime(iso='15:00', readable='15:00')
"""

import logging
import re
from datetime import date, datetime, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

from appointment_bot.config import settings
from appointment_bot.schemas.booking_schema import ParsedDate, ParsedTime
from appointment_bot.utils import normalize_text

logger = logging.getLogger(__name__)

# Longest phrases first so "pasado mañana" wins over "mañana".
RELATIVE_DAYS: list[tuple[str, int]] = [
    (r"pasado\s+ma[ñn]ana", 2),
    (r"day\s+after\s+tomorrow", 2),
    (r"hoy", 0),
    (r"today", 0),
    (r"ma[ñn]ana", 1),
    (r"tomorrow", 1),
]

WEEKDAYS: dict[str, int] = {
    "lunes": 0, "martes": 1, "miércoles": 2, "miercoles": 2, "jueves": 3,
    "viernes": 4, "sábado": 5, "sabado": 5, "domingo": 6,
    "monday": 0, "tuesday": 1, "wednesday": 2, "thursday": 3,
    "friday": 4, "saturday": 5, "sunday": 6,
}

MONTHS: dict[str, int] = {
    "enero": 1, "febrero": 2, "marzo": 3, "abril": 4, "mayo": 5, "junio": 6,
    "julio": 7, "agosto": 8, "septiembre": 9, "setiembre": 9, "octubre": 10,
    "noviembre": 11, "diciembre": 12,
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11,
    "december": 12,
}

WEEKDAY_QUALIFIERS = ("próximo", "proximo", "próxima", "proxima", "este", "esta", "el", "next", "this")

_WEEKDAY_RE = re.compile(
    r"\b(?:(" + "|".join(WEEKDAY_QUALIFIERS) + r")\s+)?("
    + "|".join(sorted(WEEKDAYS, key=len, reverse=True)) + r")\b"
)
_NUMERIC_RE = re.compile(r"\b(\d{1,2})[/\-](\d{1,2})(?:[/\-](\d{4}))?\b")
_MONTH_NAME_RE = re.compile(
    r"\b(\d{1,2})\s+(?:de|of)\s+(" + "|".join(sorted(MONTHS, key=len, reverse=True))
    + r")(?:\s+(?:de|of)\s+(\d{4}))?\b"
)

_MIDDAY_RE = re.compile(r"\b(medio ?d[ií]a|mediod[ií]a|midday|noon)\b")
_MIDNIGHT_RE = re.compile(r"\b(media ?noche|medianoche|midnight)\b")
_MERIDIEM_RE = re.compile(r"\b(\d{1,2})(?::(\d{1,2}))?\s*(am|pm)\b")
_CLOCK_RE = re.compile(r"\b(\d{1,2}):(\d{2})\b")
_BARE_HOUR_RE = re.compile(r"\b(\d{1,2})\b")


def today_in(tz: Union[str, ZoneInfo, None] = None) -> date:
    """Current civil date in the given (or configured) timezone."""
    if tz is None:
        tz = settings.scheduling.timezone
    zone = tz if isinstance(tz, ZoneInfo) else ZoneInfo(tz)
    return datetime.now(zone).date()


def _build_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _roll_forward(day: int, month: int, explicit_year: Optional[str], reference: date) -> Optional[date]:
    """Resolve a day/month pair, moving yearless dates in the past to next year."""
    if explicit_year:
        return _build_date(int(explicit_year), month, day)
    candidate = _build_date(reference.year, month, day)
    if candidate is not None and candidate < reference:
        candidate = _build_date(reference.year + 1, month, day)
    return candidate


def parse_date(
    text: str,
    reference: Optional[date] = None,
    tz: Union[str, ZoneInfo, None] = None,
) -> Optional[ParsedDate]:
    """
    Interpret a free-text date.

    Args:
        text: What the patient typed.
        reference: "Today" for relative terms; defaults to today in ``tz``.
        tz: Business timezone; defaults to the configured one.

    Returns:
        The parsed date, or None when no rule matched.
    """
    txt = normalize_text(text)
    if not txt:
        return None
    base = reference or today_in(tz)

    for pattern, offset in RELATIVE_DAYS:
        match = re.search(r"\b" + pattern + r"\b", txt)
        if match:
            resolved = base + timedelta(days=offset)
            return ParsedDate(iso=resolved.isoformat(), readable=match.group(0))

    match = _WEEKDAY_RE.search(txt)
    if match:
        qualifier, weekday_name = match.group(1), match.group(2)
        delta = (WEEKDAYS[weekday_name] - base.weekday()) % 7
        # Same weekday as today always means next week, whatever the qualifier.
        if delta == 0:
            delta = 7
        resolved = base + timedelta(days=delta)
        readable = f"{qualifier} {weekday_name}" if qualifier else weekday_name
        return ParsedDate(iso=resolved.isoformat(), readable=readable)

    match = _NUMERIC_RE.search(txt)
    if match:
        day, month, year = int(match.group(1)), int(match.group(2)), match.group(3)
        resolved = _roll_forward(day, month, year, base)
        if resolved is None:
            logger.debug("Numeric date out of range: %r", match.group(0))
            return None
        readable = f"{day}/{month}/{year}" if year else f"{day}/{month}"
        return ParsedDate(iso=resolved.isoformat(), readable=readable)

    match = _MONTH_NAME_RE.search(txt)
    if match:
        day, month_name, year = int(match.group(1)), match.group(2), match.group(3)
        resolved = _roll_forward(day, MONTHS[month_name], year, base)
        if resolved is None:
            logger.debug("Named-month date out of range: %r", match.group(0))
            return None
        readable = f"{day} de {month_name}" + (f" de {year}" if year else "")
        return ParsedDate(iso=resolved.isoformat(), readable=readable)

    return None


def _clock(hour: int, minute: int) -> ParsedTime:
    iso = f"{hour:02d}:{minute:02d}"
    return ParsedTime(iso=iso, readable=iso)


def parse_time(text: str) -> Optional[ParsedTime]:
    """
    Interpret a free-text time of day.

    A bare hour from 1 to 11 is read as afternoon ("3" is 15:00), since
    appointments are booked during business hours.

    Returns:
        The parsed time, or None when no rule matched or the value is out of range.
    """
    t = normalize_text(text).replace(".", "")
    if not t:
        return None

    if _MIDDAY_RE.search(t):
        return ParsedTime(iso="12:00", readable="mediodía")
    if _MIDNIGHT_RE.search(t):
        return ParsedTime(iso="00:00", readable="medianoche")

    match = _MERIDIEM_RE.search(t)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2) or 0)
        suffix = match.group(3)
        if hour == 12 and suffix == "am":
            hour = 0
        elif hour != 12 and suffix == "pm":
            hour += 12
        if hour > 23 or minute > 59:
            return None
        return _clock(hour, minute)

    match = _CLOCK_RE.search(t)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour > 23 or minute > 59:
            return None
        return _clock(hour, minute)

    match = _BARE_HOUR_RE.search(t)
    if match:
        hour = int(match.group(1))
        if 0 <= hour <= 23:
            if 1 <= hour <= 11:
                hour += 12
            return _clock(hour, 0)

    return None
