"""Business-hours rules for candidate appointment slots.

Checked before any calendar query so an out-of-hours request gets a precise
reason instead of a wasted availability lookup.
"""

import logging
from dataclasses import dataclass
from datetime import date, time
from typing import Optional, Union

from appointment_bot.config import SchedulingConfig, settings

logger = logging.getLogger(__name__)

SATURDAY = 5
SUNDAY = 6

DAY_LABELS = {SATURDAY: "Los sábados"}
WEEKDAY_LABEL = "De lunes a viernes"


@dataclass(frozen=True)
class SlotDecision:
    """Outcome of a business-hours check."""
    ok: bool
    reason: Optional[str] = None


def _as_date(value: Union[str, date]) -> date:
    return value if isinstance(value, date) else date.fromisoformat(value)


def _as_time(value: Union[str, time]) -> time:
    return value if isinstance(value, time) else time.fromisoformat(value)


def is_allowed(
    day: Union[str, date],
    start: Union[str, time],
    config: Optional[SchedulingConfig] = None,
) -> SlotDecision:
    """
    Check a civil date/time against opening hours.

    ``day`` is already a date in the business timezone, so its weekday is the
    weekday the clinic sees. Both opening and closing times are inclusive.
    """
    cfg = config or settings.scheduling
    day, start = _as_date(day), _as_time(start)
    weekday = day.weekday()

    if weekday == SUNDAY:
        return SlotDecision(ok=False, reason="Los domingos no hay consulta.")

    if weekday == SATURDAY:
        opens, closes = cfg.saturday_open, cfg.saturday_close
    else:
        opens, closes = cfg.weekday_open, cfg.weekday_close

    if opens <= start <= closes:
        return SlotDecision(ok=True)

    logger.debug("Slot %s %s outside hours %s-%s", day, start, opens, closes)
    return SlotDecision(
        ok=False,
        reason=(
            f"{DAY_LABELS.get(weekday, WEEKDAY_LABEL)} atendemos "
            f"de {opens:%H:%M} a {closes:%H:%M}."
        ),
    )
