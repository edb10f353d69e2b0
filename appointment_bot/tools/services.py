"""Therapy catalog with pricing, durations, and labels.

Every lookup takes the ``SchedulingConfig`` whose therapy table applies;
callers without one get the process-wide settings.
"""

import logging
from typing import Optional

from appointment_bot.config import SchedulingConfig, settings

logger = logging.getLogger(__name__)

CURRENCY = "MXN"


def get_therapy_catalog(config: Optional[SchedulingConfig] = None) -> dict[str, dict]:
    """Return the configured therapy table (defaults merged with THERAPY_CONFIG)."""
    return (config or settings.scheduling).therapies


def get_therapy_details(
    therapy_key: str, config: Optional[SchedulingConfig] = None
) -> Optional[dict]:
    """Get label, price and duration for one therapy."""
    info = get_therapy_catalog(config).get(therapy_key)
    if info is None:
        return None
    return {"id": therapy_key, **info}


def get_therapy_label(therapy_key: str, config: Optional[SchedulingConfig] = None) -> str:
    details = get_therapy_details(therapy_key, config)
    return details["label"] if details else therapy_key


def get_duration_minutes(therapy_key: str, config: Optional[SchedulingConfig] = None) -> int:
    """Appointment length for a therapy, falling back to the default therapy."""
    cfg = config or settings.scheduling
    details = get_therapy_details(therapy_key, cfg)
    if details is None:
        logger.warning("Unknown therapy %r, using default duration", therapy_key)
        details = get_therapy_details(cfg.default_therapy, cfg)
    return int(details["duration_min"])
