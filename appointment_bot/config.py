"""
Centralized configuration with environment variable overrides.

Clinic copy, scheduling rules, calendar credentials, messaging settings and
the therapy price/duration table all live here. Nothing is hardcoded in the
dialogue or tool logic.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from appointment_bot.logging_context import configure_logging

load_dotenv()

logger = logging.getLogger(__name__)

MIN_ADMIN_DIGITS = 9

DEFAULT_THERAPY_CONFIG: dict[str, dict] = {
    "individual": {"price": 600, "duration_min": 50, "label": "Terapia individual"},
    "pareja": {"price": 850, "duration_min": 70, "label": "Terapia de pareja"},
    "adolescentes": {
        "price": 650,
        "duration_min": 55,
        "label": "Terapia para adolescentes (15+)",
    },
}


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_time(env_var: str, default: str) -> time:
    """Parse an HH:MM time of day from an env var."""
    raw = os.getenv(env_var, default)
    try:
        return time.fromisoformat(raw.strip())
    except (ValueError, AttributeError):
        raise ValueError(
            f"Invalid HH:MM time for {env_var}: {raw!r}"
        ) from None


def _digits_env(env_var: str) -> str:
    return re.sub(r"\D", "", os.getenv(env_var, ""))


def _list_env(env_var: str) -> tuple[str, ...]:
    raw = os.getenv(env_var, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _load_therapy_config() -> dict[str, dict]:
    """Merge THERAPY_CONFIG (JSON) per therapy key over the defaults."""
    merged = {key: dict(value) for key, value in DEFAULT_THERAPY_CONFIG.items()}
    raw = os.getenv("THERAPY_CONFIG")
    if not raw:
        return merged
    try:
        overrides = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("THERAPY_CONFIG is not valid JSON, using defaults: %s", exc)
        return merged
    if not isinstance(overrides, dict):
        logger.warning("THERAPY_CONFIG must be a JSON object, using defaults")
        return merged
    for key in merged:
        if isinstance(overrides.get(key), dict):
            merged[key].update(overrides[key])
    return merged


@dataclass(frozen=True)
class ClinicConfig:
    """Clinic details echoed back to patients."""

    name: str = os.getenv("CLINIC_NAME", "No disponible.")
    address: str = os.getenv("CLINIC_ADDRESS", "No disponible.")
    maps_url: str = os.getenv("CLINIC_MAPS_URL", "No disponible.")
    hours: str = os.getenv("CLINIC_HOURS", "No disponible.")
    emergency_note: str = os.getenv("EMERGENCY_NOTE", "No disponible.")
    location_image: str = os.getenv("LOCATION_IMAGE", "assets/Ubicacion.png")


@dataclass(frozen=True)
class SchedulingConfig:
    """Business timezone, calendar target and opening hours."""

    timezone: str = os.getenv("TIMEZONE", "America/Mexico_City")
    calendar_id: str = os.getenv("GOOGLE_CALENDAR_ID", "primary")
    weekday_open: time = _safe_time("WEEKDAY_OPEN", "10:00")
    weekday_close: time = _safe_time("WEEKDAY_CLOSE", "18:00")
    saturday_open: time = _safe_time("SATURDAY_OPEN", "10:00")
    saturday_close: time = _safe_time("SATURDAY_CLOSE", "15:00")
    default_therapy: str = os.getenv("DEFAULT_THERAPY", "individual")
    therapies: dict[str, dict] = field(default_factory=_load_therapy_config)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class GoogleConfig:
    """OAuth client credentials for the Google Calendar adapter."""

    client_id: str = os.getenv("GOOGLE_CLIENT_ID", "")
    client_secret: str = os.getenv("GOOGLE_CLIENT_SECRET", "")
    refresh_token: str = os.getenv("GOOGLE_REFRESH_TOKEN", "")
    token_uri: str = os.getenv("GOOGLE_TOKEN_URI", "https://oauth2.googleapis.com/token")

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.refresh_token)


@dataclass(frozen=True)
class MessagingConfig:
    """Transport-facing settings: operator number, group trigger, handoff mute."""

    admin_number: str = _digits_env("ADMIN_NUMBER")
    group_trigger: str = os.getenv("GROUP_TRIGGER", "!psico").strip().lower()
    direct_chat_suffix: str = os.getenv("DIRECT_CHAT_SUFFIX", "@c.us")
    ignored_conversations: tuple[str, ...] = _list_env("IGNORED_CONVERSATIONS")
    mute_hours: float = _safe_float("MUTE_HOURS", "24")
    max_input_length: int = _safe_int("MAX_INPUT_LENGTH", "500")

    @property
    def admin_configured(self) -> bool:
        return len(self.admin_number) >= MIN_ADMIN_DIGITS

    @property
    def admin_conversation_id(self) -> str:
        return f"{self.admin_number}{self.direct_chat_suffix}" if self.admin_number else ""


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    clinic: ClinicConfig = field(default_factory=ClinicConfig)
    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    google: GoogleConfig = field(default_factory=GoogleConfig)
    messaging: MessagingConfig = field(default_factory=MessagingConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    sched = config.scheduling
    try:
        ZoneInfo(sched.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"TIMEZONE is not a known IANA zone: {sched.timezone!r}") from None

    if sched.weekday_open >= sched.weekday_close:
        raise ValueError(
            f"WEEKDAY_OPEN must be before WEEKDAY_CLOSE, "
            f"got {sched.weekday_open} >= {sched.weekday_close}"
        )
    if sched.saturday_open >= sched.saturday_close:
        raise ValueError(
            f"SATURDAY_OPEN must be before SATURDAY_CLOSE, "
            f"got {sched.saturday_open} >= {sched.saturday_close}"
        )
    if sched.default_therapy not in sched.therapies:
        raise ValueError(
            f"DEFAULT_THERAPY must be one of {sorted(sched.therapies)}, "
            f"got {sched.default_therapy!r}"
        )

    for key, therapy in sched.therapies.items():
        for attr in ("price", "duration_min"):
            value = therapy.get(attr)
            if not isinstance(value, (int, float)) or value <= 0:
                raise ValueError(
                    f"THERAPY_CONFIG.{key}.{attr} must be a positive number, got {value!r}"
                )

    if config.messaging.mute_hours <= 0:
        raise ValueError(f"MUTE_HOURS must be > 0, got {config.messaging.mute_hours}")
    if config.messaging.max_input_length < 1:
        raise ValueError(
            f"MAX_INPUT_LENGTH must be >= 1, got {config.messaging.max_input_length}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    configure_logging(config.log_level)
    if not config.messaging.admin_configured:
        logger.warning("ADMIN_NUMBER missing or invalid; operator alerts are disabled")
    logger.info("Configuration loaded for '%s'", config.clinic.name)
    return config


# Singleton instance
settings = load_config()
