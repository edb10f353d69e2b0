"""Tests for configuration loading and validation."""

import json
from dataclasses import replace
from datetime import time

import pytest

from appointment_bot.config import (
    DEFAULT_THERAPY_CONFIG,
    AppConfig,
    MessagingConfig,
    SchedulingConfig,
    _load_therapy_config,
    _validate_config,
)


def with_scheduling(**overrides) -> AppConfig:
    config = AppConfig()
    return replace(config, scheduling=replace(config.scheduling, **overrides))


def with_messaging(**overrides) -> AppConfig:
    config = AppConfig()
    return replace(config, messaging=replace(config.messaging, **overrides))


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        _validate_config(AppConfig())  # should not raise

    def test_unknown_timezone(self):
        with pytest.raises(ValueError, match="TIMEZONE"):
            _validate_config(with_scheduling(timezone="Mars/Olympus_Mons"))

    def test_weekday_hours_reversed(self):
        with pytest.raises(ValueError, match="WEEKDAY_OPEN"):
            _validate_config(with_scheduling(weekday_open=time(18, 0), weekday_close=time(10, 0)))

    def test_saturday_hours_empty(self):
        with pytest.raises(ValueError, match="SATURDAY_OPEN"):
            _validate_config(with_scheduling(saturday_open=time(12, 0), saturday_close=time(12, 0)))

    def test_unknown_default_therapy(self):
        with pytest.raises(ValueError, match="DEFAULT_THERAPY"):
            _validate_config(with_scheduling(default_therapy="grupal"))

    def test_non_positive_duration(self):
        therapies = {key: dict(value) for key, value in DEFAULT_THERAPY_CONFIG.items()}
        therapies["pareja"]["duration_min"] = 0
        with pytest.raises(ValueError, match="THERAPY_CONFIG.pareja.duration_min"):
            _validate_config(with_scheduling(therapies=therapies))

    def test_non_positive_mute(self):
        with pytest.raises(ValueError, match="MUTE_HOURS"):
            _validate_config(with_messaging(mute_hours=0))

    def test_zero_input_length(self):
        with pytest.raises(ValueError, match="MAX_INPUT_LENGTH"):
            _validate_config(with_messaging(max_input_length=0))

    def test_safe_int_parsing(self):
        from appointment_bot.config import _safe_int

        assert _safe_int("NONEXISTENT_VAR_12345", "42") == 42

    def test_safe_int_rejects_garbage(self, monkeypatch):
        from appointment_bot.config import _safe_int

        monkeypatch.setenv("BOT_TEST_INT", "many")
        with pytest.raises(ValueError, match="BOT_TEST_INT"):
            _safe_int("BOT_TEST_INT", "1")

    def test_safe_float_parsing(self):
        from appointment_bot.config import _safe_float

        assert _safe_float("NONEXISTENT_VAR_12345", "0.5") == pytest.approx(0.5)

    def test_safe_time_parsing(self, monkeypatch):
        from appointment_bot.config import _safe_time

        assert _safe_time("NONEXISTENT_VAR_12345", "09:30") == time(9, 30)
        monkeypatch.setenv("BOT_TEST_TIME", "nueve")
        with pytest.raises(ValueError, match="BOT_TEST_TIME"):
            _safe_time("BOT_TEST_TIME", "10:00")


class TestTherapyConfig:
    def test_defaults_without_env(self, monkeypatch):
        monkeypatch.delenv("THERAPY_CONFIG", raising=False)
        assert _load_therapy_config() == DEFAULT_THERAPY_CONFIG

    def test_override_merges_per_key(self, monkeypatch):
        monkeypatch.setenv("THERAPY_CONFIG", json.dumps({"pareja": {"price": 900}}))
        therapies = _load_therapy_config()
        assert therapies["pareja"] == {
            "price": 900, "duration_min": 70, "label": "Terapia de pareja",
        }
        assert therapies["individual"] == DEFAULT_THERAPY_CONFIG["individual"]

    def test_unknown_keys_ignored(self, monkeypatch):
        monkeypatch.setenv("THERAPY_CONFIG", json.dumps({"grupal": {"price": 300}}))
        assert set(_load_therapy_config()) == set(DEFAULT_THERAPY_CONFIG)

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]"])
    def test_bad_json_falls_back(self, monkeypatch, raw):
        monkeypatch.setenv("THERAPY_CONFIG", raw)
        assert _load_therapy_config() == DEFAULT_THERAPY_CONFIG

    def test_defaults_not_mutated(self, monkeypatch):
        monkeypatch.setenv("THERAPY_CONFIG", json.dumps({"individual": {"price": 1}}))
        _load_therapy_config()
        assert DEFAULT_THERAPY_CONFIG["individual"]["price"] == 600


class TestDerivedValues:
    def test_scheduling_tz(self):
        assert SchedulingConfig(timezone="America/Mexico_City").tz.key == "America/Mexico_City"

    def test_admin_requires_enough_digits(self):
        assert not MessagingConfig(admin_number="12345").admin_configured
        assert not MessagingConfig(admin_number="").admin_configured

    def test_admin_conversation_id(self):
        config = MessagingConfig(admin_number="5215500000000", direct_chat_suffix="@c.us")
        assert config.admin_configured
        assert config.admin_conversation_id == "5215500000000@c.us"
        assert MessagingConfig(admin_number="").admin_conversation_id == ""
