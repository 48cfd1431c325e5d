"""Unit tests for scrobble_dedup/config.py."""

from __future__ import annotations

from datetime import date

import pytest

from scrobble_dedup.config import Settings
from scrobble_dedup.errors import ConfigurationError
from tests.fakes import make_settings

ENV_VARS = [
    "LASTFM_USER",
    "LASTFM_PASSWORD",
    "DELETE",
    "START_PAGE",
    "DATE_FROM",
    "DATE_TO",
    "DUPLICATE_THRESHOLD",
    "COMPLETE_THRESHOLD",
    "CACHE_TYPE",
    "CACHE_FILE",
    "CACHE_FLUSH_INTERVAL",
    "REDIS_URL",
    "DATA_DIR",
    "LOG_LEVEL",
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
    "REQUEST_TIMEOUT",
    "MUSICBRAINZ_MAX_RETRIES",
    "PAGE_MAX_RETRIES",
    "DELETE_MAX_RETRIES",
]


@pytest.fixture
def env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LASTFM_USER", "listener")
    monkeypatch.setenv("LASTFM_PASSWORD", "secret")
    return monkeypatch


class TestFromEnv:
    def test_defaults(self, env) -> None:
        settings = Settings.from_env()

        assert settings.lastfm_user == "listener"
        assert settings.dry_run is True
        assert settings.duplicate_threshold == 90
        assert settings.complete_threshold == 0
        assert settings.cache_type == "file"
        assert settings.start_page == 0
        assert settings.date_from is None
        assert settings.telegram_enabled is False
        settings.validate()

    def test_values_read(self, env, tmp_path) -> None:
        env.setenv("DELETE", "true")
        env.setenv("DATE_FROM", "01-02-2024")
        env.setenv("DATE_TO", "29-02-2024")
        env.setenv("DUPLICATE_THRESHOLD", "75")
        env.setenv("COMPLETE_THRESHOLD", "40")
        env.setenv("CACHE_TYPE", "Redis")
        env.setenv("REDIS_URL", "redis://cache:6379/0")
        env.setenv("DATA_DIR", str(tmp_path))
        env.setenv("LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert settings.delete is True
        assert settings.dry_run is False
        assert settings.date_from == date(2024, 2, 1)
        assert settings.date_to == date(2024, 2, 29)
        assert settings.duplicate_threshold == 75
        assert settings.complete_threshold == 40
        assert settings.cache_type == "redis"
        assert settings.cache_file == str(tmp_path / "cache.db")
        assert settings.log_level == "DEBUG"
        settings.validate()

    def test_malformed_tuning_number_uses_default(self, env) -> None:
        env.setenv("REQUEST_TIMEOUT", "soon")
        env.setenv("PAGE_MAX_RETRIES", "many")
        settings = Settings.from_env()
        assert settings.request_timeout == 30.0
        assert settings.page_max_retries == 3

    @pytest.mark.parametrize(
        "name, value",
        [
            ("DUPLICATE_THRESHOLD", "92.5"),
            ("DUPLICATE_THRESHOLD", "ninety"),
            ("COMPLETE_THRESHOLD", "5O"),
            ("START_PAGE", "last"),
        ],
    )
    def test_malformed_threshold_or_page_rejected(self, env, name, value) -> None:
        env.setenv(name, value)
        with pytest.raises(ConfigurationError, match=name):
            Settings.from_env()

    def test_blank_threshold_uses_default(self, env) -> None:
        env.setenv("DUPLICATE_THRESHOLD", " ")
        assert Settings.from_env().duplicate_threshold == 90

    def test_malformed_date_rejected(self, env) -> None:
        env.setenv("DATE_FROM", "2024-02-01")
        with pytest.raises(ConfigurationError, match="DD-MM-YYYY"):
            Settings.from_env()

    def test_credentials_required(self, env) -> None:
        env.delenv("LASTFM_PASSWORD")
        with pytest.raises(ConfigurationError):
            Settings.from_env()

    def test_unknown_log_level_falls_back(self, env) -> None:
        env.setenv("LOG_LEVEL", "chatty")
        assert Settings.from_env().log_level == "INFO"


class TestValidate:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"duplicate_threshold": 101},
            {"duplicate_threshold": -1},
            {"complete_threshold": 150},
            {"start_page": -2},
            {"start_page": 3, "date_from": date(2024, 1, 1)},
            {"date_from": date(2024, 2, 1), "date_to": date(2024, 1, 1)},
            {"cache_type": "memcached"},
            {"cache_type": "redis"},
            {"telegram_bot_token": "123:abc"},
            {"page_max_retries": 0},
        ],
    )
    def test_rejected(self, overrides) -> None:
        with pytest.raises(ConfigurationError):
            make_settings(**overrides).validate()

    def test_configuration_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            make_settings(duplicate_threshold=200).validate()

    def test_boundaries_accepted(self) -> None:
        make_settings(duplicate_threshold=0, complete_threshold=100).validate()
        make_settings(duplicate_threshold=100).validate()

    def test_telegram_enabled(self) -> None:
        settings = make_settings(telegram_bot_token="123:abc", telegram_chat_id="42")
        settings.validate()
        assert settings.telegram_enabled is True
