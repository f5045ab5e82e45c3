"""Tests for settings loading and validation."""

from pathlib import Path

import pytest

from modsync.config import Settings
from modsync.core.errors import ConfigurationError


def _setenv(monkeypatch, **values):
    for name, value in values.items():
        monkeypatch.setenv(name, value)


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.max_calls_per_second == 45
        assert s.max_calls_per_minute == 50
        assert s.min_call_interval == 1.0
        assert s.max_retries == 3
        assert s.cache_ttl_days == 7.0
        assert s.memory_ttl_seconds == 3600.0
        assert s.fetch_batch_size == 100
        assert s.translation_enabled is False

    def test_from_env(self, tmp_path, monkeypatch):
        _setenv(
            monkeypatch,
            DEEPL_API_KEY="abc",
            WORKSHOP_DATA_PATH=str(tmp_path / "workshop"),
            MODSYNC_DATA_DIR=str(tmp_path),
            TRANSLATION_CACHE_TTL_DAYS="2",
            TRANSLATION_MAX_PER_SECOND="10",
            MODSYNC_TARGET_LANG="DE",
        )
        s = Settings.load()
        assert s.translation_enabled is True
        assert s.workshop_path == tmp_path / "workshop"
        assert s.cache_db_path == tmp_path / "cache.db"
        assert s.catalog_db_path == tmp_path / "catalog.db"
        assert s.cache_ttl_seconds == 2 * 86400
        assert s.max_calls_per_second == 10
        assert s.target_lang == "de"

    def test_empty_env_values_ignored(self, monkeypatch):
        _setenv(monkeypatch, DEEPL_API_KEY="", TRANSLATION_MAX_RETRIES="")
        s = Settings.load()
        assert s.deepl_api_key is None
        assert s.max_retries == 3

    def test_keyword_arguments_use_field_names(self, tmp_path):
        s = Settings(data_dir=tmp_path, min_call_interval=0)
        assert s.data_dir == tmp_path
        assert s.min_call_interval == 0.0

    def test_settings_are_frozen(self):
        s = Settings()
        with pytest.raises(ValueError):
            s.max_retries = 5

    def test_load_file_then_env(self, tmp_path, monkeypatch):
        config = tmp_path / "modsync.toml"
        config.write_text(
            "[modsync]\n"
            "steam_api_key = \"from-file\"\n"
            "staleness_days = 3\n"
            "max_calls_per_minute = 40\n"
        )
        monkeypatch.setenv("STEAM_API_KEY", "from-env")
        s = Settings.load(config)
        assert s.steam_api_key == "from-env"
        assert s.staleness_days == 3.0
        assert isinstance(s.staleness_days, float)
        assert s.max_calls_per_minute == 40

    def test_load_without_file(self):
        assert Settings.load(None) == Settings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            Settings.load(tmp_path / "nope.toml")

    def test_invalid_toml(self, tmp_path):
        config = tmp_path / "bad.toml"
        config.write_text("[modsync\n")
        with pytest.raises(ConfigurationError, match="Invalid config"):
            Settings.load(config)

    def test_unknown_key(self, tmp_path):
        config = tmp_path / "modsync.toml"
        config.write_text("[modsync]\nmax_calls_per_hour = 5\n")
        with pytest.raises(ConfigurationError, match="max_calls_per_hour"):
            Settings.load(config)

    def test_invalid_file_value(self, tmp_path):
        config = tmp_path / "modsync.toml"
        config.write_text("[modsync]\nfetch_batch_size = 500\n")
        with pytest.raises(ConfigurationError, match="Invalid settings"):
            Settings.load(config)

    @pytest.mark.parametrize(("var", "value"), [
        ("TRANSLATION_MAX_PER_SECOND", "0"),
        ("TRANSLATION_CACHE_TTL_DAYS", "-1"),
        ("TRANSLATION_CACHE_TTL_DAYS", "nan"),
        ("TRANSLATION_STALENESS_DAYS", "inf"),
        ("TRANSLATION_MEMORY_TTL", "-inf"),
        ("CATALOG_BATCH_SIZE", "many"),
        ("CATALOG_BATCH_SIZE", "101"),
        ("TRANSLATION_MAX_PER_SECOND", "60"),
    ])
    def test_invalid_values(self, monkeypatch, var, value):
        monkeypatch.setenv(var, value)
        with pytest.raises(ConfigurationError, match="Invalid settings"):
            Settings.load()

    def test_budget_consistency_message(self, monkeypatch):
        monkeypatch.setenv("TRANSLATION_MAX_PER_SECOND", "60")
        with pytest.raises(ConfigurationError, match="cannot exceed max_calls_per_minute"):
            Settings.load()

    def test_zero_interval_and_retries_allowed(self, monkeypatch):
        _setenv(monkeypatch, TRANSLATION_MIN_INTERVAL="0", TRANSLATION_MAX_RETRIES="0")
        s = Settings.load()
        assert s.min_call_interval == 0.0
        assert s.max_retries == 0

    def test_paths_expand_user(self, monkeypatch):
        monkeypatch.setenv("MODSYNC_DATA_DIR", "~/modsync-test")
        assert Settings.load().data_dir == Path.home() / "modsync-test"
