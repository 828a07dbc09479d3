"""
Unit tests for bootstrap/config.py
"""

import json
import logging

import pytest

from xselect.bootstrap.config import LoggingConfig, StoreConfig, XSelectConfig, load_config
from xselect.core.store import SelectStore
from xselect.core.types import FieldConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in (
        "XSELECT_DEBUG",
        "XSELECT_EVENT_HISTORY",
        "XSELECT_WARN_ON_CYCLES",
        "XSELECT_RECORD_ERRORS",
        "XSELECT_MAX_RECORDED_ERRORS",
        "XSELECT_LOG_LEVEL",
        "XSELECT_LOG_FILE",
        "XSELECT_JSON_LOGS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestDefaults:
    """Tests for default configuration."""

    def test_defaults(self):
        config = XSelectConfig.from_env()

        assert config.debug is False
        assert config.store.event_history == 100
        assert config.store.warn_on_cycles is True
        assert config.logging.level == "INFO"
        assert config.logging.json_logs is False

    def test_to_dict(self):
        data = XSelectConfig().to_dict()
        assert set(data) == {"debug", "store", "logging"}
        assert data["store"] == StoreConfig().to_dict()
        assert data["logging"] == LoggingConfig().to_dict()


class TestEnvironment:
    """Tests for environment overrides."""

    def test_env_values(self, monkeypatch):
        monkeypatch.setenv("XSELECT_DEBUG", "true")
        monkeypatch.setenv("XSELECT_EVENT_HISTORY", "5")
        monkeypatch.setenv("XSELECT_RECORD_ERRORS", "False")
        monkeypatch.setenv("XSELECT_LOG_LEVEL", "DEBUG")

        config = XSelectConfig.from_env()

        assert config.debug is True
        assert config.store.event_history == 5
        assert config.store.record_errors is False
        assert config.logging.level == "DEBUG"


class TestFiles:
    """Tests for file-based configuration."""

    def test_from_file(self, tmp_path):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps({"debug": True, "store": {"max_recorded_errors": 10}}))

        config = XSelectConfig.from_file(str(path))

        assert config.debug is True
        assert config.store.max_recorded_errors == 10
        assert config.store.event_history == 100

    def test_missing_file_uses_defaults(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="bootstrap.config"):
            config = XSelectConfig.from_file(str(tmp_path / "missing.json"))

        assert config.to_dict() == XSelectConfig().to_dict()
        assert "Config file not found" in caplog.text

    def test_unknown_keys_ignored(self, caplog):
        with caplog.at_level(logging.WARNING, logger="bootstrap.config"):
            config = XSelectConfig.from_dict({"store": {"colour": "red"}})

        assert not hasattr(config.store, "colour")
        assert "store.colour" in caplog.text

    def test_load_config_finds_local_file(self, tmp_path):
        (tmp_path / "xselect.json").write_text(json.dumps({"logging": {"level": "WARNING"}}))
        assert load_config().logging.level == "WARNING"

    def test_load_config_without_file(self):
        assert load_config().to_dict() == XSelectConfig().to_dict()


class TestStoreSettings:
    """Tests for StoreConfig applied to a store."""

    def test_event_history(self, location_configs):
        store = SelectStore(location_configs, config=StoreConfig(event_history=2))

        for value in ("VN", "US", "VN"):
            store.set_value("country", value)

        assert store.dispatcher.event_count == 2

    def test_record_errors_off(self):
        store = SelectStore(
            [FieldConfig("city", depends_on="province")],
            config=StoreConfig(record_errors=False),
        )
        assert len(store.errors) == 0

    def test_cycle_warning_off(self, caplog):
        configs = [FieldConfig("a", depends_on="b"), FieldConfig("b", depends_on="a")]

        with caplog.at_level(logging.WARNING):
            store = SelectStore(configs, config=StoreConfig(warn_on_cycles=False))

        assert "cycle" not in caplog.text
        assert len(store.errors) == 0
