"""
bootstrap/config.py - Store and logging configuration

Provides configuration loading from files, environment variables, and defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from pathlib import Path
import os
import json
import logging

logger = logging.getLogger("bootstrap.config")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class StoreConfig:
    """Per-store behaviour knobs."""

    event_history: int = 100
    warn_on_cycles: bool = True
    record_errors: bool = True
    max_recorded_errors: int = 200

    @classmethod
    def from_env(cls) -> "StoreConfig":
        return cls(
            event_history=int(os.getenv("XSELECT_EVENT_HISTORY", "100")),
            warn_on_cycles=_env_bool("XSELECT_WARN_ON_CYCLES", "true"),
            record_errors=_env_bool("XSELECT_RECORD_ERRORS", "true"),
            max_recorded_errors=int(os.getenv("XSELECT_MAX_RECORDED_ERRORS", "200")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_history": self.event_history,
            "warn_on_cycles": self.warn_on_cycles,
            "record_errors": self.record_errors,
            "max_recorded_errors": self.max_recorded_errors,
        }


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("XSELECT_LOG_LEVEL", "INFO"),
            format=os.getenv("XSELECT_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            log_file=os.getenv("XSELECT_LOG_FILE"),
            json_logs=_env_bool("XSELECT_JSON_LOGS", "false"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "format": self.format,
            "log_file": self.log_file,
            "json_logs": self.json_logs,
        }


@dataclass
class XSelectConfig:
    """Root configuration."""

    debug: bool = False

    store: StoreConfig = field(default_factory=StoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "XSelectConfig":
        """Create configuration from environment variables."""
        return cls(
            debug=_env_bool("XSELECT_DEBUG", "false"),
            store=StoreConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "XSelectConfig":
        """Load configuration from a JSON file, on top of the environment."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        with open(path) as f:
            data = json.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "XSelectConfig":
        config = cls.from_env()

        if "debug" in data:
            config.debug = bool(data["debug"])

        for section in ("store", "logging"):
            target = getattr(config, section)
            for key, value in data.get(section, {}).items():
                if hasattr(target, key):
                    setattr(target, key, value)
                else:
                    logger.warning(f"Unknown config key ignored: {section}.{key}")

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "debug": self.debug,
            "store": self.store.to_dict(),
            "logging": self.logging.to_dict(),
        }


def load_config(filepath: str = None) -> XSelectConfig:
    """
    Load configuration from file or environment.

    Without a path, ./xselect.json is used when present.
    """
    if filepath:
        config = XSelectConfig.from_file(filepath)
    elif Path("./xselect.json").exists():
        logger.info("Loading config from: ./xselect.json")
        config = XSelectConfig.from_file("./xselect.json")
    else:
        config = XSelectConfig.from_env()

    logger.debug(f"Configuration loaded: {config.to_dict()}")
    return config
