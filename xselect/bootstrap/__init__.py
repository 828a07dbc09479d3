"""
bootstrap/ - Configuration, logging setup and the inspect CLI.
"""

from .config import (
    XSelectConfig,
    StoreConfig,
    LoggingConfig,
    load_config,
)
from .entrypoints import (
    setup_logging,
    cli_main,
)

__all__ = [
    "XSelectConfig",
    "StoreConfig",
    "LoggingConfig",
    "load_config",
    "setup_logging",
    "cli_main",
]
