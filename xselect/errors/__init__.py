"""
errors/ - Error taxonomy

Structured records for the problems a store handles without raising.
"""

from .taxonomy import (
    ErrorSeverity,
    ErrorCategory,
    ErrorCode,
    StoreError,
    create_configuration_error,
    create_load_error,
    create_stale_load_error,
    create_callback_error,
)
from .aggregator import (
    ErrorReport,
    ErrorAggregator,
)

__all__ = [
    # Taxonomy
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorCode",
    "StoreError",
    "create_configuration_error",
    "create_load_error",
    "create_stale_load_error",
    "create_callback_error",
    # Aggregator
    "ErrorReport",
    "ErrorAggregator",
]
