"""
errors/taxonomy.py - Error classification for select stores

Structured records for problems the store handles without raising:
configuration mistakes, failed option loads, stale load results and
consumer callbacks that throw.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from datetime import datetime, timezone
from enum import Enum
import uuid


class ErrorSeverity(Enum):
    """Error severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""
    # Field configuration (1xxx)
    CONFIGURATION = "configuration"

    # Async option loading (2xxx)
    LOAD_FAILURE = "load_failure"
    STALE_LOAD = "stale_load"

    # Consumer callbacks (3xxx)
    LISTENER = "listener"
    ADAPTER = "adapter"


class ErrorCode(Enum):
    """Specific error codes."""

    # Configuration (1xxx)
    CFG_UNKNOWN_PARENT = 1001
    CFG_CYCLE = 1002

    # Loading (2xxx)
    LOAD_FAILED = 2001
    LOAD_STALE = 2002

    # Callbacks (3xxx)
    CB_LISTENER_FAILED = 3001
    CB_ADAPTER_FAILED = 3002


@dataclass
class StoreError:
    """Structured error representation."""

    error_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    code: ErrorCode = ErrorCode.LOAD_FAILED
    category: ErrorCategory = ErrorCategory.LOAD_FAILURE
    severity: ErrorSeverity = ErrorSeverity.ERROR

    message: str = ""
    detail: str = ""

    # Context
    source: str = ""
    field_name: Optional[str] = None
    parent_value: Any = None

    recoverable: bool = True

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "detail": self.detail,
            "source": self.source,
            "field_name": self.field_name,
            "recoverable": self.recoverable,
        }


def create_configuration_error(
    message: str,
    source: str,
    field_name: str = None,
    code: ErrorCode = ErrorCode.CFG_UNKNOWN_PARENT,
) -> StoreError:
    """Factory for configuration errors (unknown parents, cycles)."""
    return StoreError(
        code=code,
        category=ErrorCategory.CONFIGURATION,
        severity=ErrorSeverity.WARNING,
        message=message,
        source=source,
        field_name=field_name,
    )


def create_load_error(
    message: str,
    source: str,
    field_name: str,
    parent_value: Any = None,
    detail: str = "",
) -> StoreError:
    """Factory for failed async option loads."""
    return StoreError(
        code=ErrorCode.LOAD_FAILED,
        category=ErrorCategory.LOAD_FAILURE,
        severity=ErrorSeverity.ERROR,
        message=message,
        detail=detail,
        source=source,
        field_name=field_name,
        parent_value=parent_value,
    )


def create_stale_load_error(
    source: str,
    field_name: str,
    parent_value: Any = None,
) -> StoreError:
    """Factory for load results dropped because the parent value moved on."""
    return StoreError(
        code=ErrorCode.LOAD_STALE,
        category=ErrorCategory.STALE_LOAD,
        severity=ErrorSeverity.DEBUG,
        message=f"Dropped stale options for '{field_name}'",
        source=source,
        field_name=field_name,
        parent_value=parent_value,
    )


def create_callback_error(
    message: str,
    source: str,
    field_name: str = None,
    adapter: bool = False,
) -> StoreError:
    """Factory for listener / adapter exceptions."""
    return StoreError(
        code=ErrorCode.CB_ADAPTER_FAILED if adapter else ErrorCode.CB_LISTENER_FAILED,
        category=ErrorCategory.ADAPTER if adapter else ErrorCategory.LISTENER,
        severity=ErrorSeverity.ERROR,
        message=message,
        source=source,
        field_name=field_name,
    )
