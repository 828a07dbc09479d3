"""
XSELECT Store Events

Typed event records emitted synchronously by a SelectStore.

Events are diagnostic: they describe what the store did (value commits,
cascade deletes, option loads) as it happens. They are distinct from the
batched per-field subscriber channel, which coalesces notifications.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid


# =============================================================================
# EVENT TYPES
# =============================================================================

class StoreEventType(str, Enum):
    """Types of store events."""

    # Value events
    VALUE_CHANGED = "value_changed"
    CASCADE_DELETED = "cascade_deleted"
    CONTROLLED_SYNCED = "controlled_synced"

    # Option events
    OPTIONS_CHANGED = "options_changed"
    LOADING_STARTED = "loading_started"
    LOADING_FINISHED = "loading_finished"

    # Lifecycle events
    STORE_DESTROYED = "store_destroyed"


# =============================================================================
# BASE EVENT
# =============================================================================

@dataclass
class StoreEvent:
    """
    Base class for store events.

    All store events have:
    - event_id: Unique identifier
    - event_type: Type classification
    - store_id: Emitting store
    - timestamp: When the event occurred
    - store_version: Store version at time of event
    """
    event_id: str = field(default_factory=lambda: str(uuid.uuid4())[:12])
    event_type: StoreEventType = StoreEventType.VALUE_CHANGED
    store_id: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    store_version: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "store_id": self.store_id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "store_version": self.store_version,
        }


# =============================================================================
# VALUE EVENTS
# =============================================================================

@dataclass
class ValueChangedEvent(StoreEvent):
    """
    Emitted once per committed set_value / set_values / reset_fields.

    changes holds every committed field, cascaded ones included.
    """
    event_type: StoreEventType = field(default=StoreEventType.VALUE_CHANGED)
    trigger_fields: List[str] = field(default_factory=list)
    changes: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "trigger_fields": self.trigger_fields,
            "changes": self.changes,
        })
        return base


@dataclass
class CascadeDeletedEvent(StoreEvent):
    """Emitted for each descendant whose value a cascade removed."""
    event_type: StoreEventType = field(default=StoreEventType.CASCADE_DELETED)
    field_name: str = ""
    policy: str = ""
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "field_name": self.field_name,
            "policy": self.policy,
            "old_value": self.old_value,
            "new_value": self.new_value,
        })
        return base


@dataclass
class ControlledSyncedEvent(StoreEvent):
    """Emitted when externally controlled values were pushed into the store."""
    event_type: StoreEventType = field(default=StoreEventType.CONTROLLED_SYNCED)
    changed_fields: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base["changed_fields"] = self.changed_fields
        return base


# =============================================================================
# OPTION EVENTS
# =============================================================================

@dataclass
class OptionsChangedEvent(StoreEvent):
    """Emitted when a field's option source changed (external or loaded)."""
    event_type: StoreEventType = field(default=StoreEventType.OPTIONS_CHANGED)
    field_name: str = ""
    source: str = ""
    option_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "field_name": self.field_name,
            "source": self.source,
            "option_count": self.option_count,
        })
        return base


@dataclass
class LoadingStartedEvent(StoreEvent):
    """Emitted when an async option load starts."""
    event_type: StoreEventType = field(default=StoreEventType.LOADING_STARTED)
    field_name: str = ""
    request_key: str = ""

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "field_name": self.field_name,
            "request_key": self.request_key,
        })
        return base


@dataclass
class LoadingFinishedEvent(StoreEvent):
    """
    Emitted when an async option load settles.

    outcome is "success", "error" or "stale".
    """
    event_type: StoreEventType = field(default=StoreEventType.LOADING_FINISHED)
    field_name: str = ""
    request_key: str = ""
    outcome: str = ""
    option_count: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base.update({
            "field_name": self.field_name,
            "request_key": self.request_key,
            "outcome": self.outcome,
            "option_count": self.option_count,
            "error": self.error,
        })
        return base


# =============================================================================
# LIFECYCLE EVENTS
# =============================================================================

@dataclass
class StoreDestroyedEvent(StoreEvent):
    """Emitted once when a store is destroyed."""
    event_type: StoreEventType = field(default=StoreEventType.STORE_DESTROYED)
    field_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base["field_count"] = self.field_count
        return base
