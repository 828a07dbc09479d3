"""
kernel/ - Notification scheduling and the store event stream.
"""

from .events import (
    StoreEventType,
    StoreEvent,
    ValueChangedEvent,
    CascadeDeletedEvent,
    ControlledSyncedEvent,
    OptionsChangedEvent,
    LoadingStartedEvent,
    LoadingFinishedEvent,
    StoreDestroyedEvent,
)
from .event_dispatcher import EventDispatcher
from .scheduler import NotificationScheduler, call_soon_deferral

__all__ = [
    # Events
    "StoreEventType",
    "StoreEvent",
    "ValueChangedEvent",
    "CascadeDeletedEvent",
    "ControlledSyncedEvent",
    "OptionsChangedEvent",
    "LoadingStartedEvent",
    "LoadingFinishedEvent",
    "StoreDestroyedEvent",
    # Dispatch
    "EventDispatcher",
    # Scheduling
    "NotificationScheduler",
    "call_soon_deferral",
]
