"""
XSELECT EventDispatcher

Instance-scoped dispatcher for store events.

Each store owns (or is injected with) its own dispatcher, so several stores
never share an event stream and tests can use isolated dispatchers.
"""

from typing import Callable, Dict, List, Optional
import logging

from xselect.kernel.events import StoreEvent, StoreEventType


logger = logging.getLogger("kernel.event_dispatcher")


EventHandler = Callable[[StoreEvent], None]


class EventDispatcher:
    """
    Instance-scoped event dispatcher.

    Features:
    - Type-specific subscriptions
    - Wildcard subscriptions (receive all events)
    - Bounded event history

    Usage:
        dispatcher = EventDispatcher(store_id="address_form")
        dispatcher.subscribe(StoreEventType.CASCADE_DELETED, handler)
        dispatcher.subscribe_all(audit_handler)
        dispatcher.emit(CascadeDeletedEvent(...))
    """

    def __init__(
        self,
        store_id: str = "",
        max_history: int = 100,
    ):
        """
        Initialize the event dispatcher.

        Args:
            store_id: Associated store (for context in logs)
            max_history: Maximum events to retain in history
        """
        self._store_id = store_id
        self._max_history = max_history

        self._handlers: Dict[StoreEventType, List[EventHandler]] = {}
        self._wildcard_handlers: List[EventHandler] = []
        self._history: List[StoreEvent] = []
        self._subscription_counter = 0
        self._paused = False

        logger.debug(f"EventDispatcher created for store_id={store_id}")

    @property
    def store_id(self) -> str:
        return self._store_id

    def subscribe(self, event_type: StoreEventType, handler: EventHandler) -> str:
        """
        Subscribe to events of a specific type.

        Returns:
            Subscription ID, or "" when the handler was already subscribed
        """
        handlers = self._handlers.setdefault(event_type, [])
        if handler in handlers:
            return ""

        handlers.append(handler)
        self._subscription_counter += 1
        sub_id = f"sub_{self._subscription_counter}"
        logger.debug(f"Subscribed {sub_id} to {event_type.value}")
        return sub_id

    def subscribe_all(self, handler: EventHandler) -> str:
        """Subscribe to every event type."""
        if handler in self._wildcard_handlers:
            return ""

        self._wildcard_handlers.append(handler)
        self._subscription_counter += 1
        sub_id = f"sub_all_{self._subscription_counter}"
        logger.debug(f"Subscribed {sub_id} as wildcard")
        return sub_id

    def unsubscribe(self, event_type: StoreEventType, handler: EventHandler) -> bool:
        handlers = self._handlers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)
            logger.debug(f"Unsubscribed handler from {event_type.value}")
            return True
        return False

    def unsubscribe_all(self, handler: EventHandler) -> bool:
        if handler in self._wildcard_handlers:
            self._wildcard_handlers.remove(handler)
            logger.debug("Unsubscribed wildcard handler")
            return True
        return False

    def emit(self, event: StoreEvent) -> None:
        """
        Emit an event to all subscribers.

        Handler exceptions are logged; remaining handlers still run.
        """
        if self._paused:
            logger.debug(f"Dispatcher paused, dropping: {event.event_type.value}")
            return

        if not event.store_id:
            event.store_id = self._store_id

        self._history.append(event)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

        logger.debug(
            f"Emitting {event.event_type.value} "
            f"(store={event.store_id}, version={event.store_version})"
        )

        for handler in list(self._handlers.get(event.event_type, [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Handler failed for {event.event_type.value}: {e}")

        for handler in list(self._wildcard_handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Wildcard handler failed: {e}")

    def emit_many(self, events: List[StoreEvent]) -> None:
        for event in events:
            self.emit(event)

    def pause(self) -> None:
        """Pause event emission (events are dropped)."""
        self._paused = True
        logger.debug("EventDispatcher paused")

    def resume(self) -> None:
        self._paused = False
        logger.debug("EventDispatcher resumed")

    @property
    def is_paused(self) -> bool:
        return self._paused

    def clear_handlers(self, event_type: Optional[StoreEventType] = None) -> None:
        """
        Clear event handlers.

        Args:
            event_type: Specific type to clear, or None for all
        """
        if event_type:
            self._handlers.pop(event_type, None)
        else:
            self._handlers.clear()
            self._wildcard_handlers.clear()

    def get_history(
        self,
        limit: int = 20,
        event_type: Optional[StoreEventType] = None,
    ) -> List[StoreEvent]:
        """Most recent events, optionally filtered by type."""
        history = self._history
        if event_type:
            history = [e for e in history if e.event_type == event_type]
        return history[-limit:]

    def clear_history(self) -> None:
        self._history.clear()

    @property
    def handler_count(self) -> int:
        count = sum(len(handlers) for handlers in self._handlers.values())
        count += len(self._wildcard_handlers)
        return count

    @property
    def event_count(self) -> int:
        return len(self._history)

    def get_handler_summary(self) -> Dict[str, int]:
        """Handler count per event type name, plus "wildcard"."""
        summary = {event_type.value: len(handlers) for event_type, handlers in self._handlers.items()}
        summary["wildcard"] = len(self._wildcard_handlers)
        return summary
