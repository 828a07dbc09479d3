"""
XSELECT Notification Scheduler

Coalesces field notifications into one delivery per event-loop turn.

Scheduling a field also schedules its direct children: a child's derived
state (parent value, filtered options) changes with the parent's value.
The pending set and the scheduled flag are reset before listeners run, so
changes made from inside a listener form a new batch.
"""

from typing import Callable, Dict, Iterable, List, Optional, Sequence
import asyncio
import logging

logger = logging.getLogger("kernel.scheduler")


Listener = Callable[[], None]
Deferral = Callable[[Callable[[], None]], None]
ChildrenOf = Callable[[str], Sequence[str]]


def call_soon_deferral(callback: Callable[[], None]) -> bool:
    """
    Run callback on the next turn of the running event loop.

    Returns False (and does nothing) when no loop is running.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return False
    loop.call_soon(callback)
    return True


class NotificationScheduler:
    """
    Per-field listener registry with batched delivery.

    Usage:
        scheduler = NotificationScheduler(children_of=graph.children_of)
        unsubscribe = scheduler.subscribe("province", on_province)
        scheduler.schedule(["country"])   # country + province pending
        # ... next loop turn: on_province() runs once
    """

    def __init__(
        self,
        children_of: Optional[ChildrenOf] = None,
        defer: Optional[Deferral] = None,
        on_error: Optional[Callable[[str, Exception], None]] = None,
    ):
        """
        Args:
            children_of: Direct children lookup (None = no child fan-out)
            defer: Callable that arranges for its argument to run later.
                Defaults to loop.call_soon on the running loop; with no
                running loop, notifications stay pending until flush().
            on_error: Called with (field name, exception) when a listener raises
        """
        self._children_of = children_of
        self._defer = defer
        self._on_error = on_error
        self._listeners: Dict[str, List[Listener]] = {}
        self._pending: Dict[str, None] = {}
        self._scheduled = False
        self._closed = False

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def subscribe(self, name: str, listener: Listener) -> Callable[[], None]:
        """Register a listener for one field. Returns an unsubscribe callable."""
        listeners = self._listeners.setdefault(name, [])
        listeners.append(listener)

        def unsubscribe() -> None:
            current = self._listeners.get(name)
            if current and listener in current:
                current.remove(listener)
                if not current:
                    del self._listeners[name]

        return unsubscribe

    def subscribe_many(self, names: Iterable[str], listener: Listener) -> Callable[[], None]:
        """Register one listener on several field channels."""
        unsubscribers = [self.subscribe(name, listener) for name in names]

        def unsubscribe() -> None:
            for unsub in unsubscribers:
                unsub()

        return unsubscribe

    def listener_count(self, name: Optional[str] = None) -> int:
        if name is not None:
            return len(self._listeners.get(name, []))
        return sum(len(listeners) for listeners in self._listeners.values())

    # =========================================================================
    # SCHEDULING
    # =========================================================================

    @property
    def pending(self) -> List[str]:
        return list(self._pending)

    @property
    def is_scheduled(self) -> bool:
        return self._scheduled

    def schedule(self, names: Iterable[str]) -> None:
        """Mark fields (and their direct children) as changed."""
        if self._closed:
            return

        for name in names:
            self._pending[name] = None
            if self._children_of is not None:
                for child in self._children_of(name):
                    self._pending[child] = None

        if self._pending and not self._scheduled:
            self._request_flush()

    def _request_flush(self) -> None:
        if self._defer is not None:
            self._scheduled = True
            self._defer(self.flush)
            return

        if call_soon_deferral(self.flush):
            self._scheduled = True
        else:
            logger.debug(f"No running event loop; {len(self._pending)} notification(s) wait for flush()")

    def flush(self) -> None:
        """
        Deliver every pending notification now.

        A listener subscribed to several pending fields runs once per flush.
        Listener exceptions are logged; delivery continues.
        """
        names = list(self._pending)
        self._pending.clear()
        self._scheduled = False

        if self._closed or not names:
            return

        called: List[Listener] = []
        for name in names:
            for listener in list(self._listeners.get(name, [])):
                if any(listener is seen for seen in called):
                    continue
                called.append(listener)
                try:
                    listener()
                except Exception as e:
                    logger.error(f"Listener for '{name}' failed: {e}")
                    if self._on_error is not None:
                        self._on_error(name, e)

        logger.debug(f"Flushed {len(names)} field(s) to {len(called)} listener(s)")

    def close(self) -> None:
        """Drop listeners and pending notifications; later calls are no-ops."""
        self._closed = True
        self._listeners.clear()
        self._pending.clear()
        self._scheduled = False
