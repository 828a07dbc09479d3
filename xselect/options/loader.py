"""
XSELECT Async Option Loader

Runs dynamic option loaders on the event loop, one task per
(field, parent value) key.

- A key already in flight is never fetched twice; the running task is reused
- A field is loading while any of its keys is in flight
- Results are dropped when the store is gone or the field's parent value
  moved on while the loader was running
- Failures are logged and recorded, and leave an empty option list
"""

from __future__ import annotations
from typing import Any, Callable, Dict, List, Mapping, Optional, Set
import asyncio
import inspect
import json
import logging

from xselect.core.types import LoadState, OptionList, OptionLoader, coerce_options
from xselect.errors.aggregator import ErrorAggregator
from xselect.errors.taxonomy import create_load_error, create_stale_load_error
from xselect.kernel.event_dispatcher import EventDispatcher
from xselect.kernel.events import LoadingFinishedEvent, LoadingStartedEvent

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def request_key(field_name: str, parent_value: Any) -> str:
    """
    De-duplication key for one load.

    Example:
        request_key("province", "VN")          -> 'province:"VN"'
        request_key("comments", {"b": 1, "a": [2]})
        -> 'comments:{"a": [2], "b": 1}'
    """
    return f"{field_name}:{json.dumps(_jsonable(parent_value), sort_keys=True, default=str)}"


class AsyncOptionLoader:
    """
    Async option cache and request registry for one store.

    The owning store supplies callbacks instead of being referenced directly:

    Args:
        parent_value_of: Current parent value of a field
        on_update: Called whenever a field's loading state or cached
            options changed (the store bumps its version and notifies)
        is_active: False once the store is destroyed
        version_of: Current store version, for event records
        errors: Optional aggregator for load failures
        dispatcher: Optional event stream
    """

    def __init__(
        self,
        parent_value_of: Callable[[str], Any],
        on_update: Callable[[str], None],
        is_active: Callable[[], bool],
        version_of: Callable[[], int] = lambda: 0,
        errors: Optional[ErrorAggregator] = None,
        dispatcher: Optional[EventDispatcher] = None,
    ):
        self._parent_value_of = parent_value_of
        self._on_update = on_update
        self._is_active = is_active
        self._version_of = version_of
        self._errors = errors
        self._dispatcher = dispatcher

        self._cache: Dict[str, OptionList] = {}
        self._pending: Dict[str, "asyncio.Task[None]"] = {}
        self._loading: Dict[str, Set[str]] = {}
        self._states: Dict[str, LoadState] = {}
        self._last_error: Dict[str, str] = {}

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_cached(self, field_name: str) -> Optional[OptionList]:
        """Loaded options, or None when nothing was loaded yet."""
        return self._cache.get(field_name)

    def is_loading(self, field_name: str) -> bool:
        return bool(self._loading.get(field_name))

    def loading_fields(self) -> List[str]:
        return [name for name, keys in self._loading.items() if keys]

    def get_state(self, field_name: str) -> LoadState:
        return self._states.get(field_name, LoadState.IDLE)

    def get_error(self, field_name: str) -> Optional[str]:
        return self._last_error.get(field_name)

    @property
    def pending_keys(self) -> List[str]:
        return list(self._pending)

    # =========================================================================
    # REQUESTS
    # =========================================================================

    def request(
        self,
        field_name: str,
        loader: OptionLoader,
        parent_value: Any,
    ) -> Optional["asyncio.Task[None]"]:
        """
        Start loading options for field_name with parent_value.

        Returns the task doing the work (an existing one for a duplicate
        request), or None when the request could not be started.
        """
        if not self._is_active():
            return None

        key = request_key(field_name, parent_value)
        existing = self._pending.get(key)
        if existing is not None:
            logger.debug(f"Load already in flight: {key}")
            return existing

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop; options for '{field_name}' not loaded")
            return None

        self._loading.setdefault(field_name, set()).add(key)
        self._states[field_name] = LoadState.LOADING
        self._emit(LoadingStartedEvent(field_name=field_name, request_key=key))
        self._on_update(field_name)

        task = loop.create_task(self._run(field_name, key, loader, parent_value))
        self._pending[key] = task
        logger.debug(f"Load started: {key}")
        return task

    def set_empty(self, field_name: str) -> None:
        """Set a field's loaded options to an empty list (parent cleared)."""
        self._cache[field_name] = []
        if not self.is_loading(field_name):
            self._states[field_name] = LoadState.IDLE

    async def _run(self, field_name: str, key: str, loader: OptionLoader, parent_value: Any) -> None:
        outcome = "success"
        option_count = 0
        error_text: Optional[str] = None

        try:
            result = loader(parent_value)
            if inspect.isawaitable(result):
                result = await result
            options = coerce_options(result or [])
            option_count = len(options)

            if self._is_active():
                if self._is_stale(field_name, key):
                    outcome = "stale"
                    self._record_stale(field_name, parent_value)
                else:
                    self._cache[field_name] = options
                    self._last_error.pop(field_name, None)
                    self._states[field_name] = LoadState.SUCCESS
        except Exception as e:
            outcome = "error"
            error_text = str(e) or type(e).__name__
            if self._is_active():
                if self._is_stale(field_name, key):
                    outcome = "stale"
                    self._record_stale(field_name, parent_value)
                else:
                    logger.error(f"Failed to load options for '{field_name}': {error_text}")
                    self._cache[field_name] = []
                    self._last_error[field_name] = error_text
                    self._states[field_name] = LoadState.ERROR
                    if self._errors is not None:
                        self._errors.add(create_load_error(
                            message=f"Failed to load options for '{field_name}'",
                            source="options.loader",
                            field_name=field_name,
                            parent_value=parent_value,
                            detail=error_text,
                        ))
        finally:
            if self._pending.get(key) is asyncio.current_task():
                del self._pending[key]
            keys = self._loading.get(field_name)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._loading[field_name]

            if self._is_active():
                if self.is_loading(field_name):
                    self._states[field_name] = LoadState.LOADING
                elif self._states.get(field_name) == LoadState.LOADING:
                    self._states[field_name] = (
                        LoadState.SUCCESS if field_name in self._cache else LoadState.IDLE
                    )
                self._emit(LoadingFinishedEvent(
                    field_name=field_name,
                    request_key=key,
                    outcome=outcome,
                    option_count=option_count,
                    error=error_text,
                ))
                self._on_update(field_name)

    def _is_stale(self, field_name: str, key: str) -> bool:
        return request_key(field_name, self._parent_value_of(field_name)) != key

    def _record_stale(self, field_name: str, parent_value: Any) -> None:
        logger.debug(f"Dropping stale options for '{field_name}' (parent was {parent_value!r})")
        if self._errors is not None:
            self._errors.add(create_stale_load_error(
                source="options.loader",
                field_name=field_name,
                parent_value=parent_value,
            ))

    def _emit(self, event) -> None:
        if self._dispatcher is None:
            return
        event.store_version = self._version_of()
        self._dispatcher.emit(event)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def wait_for_pending(self) -> None:
        """Await every in-flight load, including loads started meanwhile."""
        while self._pending:
            await asyncio.gather(*list(self._pending.values()), return_exceptions=True)

    def clear(self) -> None:
        """Forget cached options and bookkeeping. Running tasks are not cancelled."""
        self._cache.clear()
        self._pending.clear()
        self._loading.clear()
        self._states.clear()
        self._last_error.clear()
