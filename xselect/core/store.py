"""
XSELECT SelectStore

Reactive store for a set of dependent select fields.

Owns the field values, the relationship graph, every derived cache
(snapshots, filtered options, loaded options, external options) and the
subscriber registry of one form. Caches are invalidated through a single
monotonically increasing version counter.

Commit flow of set_value / set_values:
    equality short-circuit -> version bump -> cascade on a working copy
    -> atomic commit -> schedule notifications -> adapter -> events
    -> option reloads for direct children with dynamic sources
"""

from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union
import logging
import uuid

from xselect.bootstrap.config import StoreConfig
from xselect.core.adapter import FormAdapter, notify_adapter
from xselect.core.types import (
    EMPTY_SNAPSHOT,
    DynamicOptions,
    FieldChange,
    FieldConfig,
    FieldSnapshot,
    FieldState,
    FieldValues,
    LoadState,
    OptionList,
    OptionsCacheEntry,
    SelectOption,
    StaticOptions,
    coerce_options,
    freeze_mapping,
)
from xselect.core.values import are_parent_values_equal, are_values_equal, copy_value, is_empty
from xselect.dependencies.cascade import CascadeEngine
from xselect.dependencies.graph import RelationshipGraph, RelationshipMap
from xselect.errors.aggregator import ErrorAggregator
from xselect.errors.taxonomy import ErrorCode, create_callback_error, create_configuration_error
from xselect.kernel.event_dispatcher import EventDispatcher
from xselect.kernel.events import (
    CascadeDeletedEvent,
    ControlledSyncedEvent,
    OptionsChangedEvent,
    StoreDestroyedEvent,
    StoreEvent,
    ValueChangedEvent,
)
from xselect.kernel.scheduler import Deferral, Listener, NotificationScheduler
from xselect.options.filtering import are_options_shallow_equal, filter_options_by_parent
from xselect.options.loader import AsyncOptionLoader

logger = logging.getLogger(__name__)


_NO_OPTIONS: Sequence[SelectOption] = ()


def _noop() -> None:
    return None


def _as_options(options: Sequence[Any]) -> Sequence[SelectOption]:
    """Use the caller's sequence as-is when it already holds SelectOptions."""
    if all(isinstance(option, SelectOption) for option in options):
        return options
    return coerce_options(options)


class SelectStore:
    """
    Dependent select fields with cascade delete and async options.

    Usage:
        store = SelectStore([
            FieldConfig("country", options=countries),
            FieldConfig("province", options=provinces, depends_on="country"),
            FieldConfig("city", options=load_cities, depends_on="province"),
        ])
        store.subscribe("province", rerender_province)
        store.set_value("country", "VN")
        store.get_options("province")   # provinces of VN
    """

    def __init__(
        self,
        configs: Sequence[Union[FieldConfig, Mapping[str, Any]]],
        initial_values: Optional[Mapping[str, Any]] = None,
        adapter: Optional[FormAdapter] = None,
        *,
        config: Optional[StoreConfig] = None,
        dispatcher: Optional[EventDispatcher] = None,
        defer: Optional[Deferral] = None,
    ):
        """
        Args:
            configs: Field configs (FieldConfig or plain mappings)
            initial_values: Starting values; unknown names are ignored
            adapter: Receives committed value changes
            config: Store behaviour knobs
            dispatcher: Event stream (a private one is created by default)
            defer: Notification deferral (default: next event-loop turn)

        Raises:
            ValueError: If two configs share a name
        """
        self._configs: List[FieldConfig] = [
            c if isinstance(c, FieldConfig) else FieldConfig.from_dict(c) for c in configs
        ]
        self._config_map: Dict[str, FieldConfig] = {}
        for field_config in self._configs:
            if field_config.name in self._config_map:
                raise ValueError(f"Duplicate field name: '{field_config.name}'")
            self._config_map[field_config.name] = field_config

        self._settings = config or StoreConfig()
        self._errors = ErrorAggregator(max_errors=self._settings.max_recorded_errors)
        self._dispatcher = dispatcher or EventDispatcher(
            store_id=uuid.uuid4().hex[:8],
            max_history=self._settings.event_history,
        )

        self._graph = RelationshipGraph(self._configs)
        self._check_configuration()

        self._values: FieldValues = {name: None for name in self._config_map}
        for name, value in (initial_values or {}).items():
            if name in self._config_map:
                self._values[name] = copy_value(value)
            else:
                logger.debug(f"Ignoring initial value for unknown field '{name}'")

        self._version = 0
        self._destroyed = False
        self._adapter = adapter

        self._snapshots: Dict[str, FieldSnapshot] = {}
        self._filter_cache: Dict[str, OptionsCacheEntry] = {}
        self._external_options: Dict[str, Sequence[SelectOption]] = {}

        self._scheduler = NotificationScheduler(
            children_of=self._graph.children_of,
            defer=defer,
            on_error=self._on_listener_error,
        )
        self._loader = AsyncOptionLoader(
            parent_value_of=self._parent_value,
            on_update=self._on_loader_update,
            is_active=lambda: not self._destroyed,
            version_of=lambda: self._version,
            errors=self._errors if self._settings.record_errors else None,
            dispatcher=self._dispatcher,
        )
        self._cascade = CascadeEngine(self._graph, self._raw_options)

        logger.info(f"SelectStore created: {len(self._configs)} fields (store={self._dispatcher.store_id})")

        self._initialize_async_options()

    def _check_configuration(self) -> None:
        for name, missing in self._graph.unknown_parents().items():
            for parent in missing:
                self._record(create_configuration_error(
                    message=f"Field '{name}' depends on unknown field '{parent}'",
                    source="core.store",
                    field_name=name,
                ))

        if self._settings.warn_on_cycles and not self._graph.is_acyclic():
            for cycle in self._graph.find_cycles():
                logger.warning(f"Dependency cycle between fields: {' -> '.join(cycle)}")
                self._record(create_configuration_error(
                    message=f"Dependency cycle: {cycle}",
                    source="core.store",
                    field_name=cycle[0],
                    code=ErrorCode.CFG_CYCLE,
                ))

    def _record(self, error) -> None:
        if self._settings.record_errors:
            self._errors.add(error)

    def _on_listener_error(self, name: str, error: Exception) -> None:
        self._record(create_callback_error(
            message=f"Listener for '{name}' failed: {error}",
            source="kernel.scheduler",
            field_name=name,
        ))

    def _emit(self, event: StoreEvent) -> None:
        event.store_version = self._version
        self._dispatcher.emit(event)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def version(self) -> int:
        return self._version

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @property
    def graph(self) -> RelationshipGraph:
        return self._graph

    @property
    def errors(self) -> ErrorAggregator:
        return self._errors

    @property
    def dispatcher(self) -> EventDispatcher:
        return self._dispatcher

    @property
    def adapter(self) -> Optional[FormAdapter]:
        return self._adapter

    @property
    def field_names(self) -> List[str]:
        return [c.name for c in self._configs]

    # =========================================================================
    # VALUE QUERIES
    # =========================================================================

    def has_field(self, name: str) -> bool:
        return name in self._config_map

    def get_value(self, name: str) -> Any:
        return copy_value(self._values.get(name))

    def get_values(self) -> FieldValues:
        """Copy of all field values."""
        return {name: copy_value(value) for name, value in self._values.items()}

    def get_config(self, name: str) -> Optional[FieldConfig]:
        return self._config_map.get(name)

    def get_configs(self) -> List[FieldConfig]:
        return list(self._configs)

    def get_relationships(self) -> RelationshipMap:
        return self._graph.relationships

    def get_descendants(self, name: str) -> List[str]:
        return list(self._graph.descendants_of(name))

    def has_dependencies(self, name: str) -> bool:
        return bool(self._graph.parents_of(name))

    def get_dependency_values(self, name: str) -> Dict[str, Any]:
        """Current value of every parent of a field."""
        return {parent: self._values.get(parent) for parent in self._graph.parents_of(name)}

    def is_dependency_satisfied(self, name: str) -> bool:
        """True when every parent holds a value (always True for roots)."""
        return all(not is_empty(self._values.get(p)) for p in self._graph.parents_of(name))

    def _parent_value(self, name: str) -> Any:
        parents = self._graph.parents_of(name)
        if not parents:
            return None
        if len(parents) == 1:
            return self._values.get(parents[0])
        return {parent: self._values.get(parent) for parent in parents}

    # =========================================================================
    # SNAPSHOTS
    # =========================================================================

    def get_snapshot(self, name: str) -> FieldSnapshot:
        """
        Derived state of one field.

        Returns the same object as the previous call while value, parent
        value and loading flag are unchanged.
        """
        if self._destroyed or name not in self._config_map:
            return EMPTY_SNAPSHOT

        value = self._values.get(name)
        parent_value = self._parent_value(name)
        is_loading = self._loader.is_loading(name)

        cached = self._snapshots.get(name)
        if (
            cached is not None
            and cached.is_loading == is_loading
            and are_values_equal(cached.value, value)
            and are_parent_values_equal(cached.parent_value, parent_value)
        ):
            return cached

        parent_values = None
        if isinstance(parent_value, dict):
            parent_value = freeze_mapping(parent_value)
            parent_values = parent_value

        snapshot = FieldSnapshot(
            value=copy_value(value),
            parent_value=parent_value,
            parent_values=parent_values,
            is_loading=is_loading,
        )
        self._snapshots[name] = snapshot
        return snapshot

    def get_field_state(self, name: str) -> Optional[FieldState]:
        """Everything a select widget needs for one field, or None if unknown."""
        config = self._config_map.get(name)
        if config is None or self._destroyed:
            return None

        snapshot = self.get_snapshot(name)
        parents = self._graph.parents_of(name)
        return FieldState(
            name=name,
            config=config,
            options=self.get_options(name),
            value=snapshot.value,
            parent_value=snapshot.parent_value,
            parent_values=snapshot.parent_values,
            is_loading=snapshot.is_loading,
            is_disabled_by_parent=any(is_empty(self._values.get(p)) for p in parents),
            load_state=self._loader.get_state(name),
            load_error=self._loader.get_error(name),
        )

    # =========================================================================
    # OPTIONS
    # =========================================================================

    def _raw_options(self, name: str, external_options: Optional[Sequence[Any]] = None) -> Sequence[SelectOption]:
        if external_options is not None:
            return _as_options(external_options)

        stored = self._external_options.get(name)
        if stored is not None:
            return stored

        config = self._config_map.get(name)
        if config is None:
            return _NO_OPTIONS

        source = config.options
        if isinstance(source, DynamicOptions):
            loaded = self._loader.get_cached(name)
            return loaded if loaded is not None else _NO_OPTIONS
        if isinstance(source, StaticOptions):
            return source.options
        return _NO_OPTIONS

    def get_options(self, name: str, external_options: Optional[Sequence[Any]] = None) -> OptionList:
        """
        Options of a field, filtered by its current parent value.

        Resolution order: external_options argument, options stored with
        set_external_options, loaded options (dynamic sources), static
        options. Root fields are not filtered. Every other source, loaded
        options included, goes through filter_options or
        filter_options_by_parent, so a list loaded for a previous parent
        value yields nothing until the reload lands.
        """
        config = self._config_map.get(name)
        if config is None or self._destroyed:
            return []

        raw = self._raw_options(name, external_options)
        if not raw:
            return []

        if not self._graph.parents_of(name):
            return list(raw)

        parent_value = self._parent_value(name)

        cached = self._filter_cache.get(name)
        if (
            cached is not None
            and cached.store_version == self._version
            and cached.raw_options is raw
            and are_parent_values_equal(cached.parent_value_used, parent_value)
        ):
            return cached.options

        if config.filter_options is not None:
            filtered = list(config.filter_options(raw, parent_value))
        else:
            filtered = filter_options_by_parent(raw, parent_value)

        self._filter_cache[name] = OptionsCacheEntry(
            options=filtered,
            parent_value_used=parent_value,
            store_version=self._version,
            raw_options=raw,
        )
        logger.debug(f"Filtered options for '{name}': {len(filtered)}/{len(raw)}")
        return filtered

    def set_external_options(self, name: str, options: Sequence[Any]) -> None:
        """
        Replace a field's option source with an externally supplied list.

        Shallow-equal lists (same values and parent values) are ignored.
        """
        if self._destroyed or name not in self._config_map:
            return

        options = _as_options(options)
        current = self._external_options.get(name)
        if current is not None and are_options_shallow_equal(current, options):
            return

        self._external_options[name] = options
        self._version += 1
        self._filter_cache.pop(name, None)
        self._scheduler.schedule([name])
        self._emit(OptionsChangedEvent(field_name=name, source="external", option_count=len(options)))

    # =========================================================================
    # LOADING STATE
    # =========================================================================

    def is_loading(self, name: str) -> bool:
        return self._loader.is_loading(name)

    def get_loading_fields(self) -> List[str]:
        return self._loader.loading_fields()

    def get_load_state(self, name: str) -> LoadState:
        return self._loader.get_state(name)

    def get_load_error(self, name: str) -> Optional[str]:
        return self._loader.get_error(name)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def set_value(self, name: str, value: Any) -> None:
        """Set one field; descendants no longer justified are cascaded."""
        if self._destroyed:
            return
        if name not in self._config_map:
            logger.debug(f"set_value ignored for unknown field '{name}'")
            return
        if are_values_equal(self._values.get(name), value):
            return

        self._commit({name: value})

    def set_values(self, values: Mapping[str, Any]) -> None:
        """Set several fields in one commit (one version bump, one adapter call)."""
        if self._destroyed:
            return

        direct: Dict[str, Any] = {}
        for name, value in values.items():
            if name not in self._config_map:
                logger.debug(f"set_values ignored unknown field '{name}'")
                continue
            if are_values_equal(self._values.get(name), value):
                continue
            direct[name] = value

        if direct:
            self._commit(direct)

    def reset_fields(self, names: Optional[Iterable[str]] = None) -> None:
        """Clear the given fields (all fields by default) in one commit."""
        targets = list(names) if names is not None else self.field_names
        self.set_values({name: None for name in targets})

    def _commit(self, direct: Mapping[str, Any]) -> None:
        self._version += 1

        working = dict(self._values)
        changes: List[FieldChange] = []
        for name, value in direct.items():
            value = copy_value(value)
            working[name] = value
            changes.append(FieldChange(name=name, value=value))

        trigger_fields = list(direct)
        result = self._cascade.run(trigger_fields, working, changes)

        self._values = working
        changed_names = [change.name for change in changes]

        self._scheduler.schedule(changed_names)

        if not notify_adapter(self._adapter, changes):
            self._record(create_callback_error(
                message=f"Form adapter failed for {changed_names}",
                source="core.store",
                adapter=True,
            ))

        self._emit(ValueChangedEvent(
            trigger_fields=trigger_fields,
            changes={change.name: change.value for change in changes},
        ))
        for outcome in result.outcomes:
            if outcome.changed:
                self._emit(CascadeDeletedEvent(
                    field_name=outcome.field_name,
                    policy=outcome.policy.value,
                    old_value=outcome.old_value,
                    new_value=outcome.new_value,
                ))

        self._reload_children(changed_names)

    def sync_controlled_value(self, values: Mapping[str, Any]) -> None:
        """
        Replace values with an externally controlled map.

        Known fields missing from values become None. No cascade runs and
        the adapter is not called.
        """
        if self._destroyed:
            return

        changed = [
            name for name in self._config_map
            if not are_values_equal(self._values.get(name), values.get(name))
        ]
        if not changed:
            return

        self._version += 1
        self._values = {name: copy_value(values.get(name)) for name in self._config_map}
        self._scheduler.schedule(changed)
        self._emit(ControlledSyncedEvent(changed_fields=changed))
        logger.debug(f"Controlled sync changed {changed}")

    def sync_from_adapter(self) -> None:
        """
        Pull values from the adapter without cascading.

        Fields the adapter does not report keep their current value.
        """
        if self._destroyed or self._adapter is None:
            return

        pulled = self._adapter.get_fields_value()
        if pulled is None:
            pulled = {}
            for name in self._config_map:
                value = self._adapter.get_field_value(name)
                if value is not None:
                    pulled[name] = value

        merged = dict(self._values)
        for name, value in pulled.items():
            if name in self._config_map:
                merged[name] = value
        self.sync_controlled_value(merged)

    def set_adapter(self, adapter: Optional[FormAdapter]) -> None:
        self._adapter = adapter

    # =========================================================================
    # ASYNC OPTIONS
    # =========================================================================

    def _initialize_async_options(self) -> None:
        for config in self._configs:
            if not isinstance(config.options, DynamicOptions):
                continue
            if self._graph.parents_of(config.name) and not self.is_dependency_satisfied(config.name):
                continue
            self._loader.request(config.name, config.options.loader, self._parent_value(config.name))

    def _reload_children(self, changed_names: Sequence[str]) -> None:
        seen = set()
        for name in changed_names:
            for child in self._graph.children_of(name):
                if child in seen:
                    continue
                seen.add(child)

                config = self._config_map[child]
                if not isinstance(config.options, DynamicOptions):
                    continue

                if self.is_dependency_satisfied(child):
                    self._loader.request(child, config.options.loader, self._parent_value(child))
                else:
                    self._loader.set_empty(child)

    def _on_loader_update(self, name: str) -> None:
        if self._destroyed:
            return
        self._version += 1
        self._scheduler.schedule([name])

    async def load_options(self, name: str) -> None:
        """Load a dynamic field's options for its current parent value and wait."""
        config = self._config_map.get(name)
        if self._destroyed or config is None or not isinstance(config.options, DynamicOptions):
            return

        if self._graph.parents_of(name) and not self.is_dependency_satisfied(name):
            self._loader.set_empty(name)
            return

        task = self._loader.request(name, config.options.loader, self._parent_value(name))
        if task is not None:
            await task

    async def wait_for_pending(self) -> None:
        """Wait until no option load is in flight."""
        await self._loader.wait_for_pending()

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def subscribe(self, name: str, listener: Listener) -> Callable[[], None]:
        """
        Call listener after changes affecting a field.

        Returns:
            Unsubscribe callable
        """
        if self._destroyed:
            return _noop
        return self._scheduler.subscribe(name, listener)

    def subscribe_all(self, listener: Listener) -> Callable[[], None]:
        """Subscribe one listener to every field; it runs once per flush."""
        if self._destroyed:
            return _noop
        return self._scheduler.subscribe_many(self._config_map, listener)

    def flush(self) -> None:
        """Deliver pending notifications now."""
        self._scheduler.flush()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def destroy(self) -> None:
        """Release everything. In-flight loads finish as no-ops."""
        if self._destroyed:
            return

        self._emit(StoreDestroyedEvent(field_count=len(self._configs)))
        self._destroyed = True

        self._scheduler.close()
        self._loader.clear()
        self._snapshots.clear()
        self._filter_cache.clear()
        self._external_options.clear()
        self._values = {}
        self._adapter = None

        logger.info(f"SelectStore destroyed (store={self._dispatcher.store_id})")
