"""
XSELECT StoreProvider

Owns one SelectStore across configuration updates.

The store is rebuilt only when the ordered list of field names changes;
values of the previous store are carried over. Config objects that keep
the same names are treated as the same form.
"""

from __future__ import annotations
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple, Union
import logging

from xselect.bootstrap.config import StoreConfig
from xselect.core.adapter import FormAdapter
from xselect.core.store import SelectStore
from xselect.core.types import FieldConfig
from xselect.kernel.scheduler import Deferral

logger = logging.getLogger(__name__)


ConfigLike = Union[FieldConfig, Mapping[str, Any]]

_UNSET = object()


def config_names(configs: Sequence[ConfigLike]) -> Tuple[str, ...]:
    """Ordered field names of a config list."""
    return tuple(c.name if isinstance(c, FieldConfig) else c["name"] for c in configs)


class StoreProvider:
    """
    Keeps a SelectStore in step with changing configs, adapters and
    controlled values.

    Usage:
        provider = StoreProvider(configs, adapter=DictAdapter(form))
        provider.update(controlled_values=incoming)   # same store
        provider.update(configs=new_configs)          # new store if names differ
        provider.close()
    """

    def __init__(
        self,
        configs: Sequence[ConfigLike],
        initial_values: Optional[Mapping[str, Any]] = None,
        adapter: Optional[FormAdapter] = None,
        *,
        controlled_values: Optional[Mapping[str, Any]] = None,
        config: Optional[StoreConfig] = None,
        defer: Optional[Deferral] = None,
        on_store_change: Optional[Callable[[SelectStore], None]] = None,
    ):
        """
        Args:
            configs: Field configs
            initial_values: Starting values (ignored when controlled_values is given)
            adapter: Form adapter handed to the store
            controlled_values: Externally owned values
            config: Store behaviour knobs
            defer: Notification deferral passed to every store
            on_store_change: Called with the new store after a rebuild
        """
        self._settings = config
        self._defer = defer
        self._adapter = adapter
        self._on_store_change = on_store_change
        self._names = config_names(configs)
        self._store = self._create_store(
            configs,
            controlled_values if controlled_values is not None else initial_values,
        )

    def _create_store(self, configs: Sequence[ConfigLike], values: Optional[Mapping[str, Any]]) -> SelectStore:
        return SelectStore(
            configs,
            initial_values=values,
            adapter=self._adapter,
            config=self._settings,
            defer=self._defer,
        )

    @property
    def store(self) -> SelectStore:
        return self._store

    @property
    def field_names(self) -> Tuple[str, ...]:
        return self._names

    def update(
        self,
        configs: Optional[Sequence[ConfigLike]] = None,
        adapter: Any = _UNSET,
        controlled_values: Optional[Mapping[str, Any]] = None,
    ) -> SelectStore:
        """
        Apply new inputs; returns the (possibly new) store.

        Args:
            configs: New configs; a different name list rebuilds the store
            adapter: New adapter (pass None to detach)
            controlled_values: Externally owned values to sync in
        """
        if adapter is not _UNSET:
            self._adapter = adapter
            self._store.set_adapter(adapter)

        if configs is not None:
            names = config_names(configs)
            if names != self._names:
                self._rebuild(configs, names, controlled_values)
                return self._store

        if controlled_values is not None:
            self._store.sync_controlled_value(controlled_values)

        return self._store

    def _rebuild(
        self,
        configs: Sequence[ConfigLike],
        names: Tuple[str, ...],
        controlled_values: Optional[Mapping[str, Any]],
    ) -> None:
        values = controlled_values if controlled_values is not None else self._store.get_values()
        self._store.destroy()

        self._names = names
        self._store = self._create_store(configs, values)
        logger.info(f"Store rebuilt for fields {list(names)}")

        if self._on_store_change is not None:
            self._on_store_change(self._store)

    def close(self) -> None:
        """Destroy the current store."""
        self._store.destroy()

    def __enter__(self) -> "StoreProvider":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
