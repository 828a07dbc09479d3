"""
XSELECT Form Adapter

The store mirrors committed value changes into whatever holds the "real"
form state through this narrow interface. Binding to a particular form
library is out of scope; DictAdapter and CallbackAdapter are reference
implementations for plain mappings and callables.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
import logging

from .types import FieldChange

logger = logging.getLogger(__name__)


class FormAdapter(ABC):
    """
    External collaborator that receives committed field changes.

    Subclasses must implement on_field_change. Batch delivery is used only
    when supports_batch is True and more than one field changed in a
    single commit. get_field_value / get_fields_value are optional pull
    hooks used for initial sync; returning None means "not supported".
    """

    supports_batch: bool = False

    @abstractmethod
    def on_field_change(self, name: str, value: Any) -> None:
        """Called once per changed field."""

    def on_fields_change(self, changes: Sequence[FieldChange]) -> None:
        """Called with every change of one commit (when supports_batch)."""
        for change in changes:
            self.on_field_change(change.name, change.value)

    def get_field_value(self, name: str) -> Any:
        return None

    def get_fields_value(self) -> Optional[Mapping[str, Any]]:
        return None


class DictAdapter(FormAdapter):
    """
    Mirrors store changes into a plain dict.

    Usage:
        form_values = {}
        store = SelectStore(configs, adapter=DictAdapter(form_values))
    """

    supports_batch = True

    def __init__(self, target: Optional[Dict[str, Any]] = None):
        self.values: Dict[str, Any] = target if target is not None else {}
        self.batches: List[List[FieldChange]] = []

    def on_field_change(self, name: str, value: Any) -> None:
        self.values[name] = value

    def on_fields_change(self, changes: Sequence[FieldChange]) -> None:
        self.batches.append(list(changes))
        for change in changes:
            self.values[change.name] = change.value

    def get_field_value(self, name: str) -> Any:
        return self.values.get(name)

    def get_fields_value(self) -> Optional[Mapping[str, Any]]:
        return dict(self.values)


class CallbackAdapter(FormAdapter):
    """Adapter built from plain callables."""

    def __init__(
        self,
        on_field_change: Callable[[str, Any], None],
        on_fields_change: Optional[Callable[[List[FieldChange]], None]] = None,
        get_fields_value: Optional[Callable[[], Mapping[str, Any]]] = None,
    ):
        self._on_field_change = on_field_change
        self._on_fields_change = on_fields_change
        self._get_fields_value = get_fields_value
        self.supports_batch = on_fields_change is not None

    def on_field_change(self, name: str, value: Any) -> None:
        self._on_field_change(name, value)

    def on_fields_change(self, changes: Sequence[FieldChange]) -> None:
        if self._on_fields_change is None:
            super().on_fields_change(changes)
            return
        self._on_fields_change(list(changes))

    def get_field_value(self, name: str) -> Any:
        values = self.get_fields_value()
        return values.get(name) if values else None

    def get_fields_value(self) -> Optional[Mapping[str, Any]]:
        if self._get_fields_value is None:
            return None
        return self._get_fields_value()


def notify_adapter(adapter: Optional[FormAdapter], changes: Sequence[FieldChange]) -> bool:
    """
    Deliver one commit's changes to the adapter.

    Uses the batch form when available and more than one field changed,
    otherwise one on_field_change call per change. Adapter exceptions are
    logged and never propagate into the store.

    Returns:
        False if the adapter raised
    """
    if adapter is None or not changes:
        return True

    try:
        if adapter.supports_batch and len(changes) > 1:
            adapter.on_fields_change(list(changes))
        else:
            for change in changes:
                adapter.on_field_change(change.name, change.value)
    except Exception as e:
        logger.error(f"Form adapter failed to apply {len(changes)} change(s): {e}")
        return False
    return True
