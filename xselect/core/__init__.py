"""
core/ - Data model, value rules, adapters and the store itself.
"""

from .types import (
    SelectMode,
    LoadState,
    SelectOption,
    StaticOptions,
    DynamicOptions,
    OptionSource,
    FieldConfig,
    FieldChange,
    FieldSnapshot,
    FieldState,
    OptionsCacheEntry,
    EMPTY_SNAPSHOT,
    coerce_options,
    to_option_source,
)
from .values import (
    are_values_equal,
    are_parent_values_equal,
    are_lists_equal_unordered,
    get_removed_values,
    is_empty,
    normalize_to_list,
)
from .adapter import (
    FormAdapter,
    DictAdapter,
    CallbackAdapter,
    notify_adapter,
)
from .store import SelectStore
from .provider import StoreProvider

__all__ = [
    # Types
    "SelectMode",
    "LoadState",
    "SelectOption",
    "StaticOptions",
    "DynamicOptions",
    "OptionSource",
    "FieldConfig",
    "FieldChange",
    "FieldSnapshot",
    "FieldState",
    "OptionsCacheEntry",
    "EMPTY_SNAPSHOT",
    "coerce_options",
    "to_option_source",
    # Values
    "are_values_equal",
    "are_parent_values_equal",
    "are_lists_equal_unordered",
    "get_removed_values",
    "is_empty",
    "normalize_to_list",
    # Adapters
    "FormAdapter",
    "DictAdapter",
    "CallbackAdapter",
    "notify_adapter",
    # Store
    "SelectStore",
    "StoreProvider",
]
