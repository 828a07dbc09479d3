"""
XSELECT - Dependent select fields

Reactive store for chains of select fields whose options and validity
depend on the values of parent fields (Country -> Province -> City),
including fields with several parents.

Provides:
- SelectStore: values, cascade delete, option resolution, async loading
- StoreProvider: store lifecycle across config updates
- FieldConfig / SelectOption: field and option definitions
- FormAdapter: bridge to whatever holds the real form state
"""

from .core import (
    CallbackAdapter,
    DictAdapter,
    DynamicOptions,
    FieldChange,
    FieldConfig,
    FieldSnapshot,
    FieldState,
    FormAdapter,
    LoadState,
    SelectMode,
    SelectOption,
    SelectStore,
    StaticOptions,
    StoreProvider,
)
from .dependencies import (
    CascadePolicy,
    RelationshipGraph,
    build_relationship_map,
    cascade_delete,
    cascade_delete_multi_parent,
    get_descendants,
)
from .options import filter_options_by_parent
from .bootstrap.config import StoreConfig, XSelectConfig

__version__ = "1.0.0"

__all__ = [
    # Store
    "SelectStore",
    "StoreProvider",
    "StoreConfig",
    "XSelectConfig",
    # Types
    "FieldConfig",
    "SelectOption",
    "SelectMode",
    "StaticOptions",
    "DynamicOptions",
    "FieldChange",
    "FieldSnapshot",
    "FieldState",
    "LoadState",
    # Adapters
    "FormAdapter",
    "DictAdapter",
    "CallbackAdapter",
    # Graph & cascade
    "RelationshipGraph",
    "build_relationship_map",
    "get_descendants",
    "CascadePolicy",
    "cascade_delete",
    "cascade_delete_multi_parent",
    # Filtering
    "filter_options_by_parent",
]
