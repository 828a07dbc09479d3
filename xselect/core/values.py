"""
XSELECT Value Helpers

Equality and normalisation rules shared by the store, the cascade engine
and the option filters.

A field value is one of:
- None (no selection)
- a scalar (str or int)
- a list of scalars (multi-select, order significant)
"""

from __future__ import annotations
from typing import Any, Iterable, List, Mapping, Optional

import json


def is_sequence_value(value: Any) -> bool:
    """True for list/tuple values (multi-select selections)."""
    return isinstance(value, (list, tuple))


def is_empty(value: Any) -> bool:
    """Check if a value is empty (None or an empty sequence)."""
    if value is None:
        return True
    if is_sequence_value(value):
        return len(value) == 0
    return False


def normalize_to_list(value: Any) -> List[Any]:
    """
    Normalize any value to a list.

    Examples:
        normalize_to_list("A")         -> ["A"]
        normalize_to_list(["A", "B"])  -> ["A", "B"]
        normalize_to_list(None)        -> []
    """
    if is_sequence_value(value):
        return list(value)
    if value is not None:
        return [value]
    return []


def are_values_equal(value_a: Any, value_b: Any) -> bool:
    """
    Check if two field values are equal.

    Scalars compare with ==, sequences by length and positional equality
    (order matters). A sequence never equals a scalar.
    """
    if value_a is value_b:
        return True

    a_is_seq = is_sequence_value(value_a)
    b_is_seq = is_sequence_value(value_b)

    if a_is_seq != b_is_seq:
        return False

    if a_is_seq:
        if len(value_a) != len(value_b):
            return False
        for left, right in zip(value_a, value_b):
            if left != right:
                return False
        return True

    if value_a is None or value_b is None:
        return False

    # bool is an int subclass; True must not match a selection of 1
    if isinstance(value_a, bool) != isinstance(value_b, bool):
        return False

    return value_a == value_b


def are_lists_equal_unordered(list_a: Iterable[Any], list_b: Iterable[Any]) -> bool:
    """Check if two sequences hold the same elements regardless of order."""
    list_a = list(list_a)
    list_b = list(list_b)
    if len(list_a) != len(list_b):
        return False
    return set(list_a) == set(list_b)


def are_parent_values_equal(value_a: Any, value_b: Any) -> bool:
    """
    Compare two parent values.

    Multi-parent values are mappings {parent_name: value}; they are compared
    shallowly key by key. Anything else falls back to are_values_equal.
    """
    if value_a is value_b:
        return True

    a_is_map = isinstance(value_a, Mapping)
    b_is_map = isinstance(value_b, Mapping)

    if a_is_map != b_is_map:
        return False

    if a_is_map:
        if len(value_a) != len(value_b):
            return False
        for key, item in value_a.items():
            if key not in value_b:
                return False
            if not are_values_equal(item, value_b[key]):
                return False
        return True

    return are_values_equal(value_a, value_b)


def get_removed_values(old_value: Any, new_value: Any) -> List[Any]:
    """
    Values present in old_value but no longer present in new_value.

    Examples:
        get_removed_values(["A", "B", "C"], ["A", "C"]) -> ["B"]
        get_removed_values("A", None)                  -> ["A"]
    """
    old_list = normalize_to_list(old_value)
    new_list = normalize_to_list(new_value)

    if not old_list:
        return []
    if not new_list:
        return old_list

    remaining = set(new_list)
    return [value for value in old_list if value not in remaining]


def copy_value(value: Any) -> Any:
    """Detach list selections from the caller's object."""
    if is_sequence_value(value):
        return list(value)
    return value


def cleared_value_for(value: Any) -> Optional[List[Any]]:
    """The empty value matching the shape of value ([] for lists, else None)."""
    if is_sequence_value(value):
        return []
    return None


def parent_value_key(parent_value: Any) -> str:
    """
    Stable string key for a parent value.

    Sequences are sorted so that ["VN", "US"] and ["US", "VN"] share a key;
    mappings are serialised with sorted keys.
    """
    if parent_value is None:
        return "__none__"
    if is_sequence_value(parent_value):
        items = sorted(parent_value, key=lambda v: (type(v).__name__, str(v)))
        return "__seq__" + "|".join(str(v) for v in items)
    if isinstance(parent_value, Mapping):
        return "__map__" + json.dumps(
            {str(k): parent_value[k] for k in parent_value},
            sort_keys=True,
            default=str,
        )
    return f"{type(parent_value).__name__}:{parent_value}"
