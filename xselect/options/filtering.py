"""
XSELECT Option Filtering

Filters a field's raw options against its current parent value.

Supports many-to-many relationships: an option may declare several parent
values, and a parent field may hold several selected values. Multi-parent
fields pass a mapping {parent_field: value}; options declaring a mapping
are matched field by field, other options against the union.
"""

from __future__ import annotations
from typing import Any, Dict, List, Mapping, Sequence, Set

from xselect.core.types import SelectOption
from xselect.core.values import is_empty, is_sequence_value, normalize_to_list


def _option_matches(option: SelectOption, selected: Set[Any], selected_by_field: Mapping[str, Set[Any]]) -> bool:
    declared = option.parent_value

    if isinstance(declared, Mapping):
        if not selected_by_field:
            return False
        for parent_field, declared_values in declared.items():
            field_selected = selected_by_field.get(parent_field)
            if not field_selected:
                return False
            if not any(v in field_selected for v in normalize_to_list(declared_values)):
                return False
        return True

    if is_sequence_value(declared):
        return any(v in selected for v in declared)

    return declared in selected


def filter_options_by_parent(options: Sequence[SelectOption], parent_value: Any) -> List[SelectOption]:
    """
    Default filter: keep options whose parent_value intersects parent_value.

    An empty parent value yields no options.

    Examples:
        options = [
            SelectOption("HCM", "HCM", parent_value="VN"),
            SelectOption("CA", "CA", parent_value="US"),
        ]
        filter_options_by_parent(options, "VN")          # [HCM]
        filter_options_by_parent(options, ["VN", "US"])  # [HCM, CA]
    """
    if isinstance(parent_value, Mapping):
        selected_by_field: Dict[str, Set[Any]] = {
            name: set(normalize_to_list(value)) for name, value in parent_value.items()
        }
        selected: Set[Any] = set()
        for values in selected_by_field.values():
            selected.update(values)
        if not selected:
            return []
        return [o for o in options if _option_matches(o, selected, selected_by_field)]

    if is_empty(parent_value):
        return []

    selected = set(normalize_to_list(parent_value))
    return [o for o in options if _option_matches(o, selected, {})]


class OptionsIndex:
    """
    Pre-indexed filter for one option list.

    Builds a parent_value -> options index once; each lookup then costs
    the number of selected parent values. Mapping-shaped parent values are
    not indexed and fall back to filter_options_by_parent.
    """

    def __init__(self, options: Sequence[SelectOption]):
        self._options = list(options)
        self._index: Dict[Any, List[int]] = {}
        self._has_mapping = False

        for position, option in enumerate(self._options):
            declared = option.parent_value
            if declared is None:
                continue
            if isinstance(declared, Mapping):
                self._has_mapping = True
                continue
            for parent in normalize_to_list(declared):
                self._index.setdefault(parent, []).append(position)

    def __call__(self, parent_value: Any) -> List[SelectOption]:
        if self._has_mapping or isinstance(parent_value, Mapping):
            return filter_options_by_parent(self._options, parent_value)

        if is_empty(parent_value):
            return []

        positions: Set[int] = set()
        for parent in normalize_to_list(parent_value):
            positions.update(self._index.get(parent, ()))

        return [self._options[i] for i in sorted(positions)]


def format_options(options: Sequence[SelectOption]) -> List[Dict[str, Any]]:
    """Strip parent_value and custom data, leaving what a widget renders."""
    return [
        {"label": o.label, "value": o.value, "disabled": o.disabled}
        for o in options
    ]


def are_options_shallow_equal(a: Sequence[SelectOption], b: Sequence[SelectOption]) -> bool:
    """Same length, same values and parent values, position by position."""
    if a is b:
        return True
    if len(a) != len(b):
        return False
    for left, right in zip(a, b):
        if left.value != right.value:
            return False
        if left.parent_value != right.parent_value:
            return False
    return True
