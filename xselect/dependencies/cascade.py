"""
XSELECT Cascade Delete

Removes child selections that are no longer justified by a parent
selection after one or more parent values change.

Policies, chosen per descendant field:
- CLEAR_EMPTY_PARENTS: every parent is empty, the child is cleared
- SELECTIVE: options declare parent_value; keep only justified selections
- BLUNT: no option declares parent_value; clear the child entirely

The choice between SELECTIVE and BLUNT is made by whether ANY option of the
field declares a parent_value. Partially annotated option sets therefore
cascade selectively, and options without annotation are kept.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, TYPE_CHECKING
import logging

from xselect.core.types import FieldChange, SelectOption
from xselect.core.values import (
    are_values_equal,
    cleared_value_for,
    is_empty,
    is_sequence_value,
    normalize_to_list,
)

if TYPE_CHECKING:
    from .graph import RelationshipGraph

logger = logging.getLogger(__name__)


# =============================================================================
# POLICY
# =============================================================================

class CascadePolicy(Enum):
    """How a descendant field was cascaded."""
    CLEAR_EMPTY_PARENTS = "clear_empty_parents"
    SELECTIVE = "selective"
    BLUNT = "blunt"


# =============================================================================
# PURE FUNCTIONS
# =============================================================================

def is_option_justified(
    option: SelectOption,
    remaining: Set[Any],
    remaining_by_field: Optional[Mapping[str, Set[Any]]] = None,
) -> bool:
    """
    Whether an option is still justified by the remaining parent values.

    - no parent_value: always justified (nothing to cascade on)
    - empty list: always justified
    - list: justified when any member remains
    - mapping {parent_field: values}: justified when every declared parent
      field still holds at least one declared value
    - scalar: justified when it remains
    """
    declared = option.parent_value

    if declared is None:
        return True

    if isinstance(declared, Mapping):
        by_field = remaining_by_field or {}
        for parent_field, declared_values in declared.items():
            field_remaining = by_field.get(parent_field)
            if not field_remaining:
                return False
            if not any(v in field_remaining for v in normalize_to_list(declared_values)):
                return False
        return True

    if is_sequence_value(declared):
        if len(declared) == 0:
            return True
        return any(v in remaining for v in declared)

    return declared in remaining


def _cascade_value(
    current_value: Any,
    options: Sequence[SelectOption],
    remaining: Set[Any],
    remaining_by_field: Optional[Mapping[str, Set[Any]]],
) -> Any:
    if current_value is None:
        return None

    lookup = {option.value: option for option in options}

    def keep(value: Any) -> bool:
        option = lookup.get(value)
        if option is None:
            return True
        return is_option_justified(option, remaining, remaining_by_field)

    if not is_sequence_value(current_value):
        return current_value if keep(current_value) else None

    return [value for value in current_value if keep(value)]


def cascade_delete(
    current_value: Any,
    remaining_parent_values: Iterable[Any],
    options: Sequence[SelectOption],
) -> Any:
    """
    Remove selections whose declared parent(s) are no longer selected.

    Example:
        cities = ["D1", "D7", "HK"]          # D1, D7 in HCM; HK in HN
        cascade_delete(cities, ["HN"], city_options)
        # -> ["HK"]

        # P1 belongs to users 1 and 2, P2 only to user 2
        cascade_delete(["P1", "P2"], [1], project_options)
        # -> ["P1"]
    """
    return _cascade_value(current_value, options, set(remaining_parent_values), None)


def cascade_delete_multi_parent(
    current_value: Any,
    remaining_by_field: Mapping[str, Iterable[Any]],
    options: Sequence[SelectOption],
) -> Any:
    """
    Cascade delete for fields with several parents.

    Options declare parent_value as {parent_field: values}; a selection is
    kept only while every declared parent field still holds one of the
    declared values. Scalar or list parent values are checked against the
    union of all remaining parent values.

    Example:
        remaining = {"user_ids": [1, 2], "task_ids": [5, 10]}
        # comment 1: {"user_ids": [1], "task_ids": [5]}  -> kept
        # comment 2: {"user_ids": [3], "task_ids": [5]}  -> removed
        # comment 3: {"user_ids": [1], "task_ids": [15]} -> removed
    """
    by_field = {name: set(normalize_to_list(values)) for name, values in remaining_by_field.items()}
    union: Set[Any] = set()
    for values in by_field.values():
        union.update(values)
    return _cascade_value(current_value, options, union, by_field)


# =============================================================================
# CASCADE RESULT
# =============================================================================

@dataclass
class CascadeOutcome:
    """How one descendant was treated."""
    field_name: str
    policy: CascadePolicy
    old_value: Any = None
    new_value: Any = None

    @property
    def changed(self) -> bool:
        return not are_values_equal(self.old_value, self.new_value)


@dataclass
class CascadeResult:
    """Result of cascading one commit."""
    trigger_fields: List[str] = field(default_factory=list)
    outcomes: List[CascadeOutcome] = field(default_factory=list)

    @property
    def changed_fields(self) -> List[str]:
        return [o.field_name for o in self.outcomes if o.changed]

    def get_summary(self) -> Dict[str, Any]:
        return {
            "trigger_fields": list(self.trigger_fields),
            "evaluated": len(self.outcomes),
            "changed": self.changed_fields,
            "policies": {o.field_name: o.policy.value for o in self.outcomes},
        }


# =============================================================================
# CASCADE ENGINE
# =============================================================================

OptionsResolver = Callable[[str], Sequence[SelectOption]]


def _record_change(changes: List[FieldChange], change: FieldChange) -> None:
    for index, existing in enumerate(changes):
        if existing.name == change.name:
            changes[index] = change
            return
    changes.append(change)


class CascadeEngine:
    """
    Applies cascade delete over every descendant of a set of changed fields.

    The engine mutates a working copy of the values; the store commits that
    copy only after the whole cascade has run.
    """

    def __init__(self, graph: "RelationshipGraph", resolve_options: OptionsResolver):
        self._graph = graph
        self._resolve_options = resolve_options

    def run(
        self,
        changed_fields: Sequence[str],
        values: Dict[str, Any],
        changes: List[FieldChange],
    ) -> CascadeResult:
        """
        Cascade the given direct changes through all descendants.

        Args:
            changed_fields: Fields whose values were changed directly
            values: Working copy of all values (mutated in place)
            changes: Change records; cascaded changes are appended, or
                replace the record of a field that was also set directly

        Returns:
            CascadeResult describing each evaluated descendant
        """
        result = CascadeResult(trigger_fields=list(changed_fields))
        changed: Set[str] = set(changed_fields)

        for descendant in self._graph.descendants_of_many(changed_fields):
            parents = self._graph.parents_of(descendant)
            if not parents or not any(p in changed for p in parents):
                continue

            current_value = values.get(descendant)
            if is_empty(current_value):
                continue

            outcome = self._cascade_field(descendant, parents, current_value, values)
            result.outcomes.append(outcome)

            if outcome.changed:
                values[descendant] = outcome.new_value
                _record_change(changes, FieldChange(name=descendant, value=outcome.new_value))
                changed.add(descendant)

        if result.outcomes:
            logger.debug(f"Cascade from {list(changed_fields)}: {result.get_summary()}")

        return result

    def _cascade_field(
        self,
        name: str,
        parents: Sequence[str],
        current_value: Any,
        values: Mapping[str, Any],
    ) -> CascadeOutcome:
        remaining_by_field = {
            parent: normalize_to_list(values.get(parent)) for parent in parents
        }
        remaining: List[Any] = []
        for parent_values in remaining_by_field.values():
            remaining.extend(parent_values)

        if not remaining:
            return CascadeOutcome(
                field_name=name,
                policy=CascadePolicy.CLEAR_EMPTY_PARENTS,
                old_value=current_value,
                new_value=cleared_value_for(current_value),
            )

        options = self._resolve_options(name)
        if any(option.has_parent_value for option in options):
            if len(parents) > 1:
                new_value = cascade_delete_multi_parent(current_value, remaining_by_field, options)
            else:
                new_value = cascade_delete(current_value, remaining, options)
            return CascadeOutcome(
                field_name=name,
                policy=CascadePolicy.SELECTIVE,
                old_value=current_value,
                new_value=new_value,
            )

        return CascadeOutcome(
            field_name=name,
            policy=CascadePolicy.BLUNT,
            old_value=current_value,
            new_value=cleared_value_for(current_value),
        )
