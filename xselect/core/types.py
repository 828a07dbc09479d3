"""
XSELECT Core Types

Option, field configuration and snapshot types for cascading select fields.

Option sources are a tagged union:
- StaticOptions: a fixed list of options
- DynamicOptions: a loader called with the field's current parent value

FieldConfig accepts plain lists and callables for convenience and
normalises them into the tagged form at construction time.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import (
    Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union,
)


# =============================================================================
# ENUMS
# =============================================================================

class SelectMode(str, Enum):
    """Selection mode of a field."""
    SINGLE = "single"
    MULTIPLE = "multiple"
    TAGS = "tags"

    @property
    def is_multiple(self) -> bool:
        return self in (SelectMode.MULTIPLE, SelectMode.TAGS)


class LoadState(str, Enum):
    """Async option loading state of a field."""
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


# =============================================================================
# OPTIONS
# =============================================================================

@dataclass(frozen=True)
class SelectOption:
    """
    One selectable option.

    parent_value declares which parent selection(s) justify the option:
    - scalar: a single parent value
    - list: any member being selected justifies the option
    - mapping {parent_field: value or list}: multi-parent fields; every
      declared parent field must still hold one of the declared values
    """
    label: str
    value: Union[str, int]
    parent_value: Any = None
    disabled: bool = False
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def has_parent_value(self) -> bool:
        return self.parent_value is not None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "label": self.label,
            "value": self.value,
            "disabled": self.disabled,
        }
        if self.parent_value is not None:
            data["parent_value"] = self.parent_value
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SelectOption":
        """Build an option from a mapping (accepts parent_value or parentValue)."""
        known = {"label", "value", "parent_value", "parentValue", "disabled"}
        parent_value = data.get("parent_value", data.get("parentValue"))
        return cls(
            label=str(data.get("label", data["value"])),
            value=data["value"],
            parent_value=parent_value,
            disabled=bool(data.get("disabled", False)),
            extra={k: v for k, v in data.items() if k not in known},
        )


OptionList = List[SelectOption]
OptionLoader = Callable[[Any], Union[Sequence[SelectOption], Awaitable[Sequence[SelectOption]]]]
FilterFunc = Callable[[Sequence[SelectOption], Any], List[SelectOption]]


def coerce_options(options: Sequence[Any]) -> OptionList:
    """Convert a sequence of SelectOption or dicts into SelectOptions."""
    result: OptionList = []
    for option in options:
        if isinstance(option, SelectOption):
            result.append(option)
        elif isinstance(option, Mapping):
            result.append(SelectOption.from_dict(option))
        else:
            raise TypeError(f"Unsupported option type: {type(option).__name__}")
    return result


# =============================================================================
# OPTION SOURCES
# =============================================================================

@dataclass(frozen=True)
class StaticOptions:
    """A fixed option list."""
    options: Tuple[SelectOption, ...] = ()

    is_dynamic = False


@dataclass(frozen=True)
class DynamicOptions:
    """Options produced by a (possibly async) loader of the parent value."""
    loader: OptionLoader

    is_dynamic = True


OptionSource = Union[StaticOptions, DynamicOptions]


def to_option_source(options: Any) -> Optional[OptionSource]:
    """Normalise a config's options argument into an OptionSource."""
    if options is None:
        return None
    if isinstance(options, (StaticOptions, DynamicOptions)):
        return options
    if callable(options):
        return DynamicOptions(loader=options)
    return StaticOptions(options=tuple(coerce_options(options)))


# =============================================================================
# FIELD CONFIG
# =============================================================================

@dataclass(frozen=True)
class FieldConfig:
    """
    Configuration of one select field.

    Args:
        name: Unique field name
        options: list of options, loader callable, OptionSource or None
            (None = options supplied externally)
        depends_on: parent field name or list of names
        filter_options: custom filter (options, parent_value) -> options
        mode: single, multiple or tags
    """
    name: str
    options: Any = None
    depends_on: Union[None, str, Sequence[str]] = None
    filter_options: Optional[FilterFunc] = None
    mode: SelectMode = SelectMode.SINGLE
    label: Optional[str] = None
    placeholder: Optional[str] = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("FieldConfig.name must be a non-empty string")

        depends_on = self.depends_on
        if depends_on is not None and not isinstance(depends_on, str):
            depends_on = tuple(depends_on)
            if len(depends_on) == 0:
                depends_on = None
        if depends_on == "":
            depends_on = None

        parents = (depends_on,) if isinstance(depends_on, str) else (depends_on or ())
        if self.name in parents:
            raise ValueError(f"Field '{self.name}' cannot depend on itself")

        object.__setattr__(self, "depends_on", depends_on)
        object.__setattr__(self, "options", to_option_source(self.options))
        object.__setattr__(self, "mode", SelectMode(self.mode))

    @property
    def parent_names(self) -> Tuple[str, ...]:
        """Parent field names as a tuple (empty for root fields)."""
        if self.depends_on is None:
            return ()
        if isinstance(self.depends_on, str):
            return (self.depends_on,)
        return tuple(self.depends_on)

    @property
    def is_root(self) -> bool:
        return not self.parent_names

    @property
    def is_multi_parent(self) -> bool:
        return len(self.parent_names) > 1

    @property
    def has_dynamic_options(self) -> bool:
        return isinstance(self.options, DynamicOptions)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FieldConfig":
        """Build a static config from a JSON-style mapping."""
        return cls(
            name=data["name"],
            options=data.get("options"),
            depends_on=data.get("depends_on", data.get("dependsOn")),
            mode=data.get("mode") or SelectMode.SINGLE,
            label=data.get("label"),
            placeholder=data.get("placeholder"),
        )


# =============================================================================
# STORE RECORDS
# =============================================================================

FieldValues = Dict[str, Any]


@dataclass(frozen=True)
class FieldChange:
    """A committed change of one field."""
    name: str
    value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value}


@dataclass(frozen=True, eq=False)
class FieldSnapshot:
    """
    Immutable view of a field's derived state.

    The store returns the same object for as long as value, parent value
    and loading flag are unchanged. value is a copy of the stored value,
    shared by every holder of the snapshot, so treat it as read-only.
    """
    value: Any = None
    parent_value: Any = None
    parent_values: Optional[Mapping[str, Any]] = None
    is_loading: bool = False


EMPTY_SNAPSHOT = FieldSnapshot()


@dataclass
class OptionsCacheEntry:
    """Filtered options cached for one field."""
    options: OptionList
    parent_value_used: Any
    store_version: int
    raw_options: Sequence[SelectOption] = ()


@dataclass(frozen=True, eq=False)
class FieldState:
    """Consumer view of one field: everything a select widget needs."""
    name: str
    config: Optional[FieldConfig]
    options: OptionList
    value: Any
    parent_value: Any
    parent_values: Optional[Mapping[str, Any]]
    is_loading: bool
    is_disabled_by_parent: bool
    load_state: LoadState = LoadState.IDLE
    load_error: Optional[str] = None


def freeze_mapping(values: Mapping[str, Any]) -> Mapping[str, Any]:
    """Read-only view over a copy of values."""
    return MappingProxyType(dict(values))
