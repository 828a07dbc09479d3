"""
XSELECT Relationship Graph

Builds the parent/child graph of select fields from their configs.

- Each field gets one RelationshipEntry {parent, children}
- A field with several parents is registered as a child of each of them
- Unknown parents are configuration errors: logged, never raised
- Results are memoised against the identity of the config sequence
"""

from __future__ import annotations
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union
import logging

import networkx as nx

from xselect.core.types import FieldConfig

logger = logging.getLogger(__name__)


# =============================================================================
# RELATIONSHIP ENTRY
# =============================================================================

ParentSpec = Union[None, str, Tuple[str, ...]]


@dataclass
class RelationshipEntry:
    """Parent(s) and children of one field."""
    parent: ParentSpec = None
    children: List[str] = field(default_factory=list)

    @property
    def parent_names(self) -> Tuple[str, ...]:
        if self.parent is None:
            return ()
        if isinstance(self.parent, str):
            return (self.parent,)
        return tuple(self.parent)

    def to_dict(self) -> Dict[str, Any]:
        parent = list(self.parent) if isinstance(self.parent, tuple) else self.parent
        return {"parent": parent, "children": list(self.children)}


RelationshipMap = Dict[str, RelationshipEntry]


# =============================================================================
# BUILDER
# =============================================================================

def _build_relationship_map(configs: Sequence[FieldConfig]) -> RelationshipMap:
    relationships: RelationshipMap = {}

    # Pass 1: one entry per field
    for config in configs:
        relationships[config.name] = RelationshipEntry(parent=config.depends_on)

    # Pass 2: register each field under every parent (forward references allowed)
    for config in configs:
        for parent_name in config.parent_names:
            parent_entry = relationships.get(parent_name)
            if parent_entry is None:
                logger.warning(
                    f"Field '{config.name}' depends on unknown field '{parent_name}'; "
                    f"relationship ignored"
                )
                continue
            if config.name not in parent_entry.children:
                parent_entry.children.append(config.name)

    return relationships


_MAP_CACHE_SIZE = 32
_map_cache: "OrderedDict[int, Tuple[Sequence[FieldConfig], RelationshipMap]]" = OrderedDict()


def build_relationship_map(configs: Sequence[FieldConfig]) -> RelationshipMap:
    """
    Build the relationship map for a config sequence.

    Memoised by identity: passing the same sequence object again returns the
    same map without rebuilding it.

    Example:
        configs = [
            FieldConfig("country"),
            FieldConfig("province", depends_on="country"),
            FieldConfig("city", depends_on="province"),
        ]
        build_relationship_map(configs)
        # {'country':  parent=None,       children=['province'],
        #  'province': parent='country',  children=['city'],
        #  'city':     parent='province', children=[]}
    """
    key = id(configs)
    cached = _map_cache.get(key)
    if cached is not None and cached[0] is configs:
        _map_cache.move_to_end(key)
        return cached[1]

    relationships = _build_relationship_map(configs)
    _map_cache[key] = (configs, relationships)
    if len(_map_cache) > _MAP_CACHE_SIZE:
        _map_cache.popitem(last=False)

    logger.debug(f"Relationship map built: {len(relationships)} fields")
    return relationships


def clear_relationship_cache() -> None:
    """Drop all memoised relationship maps."""
    _map_cache.clear()


# =============================================================================
# TRAVERSAL
# =============================================================================

def get_descendants(field_name: str, relationships: RelationshipMap) -> List[str]:
    """
    All transitive descendants of a field, breadth-first.

    Uses an advancing index over the queue instead of popping from it.
    Each descendant appears once, at its first (shallowest) position.
    """
    start = relationships.get(field_name)
    if start is None or not start.children:
        return []

    descendants: List[str] = []
    seen: Set[str] = {field_name}
    queue: List[str] = [field_name]
    index = 0

    while index < len(queue):
        current = queue[index]
        index += 1
        entry = relationships.get(current)
        if entry is None:
            continue
        for child in entry.children:
            if child in seen:
                continue
            seen.add(child)
            descendants.append(child)
            queue.append(child)

    return descendants


class DescendantsGetter:
    """Memoised get_descendants for one relationship map."""

    def __init__(self, relationships: RelationshipMap):
        self._relationships = relationships
        self._cache: Dict[str, List[str]] = {}

    def __call__(self, field_name: str) -> List[str]:
        cached = self._cache.get(field_name)
        if cached is not None:
            return cached
        result = get_descendants(field_name, self._relationships)
        self._cache[field_name] = result
        return result

    def clear(self) -> None:
        self._cache.clear()


# =============================================================================
# RELATIONSHIP GRAPH
# =============================================================================

class RelationshipGraph:
    """
    Read-only view over a relationship map with traversal and diagnostics.

    Cycles are not supported by the store; find_cycles() reports them so
    callers can surface configuration mistakes.
    """

    def __init__(self, configs: Sequence[FieldConfig]):
        self._configs = configs
        self._relationships = build_relationship_map(configs)
        self._descendants = DescendantsGetter(self._relationships)
        self._rank: Optional[Dict[str, int]] = None

    @property
    def relationships(self) -> RelationshipMap:
        return self._relationships

    def has_field(self, name: str) -> bool:
        return name in self._relationships

    def get_entry(self, name: str) -> Optional[RelationshipEntry]:
        return self._relationships.get(name)

    def parents_of(self, name: str) -> Tuple[str, ...]:
        """Known parent fields of a field (unknown names are skipped)."""
        entry = self._relationships.get(name)
        if entry is None:
            return ()
        return tuple(p for p in entry.parent_names if p in self._relationships)

    def children_of(self, name: str) -> List[str]:
        entry = self._relationships.get(name)
        return list(entry.children) if entry else []

    def descendants_of(self, name: str) -> List[str]:
        return self._descendants(name)

    def descendants_of_many(self, names: Sequence[str]) -> List[str]:
        """
        Union of descendants of several fields, parents before children.

        A field reachable along paths of different length (diamonds) is
        placed after all of its ancestors in the set.
        """
        collected: Set[str] = set()
        for name in names:
            collected.update(self._descendants(name))
        rank = self._topological_rank()
        return sorted(collected, key=lambda n: rank.get(n, 0))

    def _topological_rank(self) -> Dict[str, int]:
        if self._rank is None:
            graph = self.to_networkx()
            if nx.is_directed_acyclic_graph(graph):
                order = list(nx.topological_sort(graph))
            else:
                order = list(self._relationships.keys())
            self._rank = {name: i for i, name in enumerate(order)}
        return self._rank

    def ancestors_of(self, name: str) -> Set[str]:
        """All upstream fields (transitive closure over parents)."""
        result: Set[str] = set()
        to_process = [name]

        while to_process:
            current = to_process.pop()
            for parent in self.parents_of(current):
                if parent not in result:
                    result.add(parent)
                    to_process.append(parent)

        return result

    def roots(self) -> List[str]:
        """Fields without (known) parents, in config order."""
        return [name for name in self._relationships if not self.parents_of(name)]

    def unknown_parents(self) -> Dict[str, List[str]]:
        """Fields whose depends_on references names that are not configured."""
        result: Dict[str, List[str]] = {}
        for name, entry in self._relationships.items():
            missing = [p for p in entry.parent_names if p not in self._relationships]
            if missing:
                result[name] = missing
        return result

    def to_networkx(self) -> "nx.DiGraph":
        """Directed graph with edges parent -> child."""
        graph = nx.DiGraph()
        graph.add_nodes_from(self._relationships.keys())
        for name, entry in self._relationships.items():
            for child in entry.children:
                graph.add_edge(name, child)
        return graph

    def find_cycles(self) -> List[List[str]]:
        """Every elementary cycle in the graph (empty for a valid DAG)."""
        return [list(cycle) for cycle in nx.simple_cycles(self.to_networkx())]

    def is_acyclic(self) -> bool:
        return nx.is_directed_acyclic_graph(self.to_networkx())

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for diagnostics."""
        return {
            name: entry.to_dict()
            for name, entry in self._relationships.items()
        }
