"""
dependencies/ - Relationship graph and cascade delete

Provides:
- RelationshipGraph: parent/child map of select fields
- CascadeEngine: removes child selections a parent no longer justifies
"""

from .graph import (
    RelationshipEntry,
    RelationshipMap,
    RelationshipGraph,
    DescendantsGetter,
    build_relationship_map,
    clear_relationship_cache,
    get_descendants,
)
from .cascade import (
    CascadePolicy,
    CascadeOutcome,
    CascadeResult,
    CascadeEngine,
    cascade_delete,
    cascade_delete_multi_parent,
    is_option_justified,
)

__all__ = [
    # Graph
    "RelationshipEntry",
    "RelationshipMap",
    "RelationshipGraph",
    "DescendantsGetter",
    "build_relationship_map",
    "clear_relationship_cache",
    "get_descendants",
    # Cascade
    "CascadePolicy",
    "CascadeOutcome",
    "CascadeResult",
    "CascadeEngine",
    "cascade_delete",
    "cascade_delete_multi_parent",
    "is_option_justified",
]
