"""
Unit tests for dependencies/graph.py

Tests the relationship map, descendant traversal and graph diagnostics.
"""

import logging

import pytest

from xselect.core.types import FieldConfig
from xselect.dependencies.graph import (
    DescendantsGetter,
    RelationshipGraph,
    build_relationship_map,
    clear_relationship_cache,
    get_descendants,
)


@pytest.fixture
def chain():
    return [
        FieldConfig("country"),
        FieldConfig("province", depends_on="country"),
        FieldConfig("city", depends_on="province"),
    ]


@pytest.fixture
def diamond():
    return [
        FieldConfig("a"),
        FieldConfig("b", depends_on="a"),
        FieldConfig("c", depends_on="a"),
        FieldConfig("d", depends_on=["b", "c"]),
    ]


class TestBuildRelationshipMap:
    """Tests for build_relationship_map."""

    def test_single_parent_chain(self, chain):
        relationships = build_relationship_map(chain)

        assert relationships["country"].parent is None
        assert relationships["country"].children == ["province"]
        assert relationships["province"].parent == "country"
        assert relationships["province"].children == ["city"]
        assert relationships["city"].children == []

    def test_multi_parent_registered_under_each_parent(self):
        configs = [
            FieldConfig("users"),
            FieldConfig("tasks"),
            FieldConfig("comments", depends_on=["users", "tasks"]),
        ]
        relationships = build_relationship_map(configs)

        assert relationships["comments"].parent == ("users", "tasks")
        assert relationships["comments"].parent_names == ("users", "tasks")
        assert relationships["users"].children == ["comments"]
        assert relationships["tasks"].children == ["comments"]

    def test_forward_reference(self):
        configs = [
            FieldConfig("province", depends_on="country"),
            FieldConfig("country"),
        ]
        relationships = build_relationship_map(configs)
        assert relationships["country"].children == ["province"]

    def test_unknown_parent_logged(self, caplog):
        configs = [FieldConfig("city", depends_on="ghost")]

        with caplog.at_level(logging.WARNING):
            relationships = build_relationship_map(configs)

        assert "ghost" in caplog.text
        assert relationships["city"].parent == "ghost"
        assert "ghost" not in relationships

    def test_memoised_by_identity(self, chain):
        first = build_relationship_map(chain)
        second = build_relationship_map(chain)
        assert first is second

    def test_equal_list_is_rebuilt(self, chain):
        first = build_relationship_map(chain)
        second = build_relationship_map(list(chain))
        assert first is not second

    def test_clear_cache(self, chain):
        first = build_relationship_map(chain)
        clear_relationship_cache()
        assert build_relationship_map(chain) is not first

    def test_to_dict(self):
        configs = [FieldConfig("a"), FieldConfig("b"), FieldConfig("c", depends_on=["a", "b"])]
        relationships = build_relationship_map(configs)
        assert relationships["c"].to_dict() == {"parent": ["a", "b"], "children": []}


class TestDescendants:
    """Tests for get_descendants and DescendantsGetter."""

    def test_breadth_first(self, chain):
        relationships = build_relationship_map(chain)
        assert get_descendants("country", relationships) == ["province", "city"]
        assert get_descendants("city", relationships) == []

    def test_unknown_field(self, chain):
        relationships = build_relationship_map(chain)
        assert get_descendants("ghost", relationships) == []

    def test_each_descendant_once(self, diamond):
        relationships = build_relationship_map(diamond)
        assert sorted(get_descendants("a", relationships)) == ["b", "c", "d"]

    def test_getter_memoises(self, chain):
        getter = DescendantsGetter(build_relationship_map(chain))
        assert getter("country") is getter("country")
        getter.clear()
        assert getter("country") == ["province", "city"]


class TestRelationshipGraph:
    """Tests for RelationshipGraph."""

    def test_parents_and_children(self, diamond):
        graph = RelationshipGraph(diamond)
        assert graph.parents_of("d") == ("b", "c")
        assert graph.children_of("a") == ["b", "c"]
        assert graph.parents_of("ghost") == ()

    def test_ancestors(self, diamond):
        graph = RelationshipGraph(diamond)
        assert graph.ancestors_of("d") == {"a", "b", "c"}
        assert graph.ancestors_of("a") == set()

    def test_roots(self, diamond):
        assert RelationshipGraph(diamond).roots() == ["a"]

    def test_descendants_of_many_parents_first(self, diamond):
        graph = RelationshipGraph(diamond)
        order = graph.descendants_of_many(["a"])

        assert set(order) == {"b", "c", "d"}
        assert order.index("d") > order.index("b")
        assert order.index("d") > order.index("c")

    def test_descendants_of_many_union(self, diamond):
        graph = RelationshipGraph(diamond)
        assert graph.descendants_of_many(["b", "c"]) == ["d"]

    def test_unknown_parents(self):
        graph = RelationshipGraph([FieldConfig("a"), FieldConfig("b", depends_on=["a", "ghost"])])
        assert graph.unknown_parents() == {"b": ["ghost"]}
        assert graph.parents_of("b") == ("a",)

    def test_acyclic(self, chain):
        graph = RelationshipGraph(chain)
        assert graph.is_acyclic()
        assert graph.find_cycles() == []

    def test_cycle_detected(self):
        graph = RelationshipGraph([
            FieldConfig("a", depends_on="b"),
            FieldConfig("b", depends_on="a"),
        ])
        assert not graph.is_acyclic()
        cycles = graph.find_cycles()
        assert len(cycles) == 1
        assert set(cycles[0]) == {"a", "b"}

    def test_to_networkx(self, chain):
        nx_graph = RelationshipGraph(chain).to_networkx()
        assert set(nx_graph.edges()) == {("country", "province"), ("province", "city")}

    def test_to_dict(self, chain):
        data = RelationshipGraph(chain).to_dict()
        assert data["province"] == {"parent": "country", "children": ["city"]}
