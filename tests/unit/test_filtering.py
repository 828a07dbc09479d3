"""
Unit tests for options/filtering.py
"""

import pytest

from xselect.core.types import SelectOption
from xselect.options.filtering import (
    OptionsIndex,
    are_options_shallow_equal,
    filter_options_by_parent,
    format_options,
)


def values_of(options):
    return [o.value for o in options]


class TestFilterOptionsByParent:
    """Tests for filter_options_by_parent."""

    def test_scalar_parent(self, province_options):
        assert values_of(filter_options_by_parent(province_options, "VN")) == ["HCM", "HN"]

    def test_list_parent(self, province_options):
        result = filter_options_by_parent(province_options, ["VN", "US"])
        assert values_of(result) == ["HCM", "HN", "CA", "TX"]

    @pytest.mark.parametrize("parent", [None, []])
    def test_empty_parent_yields_nothing(self, province_options, parent):
        assert filter_options_by_parent(province_options, parent) == []

    def test_option_with_several_parents(self):
        options = [
            SelectOption("P1", "P1", parent_value=[1, 2]),
            SelectOption("P2", "P2", parent_value=2),
        ]
        assert values_of(filter_options_by_parent(options, 1)) == ["P1"]
        assert values_of(filter_options_by_parent(options, [2])) == ["P1", "P2"]

    def test_options_without_parent_value_excluded(self):
        options = [SelectOption("A", "A"), SelectOption("B", "B", parent_value="x")]
        assert values_of(filter_options_by_parent(options, "x")) == ["B"]

    def test_mapping_parent(self):
        options = [
            SelectOption("c1", "c1", parent_value={"users": [1], "tasks": [5]}),
            SelectOption("c2", "c2", parent_value={"users": [2], "tasks": [5]}),
            SelectOption("c3", "c3", parent_value=10),
        ]
        parent = {"users": [1], "tasks": [5, 10]}
        assert values_of(filter_options_by_parent(options, parent)) == ["c1", "c3"]

    def test_mapping_parent_all_empty(self):
        options = [SelectOption("c1", "c1", parent_value={"users": [1]})]
        assert filter_options_by_parent(options, {"users": None, "tasks": []}) == []


class TestOptionsIndex:
    """Tests for OptionsIndex."""

    def test_matches_plain_filter(self, city_options):
        index = OptionsIndex(city_options)
        for parent in ["HCM", ["HN", "CA"], "ZZ", None, []]:
            assert index(parent) == filter_options_by_parent(city_options, parent)

    def test_keeps_original_order(self, city_options):
        index = OptionsIndex(city_options)
        assert values_of(index(["CA", "HCM"])) == ["D1", "D7", "LA"]

    def test_mapping_options_fall_back(self):
        options = [SelectOption("c1", "c1", parent_value={"users": [1]})]
        assert values_of(OptionsIndex(options)({"users": [1]})) == ["c1"]


class TestHelpers:
    """Tests for format_options and are_options_shallow_equal."""

    def test_format_options(self):
        options = [SelectOption("HCM", "HCM", parent_value="VN", extra={"code": 70})]
        assert format_options(options) == [{"label": "HCM", "value": "HCM", "disabled": False}]

    def test_shallow_equal(self, province_options):
        copy = [SelectOption(o.label + "!", o.value, parent_value=o.parent_value) for o in province_options]
        assert are_options_shallow_equal(province_options, copy)

    def test_shallow_not_equal(self, province_options):
        assert not are_options_shallow_equal(province_options, province_options[:2])
        changed = list(province_options)
        changed[0] = SelectOption("Ho Chi Minh", "HCM", parent_value="US")
        assert not are_options_shallow_equal(province_options, changed)
