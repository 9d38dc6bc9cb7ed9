from __future__ import annotations

import pytest
from hypothesis import given, settings, strategies as st

from plughost.plugins.base import PluginRecord
from plughost.plugins.errors import CircularDependencyError, MissingDependencyError
from plughost.plugins.ordering import resolve_order


def _names(order):
    return [record.name for record in order]


def test_priority_order_highest_first():
    records = [
        PluginRecord(name="p3", priority=1),
        PluginRecord(name="p1", priority=10),
        PluginRecord(name="p2", priority=5),
    ]

    assert _names(resolve_order(records)) == ["p1", "p2", "p3"]


def test_equal_priority_keeps_batch_order():
    records = [
        PluginRecord(name="charlie"),
        PluginRecord(name="alpha"),
        PluginRecord(name="bravo"),
    ]

    assert _names(resolve_order(records)) == ["charlie", "alpha", "bravo"]


def test_negative_priorities_sort_after_default():
    records = [
        PluginRecord(name="low", priority=-5),
        PluginRecord(name="default"),
        PluginRecord(name="high", priority=3),
    ]

    assert _names(resolve_order(records)) == ["high", "default", "low"]


def test_dependency_dominates_priority():
    records = [
        PluginRecord(name="a", priority=100, dependencies=("b",)),
        PluginRecord(name="b", priority=1),
    ]

    assert _names(resolve_order(records)) == ["b", "a"]


def test_transitive_dependencies_are_pulled_ahead():
    records = [
        PluginRecord(name="app", priority=50, dependencies=("db",)),
        PluginRecord(name="db", priority=1, dependencies=("config",)),
        PluginRecord(name="config", priority=-10),
        PluginRecord(name="other", priority=20),
    ]

    assert _names(resolve_order(records)) == ["config", "db", "app", "other"]


def test_multiple_dependencies_follow_declaration_order():
    records = [
        PluginRecord(name="plugin1", dependencies=("plugin3", "plugin2")),
        PluginRecord(name="plugin2"),
        PluginRecord(name="plugin3"),
    ]

    assert _names(resolve_order(records)) == ["plugin3", "plugin2", "plugin1"]


def test_missing_dependency_names_dependent_and_missing():
    records = [PluginRecord(name="plugin1", dependencies=("nonexistent-plugin",))]

    with pytest.raises(MissingDependencyError) as excinfo:
        resolve_order(records)

    assert excinfo.value.plugin == "plugin1"
    assert excinfo.value.dependency == "nonexistent-plugin"
    assert "Plugin 'plugin1' depends on 'nonexistent-plugin' which is not loaded" in str(
        excinfo.value
    )


def test_two_node_cycle_reports_path():
    records = [
        PluginRecord(name="plugin1", dependencies=("plugin2",)),
        PluginRecord(name="plugin2", dependencies=("plugin1",)),
    ]

    with pytest.raises(CircularDependencyError) as excinfo:
        resolve_order(records)

    assert excinfo.value.cycle == ("plugin1", "plugin2", "plugin1")
    assert "Circular dependency detected: plugin1 -> plugin2 -> plugin1" in str(excinfo.value)


def test_cycle_reported_from_repeated_node_only():
    records = [
        PluginRecord(name="entry", dependencies=("a",)),
        PluginRecord(name="a", dependencies=("b",)),
        PluginRecord(name="b", dependencies=("c",)),
        PluginRecord(name="c", dependencies=("a",)),
    ]

    with pytest.raises(CircularDependencyError) as excinfo:
        resolve_order(records)

    assert excinfo.value.cycle == ("a", "b", "c", "a")


def test_self_dependency_is_a_cycle():
    with pytest.raises(CircularDependencyError) as excinfo:
        resolve_order([PluginRecord(name="solo", dependencies=("solo",))])

    assert excinfo.value.cycle == ("solo", "solo")


def test_empty_batch_resolves_to_empty_order():
    assert resolve_order([]) == ()


_priorities = st.lists(st.integers(min_value=-20, max_value=20), max_size=12)


@settings(max_examples=100, deadline=None)
@given(_priorities)
def test_without_dependencies_order_is_stable_priority_sort(priorities):
    records = [
        PluginRecord(name=f"p{index}", priority=priority)
        for index, priority in enumerate(priorities)
    ]

    expected = sorted(records, key=lambda record: -record.priority)
    assert list(resolve_order(records)) == expected


@st.composite
def _acyclic_batches(draw):
    size = draw(st.integers(min_value=1, max_value=10))
    records = []
    for index in range(size):
        # Only depend on earlier plugins so the graph stays acyclic.
        dependencies = draw(
            st.lists(st.integers(min_value=0, max_value=max(index - 1, 0)), max_size=3)
            if index
            else st.just([])
        )
        records.append(
            PluginRecord(
                name=f"p{index}",
                priority=draw(st.integers(min_value=-5, max_value=5)),
                dependencies=tuple(f"p{dep}" for dep in dependencies),
            )
        )
    shuffled = draw(st.permutations(records))
    return list(shuffled)


@settings(max_examples=100, deadline=None)
@given(_acyclic_batches())
def test_dependencies_always_precede_dependents(records):
    order = resolve_order(records)
    positions = {record.name: index for index, record in enumerate(order)}

    assert sorted(positions) == sorted(record.name for record in records)
    for record in records:
        for dependency in record.dependencies:
            assert positions[dependency] < positions[record.name]
    assert resolve_order(records) == order
