"""
tests/test_components.py
========================
Marine DC Network Simulator — Data Model Tests
"""

import pytest

from marine_dc.components import (
    Category,
    ComponentNode,
    SystemGraph,
    category_of,
)


class TestCategories:

    @pytest.mark.parametrize("component_type, category", [
        ("house-battery", Category.POWER_SOURCE),
        ("shore-power", Category.POWER_SOURCE),
        ("dc-dc-mppt-charger", Category.CHARGING),
        ("anl-fuse", Category.PROTECTION),
        ("bus-bar", Category.DISTRIBUTION),
        ("battery-switch", Category.SWITCHING),
        ("ground-bus", Category.GROUND),
        ("bilge-pump", Category.LOAD),
    ])
    def test_type_maps_to_one_category(self, component_type, category):
        assert category_of(component_type) is category

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError, match="flux-capacitor"):
            ComponentNode("x", "flux-capacitor")


class TestEffectiveValues:
    """override → spec → registry default → caller default"""

    def test_override_beats_spec(self):
        node = ComponentNode("f", "fuse", spec={"rating": 20}, overrides={"rating": 25})
        assert node.value("rating") == 25

    def test_spec_beats_registry(self):
        node = ComponentNode("f", "fuse", spec={"rating": 20})
        assert node.value("rating") == 20

    def test_registry_default(self):
        assert ComponentNode("f", "anl-fuse").value("rating") == 150.0

    def test_number_falls_back_on_non_positive(self):
        node = ComponentNode("b", "battery", overrides={"capacity": 0})
        assert node.number("capacity", 100.0) == 100.0

    def test_number_falls_back_on_text(self):
        node = ComponentNode("b", "battery", overrides={"capacity": "lots"})
        assert node.number("capacity", 100.0) == 100.0

    def test_label_defaults_to_id(self):
        assert ComponentNode("pump-1", "bilge-pump").label == "pump-1"


class TestSystemGraph:

    def test_from_dict(self):
        graph = SystemGraph.from_dict({
            "nodes": [
                {"id": "b", "type": "battery", "label": "Main", "overrides": {"capacity": 150}},
                {"id": "l", "type": "horn"},
            ],
            "wires": [{"source": "b", "target": "l"}],
        })
        assert graph.node("b").number("capacity") == 150.0
        assert graph.neighbors("l") == ["b"]
        assert graph.wires[0].id == "w0"
        assert graph.is_wired("b")

    def test_batteries_in_diagram_order(self):
        graph = SystemGraph([
            ComponentNode("h", "house-battery"),
            ComponentNode("l", "horn"),
            ComponentNode("s", "starter-battery"),
        ])
        assert [n.id for n in graph.batteries()] == ["h", "s"]
