"""
tests/test_tracer.py
====================
Marine DC Network Simulator — Connectivity Tracer Tests

Pass-through devices (fuses, buses, switches, ground) are transparent; every
other component is both a result and a dead end.
"""

from marine_dc.components import Category, ComponentNode
from marine_dc.tracer import ConnectivityTracer


class TestTrace:
    """Reachability through pass-through devices."""

    def test_chain_returns_only_the_load(self, fused_load_graph):
        tracer = ConnectivityTracer(fused_load_graph)
        assert [n.id for n in tracer.trace("bat")] == ["lights"]

    def test_chain_is_symmetric(self, fused_load_graph):
        tracer = ConnectivityTracer(fused_load_graph)
        assert [n.id for n in tracer.trace("lights")] == ["bat"]

    def test_isolated_node_traces_to_empty(self, make_graph):
        graph = make_graph([ComponentNode("bat", "battery")], [])
        assert ConnectivityTracer(graph).trace("bat") == []

    def test_real_component_is_a_dead_end(self, make_graph):
        graph = make_graph(
            [
                ComponentNode("bat", "battery"),
                ComponentNode("pump", "bilge-pump"),
                ComponentNode("horn", "horn"),
            ],
            [("bat", "pump"), ("pump", "horn")],
        )
        assert [n.id for n in ConnectivityTracer(graph).trace("bat")] == ["pump"]

    def test_two_paths_return_node_once(self, make_graph):
        graph = make_graph(
            [
                ComponentNode("bat", "battery"),
                ComponentNode("f1", "fuse"),
                ComponentNode("bus", "bus-bar"),
                ComponentNode("pump", "bilge-pump"),
            ],
            [("bat", "f1"), ("f1", "pump"), ("bat", "bus"), ("bus", "pump")],
        )
        assert [n.id for n in ConnectivityTracer(graph).trace("bat")] == ["pump"]

    def test_cycle_of_pass_through_nodes_terminates(self, make_graph):
        graph = make_graph(
            [
                ComponentNode("bat", "battery"),
                ComponentNode("a", "bus-bar"),
                ComponentNode("b", "junction-box"),
                ComponentNode("c", "relay"),
                ComponentNode("pump", "bilge-pump"),
            ],
            [("bat", "a"), ("a", "b"), ("b", "c"), ("c", "a"), ("c", "pump")],
        )
        assert [n.id for n in ConnectivityTracer(graph).trace("bat")] == ["pump"]

    def test_wires_to_unknown_nodes_are_ignored(self, make_graph):
        graph = make_graph([ComponentNode("bat", "battery")], [("bat", "ghost")])
        assert ConnectivityTracer(graph).trace("bat") == []


class TestDerivedQueries:

    def test_protected_path_crosses_fuse(self, fused_load_graph):
        tracer = ConnectivityTracer(fused_load_graph)
        assert tracer.is_protected_path("lights", "bat") is True
        assert Category.PROTECTION in tracer.trace_via("lights")["bat"]

    def test_direct_wire_is_unprotected(self, make_graph):
        graph = make_graph(
            [ComponentNode("bat", "battery"), ComponentNode("pump", "bilge-pump")],
            [("bat", "pump")],
        )
        assert ConnectivityTracer(graph).is_protected_path("pump", "bat") is False

    def test_unreachable_target_is_not_protected(self, fused_load_graph):
        tracer = ConnectivityTracer(fused_load_graph)
        assert tracer.is_protected_path("lights", "nowhere") is False

    def test_ground_only_load_is_unpowered(self, make_graph):
        graph = make_graph(
            [ComponentNode("pump", "bilge-pump"), ComponentNode("gnd", "ground-bus")],
            [("pump", "gnd")],
        )
        tracer = ConnectivityTracer(graph)
        assert tracer.is_connected_to_power("pump") is False
        assert tracer.is_connected_to_battery("pump") is False

    def test_charger_counts_as_power(self, make_graph):
        graph = make_graph(
            [ComponentNode("chg", "battery-charger"), ComponentNode("pump", "bilge-pump")],
            [("chg", "pump")],
        )
        assert ConnectivityTracer(graph).is_connected_to_power("pump") is True

    def test_first_battery_follows_wire_order(self, make_graph):
        graph = make_graph(
            [
                ComponentNode("b2", "battery"),
                ComponentNode("b1", "battery"),
                ComponentNode("bus", "bus-bar"),
            ],
            [("bus", "b2"), ("bus", "b1")],
        )
        assert ConnectivityTracer(graph).first_battery("bus").id == "b2"

    def test_by_category_filters(self, fused_load_graph):
        tracer = ConnectivityTracer(fused_load_graph)
        assert [n.id for n in tracer.by_category("bus", Category.LOAD)] == ["lights"]
        assert [n.id for n in tracer.by_category("bus", Category.POWER_SOURCE)] == ["bat"]
