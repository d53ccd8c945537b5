"""
tests/conftest.py
=================
Shared diagram-building fixtures.
"""

import pytest

from marine_dc.components import ComponentNode, SystemGraph, Wire


def build_graph(nodes, links):
    """``links`` is a sequence of ``(source_id, target_id)`` pairs."""
    wires = [Wire(f"w{i}", a, b) for i, (a, b) in enumerate(links)]
    return SystemGraph(nodes, wires)


@pytest.fixture
def make_graph():
    return build_graph


@pytest.fixture
def fused_load_graph():
    """battery → fuse → bus → cabin lights (3 A), with a ground bus."""
    nodes = [
        ComponentNode("bat", "battery", "House Battery"),
        ComponentNode("fuse", "fuse", "Main Fuse"),
        ComponentNode("bus", "bus-bar", "Bus"),
        ComponentNode("lights", "cabin-lights", "Cabin Lights"),
        ComponentNode("gnd", "ground-bus", "Ground"),
    ]
    links = [("bat", "fuse"), ("fuse", "bus"), ("bus", "lights"), ("lights", "gnd")]
    return build_graph(nodes, links)
