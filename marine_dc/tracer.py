"""
marine_dc/tracer.py
===================
Marine DC Network Simulator — Connectivity Tracer

The diagram never says which way current flows. Every stage instead asks:
"which real components are electrically reachable from this node?"

Algorithm:
    Depth-first walk over direct wire neighbours. Pass-through nodes
    (protection, distribution, switching, ground) are transparent: the walk
    recurses through them and never returns them. Any other node is a result
    and a dead end; the walk does not continue past it.

    One visited set spans the whole walk from a start node, so a node reached
    by two paths is returned once (first path wins) and cycles terminate.

An isolated node traces to the empty list. Callers treat that as
"unpowered", not as an error.
"""

from __future__ import annotations

from typing import Iterable, Optional

from marine_dc.components import (
    BATTERY_TYPES,
    PASS_THROUGH_CATEGORIES,
    Category,
    ComponentNode,
    SystemGraph,
)


class ConnectivityTracer:
    """Trace queries over one graph snapshot.

    Results are cached per start node; the graph must not change while the
    tracer is in use (one tracer per tick).
    """

    def __init__(self, graph: SystemGraph) -> None:
        self._graph = graph
        self._cache: dict[str, dict[str, frozenset[Category]]] = {}

    # ------------------------------------------------------------------
    # Primitive
    # ------------------------------------------------------------------

    def trace_via(self, node_id: str) -> dict[str, frozenset[Category]]:
        """Reachable real nodes, each mapped to the pass-through categories
        crossed on the path that reached it first.

        Insertion order of the returned dict is traversal order.
        """
        cached = self._cache.get(node_id)
        if cached is not None:
            return cached

        found: dict[str, frozenset[Category]] = {}
        visited: set[str] = {node_id}

        def walk(current: str, crossed: frozenset[Category]) -> None:
            for neighbor_id in self._graph.neighbors(current):
                if neighbor_id in visited:
                    continue
                visited.add(neighbor_id)
                neighbor = self._graph.node(neighbor_id)
                if neighbor.category in PASS_THROUGH_CATEGORIES:
                    walk(neighbor_id, crossed | {neighbor.category})
                else:
                    found[neighbor_id] = crossed

        walk(node_id, frozenset())
        self._cache[node_id] = found
        return found

    def trace(self, node_id: str) -> list[ComponentNode]:
        """Ordered, de-duplicated real components reachable from ``node_id``."""
        return [self._graph.node(i) for i in self.trace_via(node_id)]

    # ------------------------------------------------------------------
    # Derived queries
    # ------------------------------------------------------------------

    def by_type(self, node_id: str, types: Iterable[str]) -> list[ComponentNode]:
        wanted = set(types)
        return [n for n in self.trace(node_id) if n.type in wanted]

    def by_category(self, node_id: str, *categories: Category) -> list[ComponentNode]:
        return [n for n in self.trace(node_id) if n.category in categories]

    def batteries(self, node_id: str) -> list[ComponentNode]:
        return self.by_type(node_id, BATTERY_TYPES)

    def is_connected_to_battery(self, node_id: str) -> bool:
        return bool(self.batteries(node_id))

    def is_connected_to_power(self, node_id: str) -> bool:
        """True when a battery, shore inlet, alternator or charger is reachable."""
        return any(
            n.is_battery
            or n.type in ("shore-power", "alternator")
            or n.category is Category.CHARGING
            for n in self.trace(node_id)
        )

    def first_battery(self, node_id: str) -> Optional[ComponentNode]:
        batteries = self.batteries(node_id)
        return batteries[0] if batteries else None

    def is_protected_path(self, node_id: str, target_id: str) -> bool:
        """True when the first path from ``node_id`` to ``target_id`` crosses
        a protection device. False when ``target_id`` is not reachable."""
        crossed = self.trace_via(node_id).get(target_id)
        return crossed is not None and Category.PROTECTION in crossed
