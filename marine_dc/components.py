"""
marine_dc/components.py
=======================
Marine DC Network Simulator — Data Model

Containers for the diagram (nodes, wires), the environment snapshot and the
per-tick simulation result.

Ownership:
    - The diagram owns node identity, spec and overrides (SystemGraph).
    - The simulation owns computed state (NodeState, SimulationResult).
    - Every component type maps to exactly one category; the category alone
      decides which pipeline stage resolves the node.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

from marine_dc.config import (
    COMPONENT_DEFAULTS,
    DEFAULT_AMBIENT_TEMP_C,
    DEFAULT_IRRADIANCE,
)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Category(str, Enum):
    POWER_SOURCE = "power-source"
    CHARGING = "charging"
    PROTECTION = "protection"
    DISTRIBUTION = "distribution"
    SWITCHING = "switching"
    LOAD = "load"
    GROUND = "ground"


PASS_THROUGH_CATEGORIES: frozenset[Category] = frozenset({
    Category.PROTECTION,
    Category.DISTRIBUTION,
    Category.SWITCHING,
    Category.GROUND,
})


class Status(str, Enum):
    ON = "on"
    OFF = "off"
    CHARGING = "charging"
    DISCHARGING = "discharging"
    IDLE = "idle"
    FAULT = "fault"


BATTERY_TYPES: frozenset[str] = frozenset({
    "battery", "battery-bank", "starter-battery", "house-battery",
})
SOLAR_TYPES: frozenset[str] = frozenset({"solar-panel", "solar-array"})
DCDC_TYPES: frozenset[str] = frozenset({"dc-dc-charger", "dc-dc-mppt-charger"})
ENGINE_LOAD_TYPES: frozenset[str] = frozenset({"starter-motor", "trim-pump"})

_CATEGORY_BY_TYPE: dict[str, Category] = {}
for _types, _category in (
    (BATTERY_TYPES | SOLAR_TYPES | {"alternator", "shore-power"}, Category.POWER_SOURCE),
    (DCDC_TYPES | {"mppt-controller", "battery-charger"}, Category.CHARGING),
    ({"fuse", "circuit-breaker", "fuse-block", "anl-fuse", "battery-shunt"}, Category.PROTECTION),
    ({"bus-bar", "distribution-panel", "junction-box"}, Category.DISTRIBUTION),
    ({"battery-switch", "toggle-switch", "relay", "solenoid"}, Category.SWITCHING),
    ({"ground-bus", "bonding-bus"}, Category.GROUND),
):
    for _type in _types:
        _CATEGORY_BY_TYPE[_type] = _category
for _type in COMPONENT_DEFAULTS:
    _CATEGORY_BY_TYPE.setdefault(_type, Category.LOAD)

COMPONENT_TYPES: frozenset[str] = frozenset(_CATEGORY_BY_TYPE)


def category_of(component_type: str) -> Category:
    """Return the single category a component type belongs to.

    Raises:
        ValueError: If the type is not part of the component catalogue.
    """
    try:
        return _CATEGORY_BY_TYPE[component_type]
    except KeyError:
        raise ValueError(
            f"Unknown component type; received component_type={component_type!r}"
        ) from None


# ---------------------------------------------------------------------------
# Diagram
# ---------------------------------------------------------------------------

@dataclass
class ComponentNode:
    """One component placed on the diagram.

    Attributes:
        id:         Stable identifier.
        type:       Component type from the catalogue (e.g. ``"fuse"``).
        label:      User-facing name; also feeds the battery role heuristic.
        spec:       Static spec values for this node, layered over the
                    registry defaults for its type.
        overrides:  User-entered values; take precedence over ``spec``.
    """
    id:        str
    type:      str
    label:     str = ""
    spec:      dict[str, Any] = field(default_factory=dict)
    overrides: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.category: Category = category_of(self.type)
        if not self.label:
            self.label = self.id

    def value(self, key: str, default: Any = None) -> Any:
        """Effective value: override → spec → registry default → ``default``."""
        for source in (self.overrides, self.spec, COMPONENT_DEFAULTS.get(self.type, {})):
            found = source.get(key)
            if found is not None:
                return found
        return default

    def number(self, key: str, default: float = 0.0) -> float:
        """Numeric effective value; non-positive entries fall back to ``default``."""
        found = self.value(key)
        if isinstance(found, bool) or not isinstance(found, (int, float)) or found <= 0:
            return default
        return float(found)

    @property
    def is_battery(self) -> bool:
        return self.type in BATTERY_TYPES


@dataclass
class Wire:
    """Undirected logical connection between two nodes.

    ``polarity`` is a cosmetic hint only; the simulation ignores it.
    """
    id:       str
    source:   str
    target:   str
    polarity: str = ""


class SystemGraph:
    """Immutable-by-convention snapshot of the diagram handed to a tick.

    Args:
        nodes: Component nodes, in diagram order.
        wires: Wires between nodes; wires naming unknown nodes are ignored.
    """

    def __init__(self, nodes: Iterable[ComponentNode], wires: Iterable[Wire] = ()) -> None:
        self.nodes: list[ComponentNode] = list(nodes)
        self.wires: list[Wire] = list(wires)
        self._by_id: dict[str, ComponentNode] = {n.id: n for n in self.nodes}
        self._neighbors: dict[str, list[str]] = {n.id: [] for n in self.nodes}
        for wire in self.wires:
            if wire.source not in self._by_id or wire.target not in self._by_id:
                continue
            self._neighbors[wire.source].append(wire.target)
            self._neighbors[wire.target].append(wire.source)

    def node(self, node_id: str) -> ComponentNode:
        return self._by_id[node_id]

    def neighbors(self, node_id: str) -> list[str]:
        """Directly wired node ids, in wire order."""
        return self._neighbors.get(node_id, [])

    def is_wired(self, node_id: str) -> bool:
        return bool(self._neighbors.get(node_id))

    def of_category(self, category: Category) -> list[ComponentNode]:
        return [n for n in self.nodes if n.category is category]

    def batteries(self) -> list[ComponentNode]:
        return [n for n in self.nodes if n.is_battery]

    @classmethod
    def from_dict(cls, data: dict) -> "SystemGraph":
        """Build a graph from the project shape ``{"nodes": [...], "wires": [...]}``.

        Each node entry carries ``id``, ``type`` and optionally ``label``,
        ``spec`` and ``overrides``. Each wire entry carries ``source`` and
        ``target`` and optionally ``id``.

        Raises:
            ValueError: If a node names an unknown component type.
        """
        nodes = [
            ComponentNode(
                id=str(entry["id"]),
                type=entry["type"],
                label=entry.get("label", ""),
                spec=dict(entry.get("spec") or {}),
                overrides=dict(entry.get("overrides") or {}),
            )
            for entry in data.get("nodes", [])
        ]
        wires = [
            Wire(
                id=str(entry.get("id") or f"w{i}"),
                source=str(entry["source"]),
                target=str(entry["target"]),
                polarity=entry.get("polarity", ""),
            )
            for i, entry in enumerate(data.get("wires", []))
        ]
        return cls(nodes, wires)


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Environment:
    """Environmental snapshot supplied by the caller for one tick.

    Attributes:
        solar_irradiance: 0–1000 W/m², normalised against 1000.
        ambient_temp_c:   Ambient temperature [°C].
        engine_running:   Engine running flag.
        alternator_rpm:   Alternator shaft speed [RPM].
        shore_connected:  Shore power plugged in.
    """
    solar_irradiance: float = DEFAULT_IRRADIANCE
    ambient_temp_c:   float = DEFAULT_AMBIENT_TEMP_C
    engine_running:   bool = False
    alternator_rpm:   float = 0.0
    shore_connected:  bool = False


# ---------------------------------------------------------------------------
# Computed state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NodeState:
    """Computed state of one node for one tick.

    ``state_of_charge`` is set for batteries only; the charger fields are set
    for charging-category nodes only.
    """
    voltage: float
    current: float
    power:   float
    status:  Status
    state_of_charge:           Optional[float] = None
    charge_stage:              Optional[str] = None
    efficiency:                Optional[float] = None
    input_voltage:             Optional[float] = None
    output_voltage:            Optional[float] = None
    input_current:             Optional[float] = None
    output_current:            Optional[float] = None
    solar_input_power:         Optional[float] = None
    alternator_input_power:    Optional[float] = None
    activation_voltage:        Optional[float] = None
    temperature_compensation:  Optional[float] = None
    compensated_bulk_voltage:  Optional[float] = None
    compensated_float_voltage: Optional[float] = None
    target_battery:            Optional[str] = None
    source_battery:            Optional[str] = None


@dataclass(frozen=True)
class WireState:
    """Per-wire state; only voltage is modelled (single system voltage)."""
    id:      str
    source:  str
    target:  str
    voltage: float


@dataclass(frozen=True)
class BatteryCredit:
    """Power credited to one battery's circuit by one stage [W]."""
    battery_id: str
    generation: float = 0.0
    load:       float = 0.0


@dataclass
class SimulationResult:
    """Everything one tick produces.

    Attributes:
        system_voltage:   Voltage of the primary battery [V].
        total_generation: Power delivered into the system [W].
        total_load:       Power drawn by active loads [W].
        net_power:        generation − load [W]; positive → charging.
        nodes:            Node id → NodeState.
        wires:            Wire id → WireState.
        warnings:         Advisory diagnostics.
        errors:           Unsafe / invalid configuration diagnostics.
    """
    system_voltage:   float
    total_generation: float
    total_load:       float
    net_power:        float
    nodes:    dict[str, NodeState] = field(default_factory=dict)
    wires:    dict[str, WireState] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    errors:   list[str] = field(default_factory=list)
