"""
marine_dc/sources.py
====================
Marine DC Network Simulator — Pass 1: Power Sources

Resolves the raw output of every power-source node from the environment and
the previous tick:

    Battery      provisional entry only (SOC and voltage carried forward);
                 finalised in Pass 4.
    Solar panel  P = W_rated × G / 1000,  I = P / Vmp
    Solar array  same law per panel; series multiplies Vmp, parallel
                 multiplies Imp. Total P never depends on configuration.
    Alternator   I = I_rated × min(1, (rpm − 800) / 1200) above 800 RPM,
                 fixed 14.4 V. Counted only when the engine is running and
                 the alternator traces to a battery; its power is then split
                 evenly across the traced batteries.
    Shore inlet  on/off from the environment flag, no DC power of its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from marine_dc.components import (
    BatteryCredit,
    Category,
    ComponentNode,
    Environment,
    NodeState,
    SimulationResult,
    Status,
    SystemGraph,
)
from marine_dc.config import (
    ALTERNATOR_CUT_IN_RPM,
    ALTERNATOR_FULL_OUTPUT_RPM,
    ALTERNATOR_OUTPUT_VOLTAGE,
    DEFAULT_BATTERY_VOLTAGE,
    DEFAULT_SOC,
    DEFAULT_SYSTEM_VOLTAGE,
    REFERENCE_IRRADIANCE,
)
from marine_dc.tracer import ConnectivityTracer

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Stage output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SourceStage:
    """Pass 1 result.

    Attributes:
        states:          Node id → NodeState for every power-source node.
        credits:         Alternator power credited to battery circuits.
        generation:      Power counted toward system generation [W].
        system_voltage:  Seed voltage of the primary battery [V].
        primary_battery: Id of the reference battery, if any.
    """
    states:          dict[str, NodeState]
    credits:         tuple[BatteryCredit, ...]
    generation:      float
    system_voltage:  float
    primary_battery: Optional[str]


@dataclass(frozen=True)
class SourceOutput:
    voltage: float
    current: float
    power:   float


# ---------------------------------------------------------------------------
# Per-type output laws
# ---------------------------------------------------------------------------

def solar_panel_output(node: ComponentNode, irradiance: float) -> SourceOutput:
    """Single panel at ``irradiance`` W/m².

    Example:
        >>> panel = ComponentNode("p1", "solar-panel", spec={"wattage": 100, "vmp": 18})
        >>> round(solar_panel_output(panel, 500).current, 2)
        2.78
    """
    factor = max(0.0, irradiance) / REFERENCE_IRRADIANCE
    power = node.number("wattage", 100.0) * factor
    vmp = node.number("vmp", 18.0)
    return SourceOutput(voltage=vmp, current=power / vmp, power=power)


def solar_array_output(node: ComponentNode, irradiance: float) -> SourceOutput:
    """Array of identical panels wired in series or in parallel."""
    factor = max(0.0, irradiance) / REFERENCE_IRRADIANCE
    count = int(node.number("panel_count", 2))
    vmp = node.number("vmp", 18.0)
    imp = node.number("imp", 5.56)
    power = node.number("wattage", 100.0) * count * factor

    if str(node.value("array_config", "parallel")).lower() == "series":
        return SourceOutput(voltage=vmp * count, current=imp * factor, power=power)
    return SourceOutput(voltage=vmp, current=imp * count * factor, power=power)


def alternator_output(node: ComponentNode, rpm: float) -> SourceOutput:
    """Linear ramp from cut-in to full output RPM.

    Example:
        >>> alt = ComponentNode("a1", "alternator", spec={"max_current": 100})
        >>> alternator_output(alt, 1400).current
        50.0
    """
    if rpm < ALTERNATOR_CUT_IN_RPM:
        return SourceOutput(0.0, 0.0, 0.0)
    span = ALTERNATOR_FULL_OUTPUT_RPM - ALTERNATOR_CUT_IN_RPM
    factor = min(1.0, (rpm - ALTERNATOR_CUT_IN_RPM) / span)
    current = node.number("max_current", 100.0) * factor
    voltage = ALTERNATOR_OUTPUT_VOLTAGE
    return SourceOutput(voltage=voltage, current=current, power=voltage * current)


def primary_battery(graph: SystemGraph) -> Optional[ComponentNode]:
    """Reference battery: highest rated capacity, first seen on ties."""
    best: Optional[ComponentNode] = None
    for node in graph.batteries():
        if best is None or node.number("capacity", 100.0) > best.number("capacity", 100.0):
            best = node
    return best


# ---------------------------------------------------------------------------
# Pass 1
# ---------------------------------------------------------------------------

def resolve_sources(
    graph: SystemGraph,
    tracer: ConnectivityTracer,
    environment: Environment,
    previous: Optional[SimulationResult] = None,
) -> SourceStage:
    """Run Pass 1 over every power-source node."""
    states: dict[str, NodeState] = {}
    credits: list[BatteryCredit] = []
    generation = 0.0

    for node in graph.of_category(Category.POWER_SOURCE):
        prev = previous.nodes.get(node.id) if previous is not None else None

        if node.is_battery:
            states[node.id] = _provisional_battery(node, prev)

        elif node.type == "solar-panel" or node.type == "solar-array":
            if node.type == "solar-panel":
                out = solar_panel_output(node, environment.solar_irradiance)
            else:
                out = solar_array_output(node, environment.solar_irradiance)
            states[node.id] = NodeState(
                voltage=out.voltage,
                current=out.current,
                power=out.power,
                status=Status.ON if out.power > 0 else Status.IDLE,
            )

        elif node.type == "alternator":
            out = alternator_output(node, environment.alternator_rpm)
            batteries = tracer.batteries(node.id)
            counted = environment.engine_running and bool(batteries) and out.power > 0
            states[node.id] = NodeState(
                voltage=out.voltage,
                current=out.current if counted else 0.0,
                power=out.power if counted else 0.0,
                status=Status.ON if counted else Status.IDLE,
            )
            if counted:
                generation += out.power
                share = out.power / len(batteries)
                credits.extend(BatteryCredit(b.id, generation=share) for b in batteries)

        elif node.type == "shore-power":
            states[node.id] = NodeState(
                voltage=node.number("voltage", 120.0) if environment.shore_connected else 0.0,
                current=0.0,
                power=0.0,
                status=Status.ON if environment.shore_connected else Status.OFF,
            )

    primary = primary_battery(graph)
    system_voltage = states[primary.id].voltage if primary is not None else DEFAULT_SYSTEM_VOLTAGE
    log.debug("pass 1: %d sources, %.1f W counted, system %.2f V",
              len(states), generation, system_voltage)

    return SourceStage(
        states=states,
        credits=tuple(credits),
        generation=generation,
        system_voltage=system_voltage,
        primary_battery=primary.id if primary is not None else None,
    )


def _provisional_battery(node: ComponentNode, prev: Optional[NodeState]) -> NodeState:
    """Identity entry for a battery; Pass 4 replaces it."""
    if prev is not None and prev.state_of_charge is not None:
        soc = prev.state_of_charge
    else:
        initial = node.value("initial_soc")
        soc = float(initial) if isinstance(initial, (int, float)) and not isinstance(initial, bool) else DEFAULT_SOC
        soc = max(0.0, min(100.0, soc))

    voltage = prev.voltage if prev is not None and prev.voltage > 0 else DEFAULT_BATTERY_VOLTAGE
    status = prev.status if prev is not None else Status.IDLE
    return NodeState(
        voltage=voltage,
        current=0.0,
        power=0.0,
        status=status,
        state_of_charge=soc,
    )
