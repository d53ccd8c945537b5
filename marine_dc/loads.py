"""
marine_dc/loads.py
==================
Marine DC Network Simulator — Pass 3: Loads and Pass-Through Devices

Loads:
    active  ⇔  switched on  ∧  traces to a battery, shore inlet, alternator
               or charger
    P = I_rated × V_system, credited as load to the first traced battery.
    Switched on but unpowered → ``fault``, distinct from ``off``.

Protection (fuse / breaker):
    I_through = max(Σ active load current, Σ active charger output current)

    The two sums flow in opposite directions through the same device, so
    they are not added. A fuse carrying a genuinely additive charge path and
    load path is under-reported; this is a known modelling limit.

Distribution / switching / ground:
    Transparent; reported at system voltage with zero self current.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from marine_dc.components import (
    BatteryCredit,
    Category,
    ComponentNode,
    NodeState,
    Status,
    SystemGraph,
)
from marine_dc.chargers import ChargerStage
from marine_dc.sources import SourceStage
from marine_dc.tracer import ConnectivityTracer

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadStage:
    """Pass 3 result."""
    states:   dict[str, NodeState]
    credits:  tuple[BatteryCredit, ...]
    load:     float
    warnings: tuple[str, ...]


def is_switched_on(node: ComponentNode) -> bool:
    return node.value("is_on", True) is not False


def fuse_rating(node: ComponentNode) -> float:
    return node.number("rating", 15.0)


def resolve_load(
    node: ComponentNode,
    tracer: ConnectivityTracer,
    system_voltage: float,
) -> NodeState:
    switched_on = is_switched_on(node)
    powered = tracer.is_connected_to_power(node.id)
    active = switched_on and powered
    current = node.number("max_current", 5.0) if active else 0.0

    if active:
        status = Status.ON
    elif switched_on:
        status = Status.FAULT
    else:
        status = Status.OFF

    return NodeState(
        voltage=system_voltage if powered else 0.0,
        current=current,
        power=current * system_voltage,
        status=status,
    )


def protection_current(
    node: ComponentNode,
    tracer: ConnectivityTracer,
    states: dict[str, NodeState],
) -> float:
    """Current through a fuse or breaker, see module docstring."""
    load_current = 0.0
    charge_current = 0.0
    for other in tracer.trace(node.id):
        state = states.get(other.id)
        if state is None:
            continue
        if other.category is Category.LOAD and state.status is Status.ON:
            load_current += state.current
        elif other.category is Category.CHARGING and state.status in (Status.ON, Status.CHARGING):
            charge_current += state.output_current if state.output_current is not None else state.current
    return max(load_current, charge_current)


def resolve_loads(
    graph: SystemGraph,
    tracer: ConnectivityTracer,
    sources: SourceStage,
    chargers: ChargerStage,
) -> LoadStage:
    """Run Pass 3: loads first, then the devices they pass current through."""
    system_voltage = sources.system_voltage
    states: dict[str, NodeState] = {}
    credits: list[BatteryCredit] = []
    warnings: list[str] = []
    total_load = 0.0

    for node in graph.of_category(Category.LOAD):
        state = resolve_load(node, tracer, system_voltage)
        states[node.id] = state
        if state.status is Status.ON:
            total_load += state.power
            battery = tracer.first_battery(node.id)
            if battery is not None:
                credits.append(BatteryCredit(battery.id, load=state.power))

    visible = {**chargers.states, **states}
    for node in graph.nodes:
        if node.category is Category.PROTECTION:
            rating = fuse_rating(node)
            blown = node.value("is_blown", False) is True
            current = protection_current(node, tracer, visible)
            if blown:
                status = Status.OFF
            elif current > rating:
                status = Status.FAULT
                warnings.append(
                    f"{node.label} is overloaded: {current:.1f}A through a {rating:g}A rating"
                )
            else:
                status = Status.ON
            states[node.id] = NodeState(
                voltage=0.0 if blown else system_voltage,
                current=0.0 if blown else current,
                power=0.0 if blown else current * system_voltage,
                status=status,
            )
        elif node.category in (Category.DISTRIBUTION, Category.SWITCHING, Category.GROUND):
            states[node.id] = NodeState(
                voltage=system_voltage, current=0.0, power=0.0, status=Status.ON,
            )

    log.debug("pass 3: %.1f W of active load", total_load)
    return LoadStage(
        states=states,
        credits=tuple(credits),
        load=total_load,
        warnings=tuple(warnings),
    )
