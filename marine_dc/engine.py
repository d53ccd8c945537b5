"""
marine_dc/engine.py
===================
Marine DC Network Simulator — Tick Pipeline

One tick is a pure function:

    (graph, environment, previous result, Δt)  →  SimulationResult

Stage order (each stage reads only the outputs of earlier stages):

    1. Sources     batteries (provisional), solar, alternator, shore
    2. Chargers    DC-DC / MPPT / shore chargers
    3. Loads       loads, fuses, buses, switches, ground
    4. Batteries   SOC integration and voltage from the summed credits
    5. Diagnostics read-only rule set

The only state carried between ticks is each battery's SOC, voltage and
charge/discharge status, taken from the explicit ``previous`` result.
Rerunning a tick with identical inputs reproduces the identical result.
"""

from __future__ import annotations

import logging
from itertools import chain
from typing import Optional

from marine_dc.battery_model import finalize_batteries
from marine_dc.chargers import resolve_chargers
from marine_dc.components import (
    Environment,
    NodeState,
    SimulationResult,
    SystemGraph,
    WireState,
)
from marine_dc.config import DEFAULT_TICK_S
from marine_dc.diagnostics import DiagnosticContext, run_diagnostics
from marine_dc.loads import resolve_loads
from marine_dc.sources import resolve_sources
from marine_dc.tracer import ConnectivityTracer

log = logging.getLogger(__name__)


def run_tick(
    graph: SystemGraph,
    environment: Optional[Environment] = None,
    previous: Optional[SimulationResult] = None,
    dt_s: float = DEFAULT_TICK_S,
) -> SimulationResult:
    """Simulate one tick of the DC network.

    Args:
        graph:       Diagram snapshot; never mutated.
        environment: Conditions for this tick (defaults: 800 W/m², 25 °C,
                     engine off, shore off).
        previous:    Result of the previous tick, or None on the first tick.
        dt_s:        Elapsed simulated time [s]. Zero is allowed and leaves
                     every SOC unchanged.

    Returns:
        The complete SimulationResult for this tick.

    Raises:
        ValueError: If ``dt_s`` is negative.
    """
    if dt_s < 0.0:
        raise ValueError(f"Tick length must not be negative; received dt_s={dt_s!r}")
    environment = environment if environment is not None else Environment()

    tracer = ConnectivityTracer(graph)
    sources = resolve_sources(graph, tracer, environment, previous)
    chargers = resolve_chargers(graph, tracer, environment, sources)
    loads = resolve_loads(graph, tracer, sources, chargers)
    batteries = finalize_batteries(
        graph,
        sources,
        chain(sources.credits, chargers.credits, loads.credits),
        environment,
        dt_s,
    )

    states: dict[str, NodeState] = {}
    for stage_states in (sources.states, chargers.states, loads.states, batteries.states):
        states.update(stage_states)

    total_generation = sources.generation + chargers.generation
    total_load = loads.load

    ctx = run_diagnostics(DiagnosticContext(
        graph=graph,
        tracer=tracer,
        environment=environment,
        states=states,
        total_generation=total_generation,
        total_load=total_load,
        warnings=list(loads.warnings) + list(batteries.warnings),
        errors=list(batteries.errors),
    ))

    system_voltage = batteries.system_voltage
    wires = {
        w.id: WireState(id=w.id, source=w.source, target=w.target, voltage=system_voltage)
        for w in graph.wires
    }

    log.debug(
        "tick dt=%.1fs: gen %.1f W, load %.1f W, %d warnings, %d errors",
        dt_s, total_generation, total_load, len(ctx.warnings), len(ctx.errors),
    )
    return SimulationResult(
        system_voltage=system_voltage,
        total_generation=total_generation,
        total_load=total_load,
        net_power=total_generation - total_load,
        nodes=states,
        wires=wires,
        warnings=ctx.warnings,
        errors=ctx.errors,
    )


def run_ticks(
    graph: SystemGraph,
    environments: list[Environment],
    dt_s: float = DEFAULT_TICK_S,
    previous: Optional[SimulationResult] = None,
) -> list[SimulationResult]:
    """Chain ``run_tick`` over a sequence of environment snapshots."""
    results: list[SimulationResult] = []
    for environment in environments:
        previous = run_tick(graph, environment, previous, dt_s)
        results.append(previous)
    return results
