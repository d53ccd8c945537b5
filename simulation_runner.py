"""
simulation_runner.py
====================
Marine DC Network Simulator — Simulation Runner

Drives the tick pipeline over one simulated day and reports the outcome:

    1. Load the diagram (JSON project file, or the built-in sample boat)
    2. Build a diurnal environment profile (irradiance curve, engine window)
    3. Run one tick per timestep, feeding each result into the next
    4. Print the final node states, warnings, errors and charge summary
    5. Plot battery SoC and power balance vs time

Usage:
    python simulation_runner.py [--project boat.json] [--hours 24] [--dt 60]
                                [--no-plot] [--verbose]
"""

from __future__ import annotations

import argparse
import json
import logging
import math
from dataclasses import dataclass, field

import matplotlib.pyplot as plt
import matplotlib.ticker as mticker

from marine_dc.charge_summary import (
    compute_charge_summary,
    format_duration,
    format_sim_time,
)
from marine_dc.components import (
    ComponentNode,
    Environment,
    SimulationResult,
    SystemGraph,
    Wire,
)
from marine_dc.engine import run_tick


# ---------------------------------------------------------------------------
# Simulation parameters (execution configuration only)
# ---------------------------------------------------------------------------

DT_S: float = 60.0              # timestep: 1 minute
DURATION_H: float = 24.0        # simulation window: one day
PEAK_IRRADIANCE: float = 900.0  # W/m² at solar noon
SUNRISE_H: float = 6.0
SUNSET_H: float = 20.0
ENGINE_WINDOW_H: tuple[float, float] = (8.0, 10.0)
ENGINE_RPM: float = 1800.0
AMBIENT_TEMP_C: float = 22.0

PLOT_OUTPUT_FILE: str = "battery_soc_vs_time.png"


# ---------------------------------------------------------------------------
# Time-series container
# ---------------------------------------------------------------------------

@dataclass
class DayTimeSeries:
    """Per-tick record of the run. Powers in W, SoC in %, time in hours."""
    time_h:       list[float] = field(default_factory=list)
    generation_w: list[float] = field(default_factory=list)
    load_w:       list[float] = field(default_factory=list)
    soc:          dict[str, list[float]] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Step 1: Diagram
# ---------------------------------------------------------------------------

def build_sample_boat() -> SystemGraph:
    """Starter + LiFePO4 house bank, alternator, DC-DC MPPT, solar, loads."""
    nodes = [
        ComponentNode("alt", "alternator", "Alternator", overrides={"max_current": 80}),
        ComponentNode("start", "starter-battery", "Starter Battery", overrides={"capacity": 100}),
        ComponentNode("house", "house-battery", "House LiFePO4",
                      overrides={"capacity": 200, "chemistry": "lifepo4", "initial_soc": 60}),
        ComponentNode("solar", "solar-array", "Deck Solar",
                      overrides={"wattage": 175, "panel_count": 2, "array_config": "parallel"}),
        ComponentNode("dcdc", "dc-dc-mppt-charger", "DC-DC MPPT 50A",
                      overrides={"charge_rate": 50, "max_output_power": 700}),
        ComponentNode("f_start", "anl-fuse", "Starter ANL", overrides={"rating": 80}),
        ComponentNode("f_house", "anl-fuse", "House ANL", overrides={"rating": 100}),
        ComponentNode("bus", "bus-bar", "House Bus"),
        ComponentNode("f_fridge", "fuse", "Fridge Fuse", overrides={"rating": 10}),
        ComponentNode("f_lights", "fuse", "Lights Fuse", overrides={"rating": 10}),
        ComponentNode("f_nav", "circuit-breaker", "Nav Breaker", overrides={"rating": 10}),
        ComponentNode("fridge", "refrigerator", "Fridge", overrides={"max_current": 4.5}),
        ComponentNode("lights", "cabin-lights", "Cabin Lights", overrides={"max_current": 2.0}),
        ComponentNode("plotter", "chartplotter", "Chartplotter"),
        ComponentNode("gnd", "ground-bus", "Negative Bus"),
    ]
    links = [
        ("alt", "start"),
        ("start", "f_start"), ("f_start", "dcdc"),
        ("solar", "dcdc"),
        ("dcdc", "f_house"), ("f_house", "house"),
        ("house", "bus"),
        ("bus", "f_fridge"), ("f_fridge", "fridge"),
        ("bus", "f_lights"), ("f_lights", "lights"),
        ("bus", "f_nav"), ("f_nav", "plotter"),
        ("fridge", "gnd"), ("lights", "gnd"), ("plotter", "gnd"),
    ]
    wires = [Wire(f"w{i}", a, b) for i, (a, b) in enumerate(links)]
    return SystemGraph(nodes, wires)


def load_project(path: str) -> SystemGraph:
    with open(path, encoding="utf-8") as fh:
        return SystemGraph.from_dict(json.load(fh))


# ---------------------------------------------------------------------------
# Step 2: Environment profile
# ---------------------------------------------------------------------------

def environment_at(time_h: float) -> Environment:
    """Half-sine irradiance between sunrise and sunset; engine in its window."""
    hour = time_h % 24.0
    if SUNRISE_H <= hour <= SUNSET_H:
        irradiance = PEAK_IRRADIANCE * math.sin(math.pi * (hour - SUNRISE_H) / (SUNSET_H - SUNRISE_H))
    else:
        irradiance = 0.0
    engine = ENGINE_WINDOW_H[0] <= hour < ENGINE_WINDOW_H[1]
    return Environment(
        solar_irradiance=max(0.0, irradiance),
        ambient_temp_c=AMBIENT_TEMP_C,
        engine_running=engine,
        alternator_rpm=ENGINE_RPM if engine else 0.0,
    )


# ---------------------------------------------------------------------------
# Step 3: Simulation loop
# ---------------------------------------------------------------------------

def run_day(graph: SystemGraph, duration_h: float, dt_s: float) -> tuple[DayTimeSeries, SimulationResult]:
    ts = DayTimeSeries()
    batteries = graph.batteries()
    for node in batteries:
        ts.soc[node.id] = []

    result = None
    n_steps = max(1, int(duration_h * 3600.0 / dt_s))
    for step in range(n_steps):
        time_h = step * dt_s / 3600.0
        result = run_tick(graph, environment_at(time_h), result, dt_s)

        ts.time_h.append(round(time_h + dt_s / 3600.0, 10))
        ts.generation_w.append(result.total_generation)
        ts.load_w.append(result.total_load)
        for node in batteries:
            ts.soc[node.id].append(result.nodes[node.id].state_of_charge)

    return ts, result


# ---------------------------------------------------------------------------
# Step 4: Console report
# ---------------------------------------------------------------------------

def print_report(graph: SystemGraph, ts: DayTimeSeries, result: SimulationResult) -> None:
    sep = "─" * 64

    print(f"\n{'═' * 64}")
    print("  MARINE DC NETWORK — SIMULATION REPORT")
    print(f"{'═' * 64}")
    print(f"  Simulated time             : {format_sim_time(ts.time_h[-1] * 3600.0)}")
    print(f"  Ticks                      : {len(ts.time_h)}")
    print(f"  System voltage             : {result.system_voltage:6.2f} V")
    print(f"  Generation / load          : {result.total_generation:7.1f} W / {result.total_load:7.1f} W")
    print(f"  Peak generation            : {max(ts.generation_w):7.1f} W")

    print(f"\n{sep}")
    print(f"  {'Component':<22} {'Status':<12} {'V':>7} {'A':>8} {'W':>8}  Extra")
    print(sep)
    for node in graph.nodes:
        state = result.nodes.get(node.id)
        if state is None:
            continue
        extra = ""
        if state.state_of_charge is not None:
            extra = f"SoC {state.state_of_charge:5.1f}%"
        elif state.charge_stage is not None:
            extra = state.charge_stage
        print(f"  {node.label:<22} {state.status.value:<12} {state.voltage:7.2f} "
              f"{state.current:8.2f} {state.power:8.1f}  {extra}")

    summary = compute_charge_summary(graph, result)
    print(f"\n{sep}")
    print("  CHARGE SUMMARY")
    print(sep)
    print(f"  Battery capacity           : {summary.total_capacity_ah:7.0f} Ah ({summary.battery_count} batteries)")
    print(f"  Average SoC                : {summary.average_soc:7.1f} %")
    print(f"  Net current                : {summary.net_current:7.2f} A")
    print(f"  Time to full               : {format_duration(summary.time_to_full_s)}")
    print(f"  Time to 20% reserve        : {format_duration(summary.time_to_empty_s)}")
    print(f"  Runtime at present load    : {format_duration(summary.runtime_s)}")

    print(f"\n{sep}")
    print(f"  WARNINGS ({len(result.warnings)})")
    print(sep)
    for message in result.warnings:
        print(f"  ⚠ {message}")
    print(f"\n{sep}")
    print(f"  ERRORS ({len(result.errors)})")
    print(sep)
    for message in result.errors:
        print(f"  ✘ {message}")
    print(f"{'═' * 64}\n")


# ---------------------------------------------------------------------------
# Step 5: Plots
# ---------------------------------------------------------------------------

def plot_results(graph: SystemGraph, ts: DayTimeSeries) -> None:
    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(11, 8), sharex=True)
    fig.suptitle(
        "Marine DC Network — Daily Simulation\n"
        f"{len(ts.time_h)} ticks  |  peak irradiance {PEAK_IRRADIANCE:.0f} W/m²  |  "
        f"engine {ENGINE_WINDOW_H[0]:.0f}:00–{ENGINE_WINDOW_H[1]:.0f}:00",
        fontsize=12, fontweight="bold",
    )

    # ── SoC subplot ──────────────────────────────────────────────────────
    for node_id, soc in ts.soc.items():
        ax1.plot(ts.time_h, soc, linewidth=2, label=graph.node(node_id).label)
    ax1.axhline(20, color="#F44336", linewidth=1.0, linestyle="--", label="20% reserve")
    ax1.set_ylabel("State of Charge [%]", fontsize=11)
    ax1.set_ylim(0, 105)
    ax1.yaxis.set_major_formatter(mticker.PercentFormatter(xmax=100))
    ax1.legend(fontsize=9, loc="lower right")
    ax1.grid(True, linestyle="--", alpha=0.5)

    # ── Power subplot ────────────────────────────────────────────────────
    ax2.plot(ts.time_h, ts.generation_w, color="#FF9800", linewidth=2, label="Generation")
    ax2.plot(ts.time_h, ts.load_w, color="#2196F3", linewidth=2, linestyle="--", label="Load")
    ax2.set_xlabel("Simulation Time [hours]", fontsize=11)
    ax2.set_ylabel("Power [W]", fontsize=11)
    ax2.set_ylim(bottom=0)
    ax2.legend(fontsize=9, loc="upper right")
    ax2.grid(True, linestyle="--", alpha=0.5)

    plt.tight_layout()
    plt.savefig(PLOT_OUTPUT_FILE, dpi=150, bbox_inches="tight")
    print(f"  [plot] Saved → {PLOT_OUTPUT_FILE}")
    plt.show()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate a boat's DC network over time.")
    parser.add_argument("--project", help="JSON project file with nodes and wires")
    parser.add_argument("--hours", type=float, default=DURATION_H)
    parser.add_argument("--dt", type=float, default=DT_S, help="seconds per tick")
    parser.add_argument("--no-plot", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()
    if args.dt <= 0 or args.hours <= 0:
        parser.error("--dt and --hours must be positive")

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    graph = load_project(args.project) if args.project else build_sample_boat()

    print("\nRunning marine DC network simulation...", flush=True)
    ts, result = run_day(graph, args.hours, args.dt)
    print_report(graph, ts, result)

    if not args.no_plot:
        plot_results(graph, ts)


if __name__ == "__main__":
    main()
