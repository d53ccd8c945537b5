"""
marine_dc/diagnostics.py
========================
Marine DC Network Simulator — Diagnostics Engine

Read-only post-pass over the finalised node states and the topology. Every
rule is independent and always evaluated; a rule appends advisories to
``warnings`` and configuration / safety violations to ``errors``. Neither
list stops the simulation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import combinations
from typing import Callable

from marine_dc.chargers import STARTER_HINTS
from marine_dc.chemistry import get_profile
from marine_dc.components import (
    Category,
    ComponentNode,
    DCDC_TYPES,
    ENGINE_LOAD_TYPES,
    Environment,
    NodeState,
    SOLAR_TYPES,
    Status,
    SystemGraph,
)
from marine_dc.config import (
    BUS_WARNING_FRACTION,
    DAILY_DEMAND_CAPACITY_FRACTION,
    DAILY_USE_HOURS,
    DEFAULT_BUS_RATING,
    FUSE_UNDERSIZED_FRACTION,
    FUSE_WARNING_FRACTION,
    HIGH_CURRENT_ADVISORY_A,
    PARALLEL_MISMATCH_V,
    VOC_WARNING_FRACTION,
)
from marine_dc.loads import fuse_rating, is_switched_on
from marine_dc.tracer import ConnectivityTracer

MPPT_TYPES: frozenset[str] = frozenset({"dc-dc-mppt-charger", "mppt-controller"})


@dataclass
class DiagnosticContext:
    """Everything a rule may read."""
    graph:            SystemGraph
    tracer:           ConnectivityTracer
    environment:      Environment
    states:           dict[str, NodeState]
    total_generation: float
    total_load:       float
    warnings:         list[str] = field(default_factory=list)
    errors:           list[str] = field(default_factory=list)

    def state(self, node_id: str) -> NodeState | None:
        return self.states.get(node_id)


Rule = Callable[[DiagnosticContext], None]


def battery_role(node: ComponentNode) -> str:
    """``"starter"`` or ``"house"``: explicit tag first, then label."""
    role = node.value("role")
    if role:
        return str(role).lower()
    label = node.label.lower()
    return "starter" if any(hint in label for hint in STARTER_HINTS) else "house"


def _capacity(node: ComponentNode) -> float:
    return node.number("capacity", 100.0)


def _is_lithium(node: ComponentNode) -> bool:
    return get_profile(node.value("chemistry")).lithium


# ---------------------------------------------------------------------------
# Connection rules
# ---------------------------------------------------------------------------

def check_disconnected(ctx: DiagnosticContext) -> None:
    phrases = {
        Category.POWER_SOURCE: "is not connected to anything",
        Category.LOAD: "has no wire connections",
        Category.CHARGING: "is not wired into the system",
        Category.PROTECTION: "is not wired into any circuit",
        Category.DISTRIBUTION: "is not wired into any circuit",
        Category.SWITCHING: "is not wired into any circuit",
        Category.GROUND: "has no ground connections",
    }
    for node in ctx.graph.nodes:
        if not ctx.graph.is_wired(node.id):
            ctx.warnings.append(f"{node.label} {phrases[node.category]}")


def check_unpowered_loads(ctx: DiagnosticContext) -> None:
    for node in ctx.graph.of_category(Category.LOAD):
        if ctx.graph.is_wired(node.id) and is_switched_on(node) \
                and not ctx.tracer.is_connected_to_power(node.id):
            ctx.warnings.append(f"{node.label} is on but not connected to a battery")


def check_solar_without_charger(ctx: DiagnosticContext) -> None:
    for node in ctx.graph.nodes:
        if node.type not in SOLAR_TYPES or not ctx.graph.is_wired(node.id):
            continue
        state = ctx.state(node.id)
        if state is not None and state.power > 0 \
                and not ctx.tracer.by_category(node.id, Category.CHARGING):
            ctx.warnings.append(f"{node.label} is producing power but not connected to a charger")


def check_idle_alternator(ctx: DiagnosticContext) -> None:
    if not ctx.environment.engine_running:
        return
    for node in ctx.graph.nodes:
        if node.type != "alternator" or not ctx.graph.is_wired(node.id):
            continue
        if not ctx.tracer.batteries(node.id) and not ctx.tracer.by_category(node.id, Category.CHARGING):
            ctx.warnings.append(f"{node.label} is running but not connected to a battery or charger")


def check_charger_connections(ctx: DiagnosticContext) -> None:
    for node in ctx.graph.of_category(Category.CHARGING):
        if not ctx.graph.is_wired(node.id):
            continue
        batteries = ctx.tracer.batteries(node.id)
        if not batteries:
            ctx.warnings.append(f"{node.label} has no battery connected to charge")

        solar = ctx.tracer.by_type(node.id, SOLAR_TYPES)
        alternators = ctx.tracer.by_type(node.id, ["alternator"])
        if node.type == "dc-dc-mppt-charger" and not solar and not alternators and len(batteries) < 2:
            ctx.warnings.append(
                f"{node.label} has no power input (solar, alternator, or starter battery)"
            )
        elif node.type == "mppt-controller" and not solar:
            ctx.warnings.append(f"{node.label} has no solar input")
        elif node.type == "dc-dc-charger" and not alternators and len(batteries) < 2:
            ctx.warnings.append(f"{node.label} has no input (alternator or starter battery)")


def check_unused_batteries(ctx: DiagnosticContext) -> None:
    for node in ctx.graph.batteries():
        if not ctx.graph.is_wired(node.id):
            continue
        if not ctx.tracer.by_category(node.id, Category.LOAD, Category.CHARGING):
            ctx.warnings.append(f"{node.label} is not connected to any loads or chargers")


def check_starter_house_loads(ctx: DiagnosticContext) -> None:
    for node in ctx.graph.batteries():
        if battery_role(node) != "starter":
            continue
        house_loads = [n.label for n in ctx.tracer.by_category(node.id, Category.LOAD)
                       if n.type not in ENGINE_LOAD_TYPES]
        if house_loads:
            ctx.warnings.append(
                f"Starter battery {node.label} is carrying house loads: {', '.join(house_loads)}"
            )


def check_unprotected_loads(ctx: DiagnosticContext) -> None:
    for node in ctx.graph.of_category(Category.LOAD):
        for battery in ctx.tracer.batteries(node.id):
            if not ctx.tracer.is_protected_path(node.id, battery.id):
                ctx.warnings.append(
                    f"{node.label} has no fuse/breaker protection between it and {battery.label}!"
                )
                break


# ---------------------------------------------------------------------------
# Sizing rules
# ---------------------------------------------------------------------------

def check_fuse_sizing(ctx: DiagnosticContext) -> None:
    for node in ctx.graph.of_category(Category.PROTECTION):
        state = ctx.state(node.id)
        if state is None or state.current <= 0 or not ctx.graph.is_wired(node.id):
            continue
        rating = fuse_rating(node)
        if rating < state.current * FUSE_UNDERSIZED_FRACTION:
            ctx.errors.append(
                f"{node.label} ({rating:g}A) is undersized for {state.current:.1f}A load!"
            )
        load_pct = state.current / rating * 100.0
        if FUSE_WARNING_FRACTION * 100.0 <= load_pct <= 100.0:
            ctx.warnings.append(
                f"{node.label} at {load_pct:.0f}% capacity ({state.current:.1f}A / {rating:g}A)"
            )


def check_solar_voc(ctx: DiagnosticContext) -> None:
    for charger in ctx.graph.nodes:
        if charger.type not in MPPT_TYPES:
            continue
        max_input = charger.number("solar_input_max", 32.0)
        for solar in ctx.tracer.by_type(charger.id, SOLAR_TYPES):
            voc = solar.number("voc", 22.0)
            if solar.type == "solar-array" and str(solar.value("array_config", "parallel")).lower() == "series":
                voc *= int(solar.number("panel_count", 2))
            if voc > max_input:
                ctx.errors.append(
                    f"{solar.label} Voc ({voc:g}V) exceeds {charger.label} max input ({max_input:g}V)!"
                )
            elif voc > max_input * VOC_WARNING_FRACTION:
                ctx.warnings.append(
                    f"{solar.label} Voc ({voc:g}V) is close to {charger.label} max input ({max_input:g}V)"
                )


def check_daily_demand(ctx: DiagnosticContext) -> None:
    house_capacity = sum(_capacity(b) for b in ctx.graph.batteries() if battery_role(b) == "house")
    daily_ah = 0.0
    for node in ctx.graph.of_category(Category.LOAD):
        state = ctx.state(node.id)
        if state is not None and state.status is Status.ON:
            daily_ah += state.current * DAILY_USE_HOURS
    usable = house_capacity * DAILY_DEMAND_CAPACITY_FRACTION
    if house_capacity > 0 and daily_ah > usable:
        ctx.warnings.append(
            f"Daily load (~{daily_ah:.0f}Ah) may exceed safe house battery discharge "
            f"({usable:.0f}Ah at 50% DoD)"
        )


def check_ground_bus(ctx: DiagnosticContext) -> None:
    if ctx.graph.of_category(Category.LOAD) and not ctx.graph.of_category(Category.GROUND):
        ctx.warnings.append("No ground/negative bus in diagram - consider adding for complete circuit")


def check_charge_rates(ctx: DiagnosticContext) -> None:
    for node in ctx.graph.of_category(Category.CHARGING):
        state = ctx.state(node.id)
        target_id = state.target_battery if state is not None else None
        if target_id is None:
            first = ctx.tracer.first_battery(node.id)
            target_id = first.id if first is not None else None
        if target_id is None:
            continue
        battery = ctx.graph.node(target_id)
        rate = node.number("charge_rate", 30.0)
        safe = _capacity(battery) * get_profile(battery.value("chemistry")).max_charge_c_rate
        if rate > safe:
            ctx.warnings.append(
                f"{node.label} ({rate:g}A) may exceed safe charge rate for "
                f"{battery.label} ({safe:.0f}A max)"
            )


def check_discharge_rates(ctx: DiagnosticContext) -> None:
    for node in ctx.graph.batteries():
        state = ctx.state(node.id)
        if state is None or state.status is not Status.DISCHARGING or state.current <= 0:
            continue
        c_rate = state.current / _capacity(node)
        limit = get_profile(node.value("chemistry")).max_discharge_c_rate
        if c_rate > limit:
            ctx.warnings.append(
                f"{node.label} discharge rate ({c_rate:.2f}C) exceeds recommended {limit:g}C max"
            )


def check_parallel_mismatch(ctx: DiagnosticContext) -> None:
    house = [b for b in ctx.graph.batteries() if battery_role(b) == "house"]
    for a, b in combinations(house, 2):
        if b.id not in ctx.tracer.trace_via(a.id):
            continue
        va, vb = ctx.states[a.id].voltage, ctx.states[b.id].voltage
        if abs(va - vb) > PARALLEL_MISMATCH_V:
            ctx.warnings.append(
                f"Voltage mismatch: {a.label} ({va:.2f}V) vs {b.label} ({vb:.2f}V)"
            )


def check_alternator_lithium(ctx: DiagnosticContext) -> None:
    for node in ctx.graph.nodes:
        if node.type != "alternator" or not ctx.graph.is_wired(node.id):
            continue
        if ctx.tracer.by_type(node.id, DCDC_TYPES):
            continue
        for battery in ctx.tracer.batteries(node.id):
            if _is_lithium(battery):
                ctx.warnings.append(
                    f"{node.label} directly connected to {battery.label} - "
                    f"consider DC-DC charger for lithium"
                )


def check_bus_load(ctx: DiagnosticContext) -> None:
    for node in ctx.graph.of_category(Category.DISTRIBUTION):
        if not ctx.graph.is_wired(node.id):
            continue
        total = sum(
            ctx.states[n.id].current
            for n in ctx.tracer.by_category(node.id, Category.LOAD)
            if ctx.states[n.id].status is Status.ON
        )
        rating = node.number("rating", DEFAULT_BUS_RATING)
        if total > rating:
            ctx.errors.append(
                f"{node.label} overloaded: {total:.1f}A exceeds {rating:g}A rating!"
            )
        elif total > rating * BUS_WARNING_FRACTION:
            ctx.warnings.append(
                f"{node.label} at {total / rating * 100.0:.0f}% capacity ({total:.1f}A / {rating:g}A)"
            )


def check_generation_without_battery(ctx: DiagnosticContext) -> None:
    if ctx.graph.batteries() or ctx.total_load <= 0 or ctx.total_generation <= 0:
        return
    if ctx.total_load > ctx.total_generation:
        ctx.warnings.append(
            f"Load ({ctx.total_load:.0f}W) exceeds generation "
            f"({ctx.total_generation:.0f}W) with no battery backup!"
        )


def check_high_current(ctx: DiagnosticContext) -> None:
    for node in ctx.graph.nodes:
        if node.category not in (Category.LOAD, Category.CHARGING):
            continue
        state = ctx.state(node.id)
        if state is not None and state.current > HIGH_CURRENT_ADVISORY_A:
            ctx.warnings.append(
                f"{node.label} draws {state.current:.1f}A - ensure adequate wire gauge"
            )


RULES: tuple[Rule, ...] = (
    check_disconnected,
    check_unpowered_loads,
    check_solar_without_charger,
    check_idle_alternator,
    check_charger_connections,
    check_unused_batteries,
    check_starter_house_loads,
    check_unprotected_loads,
    check_fuse_sizing,
    check_solar_voc,
    check_daily_demand,
    check_ground_bus,
    check_charge_rates,
    check_discharge_rates,
    check_parallel_mismatch,
    check_alternator_lithium,
    check_bus_load,
    check_generation_without_battery,
    check_high_current,
)


def run_diagnostics(ctx: DiagnosticContext) -> DiagnosticContext:
    """Evaluate every rule in order; findings accumulate on ``ctx``."""
    for rule in RULES:
        rule(ctx)
    return ctx
