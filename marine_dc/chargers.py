"""
marine_dc/chargers.py
=====================
Marine DC Network Simulator — Pass 2: Chargers

Runs after Pass 1 so that solar, alternator and provisional battery states
exist. Chargers are the only nodes whose behaviour depends on other nodes'
computed values; reading Pass 1 output (never writing it) is what breaks the
charger ↔ battery dependency cycle.

DC-DC MPPT charger (and the solar-only MPPT controller):
    1. Trace neighbours: solar (max V, ΣP), alternators (max V), batteries.
    2. Resolve source (starter) and target (house) batteries.
    3. Alternator/starter path wakes only once the starter side exceeds
       13.2 V. Solar input is independent of that gate.
    4. Output current = min(charge rate, (V_in − V_target) × 5,
       capacity × C-rate, P_max / V_target), then scaled by charge stage.
    5. Alternator input above the device's max input → fault, 0 A.

Plain DC-DC / shore charger:
    Fixed charge rate at system voltage while the engine runs (DC-DC) or
    shore power is connected (shore charger) and a battery is traced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from marine_dc.chemistry import (
    ChemistryProfile,
    charge_stage,
    get_profile,
    temperature_compensation,
)
from marine_dc.components import (
    BatteryCredit,
    Category,
    ComponentNode,
    Environment,
    NodeState,
    SOLAR_TYPES,
    Status,
    SystemGraph,
)
from marine_dc.config import (
    ALTERNATOR_AMPS_PER_VOLT,
    ALTERNATOR_MIN_HEADROOM,
    CHARGER_ACTIVE_CURRENT,
    DCDC_ACTIVATION_VOLTAGE,
)
from marine_dc.sources import SourceStage
from marine_dc.tracer import ConnectivityTracer

log = logging.getLogger(__name__)

STARTER_HINTS: tuple[str, ...] = ("starter", "start", "engine")
HOUSE_HINTS: tuple[str, ...] = ("house", "lithium", "aux", "lifepo")


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BatteryCandidate:
    """A battery seen by a charger, with its Pass 1 readings."""
    id:       str
    label:    str
    voltage:  float
    soc:      float
    capacity: float
    profile:  ChemistryProfile
    role:     Optional[str] = None


@dataclass(frozen=True)
class BatteryRoles:
    source: Optional[BatteryCandidate]
    target: Optional[BatteryCandidate]


@dataclass(frozen=True)
class ChargerStage:
    """Pass 2 result: charger states plus target-battery credits."""
    states:     dict[str, NodeState]
    credits:    tuple[BatteryCredit, ...]
    generation: float


def battery_candidate(node: ComponentNode, state: NodeState) -> BatteryCandidate:
    role = node.value("role")
    return BatteryCandidate(
        id=node.id,
        label=node.label,
        voltage=state.voltage,
        soc=state.state_of_charge if state.state_of_charge is not None else 50.0,
        capacity=node.number("capacity", 100.0),
        profile=get_profile(node.value("chemistry")),
        role=str(role).lower() if role else None,
    )


# ---------------------------------------------------------------------------
# Role resolution
# ---------------------------------------------------------------------------

def _label_hint(candidate: BatteryCandidate, hints: Sequence[str]) -> bool:
    label = candidate.label.lower()
    return any(hint in label for hint in hints)


def resolve_battery_roles(candidates: Sequence[BatteryCandidate]) -> BatteryRoles:
    """Decide which battery feeds the charger and which one it charges.

    Precedence, applied to each role independently:
        1. explicit role tag (``"starter"`` / ``"house"``)
        2. label heuristic (starter/start/engine vs house/lithium/aux/lifepo)
        3. stable fallback: lowest id is the source, highest id the target

    Candidates are considered in id order, so a given set of batteries always
    resolves the same way regardless of wiring order.

    Example:
        0 batteries → (None, None); 1 battery → (None, that battery).
    """
    if not candidates:
        return BatteryRoles(source=None, target=None)
    if len(candidates) == 1:
        return BatteryRoles(source=None, target=candidates[0])

    ordered = sorted(candidates, key=lambda c: c.id)

    source = next((c for c in ordered if c.role == "starter"), None)
    target = next((c for c in ordered if c.role == "house" and c is not source), None)

    if source is None:
        source = next((c for c in ordered
                       if c is not target and c.role != "house" and _label_hint(c, STARTER_HINTS)), None)
    if target is None:
        target = next((c for c in ordered
                       if c is not source and c.role != "starter" and _label_hint(c, HOUSE_HINTS)), None)

    if source is None:
        source = next(c for c in ordered if c is not target)
    if target is None:
        target = next(c for c in reversed(ordered) if c is not source)

    return BatteryRoles(source=source, target=target)


# ---------------------------------------------------------------------------
# MPPT / DC-DC MPPT charger
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChargerInputs:
    """What a charger sees through the tracer."""
    solar_voltage:      float
    solar_power:        float
    alternator_voltage: float
    batteries:          tuple[BatteryCandidate, ...]


def gather_inputs(
    node: ComponentNode,
    tracer: ConnectivityTracer,
    graph: SystemGraph,
    sources: SourceStage,
    environment: Environment,
) -> ChargerInputs:
    solar_voltage = 0.0
    solar_power = 0.0
    alternator_voltage = 0.0
    batteries: list[BatteryCandidate] = []

    for other in tracer.trace(node.id):
        state = sources.states.get(other.id)
        if state is None:
            continue
        if other.type in SOLAR_TYPES:
            solar_voltage = max(solar_voltage, state.voltage)
            solar_power += state.power
        elif other.type == "alternator" and environment.engine_running:
            alternator_voltage = max(alternator_voltage, state.voltage)
        elif other.is_battery:
            batteries.append(battery_candidate(graph.node(other.id), state))

    return ChargerInputs(solar_voltage, solar_power, alternator_voltage, tuple(batteries))


def resolve_mppt_charger(
    node: ComponentNode,
    inputs: ChargerInputs,
    environment: Environment,
    accepts_alternator: bool = True,
) -> NodeState:
    """Full DC-DC MPPT behaviour for one charger node."""
    efficiency_pct = node.number("efficiency", 98.0)
    roles = resolve_battery_roles(inputs.batteries)
    target = roles.target
    source = roles.source if accepts_alternator else None

    if target is None:
        return NodeState(
            voltage=0.0, current=0.0, power=0.0, status=Status.IDLE,
            charge_stage="no battery",
            efficiency=efficiency_pct,
            input_voltage=max(inputs.alternator_voltage, inputs.solar_voltage),
            output_voltage=0.0, input_current=0.0, output_current=0.0,
            solar_input_power=0.0, alternator_input_power=0.0,
            activation_voltage=DCDC_ACTIVATION_VOLTAGE,
        )

    profile = target.profile
    efficiency = efficiency_pct / 100.0
    charge_rate = node.number("charge_rate", 30.0)
    target_voltage = target.voltage if target.voltage > 0 else profile.mid_voltage
    compensation = temperature_compensation(profile, environment.ambient_temp_c)

    # Alternator / starter-battery path, voltage-triggered
    alternator_voltage = inputs.alternator_voltage if accepts_alternator else 0.0
    wake_voltage = source.voltage if source is not None else alternator_voltage
    awake = accepts_alternator and wake_voltage > DCDC_ACTIVATION_VOLTAGE
    dc_input = max(alternator_voltage, wake_voltage) if awake else alternator_voltage

    alt_min = node.number("alternator_input_min", 8.0)
    alt_max = node.number("alternator_input_max", 16.0)
    alt_current = 0.0
    if awake and alt_min <= dc_input <= alt_max and dc_input > target_voltage + ALTERNATOR_MIN_HEADROOM:
        alt_current = min(charge_rate, (dc_input - target_voltage) * ALTERNATOR_AMPS_PER_VOLT)
    alternator_input_power = dc_input * alt_current

    # Solar path (MPPT)
    solar_input_power = 0.0
    solar_current = 0.0
    solar_min = node.number("solar_input_min", 9.0)
    solar_max = node.number("solar_input_max", 32.0)
    if inputs.solar_power > 0 and solar_min <= inputs.solar_voltage <= solar_max:
        solar_input_power = min(inputs.solar_power, node.number("max_solar_wattage", 400.0))
        solar_current = min(solar_input_power * efficiency / target_voltage,
                            node.number("max_solar_current", 30.0))

    # Limit cascade
    max_safe_current = target.capacity * profile.max_charge_c_rate
    power_limited = node.number("max_output_power", charge_rate * profile.bulk_voltage) / target_voltage
    allowed = min(alt_current * efficiency + solar_current, charge_rate, max_safe_current, power_limited)

    if alt_current == 0.0 and solar_input_power == 0.0:
        stage_label, output_current = "standby", 0.0
    else:
        stage = charge_stage(profile, target.soc)
        stage_label, output_current = stage.label, allowed * stage.current_factor

    status = Status.CHARGING if output_current > CHARGER_ACTIVE_CURRENT else Status.IDLE
    if accepts_alternator and alternator_voltage > alt_max:
        stage_label, output_current, status = "overvoltage protection", 0.0, Status.FAULT
        alternator_input_power = 0.0

    input_voltage = max(dc_input, inputs.solar_voltage)
    return NodeState(
        voltage=target_voltage,
        current=output_current,
        power=output_current * target_voltage,
        status=status,
        charge_stage=stage_label,
        efficiency=efficiency_pct,
        input_voltage=input_voltage,
        output_voltage=target_voltage,
        input_current=(alternator_input_power + solar_input_power) / max(input_voltage, 1.0),
        output_current=output_current,
        solar_input_power=solar_input_power,
        alternator_input_power=alternator_input_power,
        activation_voltage=DCDC_ACTIVATION_VOLTAGE,
        temperature_compensation=compensation,
        compensated_bulk_voltage=profile.bulk_voltage + compensation,
        compensated_float_voltage=profile.float_voltage + compensation,
        target_battery=target.id,
        source_battery=source.id if source is not None else None,
    )


# ---------------------------------------------------------------------------
# Fixed-rate chargers
# ---------------------------------------------------------------------------

def resolve_fixed_charger(
    node: ComponentNode,
    battery: Optional[ComponentNode],
    input_present: bool,
    system_voltage: float,
    default_rate: float,
) -> NodeState:
    """Plain DC-DC or shore charger: full rate whenever input and battery exist."""
    charge_rate = node.number("charge_rate", default_rate)
    charging = input_present and battery is not None
    current = charge_rate if charging else 0.0
    return NodeState(
        voltage=system_voltage,
        current=current,
        power=current * system_voltage,
        status=Status.CHARGING if charging else Status.IDLE,
        efficiency=node.number("efficiency", 92.0),
        output_voltage=system_voltage,
        output_current=current,
        target_battery=battery.id if battery is not None else None,
    )


# ---------------------------------------------------------------------------
# Pass 2
# ---------------------------------------------------------------------------

def resolve_chargers(
    graph: SystemGraph,
    tracer: ConnectivityTracer,
    environment: Environment,
    sources: SourceStage,
) -> ChargerStage:
    """Run Pass 2 over every charging-category node."""
    states: dict[str, NodeState] = {}
    credits: list[BatteryCredit] = []
    generation = 0.0

    for node in graph.of_category(Category.CHARGING):
        if node.type in ("dc-dc-mppt-charger", "mppt-controller"):
            inputs = gather_inputs(node, tracer, graph, sources, environment)
            state = resolve_mppt_charger(
                node, inputs, environment,
                accepts_alternator=node.type == "dc-dc-mppt-charger",
            )
        elif node.type == "dc-dc-charger":
            state = resolve_fixed_charger(
                node, tracer.first_battery(node.id), environment.engine_running,
                sources.system_voltage, default_rate=20.0,
            )
        else:
            state = resolve_fixed_charger(
                node, tracer.first_battery(node.id), environment.shore_connected,
                sources.system_voltage, default_rate=30.0,
            )

        states[node.id] = state
        if state.power > 0 and state.target_battery is not None:
            generation += state.power
            credits.append(BatteryCredit(state.target_battery, generation=state.power))

    log.debug("pass 2: %d chargers, %.1f W delivered", len(states), generation)
    return ChargerStage(states=states, credits=tuple(credits), generation=generation)
