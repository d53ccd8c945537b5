"""
marine_dc/battery_model.py
==========================
Marine DC Network Simulator — Pass 4: Battery Model

Finalises every battery from the power its circuit accumulated in Passes 1–3.

Governing equations:
    P_net   = P_generation − P_load                  (per battery circuit)
    I_net   = P_net / V_system                       (0 when not wired)
    ΔSOC    = I_net · Δt / 3600 / C_Ah · 100         (coulomb counting)
    SOC     = clamp(SOC + ΔSOC, 0, 100)
    V       = V_rest(SOC, chemistry) + I_net · R_int (capped at bulk while
              charging, clamped to [10.5, 14.6] V)

Status uses hysteresis so that near-threshold noise cannot flip it every
tick: leaving ``idle`` takes 0.5 A, leaving ``charging``/``discharging``
takes a drop below 0.2 A.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional

from marine_dc.chemistry import (
    ChemistryProfile,
    clamp_voltage,
    get_profile,
    resting_voltage,
    temperature_compensation,
)
from marine_dc.components import (
    BatteryCredit,
    Environment,
    NodeState,
    Status,
    SystemGraph,
)
from marine_dc.config import (
    DEFAULT_SYSTEM_VOLTAGE,
    HYSTERESIS_ENTER_A,
    HYSTERESIS_EXIT_A,
    SOC_CRITICAL,
    SOC_LOW_WARNING,
)
from marine_dc.sources import SourceStage

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

@dataclass
class CircuitPower:
    """Tick-scoped power sums for one battery circuit [W]."""
    generation: float = 0.0
    load:       float = 0.0

    @property
    def net(self) -> float:
        return self.generation - self.load


@dataclass(frozen=True)
class BatteryStage:
    """Pass 4 result.

    Attributes:
        states:         Finalised battery states.
        system_voltage: Voltage of the primary battery after this tick [V].
        warnings:       Low-SOC advisories.
        errors:         Critically-low SOC errors.
    """
    states:         dict[str, NodeState]
    system_voltage: float
    warnings:       tuple[str, ...]
    errors:         tuple[str, ...]


def accumulate(credits: Iterable[BatteryCredit]) -> dict[str, CircuitPower]:
    """Sum stage credits per battery. Order-independent."""
    circuits: dict[str, CircuitPower] = {}
    for credit in credits:
        circuit = circuits.setdefault(credit.battery_id, CircuitPower())
        circuit.generation += credit.generation
        circuit.load += credit.load
    return circuits


# ---------------------------------------------------------------------------
# Battery model
# ---------------------------------------------------------------------------

class BatteryModel:
    """Coulomb-counting battery with a chemistry-specific voltage curve.

    Args:
        capacity_ah: Rated capacity [Ah].
        profile:     Chemistry profile.

    Raises:
        ValueError: If ``capacity_ah`` is not positive.
    """

    def __init__(self, capacity_ah: float, profile: ChemistryProfile) -> None:
        if capacity_ah <= 0.0:
            raise ValueError(
                f"Battery capacity must be positive; received capacity_ah={capacity_ah!r}"
            )
        self._capacity_ah: float = capacity_ah
        self._profile: ChemistryProfile = profile

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def integrate(self, soc: float, net_current: float, dt_s: float) -> float:
        """Advance SOC by one tick.

            ΔSOC = (I_net · Δt / 3600 / C_Ah) · 100

        Args:
            soc:         SOC before the tick [%], in [0, 100].
            net_current: Net battery current [A]; positive → charging.
            dt_s:        Tick length [s]; zero leaves SOC unchanged.

        Raises:
            ValueError: If ``soc`` is outside [0, 100] or ``dt_s`` is negative.

        Example:
            >>> BatteryModel(100.0, get_profile("agm")).integrate(50.0, 10.0, 3600.0)
            60.0
        """
        if not (0.0 <= soc <= 100.0):
            raise ValueError(
                f"State of charge must be in [0, 100]; received soc={soc!r}"
            )
        if dt_s < 0.0:
            raise ValueError(
                f"Tick length must not be negative; received dt_s={dt_s!r}"
            )
        delta_ah = net_current * dt_s / 3600.0
        return self._clamp(soc + (delta_ah / self._capacity_ah) * 100.0)

    def terminal_voltage(self, soc: float, net_current: float, compensation: float = 0.0) -> float:
        """Resting voltage shifted by the internal-resistance drop or rise."""
        resistance = self._profile.internal_resistance * 100.0 / self._capacity_ah
        voltage = resting_voltage(self._profile, soc) + net_current * resistance
        if net_current > 0.0:
            voltage = min(voltage, self._profile.bulk_voltage + compensation)
        return clamp_voltage(voltage)

    @property
    def profile(self) -> ChemistryProfile:
        return self._profile

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _clamp(soc: float) -> float:
        """Enforce physical SOC bounds [0, 100]."""
        return max(0.0, min(100.0, soc))


def resolve_status(previous: Optional[Status], net_current: float) -> Status:
    """Charging / discharging / idle with hysteresis.

    From ``charging`` the battery stays charging while I ≥ 0.2 A and only
    flips to discharging once I < −0.2 A; ``discharging`` is symmetric.
    From ``idle`` (or anything else) it takes |I| > 0.5 A to leave.
    """
    if previous is Status.CHARGING:
        if net_current >= HYSTERESIS_EXIT_A:
            return Status.CHARGING
        return Status.DISCHARGING if net_current < -HYSTERESIS_EXIT_A else Status.IDLE
    if previous is Status.DISCHARGING:
        if net_current <= -HYSTERESIS_EXIT_A:
            return Status.DISCHARGING
        return Status.CHARGING if net_current > HYSTERESIS_EXIT_A else Status.IDLE
    if net_current > HYSTERESIS_ENTER_A:
        return Status.CHARGING
    if net_current < -HYSTERESIS_ENTER_A:
        return Status.DISCHARGING
    return Status.IDLE


# ---------------------------------------------------------------------------
# Pass 4
# ---------------------------------------------------------------------------

def finalize_batteries(
    graph: SystemGraph,
    sources: SourceStage,
    credits: Iterable[BatteryCredit],
    environment: Environment,
    dt_s: float,
) -> BatteryStage:
    """Integrate every battery over ``dt_s`` seconds and pick system voltage."""
    circuits = accumulate(credits)
    system_voltage = sources.system_voltage
    states: dict[str, NodeState] = {}
    warnings: list[str] = []
    errors: list[str] = []

    for node in graph.batteries():
        provisional = sources.states[node.id]
        wired = graph.is_wired(node.id)
        circuit = circuits.get(node.id, CircuitPower())

        net_power = circuit.net if wired else 0.0
        net_current = net_power / system_voltage if wired and system_voltage > 0 else 0.0

        model = BatteryModel(node.number("capacity", 100.0), get_profile(node.value("chemistry")))
        soc = model.integrate(provisional.state_of_charge, net_current, dt_s)
        voltage = model.terminal_voltage(
            soc, net_current, temperature_compensation(model.profile, environment.ambient_temp_c)
        )
        status = resolve_status(provisional.status, net_current) if wired else Status.IDLE

        states[node.id] = replace(
            provisional,
            voltage=voltage,
            current=abs(net_current),
            power=abs(net_power),
            status=status,
            state_of_charge=soc,
        )

        if soc < SOC_LOW_WARNING:
            warnings.append(f"Battery {node.label} is low ({soc:.0f}%)")
        if soc < SOC_CRITICAL:
            errors.append(f"Battery {node.label} critically low ({soc:.0f}%)!")

    if sources.primary_battery is not None:
        system_voltage = states[sources.primary_battery].voltage
    elif system_voltage <= 0:
        system_voltage = DEFAULT_SYSTEM_VOLTAGE

    log.debug("pass 4: %d batteries finalised, system %.2f V", len(states), system_voltage)
    return BatteryStage(
        states=states,
        system_voltage=system_voltage,
        warnings=tuple(warnings),
        errors=tuple(errors),
    )
