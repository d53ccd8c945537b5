"""
marine_dc/charge_summary.py
===========================
Marine DC Network Simulator — Charge Summary

Pure Ah-based estimates derived from one SimulationResult, for display
next to the live simulation.

Equations:
    C_total     = Σ C_i                                   [Ah]
    SOC_avg     = Σ C_i · SOC_i / C_total                 [%]
    I_net       = P_net / V_system                        [A]
    t_full      = (C_total − Ah_stored) / (I_net · k)     [s], k = 0.5 above
                  80 % SOC (absorption slows charging), else 1
    t_empty     = Ah_usable / |I_net|                     [s], usable down to
                  20 % SOC
    runtime     = Ah_usable / I_load                      [s]

Rules:
    - No simulation, no I/O, no side effects.
    - Times are None when the battery is not charging / discharging.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from marine_dc.components import SimulationResult, SystemGraph
from marine_dc.config import (
    DEFAULT_SOC,
    SUMMARY_ABSORPTION_FACTOR,
    SUMMARY_ABSORPTION_SOC,
    SUMMARY_MIN_CURRENT,
    SUMMARY_RESERVE_SOC,
)


@dataclass(frozen=True)
class ChargeSummary:
    """Aggregate battery outlook for one tick.

    Attributes:
        total_capacity_ah: Rated capacity of all batteries [Ah].
        average_soc:       Capacity-weighted SOC [%].
        charge_current:    Total generation at system voltage [A].
        load_current:      Total load at system voltage [A].
        net_current:       charge − load [A].
        time_to_full_s:    Seconds until full, None unless charging.
        time_to_empty_s:   Seconds until the 20 % reserve, None unless
                           discharging.
        runtime_s:         Seconds the present load could run from the
                           usable charge, ignoring generation.
        battery_count:     Number of batteries in the diagram.
    """
    total_capacity_ah: float
    average_soc:       float
    charge_current:    float
    load_current:      float
    net_current:       float
    time_to_full_s:    Optional[float]
    time_to_empty_s:   Optional[float]
    runtime_s:         float
    battery_count:     int


def compute_charge_summary(graph: SystemGraph, result: SimulationResult) -> ChargeSummary:
    """Summarise ``result`` for the batteries in ``graph``.

    Example:
        One 100 Ah battery at 50 % SOC with +10 A net current is full in
        (100 − 50) / 10 h = 5 h = 18000 s.
    """
    total_capacity = 0.0
    stored_ah = 0.0
    count = 0
    for node in graph.batteries():
        capacity = node.number("capacity", 100.0)
        state = result.nodes.get(node.id)
        soc = state.state_of_charge if state is not None and state.state_of_charge is not None else DEFAULT_SOC
        total_capacity += capacity
        stored_ah += capacity * soc / 100.0
        count += 1

    average_soc = stored_ah / total_capacity * 100.0 if total_capacity > 0 else 0.0
    voltage = result.system_voltage
    if voltage > 0:
        net_current = result.net_power / voltage
        charge_current = result.total_generation / voltage
        load_current = result.total_load / voltage
    else:
        net_current = charge_current = load_current = 0.0

    ah_to_full = total_capacity - stored_ah
    ah_usable = max(0.0, stored_ah - total_capacity * SUMMARY_RESERVE_SOC / 100.0)

    time_to_full: Optional[float] = None
    if net_current > SUMMARY_MIN_CURRENT and ah_to_full > 0:
        slowdown = SUMMARY_ABSORPTION_FACTOR if average_soc > SUMMARY_ABSORPTION_SOC else 1.0
        time_to_full = ah_to_full / (net_current * slowdown) * 3600.0

    time_to_empty: Optional[float] = None
    if net_current < -SUMMARY_MIN_CURRENT and ah_usable > 0:
        time_to_empty = ah_usable / abs(net_current) * 3600.0

    runtime = ah_usable / load_current * 3600.0 if load_current > 0 else 0.0

    return ChargeSummary(
        total_capacity_ah=total_capacity,
        average_soc=average_soc,
        charge_current=charge_current,
        load_current=load_current,
        net_current=net_current,
        time_to_full_s=time_to_full,
        time_to_empty_s=time_to_empty,
        runtime_s=runtime,
        battery_count=count,
    )


def format_duration(seconds: Optional[float]) -> str:
    """``"2d 3h"``, ``"4h 05m"``, ``"12m"``; ``"--"`` for None / non-positive.

    Example:
        >>> format_duration(5400)
        '1h 30m'
    """
    if seconds is None or seconds != seconds or seconds <= 0 or seconds == float("inf"):
        return "--"
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    if hours > 24:
        return f"{hours // 24}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes}m"


def format_sim_time(seconds: float) -> str:
    """Simulation clock as ``h:mm:ss`` (or ``m:ss`` below one hour)."""
    hrs = int(seconds // 3600)
    mins = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if hrs > 0:
        return f"{hrs}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"
