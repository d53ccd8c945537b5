"""
marine_dc/chemistry.py
======================
Marine DC Network Simulator — Battery Chemistry Profiles

Each supported chemistry is one immutable profile record, selected once per
battery. The voltage curve, the charge-stage machine and temperature
compensation all take the profile as a parameter instead of branching on the
chemistry name.

Families:
    - Lead-acid family (lead-acid, AGM, gel): sloped resting-voltage curve,
      three-stage bulk → absorption → float charging.
    - Lithium family (lithium, LiFePO4): flat resting-voltage curve,
      CC → CV → stop charging, no float stage.
"""

from __future__ import annotations

from dataclasses import dataclass

from marine_dc.config import (
    BATTERY_MAX_VOLTAGE,
    BATTERY_MIN_VOLTAGE,
    CELLS_PER_12V_BANK,
    LEAD_ABSORPTION_MIN_FACTOR,
    LEAD_ABSORPTION_START_SOC,
    LEAD_FLOAT_CURRENT_FACTOR,
    LEAD_FLOAT_START_SOC,
    LITHIUM_ABSORPTION_START_SOC,
    REFERENCE_TEMP_C,
)


# ---------------------------------------------------------------------------
# Profile record
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChemistryProfile:
    """Static charge/discharge characteristics of one chemistry (12 V bank).

    Attributes:
        name:                  Chemistry key, e.g. ``"lifepo4"``.
        lithium:               True for the CC/CV family (no float stage).
        bulk_voltage:          Nominal bulk/absorption voltage at 25 °C [V].
        float_voltage:         Nominal float voltage at 25 °C [V].
        full_voltage:          Resting voltage anchor at full charge [V].
        mid_voltage:           Resting voltage anchor at 50 % SOC [V].
        empty_voltage:         Resting voltage anchor at the knee
                               (15 % lithium / 20 % lead) [V].
        max_charge_c_rate:     Safe charge current as a multiple of capacity.
        max_discharge_c_rate:  Recommended continuous discharge C-rate.
        temp_coeff_mv:         Compensation, mV per cell per °C.
        internal_resistance:   Internal resistance of a 100 Ah bank [Ω].
    """
    name:                 str
    lithium:              bool
    bulk_voltage:         float
    float_voltage:        float
    full_voltage:         float
    mid_voltage:          float
    empty_voltage:        float
    max_charge_c_rate:    float
    max_discharge_c_rate: float
    temp_coeff_mv:        float
    internal_resistance:  float


PROFILES: dict[str, ChemistryProfile] = {
    "lead-acid": ChemistryProfile(
        name="lead-acid", lithium=False,
        bulk_voltage=14.4, float_voltage=13.6,
        full_voltage=12.8, mid_voltage=12.2, empty_voltage=11.9,
        max_charge_c_rate=0.2, max_discharge_c_rate=0.2,
        temp_coeff_mv=-5.0, internal_resistance=0.02,
    ),
    "agm": ChemistryProfile(
        name="agm", lithium=False,
        bulk_voltage=14.7, float_voltage=13.6,
        full_voltage=12.9, mid_voltage=12.3, empty_voltage=12.0,
        max_charge_c_rate=0.3, max_discharge_c_rate=0.3,
        temp_coeff_mv=-4.0, internal_resistance=0.012,
    ),
    "gel": ChemistryProfile(
        name="gel", lithium=False,
        bulk_voltage=14.1, float_voltage=13.8,
        full_voltage=12.85, mid_voltage=12.25, empty_voltage=11.95,
        max_charge_c_rate=0.2, max_discharge_c_rate=0.2,
        temp_coeff_mv=-5.0, internal_resistance=0.015,
    ),
    "lithium": ChemistryProfile(
        name="lithium", lithium=True,
        bulk_voltage=14.4, float_voltage=13.6,
        full_voltage=13.5, mid_voltage=13.2, empty_voltage=12.0,
        max_charge_c_rate=0.5, max_discharge_c_rate=1.0,
        temp_coeff_mv=0.0, internal_resistance=0.008,
    ),
    "lifepo4": ChemistryProfile(
        name="lifepo4", lithium=True,
        bulk_voltage=14.2, float_voltage=13.5,
        full_voltage=13.4, mid_voltage=13.2, empty_voltage=12.0,
        max_charge_c_rate=1.0, max_discharge_c_rate=1.0,
        temp_coeff_mv=0.0, internal_resistance=0.006,
    ),
}

DEFAULT_CHEMISTRY: str = "lead-acid"


def get_profile(chemistry: object) -> ChemistryProfile:
    """Profile for a chemistry name; unknown or missing names fall back to
    lead-acid."""
    key = str(chemistry or "").strip().lower().replace("_", "-")
    return PROFILES.get(key, PROFILES[DEFAULT_CHEMISTRY])


# ---------------------------------------------------------------------------
# Resting voltage curve
# ---------------------------------------------------------------------------

def resting_voltage(profile: ChemistryProfile, soc: float) -> float:
    """Open-circuit voltage of a 12 V bank at ``soc`` percent.

    Lithium family (flat):
        SOC > 95       max(full, plateau end) + (SOC − 95) × 0.04
        15 < SOC ≤ 95  mid + (SOC − 50) × 0.005
        SOC ≤ 15       steep drop from the plateau edge to ``empty``

    Lead-acid family (sloped):
        20 < SOC ≤ 80  line through (20, empty) and (50, mid)
        SOC > 80       line from the 80 % value up to ``full`` at 100 %
        SOC ≤ 20       empty − (20 − SOC) × 0.05

    Result is clamped to [10.5, 14.6] V. Both curves are non-decreasing in
    SOC.
    """
    if profile.lithium:
        if soc > 95.0:
            plateau_end = profile.mid_voltage + (95.0 - 50.0) * 0.005
            voltage = max(profile.full_voltage, plateau_end) + (soc - 95.0) * 0.04
        elif soc > 15.0:
            voltage = profile.mid_voltage + (soc - 50.0) * 0.005
        else:
            plateau_edge = profile.mid_voltage + (15.0 - 50.0) * 0.005
            voltage = profile.empty_voltage + (soc / 15.0) * (plateau_edge - profile.empty_voltage)
    else:
        slope = (profile.mid_voltage - profile.empty_voltage) / 30.0
        at_80 = profile.empty_voltage + 60.0 * slope
        if soc > 80.0:
            voltage = at_80 + (soc - 80.0) * (profile.full_voltage - at_80) / 20.0
        elif soc > 20.0:
            voltage = profile.empty_voltage + (soc - 20.0) * slope
        else:
            voltage = profile.empty_voltage - (20.0 - soc) * 0.05
    return clamp_voltage(voltage)


def clamp_voltage(voltage: float) -> float:
    return max(BATTERY_MIN_VOLTAGE, min(BATTERY_MAX_VOLTAGE, voltage))


# ---------------------------------------------------------------------------
# Temperature compensation
# ---------------------------------------------------------------------------

def temperature_compensation(profile: ChemistryProfile, ambient_temp_c: float) -> float:
    """Voltage shift applied to bulk/float set-points [V].

        ΔV = coeff_mV × (T − 25) × cells / 1000

    Lithium profiles carry a zero coefficient.
    """
    return (profile.temp_coeff_mv * (ambient_temp_c - REFERENCE_TEMP_C) * CELLS_PER_12V_BANK) / 1000.0


# ---------------------------------------------------------------------------
# Charge stages
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChargeStage:
    """Stage label and the factor applied to the allowed charge current."""
    label:          str
    current_factor: float


def charge_stage(profile: ChemistryProfile, soc: float) -> ChargeStage:
    """Select the charge stage for a target battery at ``soc`` percent.

    Lithium:   <95 bulk(CC) ×1 · 95–100 absorption(CV) ×(100−SOC)/5 ·
               ≥100 full-stopped ×0
    Lead-acid: <80 bulk ×1 · 80–95 absorption ×(0.7 + (95−SOC)/15 × 0.3) ·
               ≥95 float ×0.1
    """
    if profile.lithium:
        if soc < LITHIUM_ABSORPTION_START_SOC:
            return ChargeStage("bulk(CC)", 1.0)
        if soc < 100.0:
            return ChargeStage("absorption(CV)", (100.0 - soc) / (100.0 - LITHIUM_ABSORPTION_START_SOC))
        return ChargeStage("full-stopped", 0.0)

    if soc < LEAD_ABSORPTION_START_SOC:
        return ChargeStage("bulk", 1.0)
    if soc < LEAD_FLOAT_START_SOC:
        span = LEAD_FLOAT_START_SOC - LEAD_ABSORPTION_START_SOC
        factor = LEAD_ABSORPTION_MIN_FACTOR + ((LEAD_FLOAT_START_SOC - soc) / span) * (1.0 - LEAD_ABSORPTION_MIN_FACTOR)
        return ChargeStage("absorption", factor)
    return ChargeStage("float", LEAD_FLOAT_CURRENT_FACTOR)
