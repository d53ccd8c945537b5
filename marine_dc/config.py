"""
marine_dc/config.py
===================
Marine DC Network Simulator — Engineering Constants

Raw constants consumed by the tick pipeline and the diagnostics rules.

Rules:
    - No calculations or derived quantities here.
    - Units: V, A, W, Ah, s, °C, RPM, W/m².
    - The component registry (COMPONENT_DEFAULTS) holds static per-type
      specs only; user overrides never touch it.
"""


# ---------------------------------------------------------------------------
# System defaults
# ---------------------------------------------------------------------------

DEFAULT_SYSTEM_VOLTAGE: float = 12.0
"""System voltage used when the diagram has no battery at all (V)."""

DEFAULT_BATTERY_VOLTAGE: float = 12.8
"""Battery voltage seed on the first tick (V)."""

DEFAULT_SOC: float = 80.0
"""State of charge assumed on the first tick (%)."""

DEFAULT_TICK_S: float = 1.0
"""Elapsed simulated time per tick when the caller does not say (s)."""


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

REFERENCE_IRRADIANCE: float = 1000.0
"""Irradiance at standard test conditions (W/m²)."""

REFERENCE_TEMP_C: float = 25.0
"""Temperature at which chemistry voltages are specified (°C)."""

DEFAULT_IRRADIANCE: float = 800.0
DEFAULT_AMBIENT_TEMP_C: float = 25.0


# ---------------------------------------------------------------------------
# Alternator
# ---------------------------------------------------------------------------

ALTERNATOR_CUT_IN_RPM: float = 800.0
ALTERNATOR_FULL_OUTPUT_RPM: float = 2000.0
ALTERNATOR_OUTPUT_VOLTAGE: float = 14.4


# ---------------------------------------------------------------------------
# DC-DC chargers
# ---------------------------------------------------------------------------

DCDC_ACTIVATION_VOLTAGE: float = 13.2
"""Starter-side voltage above which a smart DC-DC charger wakes up (V)."""

ALTERNATOR_AMPS_PER_VOLT: float = 5.0
"""Coarse alternator current model: (V_in − V_target) × 5 A."""

ALTERNATOR_MIN_HEADROOM: float = 0.5
"""Input must sit this far above the target before current flows (V)."""

CHARGER_ACTIVE_CURRENT: float = 0.1
"""Output current above which a charger reports `charging` (A)."""

CELLS_PER_12V_BANK: int = 6

LITHIUM_ABSORPTION_START_SOC: float = 95.0
LEAD_ABSORPTION_START_SOC: float = 80.0
LEAD_FLOAT_START_SOC: float = 95.0
LEAD_ABSORPTION_MIN_FACTOR: float = 0.7
LEAD_FLOAT_CURRENT_FACTOR: float = 0.1


# ---------------------------------------------------------------------------
# Battery model
# ---------------------------------------------------------------------------

HYSTERESIS_ENTER_A: float = 0.5
"""Net current needed to leave `idle` (A)."""

HYSTERESIS_EXIT_A: float = 0.2
"""Net current below which `charging`/`discharging` falls back (A)."""

BATTERY_MIN_VOLTAGE: float = 10.5
BATTERY_MAX_VOLTAGE: float = 14.6

SOC_LOW_WARNING: float = 20.0
SOC_CRITICAL: float = 10.0


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------

DAILY_USE_HOURS: float = 8.0
"""Assumed daily running hours of every active load (h)."""

DAILY_DEMAND_CAPACITY_FRACTION: float = 0.5
"""Share of house capacity that daily demand may consume (50 % DoD)."""

FUSE_WARNING_FRACTION: float = 0.8
FUSE_UNDERSIZED_FRACTION: float = 0.8
VOC_WARNING_FRACTION: float = 0.9
PARALLEL_MISMATCH_V: float = 0.5
BUS_WARNING_FRACTION: float = 0.8
DEFAULT_BUS_RATING: float = 100.0
HIGH_CURRENT_ADVISORY_A: float = 30.0


# ---------------------------------------------------------------------------
# Charge summary
# ---------------------------------------------------------------------------

SUMMARY_RESERVE_SOC: float = 20.0
"""Time-to-empty stops at this SOC (%)."""

SUMMARY_ABSORPTION_SOC: float = 80.0
SUMMARY_ABSORPTION_FACTOR: float = 0.5
SUMMARY_MIN_CURRENT: float = 0.1


# ---------------------------------------------------------------------------
# Component registry
# ---------------------------------------------------------------------------

_BATTERY = {"voltage": 12.0, "capacity": 100.0, "chemistry": "lead-acid"}
_LOAD = {"voltage": 12.0, "max_current": 5.0, "is_on": True}
_FUSE = {"voltage": 12.0, "rating": 15.0, "is_blown": False}
_PASS = {"voltage": 12.0}

COMPONENT_DEFAULTS: dict[str, dict] = {
    # Power sources
    "battery":        dict(_BATTERY),
    "battery-bank":   dict(_BATTERY, capacity=200.0),
    "starter-battery": dict(_BATTERY, role="starter"),
    "house-battery":  dict(_BATTERY, capacity=200.0, role="house"),
    "solar-panel":    {"voltage": 12.0, "wattage": 100.0, "vmp": 18.0,
                       "imp": 5.56, "voc": 22.0, "isc": 6.0},
    "solar-array":    {"voltage": 12.0, "wattage": 100.0, "vmp": 18.0,
                       "imp": 5.56, "voc": 22.0, "isc": 6.0,
                       "panel_count": 2, "array_config": "parallel"},
    "alternator":     {"voltage": 14.4, "max_current": 100.0},
    "shore-power":    {"voltage": 120.0, "max_current": 30.0},
    # Charging
    "dc-dc-charger":  {"voltage": 12.0, "charge_rate": 20.0, "efficiency": 92.0},
    "dc-dc-mppt-charger": {"voltage": 12.0, "charge_rate": 30.0, "efficiency": 98.0,
                           "alternator_input_min": 8.0, "alternator_input_max": 16.0,
                           "solar_input_min": 9.0, "solar_input_max": 32.0,
                           "max_solar_wattage": 400.0, "max_solar_current": 30.0,
                           "max_output_power": 450.0},
    "mppt-controller": {"voltage": 12.0, "charge_rate": 30.0, "efficiency": 97.0,
                        "solar_input_min": 9.0, "solar_input_max": 100.0,
                        "max_solar_wattage": 440.0, "max_solar_current": 30.0,
                        "max_output_power": 440.0},
    "battery-charger": {"voltage": 12.0, "charge_rate": 30.0, "efficiency": 85.0},
    # Protection
    "fuse":            dict(_FUSE),
    "circuit-breaker": dict(_FUSE, rating=20.0),
    "fuse-block":      dict(_FUSE, rating=30.0),
    "anl-fuse":        dict(_FUSE, rating=150.0),
    "battery-shunt":   dict(_FUSE, rating=500.0),
    # Distribution
    "bus-bar":            dict(_PASS, rating=DEFAULT_BUS_RATING),
    "distribution-panel": dict(_PASS, rating=DEFAULT_BUS_RATING),
    "junction-box":       dict(_PASS, rating=DEFAULT_BUS_RATING),
    # Switching
    "battery-switch": dict(_PASS),
    "toggle-switch":  dict(_PASS),
    "relay":          dict(_PASS),
    "solenoid":       dict(_PASS),
    # Ground
    "ground-bus":  dict(_PASS),
    "bonding-bus": dict(_PASS),
    # Loads
    "bilge-pump":    dict(_LOAD, max_current=4.0),
    "nav-lights":    dict(_LOAD, max_current=2.0),
    "anchor-light":  dict(_LOAD, max_current=1.0),
    "cabin-lights":  dict(_LOAD, max_current=3.0),
    "radio-vhf":     dict(_LOAD, max_current=1.5),
    "chartplotter":  dict(_LOAD, max_current=2.5),
    "depth-sounder": dict(_LOAD, max_current=0.5),
    "windlass":      dict(_LOAD, max_current=80.0),
    "refrigerator":  dict(_LOAD, max_current=5.0),
    "water-pump":    dict(_LOAD, max_current=6.0),
    "horn":          dict(_LOAD, max_current=10.0),
    "usb-outlet":    dict(_LOAD, max_current=2.0),
    "outlet-12v":    dict(_LOAD, max_current=10.0),
    "custom-load":   dict(_LOAD),
    "starter-motor": dict(_LOAD, max_current=150.0, is_on=False),
    "trim-pump":     dict(_LOAD, max_current=20.0, is_on=False),
    "diesel-heater": dict(_LOAD, max_current=2.0),
}
