"""
tests/test_chemistry.py
=======================
Marine DC Network Simulator — Chemistry Profile Tests

Voltage anchors (12 V bank, resting):
    lead-acid   11.9 V @ 20 %, 12.2 V @ 50 %, 12.8 V @ 100 %
    LiFePO4     13.2 V @ 50 %, 13.425 V @ 95 % (plateau end), 13.625 V @ 100 %
"""

import pytest

from marine_dc.chemistry import (
    PROFILES,
    charge_stage,
    get_profile,
    resting_voltage,
    temperature_compensation,
)


@pytest.fixture
def lead():
    return get_profile("lead-acid")


@pytest.fixture
def lifepo4():
    return get_profile("lifepo4")


class TestProfileLookup:

    def test_unknown_chemistry_falls_back_to_lead_acid(self):
        assert get_profile("nickel-iron").name == "lead-acid"

    def test_missing_chemistry_falls_back_to_lead_acid(self):
        assert get_profile(None).name == "lead-acid"

    def test_lookup_is_case_insensitive(self):
        assert get_profile("LiFePO4").name == "lifepo4"

    def test_lithium_family_flag(self):
        assert PROFILES["lithium"].lithium and PROFILES["lifepo4"].lithium
        assert not any(PROFILES[k].lithium for k in ("lead-acid", "agm", "gel"))


class TestRestingVoltage:

    def test_lead_anchor_points(self, lead):
        assert resting_voltage(lead, 20.0) == pytest.approx(11.9)
        assert resting_voltage(lead, 50.0) == pytest.approx(12.2)
        assert resting_voltage(lead, 100.0) == pytest.approx(12.8)

    def test_lead_below_knee(self, lead):
        assert resting_voltage(lead, 0.0) == pytest.approx(10.9)

    def test_lifepo4_plateau(self, lifepo4):
        assert resting_voltage(lifepo4, 50.0) == pytest.approx(13.2)
        assert resting_voltage(lifepo4, 100.0) == pytest.approx(13.625)

    @pytest.mark.parametrize("name", sorted(PROFILES))
    def test_curve_is_monotonic_and_bounded(self, name):
        profile = PROFILES[name]
        voltages = [resting_voltage(profile, soc) for soc in (step / 10.0 for step in range(0, 1001))]
        assert all(10.5 <= v <= 14.6 for v in voltages)
        assert all(b >= a - 1e-9 for a, b in zip(voltages, voltages[1:]))


class TestTemperatureCompensation:
    """ΔV = coeff_mV × (T − 25) × 6 / 1000"""

    def test_lead_acid_hot(self, lead):
        assert temperature_compensation(lead, 35.0) == pytest.approx(-0.3)

    def test_lead_acid_cold(self, lead):
        assert temperature_compensation(lead, 15.0) == pytest.approx(0.3)

    def test_lithium_has_none(self, lifepo4):
        assert temperature_compensation(lifepo4, 40.0) == 0.0


class TestChargeStage:

    def test_lithium_bulk(self, lifepo4):
        stage = charge_stage(lifepo4, 50.0)
        assert stage.label == "bulk(CC)" and stage.current_factor == 1.0

    def test_lithium_absorption_tapers(self, lifepo4):
        stage = charge_stage(lifepo4, 97.0)
        assert stage.label == "absorption(CV)"
        assert stage.current_factor == pytest.approx(0.6)

    def test_lithium_full_stops(self, lifepo4):
        stage = charge_stage(lifepo4, 100.0)
        assert stage.label == "full-stopped" and stage.current_factor == 0.0

    def test_lead_absorption(self, lead):
        stage = charge_stage(lead, 87.5)
        assert stage.label == "absorption"
        assert stage.current_factor == pytest.approx(0.85)

    def test_lead_float(self, lead):
        stage = charge_stage(lead, 96.0)
        assert stage.label == "float" and stage.current_factor == pytest.approx(0.1)
