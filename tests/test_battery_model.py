"""
tests/test_battery_model.py
===========================
Marine DC Network Simulator — Pass 4 Tests

Coulomb counting:  ΔSOC = I · Δt / 3600 / C_Ah · 100
    100 Ah, +10 A, 1 h   →  +10 %
Hysteresis:        enter at 0.5 A, fall back below 0.2 A
"""

import pytest

from marine_dc.battery_model import (
    BatteryModel,
    accumulate,
    resolve_status,
)
from marine_dc.chemistry import get_profile
from marine_dc.components import BatteryCredit, ComponentNode, Environment, Status
from marine_dc.engine import run_tick, run_ticks


@pytest.fixture
def agm_100():
    return BatteryModel(100.0, get_profile("agm"))


# ---------------------------------------------------------------------------
# SOC integration
# ---------------------------------------------------------------------------

class TestIntegrate:

    def test_one_hour_at_ten_amps(self, agm_100):
        assert agm_100.integrate(50.0, 10.0, 3600.0) == pytest.approx(60.0)

    def test_discharge(self, agm_100):
        assert agm_100.integrate(50.0, -25.0, 3600.0) == pytest.approx(25.0)

    def test_zero_dt_leaves_soc(self, agm_100):
        assert agm_100.integrate(42.0, 50.0, 0.0) == 42.0

    def test_clamped_at_full(self, agm_100):
        assert agm_100.integrate(95.0, 100.0, 3600.0) == 100.0

    def test_clamped_at_empty(self, agm_100):
        assert agm_100.integrate(5.0, -100.0, 3600.0) == 0.0

    def test_rejects_out_of_range_soc(self, agm_100):
        with pytest.raises(ValueError, match="soc=120"):
            agm_100.integrate(120.0, 0.0, 1.0)

    def test_rejects_negative_dt(self, agm_100):
        with pytest.raises(ValueError, match="dt_s"):
            agm_100.integrate(50.0, 0.0, -1.0)

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError, match="capacity_ah"):
            BatteryModel(0.0, get_profile("agm"))


class TestTerminalVoltage:
    """V = V_rest + I · R_int · 100 / C_Ah, capped at bulk while charging"""

    def test_at_rest(self):
        model = BatteryModel(100.0, get_profile("lifepo4"))
        assert model.terminal_voltage(50.0, 0.0) == pytest.approx(13.2)

    def test_rises_while_charging(self):
        model = BatteryModel(100.0, get_profile("lifepo4"))
        assert model.terminal_voltage(50.0, 100.0) == pytest.approx(13.8)

    def test_capped_at_bulk(self):
        model = BatteryModel(100.0, get_profile("lifepo4"))
        assert model.terminal_voltage(50.0, 1000.0) == pytest.approx(14.2)

    def test_sags_under_load(self):
        model = BatteryModel(100.0, get_profile("lead-acid"))
        assert model.terminal_voltage(50.0, -10.0) == pytest.approx(12.0)

    def test_never_below_floor(self):
        model = BatteryModel(100.0, get_profile("lead-acid"))
        assert model.terminal_voltage(0.0, -500.0) == pytest.approx(10.5)


# ---------------------------------------------------------------------------
# Status hysteresis
# ---------------------------------------------------------------------------

class TestStatusHysteresis:

    @pytest.mark.parametrize("previous, current, expected", [
        (Status.CHARGING, 0.2, Status.CHARGING),
        (Status.CHARGING, 0.19, Status.IDLE),
        (Status.CHARGING, -0.3, Status.DISCHARGING),
        (Status.DISCHARGING, -0.2, Status.DISCHARGING),
        (Status.DISCHARGING, 0.1, Status.IDLE),
        (Status.DISCHARGING, 0.3, Status.CHARGING),
        (Status.IDLE, 0.4, Status.IDLE),
        (Status.IDLE, 0.6, Status.CHARGING),
        (Status.IDLE, -0.6, Status.DISCHARGING),
        (None, 0.5, Status.IDLE),
    ])
    def test_transitions(self, previous, current, expected):
        assert resolve_status(previous, current) is expected


def test_accumulate_sums_per_battery():
    circuits = accumulate([
        BatteryCredit("a", generation=100.0),
        BatteryCredit("b", load=40.0),
        BatteryCredit("a", load=30.0),
    ])
    assert circuits["a"].net == pytest.approx(70.0)
    assert circuits["b"].net == pytest.approx(-40.0)


# ---------------------------------------------------------------------------
# Pipeline behaviour
# ---------------------------------------------------------------------------

class TestFinalize:

    def test_disconnected_battery_keeps_soc(self, make_graph):
        graph = make_graph([ComponentNode("bat", "battery", "Spare", overrides={"capacity": 100})], [])
        result = run_tick(graph, dt_s=3600.0)
        assert result.nodes["bat"].state_of_charge == pytest.approx(80.0)
        assert result.nodes["bat"].status is Status.IDLE
        assert "Spare is not connected to anything" in result.warnings

    def test_coulomb_counting_across_ticks(self, make_graph):
        # 10 A draw from 100 Ah: 80 → 70 → 60 % regardless of bus voltage
        graph = make_graph(
            [ComponentNode("bat", "battery"),
             ComponentNode("f", "fuse", overrides={"rating": 20}),
             ComponentNode("load", "custom-load", overrides={"max_current": 10})],
            [("bat", "f"), ("f", "load")],
        )
        first, second = run_ticks(graph, [Environment(), Environment()], dt_s=3600.0)
        assert first.nodes["bat"].state_of_charge == pytest.approx(70.0)
        assert first.nodes["bat"].voltage == pytest.approx(12.2)
        assert first.nodes["bat"].status is Status.DISCHARGING
        assert second.nodes["bat"].state_of_charge == pytest.approx(60.0)

    def test_soc_stays_in_bounds(self, make_graph):
        graph = make_graph(
            [ComponentNode("bat", "battery", "Main"),
             ComponentNode("f", "anl-fuse"),
             ComponentNode("windlass", "windlass")],
            [("bat", "f"), ("f", "windlass")],
        )
        results = run_ticks(graph, [Environment()] * 5, dt_s=3600.0)
        socs = [r.nodes["bat"].state_of_charge for r in results]
        assert all(0.0 <= soc <= 100.0 for soc in socs)
        assert socs[-1] == 0.0
        assert "Battery Main critically low (0%)!" in results[-1].errors
        assert "Battery Main is low (0%)" in results[-1].warnings

    def test_system_voltage_follows_primary_battery(self, make_graph):
        graph = make_graph(
            [ComponentNode("small", "battery", overrides={"capacity": 50}),
             ComponentNode("big", "battery", overrides={"capacity": 300, "chemistry": "lifepo4"})],
            [],
        )
        result = run_tick(graph)
        assert result.system_voltage == pytest.approx(result.nodes["big"].voltage)

    def test_hot_charging_capped_at_compensated_bulk(self, make_graph):
        # 35 °C lead-acid: bulk 14.4 − 0.3 = 14.1 V; 100 A alternator would push past it
        graph = make_graph(
            [ComponentNode("alt", "alternator"), ComponentNode("bat", "battery")],
            [("alt", "bat")],
        )
        env = Environment(ambient_temp_c=35.0, engine_running=True, alternator_rpm=2000.0)
        state = run_tick(graph, env, dt_s=60.0).nodes["bat"]
        assert state.status is Status.CHARGING
        assert state.voltage == pytest.approx(14.1)

    def test_model_exposes_its_profile(self):
        assert BatteryModel(100.0, get_profile("gel")).profile.name == "gel"
