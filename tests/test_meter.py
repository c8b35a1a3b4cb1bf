# tests/test_meter.py
from __future__ import annotations

import dataclasses
import math

import pytest

from watermeter.core.types import FlowDirection, Reading
from watermeter.model.meter import AIR_EQUIVALENT_RATE_M3S, Meter


def _meter(bore_mm: float = 15.0, max_m3: float = 10000.0) -> Meter:
    return Meter(bore_diameter_mm=bore_mm, max_volume_m3=max_m3)


def test_one_second_of_forward_flow_is_counted() -> None:
    m = _meter()
    m.set_inlet_pressure(2.0)
    m.set_flow_direction(FlowDirection.FORWARD)

    added = m.step(1.0, air_factor=1.0)

    expected = 1e-4 * 225 * math.sqrt(2.0)
    assert added == pytest.approx(expected)
    assert m.current_reading().volume_m3 == pytest.approx(0.03182, abs=1e-5)


def test_air_passage_overrides_flow_formula() -> None:
    m = _meter()
    m.set_inlet_pressure(0.05)
    m.set_flow_direction(FlowDirection.FORWARD)

    added = m.step(1.0, air_factor=2.0)

    assert added == pytest.approx(0.002)
    assert m.current_reading().volume_m3 == pytest.approx(0.002)


def test_air_is_counted_even_without_forward_direction() -> None:
    m = _meter()
    m.set_inlet_pressure(0.05)
    m.set_flow_direction(FlowDirection.NONE)

    m.step(0.5, air_factor=1.0)

    assert m.current_reading().volume_m3 == pytest.approx(AIR_EQUIVALENT_RATE_M3S * 0.5)


def test_reverse_flow_is_not_counted() -> None:
    m = _meter()
    m.set_inlet_pressure(3.0)
    m.set_flow_direction(FlowDirection.REVERSE)

    m.step(10.0, air_factor=1.0)

    assert m.current_reading().volume_m3 == 0.0


def test_reading_snapshots_volume_and_pressure() -> None:
    m = _meter()
    m.set_inlet_pressure(1.5)
    m.set_flow_direction(FlowDirection.FORWARD)
    m.step(2.0, air_factor=1.0)

    r = m.current_reading()
    assert isinstance(r, Reading)
    assert r.pressure_bar == 1.5
    assert r.volume_m3 == pytest.approx(2.0 * 1e-4 * 225 * math.sqrt(1.5))

    with pytest.raises(dataclasses.FrozenInstanceError):
        r.volume_m3 = 0.0  # type: ignore[misc]


def test_meter_rolls_over_with_its_counter() -> None:
    m = _meter(bore_mm=100.0, max_m3=1.0)  # 1 m3/s at 1 bar
    m.set_inlet_pressure(1.0)
    m.set_flow_direction(FlowDirection.FORWARD)

    m.step(2.5, air_factor=1.0)

    assert m.current_reading().volume_m3 == pytest.approx(0.5)


@pytest.mark.parametrize("delta_t", [-0.1, float("nan"), float("inf")])
def test_step_rejects_invalid_delta_t(delta_t: float) -> None:
    m = _meter()
    m.set_inlet_pressure(2.0)
    m.set_flow_direction(FlowDirection.FORWARD)

    with pytest.raises(ValueError):
        m.step(delta_t, air_factor=1.0)
    assert m.current_reading().volume_m3 == 0.0


def test_step_rejects_negative_air_factor() -> None:
    m = _meter()
    with pytest.raises(ValueError):
        m.step(1.0, air_factor=-1.0)


def test_zero_length_step_is_a_no_op() -> None:
    m = _meter()
    m.set_inlet_pressure(2.0)
    m.set_flow_direction(FlowDirection.FORWARD)
    assert m.step(0.0, air_factor=1.0) == 0.0
    assert m.current_reading().volume_m3 == 0.0
