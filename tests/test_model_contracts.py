# tests/test_model_contracts.py
"""
Contracts of the leaf models:
- FlowModel: zero flow unless forward with positive pressure; air band is (0, 0.1)
- VolumeCounter: never negative, always below max, wraps like an odometer
"""

from __future__ import annotations

import math
import random

import pytest

from watermeter.core.types import FlowDirection
from watermeter.model.counter import VolumeCounter
from watermeter.model.flow import FlowModel


@pytest.mark.parametrize("bore_mm", [0.5, 15.0, 20.0, 150.0])
def test_flow_is_zero_without_pressure_or_forward_direction(bore_mm: float) -> None:
    fm = FlowModel(bore_mm)

    for direction in (FlowDirection.REVERSE, FlowDirection.NONE):
        fm.direction = direction
        for p in (-1.0, 0.0, 0.05, 2.0, 10.0):
            fm.pressure_bar = p
            assert fm.flow_rate_m3s() == 0.0

    fm.direction = FlowDirection.FORWARD
    for p in (-3.0, -1e-9, 0.0):
        fm.pressure_bar = p
        assert fm.flow_rate_m3s() == 0.0


def test_flow_rate_formula_15mm_2bar() -> None:
    fm = FlowModel(15.0)
    fm.pressure_bar = 2.0
    fm.direction = FlowDirection.FORWARD

    assert fm.flow_rate_m3s() == pytest.approx(1e-4 * 225 * math.sqrt(2.0))
    assert fm.flow_rate_m3s() == pytest.approx(0.03182, abs=1e-5)


def test_new_flow_model_starts_idle() -> None:
    fm = FlowModel(20.0)
    assert fm.pressure_bar == 0.0
    assert fm.direction == FlowDirection.NONE
    assert fm.flow_rate_m3s() == 0.0
    assert not fm.is_air_passing()


@pytest.mark.parametrize(
    "pressure, expected",
    [
        (-0.05, False),
        (0.0, False),
        (1e-9, True),
        (0.05, True),
        (0.0999, True),
        (0.1, False),
        (0.2, False),
        (2.0, False),
    ],
)
def test_air_passage_is_open_interval(pressure: float, expected: bool) -> None:
    fm = FlowModel(15.0)
    fm.pressure_bar = pressure
    assert fm.is_air_passing() is expected


@pytest.mark.parametrize("bad", [0.0, -1.0, float("nan"), float("inf")])
def test_flow_model_rejects_bad_bore(bad: float) -> None:
    with pytest.raises(ValueError):
        FlowModel(bad)


def test_counter_rollover_scenario() -> None:
    c = VolumeCounter(10.0)
    c.register_volume(9.99)
    c.register_volume(0.02)
    assert c.current_volume() == pytest.approx(0.01)


def test_counter_exact_max_wraps_to_zero() -> None:
    c = VolumeCounter(10.0)
    c.register_volume(10.0)
    assert c.current_volume() == 0.0


def test_counter_multiple_wraps_in_one_delta() -> None:
    c = VolumeCounter(10.0)
    c.register_volume(3.0)
    c.register_volume(35.5)  # 38.5 -> three wraps
    assert c.current_volume() == pytest.approx(8.5)


@pytest.mark.parametrize("delta", [0.0, -0.5, -1e9, float("nan")])
def test_counter_ignores_non_positive_delta(delta: float) -> None:
    c = VolumeCounter(10.0)
    c.register_volume(4.2)
    c.register_volume(delta)
    assert c.current_volume() == pytest.approx(4.2)


@pytest.mark.parametrize("max_volume", [0.5, 1.0, 10.0, 9999.0])
def test_counter_stays_within_range(max_volume: float) -> None:
    rng = random.Random(1234)
    c = VolumeCounter(max_volume)
    for _ in range(2000):
        c.register_volume(rng.uniform(0.0, 3.0 * max_volume))
        v = c.current_volume()
        assert 0.0 <= v < max_volume


@pytest.mark.parametrize("bad", [0.0, -10.0, float("nan")])
def test_counter_rejects_bad_max(bad: float) -> None:
    with pytest.raises(ValueError):
        VolumeCounter(bad)
