# watermeter/model/meter.py
from __future__ import annotations

import math

from watermeter.core.types import FlowDirection, Reading
from watermeter.model.counter import VolumeCounter
from watermeter.model.flow import FlowModel


# Flow counted while air is pushed through the line (m^3/s)
AIR_EQUIVALENT_RATE_M3S = 0.001


class Meter:
    """
    The water meter: an inlet FlowModel feeding a VolumeCounter.

    Not thread-safe on its own; MeterSimulation serializes access.
    """

    def __init__(self, bore_diameter_mm: float, max_volume_m3: float):
        self._flow = FlowModel(bore_diameter_mm)
        self._counter = VolumeCounter(max_volume_m3)

    @property
    def flow(self) -> FlowModel:
        return self._flow

    @property
    def counter(self) -> VolumeCounter:
        return self._counter

    def step(self, delta_t_s: float, air_factor: float) -> float:
        """
        Advance one discrete time step and return the volume offered to the counter.

        Air passage takes precedence over the water flow formula for the step.
        """
        if not math.isfinite(delta_t_s) or delta_t_s < 0:
            raise ValueError(f"delta_t_s must be a finite number >= 0, got {delta_t_s}")
        if not math.isfinite(air_factor) or air_factor < 0:
            raise ValueError(f"air_factor must be a finite number >= 0, got {air_factor}")

        volume = self._flow.flow_rate_m3s() * delta_t_s
        if self._flow.is_air_passing():
            volume = AIR_EQUIVALENT_RATE_M3S * delta_t_s * air_factor

        self._counter.register_volume(volume)
        return volume

    def current_reading(self) -> Reading:
        return Reading(volume_m3=self._counter.current_volume(), pressure_bar=self._flow.pressure_bar)

    def set_inlet_pressure(self, pressure_bar: float) -> None:
        self._flow.pressure_bar = float(pressure_bar)

    def set_flow_direction(self, direction: FlowDirection) -> None:
        self._flow.direction = FlowDirection(direction)
