# watermeter/model/flow.py
"""
Inlet flow model.

Flow is a toy laminar-style approximation, deterministic and cheap per tick:

  flow_m3s = K * bore_mm^2 * sqrt(pressure_bar)     (forward flow, pressure > 0)

A small positive pressure below AIR_PRESSURE_LIMIT_BAR is read as air being
pushed through the line instead of a water column.
"""

from __future__ import annotations

import math

from watermeter.core.types import FlowDirection


FLOW_CONSTANT_K = 1e-4
AIR_PRESSURE_LIMIT_BAR = 0.1


class FlowModel:

    def __init__(self, bore_diameter_mm: float):
        bore = float(bore_diameter_mm)
        if not math.isfinite(bore) or bore <= 0:
            raise ValueError(f"bore_diameter_mm must be > 0, got {bore_diameter_mm}")
        self._bore_diameter_mm = bore

        self.pressure_bar: float = 0.0
        self.direction: FlowDirection = FlowDirection.NONE

    @property
    def bore_diameter_mm(self) -> float:
        return self._bore_diameter_mm

    def flow_rate_m3s(self) -> float:
        if self.pressure_bar <= 0 or self.direction != FlowDirection.FORWARD:
            return 0.0
        return FLOW_CONSTANT_K * self._bore_diameter_mm ** 2 * math.sqrt(self.pressure_bar)

    def is_air_passing(self) -> bool:
        return 0.0 < self.pressure_bar < AIR_PRESSURE_LIMIT_BAR
