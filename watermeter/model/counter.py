# watermeter/model/counter.py
from __future__ import annotations

import math


class VolumeCounter:
    """
    Odometer of the meter.

    Only positive volumes are counted (a mechanical register cannot run
    backwards). Reaching max_volume_m3 wraps the reading around.
    """

    def __init__(self, max_volume_m3: float):
        max_v = float(max_volume_m3)
        if not math.isfinite(max_v) or max_v <= 0:
            raise ValueError(f"max_volume_m3 must be > 0, got {max_volume_m3}")
        self._max_volume_m3 = max_v
        self._volume_m3 = 0.0

    @property
    def max_volume_m3(self) -> float:
        return self._max_volume_m3

    def register_volume(self, volume_m3: float) -> None:
        if not volume_m3 > 0:
            return
        self._volume_m3 += volume_m3
        if self._volume_m3 >= self._max_volume_m3:
            # one modulo covers any number of wraps
            self._volume_m3 %= self._max_volume_m3

    def current_volume(self) -> float:
        return self._volume_m3
