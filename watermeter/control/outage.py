# watermeter/control/outage.py
"""
Water-supply outage state machine.

Each simulation tick the machine decides the inlet pressure (and, while the
supply is normal, the flow direction) the meter sees:

  NORMAL             random draw per tick; below `probability` starts an episode
  OUTAGE_TOTAL       pressure 0 for `total_steps` ticks
  OUTAGE_AIR_RETURN  pressure AIR_RETURN_PRESSURE_BAR for `air_steps` ticks
  -> NORMAL          base pressure restored, a new draw is possible next tick

Exactly one episode is active at a time: no draw happens while an episode runs.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import random
from typing import Optional, Protocol

from watermeter.core.config import ConfigSnapshot
from watermeter.core.errors import ConfigError
from watermeter.core.types import FlowDirection, OutageState
from watermeter.model.meter import Meter


logger = logging.getLogger(__name__)

# Low pressure while returning water pushes air through the meter
AIR_RETURN_PRESSURE_BAR = 0.05


class RandomSource(Protocol):
    def random(self) -> float: ...


def steps_for(duration_ms: int, step_ms: int, key: str = "delta_t_simulacao_ms") -> int:
    """
    Whole ticks that fit in duration_ms. Truncates: a remainder shorter than
    one tick is dropped.
    """
    if step_ms <= 0:
        raise ConfigError(key, f"step period must be > 0 ms to derive outage ticks (got {step_ms})")
    if duration_ms < 0:
        raise ConfigError("outage duration", f"must be >= 0 ms (got {duration_ms})")
    return int(duration_ms) // int(step_ms)


@dataclass(frozen=True)
class OutageParams:
    probability: float
    total_steps: int
    air_steps: int
    base_pressure_bar: float

    @staticmethod
    def from_snapshot(snapshot: ConfigSnapshot) -> "OutageParams":
        step_ms = snapshot.get_int("delta_t_simulacao_ms")
        return OutageParams(
            probability=snapshot.get_float("chance_falta_agua"),
            total_steps=steps_for(snapshot.get_int("duracao_falta_total_ms"), step_ms),
            air_steps=steps_for(snapshot.get_int("duracao_passagem_ar_ms"), step_ms),
            base_pressure_bar=snapshot.get_float("pressao_base_bar"),
        )


class OutageStateMachine:

    def __init__(self, rng: Optional[RandomSource] = None):
        self._rng: RandomSource = rng if rng is not None else random.Random()
        self._state = OutageState.NORMAL
        self._elapsed_ticks = 0
        self.episodes_started = 0

    @property
    def state(self) -> OutageState:
        return self._state

    @property
    def elapsed_ticks(self) -> int:
        return self._elapsed_ticks

    def step(self, meter: Meter, params: OutageParams) -> OutageState:
        if self._state is OutageState.NORMAL:
            self._step_normal(meter, params)
        else:
            self._step_outage(meter, params)
        return self._state

    def _step_normal(self, meter: Meter, params: OutageParams) -> None:
        if self._rng.random() < params.probability:
            self._state = OutageState.OUTAGE_TOTAL
            self.episodes_started += 1
            meter.set_inlet_pressure(0.0)
            logger.info(
                "Water outage started (%d ticks without water, %d ticks of air)",
                params.total_steps,
                params.air_steps,
            )
            return

        meter.set_inlet_pressure(params.base_pressure_bar)
        meter.set_flow_direction(FlowDirection.FORWARD)

    def _step_outage(self, meter: Meter, params: OutageParams) -> None:
        self._elapsed_ticks += 1

        if self._elapsed_ticks <= params.total_steps:
            meter.set_inlet_pressure(0.0)
            return

        if self._elapsed_ticks <= params.total_steps + params.air_steps:
            if self._state is not OutageState.OUTAGE_AIR_RETURN:
                logger.info("Water returning, air passing through the meter")
            self._state = OutageState.OUTAGE_AIR_RETURN
            meter.set_inlet_pressure(AIR_RETURN_PRESSURE_BAR)
            return

        self._state = OutageState.NORMAL
        self._elapsed_ticks = 0
        meter.set_inlet_pressure(params.base_pressure_bar)
        logger.info("Water outage ended, base pressure restored")
