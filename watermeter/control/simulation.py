# watermeter/control/simulation.py
"""
Explicitly owned simulation state shared by the periodic tasks.

One lock covers the meter (flow model + counter) and the outage machine. It is
held for the whole tick (outage decision + meter step) and for every reading,
so a published reading never mixes a new volume with a stale pressure.

Task bodies:
  tick()          simulation step; the only mutator
  publish()       reading -> every publisher; a pure reader
  check_config()  config hot-reload poll
"""

from __future__ import annotations

import logging
import random
import threading
from typing import Dict, List, Optional, Protocol, Sequence

from watermeter.control.outage import OutageParams, OutageStateMachine, RandomSource
from watermeter.core.config import ConfigSnapshot
from watermeter.core.scheduler import Scheduler
from watermeter.core.types import OutageState, Reading
from watermeter.model.meter import Meter


logger = logging.getLogger(__name__)


class ConfigSource(Protocol):
    @property
    def snapshot(self) -> ConfigSnapshot: ...

    def maybe_reload(self) -> Optional[ConfigSnapshot]: ...


class ReadingPublisher(Protocol):
    def publish(self, reading: Reading) -> None: ...


class MeterSimulation:

    def __init__(
        self,
        config: ConfigSource,
        rng: Optional[RandomSource] = None,
        publishers: Sequence[ReadingPublisher] = (),
    ):
        self.config = config
        snap = config.snapshot

        if rng is None:
            # seed=None keeps the draws unpredictable between runs
            rng = random.Random(snap.get("seed"))

        self.meter = Meter(
            bore_diameter_mm=snap.get_float("bitola_mm"),
            max_volume_m3=snap.get_float("max_volume_m3"),
        )
        self.outage = OutageStateMachine(rng)
        self.publishers: List[ReadingPublisher] = list(publishers)

        self._lock = threading.Lock()

        self.ticks = 0
        self.simulated_s = 0.0
        self.ticks_by_state: Dict[OutageState, int] = {s: 0 for s in OutageState}

    # ------------------------------------------------------------------
    #  Task bodies
    # ------------------------------------------------------------------

    def tick(self) -> OutageState:
        snap = self.config.snapshot
        params = OutageParams.from_snapshot(snap)
        delta_t_s = snap.get_int("delta_t_simulacao_ms") / 1000.0
        air_factor = snap.get_float("fator_ar")

        with self._lock:
            state = self.outage.step(self.meter, params)
            self.meter.step(delta_t_s, air_factor)

            self.ticks += 1
            self.simulated_s += delta_t_s
            self.ticks_by_state[state] += 1
        return state

    def reading(self) -> Reading:
        with self._lock:
            return self.meter.current_reading()

    def publish(self) -> Reading:
        reading = self.reading()
        for publisher in self.publishers:
            try:
                publisher.publish(reading)
            except Exception:
                # presentation must never stop the simulation
                logger.exception("Publisher %s failed", type(publisher).__name__)
        return reading

    def check_config(self) -> Optional[ConfigSnapshot]:
        return self.config.maybe_reload()

    # ------------------------------------------------------------------
    #  Wiring
    # ------------------------------------------------------------------

    @property
    def outage_state(self) -> OutageState:
        with self._lock:
            return self.outage.state

    def build_scheduler(self) -> Scheduler:
        """
        Periods are taken from the snapshot active at start; tick bodies read
        the latest snapshot on every run.
        """
        snap = self.config.snapshot
        check_s = float(snap.get("intervalo_verificacao_config_s", 5.0))

        scheduler = Scheduler(overrun_policy=str(snap.get("scheduler_overrun_policy", "catch_up")))
        scheduler.add("simulation", self.tick, snap.get_int("delta_t_simulacao_ms") / 1000.0)
        scheduler.add("display", self.publish, snap.get_int("intervalo_update_display_ms") / 1000.0)
        scheduler.add("config-check", self.check_config, check_s, initial_delay_s=check_s)
        return scheduler
