# watermeter/core/scheduler.py
"""
Independent fixed-rate periodic tasks.

Every task owns one daemon thread, so a task never overlaps with itself and
the cadences of different tasks are not synchronized with each other.

Overrun policies (a run that ends after its next slot):
  catch_up  late slots run back-to-back until the schedule is met again
  skip      late slots are dropped; the next run is aligned to the period grid

An exception raised by a task body is logged and the task keeps its schedule.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional


logger = logging.getLogger(__name__)

CATCH_UP = "catch_up"
SKIP = "skip"


class PeriodicTask:

    def __init__(
        self,
        name: str,
        fn: Callable[[], None],
        period_s: float,
        initial_delay_s: float = 0.0,
        overrun_policy: str = CATCH_UP,
        clock: Callable[[], float] = time.monotonic,
    ):
        if period_s <= 0:
            raise ValueError(f"period_s must be > 0 for task '{name}', got {period_s}")
        if initial_delay_s < 0:
            raise ValueError(f"initial_delay_s must be >= 0 for task '{name}', got {initial_delay_s}")
        if overrun_policy not in (CATCH_UP, SKIP):
            raise ValueError(f"unknown overrun policy {overrun_policy!r}")

        self.name = name
        self._fn = fn
        self.period_s = float(period_s)
        self.initial_delay_s = float(initial_delay_s)
        self.overrun_policy = overrun_policy
        self._clock = clock

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self.runs = 0
        self.failures = 0
        self.skipped = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            if self._stop.is_set():
                raise RuntimeError(f"task '{self.name}' is still stopping; its last run has not finished")
            return
        # each thread gets its own event so an old loop can never be revived
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, args=(self._stop,), name=self.name, daemon=True)
        self._thread.start()
        logger.info("Task '%s' started (%.0fms period)", self.name, self.period_s * 1000)

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                # keep the handle; start() refuses until this thread exits
                logger.warning("Task '%s' did not stop within %.1fs", self.name, timeout)
                return
            self._thread = None
        logger.info("Task '%s' stopped", self.name)

    def run_once(self) -> None:
        try:
            self._fn()
        except Exception:
            self.failures += 1
            logger.exception("Task '%s' failed; next run stays scheduled", self.name)
        finally:
            self.runs += 1

    def _loop(self, stop: threading.Event) -> None:
        next_run = self._clock() + self.initial_delay_s
        while not stop.is_set():
            delay = next_run - self._clock()
            if delay > 0 and stop.wait(delay):
                break

            self.run_once()
            next_run += self.period_s

            if self.overrun_policy == SKIP:
                now = self._clock()
                if next_run <= now:
                    missed = int((now - next_run) // self.period_s) + 1
                    self.skipped += missed
                    next_run += missed * self.period_s
                    logger.debug("Task '%s' overran, skipped %d slot(s)", self.name, missed)


class Scheduler:
    """
    Starts and stops a group of PeriodicTask together.
    """

    def __init__(self, overrun_policy: str = CATCH_UP):
        self.overrun_policy = overrun_policy
        self._tasks: List[PeriodicTask] = []

    @property
    def tasks(self) -> List[PeriodicTask]:
        return list(self._tasks)

    def add(self, name: str, fn: Callable[[], None], period_s: float, initial_delay_s: float = 0.0) -> PeriodicTask:
        task = PeriodicTask(
            name=name,
            fn=fn,
            period_s=period_s,
            initial_delay_s=initial_delay_s,
            overrun_policy=self.overrun_policy,
        )
        self._tasks.append(task)
        return task

    def start(self) -> None:
        for task in self._tasks:
            task.start()

    def stop(self, timeout: float = 2.0) -> None:
        for task in self._tasks:
            task.stop(timeout=timeout)

    def run_forever(self, duration_s: Optional[float] = None) -> None:
        """
        Start all tasks and block until Ctrl-C (or until duration_s elapses).
        """
        self.start()
        try:
            if duration_s is None:
                while True:
                    time.sleep(1.0)
            else:
                time.sleep(duration_s)
        except KeyboardInterrupt:
            logger.info("Interrupted, stopping tasks")
        finally:
            self.stop()
