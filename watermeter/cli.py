# watermeter/cli.py
from __future__ import annotations

import argparse
import logging
import random
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from watermeter.control.simulation import MeterSimulation, ReadingPublisher
from watermeter.core.config import ConfigStore
from watermeter.core.errors import ConfigError
from watermeter.core.logs import setup_logging
from watermeter.core.output import RunArtifacts, write_output_contract
from watermeter.core.types import to_jsonable
from watermeter.reporting.log_publisher import LogPublisher
from watermeter.reporting.snapshots import SnapshotWriter


logger = logging.getLogger(__name__)


def _publishers(snapshot_dir: Optional[Path], fmt: str) -> List[ReadingPublisher]:
    pubs: List[ReadingPublisher] = [LogPublisher()]
    if snapshot_dir is not None:
        pubs.append(SnapshotWriter(snapshot_dir, fmt=fmt))
    return pubs


def _positive_int(text: str) -> int:
    try:
        n = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {text!r}")
    if n <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got {n}")
    return n


def run_headless(sim: MeterSimulation, ticks: int) -> RunArtifacts:
    """
    Deterministic run without threads.

    Simulated time advances one step per tick; a reading is published every
    time it crosses a display period, as the display task would see it.
    """
    if ticks <= 0:
        raise ValueError(f"ticks must be > 0, got {ticks}")

    snap = sim.config.snapshot
    step_ms = snap.get_int("delta_t_simulacao_ms")
    display_ms = snap.get_int("intervalo_update_display_ms")

    rows: List[Dict[str, Any]] = []
    t_ms = 0
    next_publish_ms = display_ms

    for _ in range(ticks):
        state = sim.tick()
        t_ms += step_ms

        if t_ms >= next_publish_ms:
            reading = sim.publish()
            rows.append(
                {
                    "t_s": t_ms / 1000.0,
                    "volume_m3": float(reading.volume_m3),
                    "pressure_bar": float(reading.pressure_bar),
                    "outage_state": state.value,
                }
            )
            # one publication per tick even when several periods elapsed
            next_publish_ms += display_ms * ((t_ms - next_publish_ms) // display_ms + 1)

    final = sim.reading()
    summary = {
        "ticks": sim.ticks,
        "simulated_s": float(sim.simulated_s),
        "final_reading": to_jsonable(final),
        "outage_state": sim.outage_state.value,
        "outage_episodes_started": int(sim.outage.episodes_started),
        "ticks_by_state": to_jsonable(sim.ticks_by_state),
        "readings_published": len(rows),
        "seed": snap.get("seed"),
    }

    return RunArtifacts(
        normalized_config=snap.to_dict(),
        summary=summary,
        readings_rows=rows,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="watermeter", description="Water meter simulator")
    ap.add_argument("config_path", type=str, help="YAML configuration file (hot-reloaded while running)")

    ap.add_argument("--duration", type=float, default=None, help="Stop live mode after this many seconds")
    ap.add_argument("--ticks", type=_positive_int, default=None, help="Run N ticks headless and write outputs")
    ap.add_argument("--out", type=str, default=None, help="Output root directory for --ticks (preferred)")
    ap.add_argument("--outputs-root", type=str, default=None, help="Output root directory (alias)")

    ap.add_argument("--seed", type=int, default=None, help="Seed for outage draws (overrides config)")
    ap.add_argument("--no-render", action="store_true", help="Do not render/save dial snapshots")
    ap.add_argument("--log-file", type=str, default=None)
    ap.add_argument("--verbose", action="store_true")

    args = ap.parse_args(argv)

    cpath = Path(args.config_path)

    try:
        store = ConfigStore(cpath)
        snap = store.snapshot
        rng = random.Random(args.seed) if args.seed is not None else None

        if args.ticks is not None:
            setup_logging(Path(args.log_file) if args.log_file else None, verbose=args.verbose)

            outputs_root = Path(args.out or args.outputs_root or "outputs")
            run_name = cpath.stem
            out_dir = outputs_root / run_name
            snapshot_dir = None if args.no_render else out_dir / str(snap.get("snapshot_dir"))

            sim = MeterSimulation(store, rng=rng, publishers=_publishers(snapshot_dir, str(snap.get("snapshot_format"))))
            artifacts = run_headless(sim, args.ticks)
            if args.seed is not None:
                artifacts.summary["seed"] = int(args.seed)

            write_output_contract(outputs_root, run_name, artifacts)
            logger.info("Headless run finished: %d ticks, outputs in %s", args.ticks, out_dir)
            return 0

        setup_logging(Path(args.log_file or snap.get("log_file")), verbose=args.verbose)

        snapshot_dir = None if args.no_render else Path(str(snap.get("snapshot_dir")))
        sim = MeterSimulation(store, rng=rng, publishers=_publishers(snapshot_dir, str(snap.get("snapshot_format"))))

        logger.info("Water meter simulator started")
        sim.build_scheduler().run_forever(args.duration)
        logger.info("Water meter simulator stopped at %.4f m3", sim.reading().volume_m3)
        return 0

    except ConfigError as e:
        print(str(e))
        return 2
