# watermeter/reporting/snapshots.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from watermeter.core.types import Reading
from watermeter.reporting.dial import DialRenderer


logger = logging.getLogger(__name__)

# File names cycle through 01..99
MAX_SNAPSHOT_FILES = 99


def snapshot_filename(whole_m3: int, fmt: str = "jpeg") -> str:
    if whole_m3 <= 0:
        raise ValueError(f"whole_m3 must be > 0, got {whole_m3}")
    number = ((whole_m3 - 1) % MAX_SNAPSHOT_FILES) + 1
    return f"{number:02d}.{fmt}"


class SnapshotWriter:
    """
    Saves an image of the dial each time a new whole cubic metre shows up.

    Write failures are logged; the next change of cubic metre tries again.
    """

    def __init__(self, directory: Path, renderer: Optional[DialRenderer] = None, fmt: str = "jpeg"):
        self.directory = Path(directory)
        self.renderer = renderer or DialRenderer()
        self.fmt = fmt
        self._last_saved_m3 = -1

    def publish(self, reading: Reading) -> Optional[Path]:
        whole = reading.whole_m3
        if whole <= 0 or whole == self._last_saved_m3:
            return None
        self._last_saved_m3 = whole

        fig = self.renderer.render(reading)
        out_path = self.directory / snapshot_filename(whole, self.fmt)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fig.savefig(out_path, format=self.fmt, facecolor=fig.get_facecolor())
        except OSError:
            logger.exception("Failed to save meter snapshot to %s", out_path)
            return None

        logger.info("Meter snapshot saved to %s", out_path)
        return out_path
