# watermeter/reporting/log_publisher.py
from __future__ import annotations

import logging

from watermeter.core.types import Reading


logger = logging.getLogger(__name__)


class LogPublisher:
    """Writes every published reading to the log."""

    def publish(self, reading: Reading) -> None:
        logger.info("STATE: volume=%.4f m3 | pressure=%.2f bar", reading.volume_m3, reading.pressure_bar)
