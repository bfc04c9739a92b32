# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Dry-run writer: logs measurements instead of posting them (--doNotPost).
"""

import logging
import threading
from datetime import datetime

from hmci.collectors.measurement import Measurement
from hmci.writer.base import Writer

LOG = logging.getLogger(__name__)


class LogWriter(Writer):
    """Writer that only logs what would have been written."""

    def __init__(self):
        self.pending = 0
        self._lock = threading.RLock()
        LOG.info("Dry run: measurements will be logged, not written")

    def enqueue(self, measurement: Measurement, timestamp: datetime, measurement_name: str) -> None:
        LOG.debug(f"{measurement_name} {dict(measurement.tags)} {dict(measurement.fields)} @ {timestamp.isoformat()}")
        with self._lock:
            self.pending += len(measurement.fields)

    def flush(self) -> bool:
        with self._lock:
            LOG.info(f"Dry run: {self.pending} points not posted")
            self.pending = 0
        return True
