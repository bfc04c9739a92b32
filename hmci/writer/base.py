# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Base writer interface for HMC Insights.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Tuple

from hmci.collectors.measurement import Measurement

# Initialize logger
LOG = logging.getLogger(__name__)


class Writer(ABC):
    """
    Base class for all writers.
    """

    def connect(self) -> None:
        """Open the destination. Default implementation does nothing."""
        pass

    @abstractmethod
    def enqueue(self, measurement: Measurement, timestamp: datetime, measurement_name: str) -> None:
        """
        Queue one measurement for the next flush.

        Args:
            measurement: Tags and fields to write
            timestamp: Sample time
            measurement_name: Destination measurement, e.g. SystemMemory
        """
        pass

    def write_measurements(self, records: List[Tuple[str, Measurement]], timestamp: datetime) -> None:
        """Queue a whole extractor output."""
        for measurement_name, measurement in records:
            self.enqueue(measurement, timestamp, measurement_name)

    @abstractmethod
    def flush(self) -> bool:
        """
        Send queued data to the destination.

        Returns:
            True if write was successful, False otherwise
        """
        pass

    def close(self) -> None:
        """
        Optional method to close the writer and clean up resources.
        Default implementation does nothing - override in subclasses that need cleanup.
        """
        pass
