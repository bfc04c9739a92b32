# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Extraction policy shared by all entities.

A category is a function document -> list of (name, Measurement).
extract() applies the null-metrics and timestamp checks once, then runs the
categories in order so the output is stable for a given document.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from hmci.collectors.measurement import Measurement
from hmci.schema.models import PcmData

LOG = logging.getLogger(__name__)

Record = Tuple[str, Measurement]
Category = Callable[[PcmData], List[Record]]


def required_tag(value: Optional[str]) -> str:
    """Structural tags (system, vios, pool, partition) are always written."""
    return value if value is not None else ''


def extract(document: Optional[PcmData], timestamp: Optional[datetime],
            categories: Sequence[Category], label: str) -> List[Record]:
    """
    Run every category extractor over a document.

    Args:
        document: Parsed PCM document
        timestamp: Sample timestamp resolved from the document
        categories: Category functions, in emission order
        label: Entity description for log messages

    Returns:
        (measurement name, Measurement) pairs; empty when the document has no
        metrics or no usable timestamp
    """
    if document is None or document.system_util is None:
        LOG.debug(f"No metrics for {label}, skipping")
        return []
    if timestamp is None:
        LOG.warning(f"No valid timestamp for {label}, skipping")
        return []

    records = []
    for category in categories:
        for name, measurement in category(document):
            if measurement.is_empty():
                continue
            records.append((name, measurement))
    return records
