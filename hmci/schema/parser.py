# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

import json
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from hmci.schema.models import PcmData

LOG = logging.getLogger(__name__)

# 2023-05-01T10:00:00, optionally followed by Z, +HHMM, +HH:MM or +HH
TIMESTAMP_PATTERN = re.compile(r'^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(Z|[+-]\d{2}(?::?\d{2})?)?$')
TIMESTAMP_FORMAT = '%Y-%m-%dT%H:%M:%S'


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse an HMC sample timestamp.

    Args:
        value: Timestamp string such as '2023-05-01T10:00:00+0000'

    Returns:
        Timezone aware datetime in UTC, or None if the value is malformed.
        A timestamp without an offset is taken as UTC.
    """
    if not isinstance(value, str):
        return None

    match = TIMESTAMP_PATTERN.match(value.strip())
    if not match:
        return None

    try:
        parsed = datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
    except ValueError:
        # Matches the pattern but not the calendar, e.g. month 13
        return None

    offset = match.group(2)
    if offset is None or offset == 'Z':
        tz = timezone.utc
    else:
        sign = -1 if offset[0] == '-' else 1
        digits = offset[1:].replace(':', '')
        hours = int(digits[:2])
        minutes = int(digits[2:4]) if len(digits) > 2 else 0
        if hours > 23 or minutes > 59:
            return None
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))

    return parsed.replace(tzinfo=tz).astimezone(timezone.utc)


class PcmParser:
    """Turns raw ProcessedMetrics JSON into PcmData documents."""

    def parse(self, raw_json: Optional[str]) -> Optional[PcmData]:
        """
        Parse a PCM JSON payload.

        Returns:
            PcmData, or None when there are no metrics or the payload is unusable
        """
        if raw_json is None or not raw_json.strip():
            LOG.debug("No PCM data to parse")
            return None

        try:
            data = json.loads(raw_json)
        except ValueError as e:
            LOG.warning(f"Invalid PCM JSON: {e}")
            return None

        if data is None:
            LOG.debug("PCM payload is null")
            return None
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            LOG.warning(f"Unexpected PCM JSON root of type {type(data).__name__}")
            return None

        try:
            return PcmData.from_api_response(data)
        except (TypeError, ValueError, AttributeError) as e:
            LOG.warning(f"Failed to build PCM document: {e}")
            return None

    def get_timestamp(self, document: Optional[PcmData]) -> Optional[datetime]:
        """Timestamp of the document's sample, or None if missing or malformed."""
        if document is None or document.sample is None or document.sample.sampleInfo is None:
            return None

        raw = document.sample.sampleInfo.timeStamp
        timestamp = parse_timestamp(raw)
        if timestamp is None:
            LOG.warning(f"Could not parse sample timestamp '{raw}'")
        return timestamp
