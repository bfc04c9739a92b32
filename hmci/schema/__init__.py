# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

from hmci.schema.models import PcmData, SystemUtil, UtilSample
from hmci.schema.parser import PcmParser, parse_timestamp

__all__ = ['PcmData', 'SystemUtil', 'UtilSample', 'PcmParser', 'parse_timestamp']
