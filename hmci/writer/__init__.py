# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

from hmci.writer.base import Writer
from hmci.writer.influxdb_writer import InfluxDBWriter, SinkConnectionError, SinkError, SinkState
from hmci.writer.log_writer import LogWriter

__all__ = ['Writer', 'InfluxDBWriter', 'LogWriter', 'SinkError', 'SinkConnectionError', 'SinkState']
