# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Writer factory for HMC Insights.
"""

import logging

from hmci.config import InfluxSettings
from hmci.utils.retry import RetryConfig
from hmci.writer.base import Writer
from hmci.writer.influxdb_writer import WRITE_ERRORS, InfluxDBWriter
from hmci.writer.log_writer import LogWriter

# Initialize logger
LOG = logging.getLogger(__name__)


class WriterFactory:
    """
    Factory for creating writer instances based on configuration.
    """

    @staticmethod
    def create_writer(influx: InfluxSettings, do_not_post: bool = False) -> Writer:
        """
        Create a writer.

        Args:
            influx: InfluxDB settings
            do_not_post: Log measurements instead of writing them

        Returns:
            Appropriate Writer instance
        """
        if do_not_post:
            LOG.info("Creating dry-run writer")
            return LogWriter()

        LOG.info(f"Creating InfluxDB writer with URL: {influx.url}, database: {influx.database}")
        policy = RetryConfig.fixed(max_attempts=influx.connect_attempts, delay=influx.connect_delay,
                                   retryable_exceptions=WRITE_ERRORS)
        return InfluxDBWriter(
            url=influx.url,
            username=influx.username,
            password=influx.password,
            database=influx.database,
            retention=influx.retention,
            timeout=influx.timeout,
            retries=influx.retries,
            batch_size=influx.batch_size,
            error_threshold=influx.error_threshold,
            connect_policy=policy,
        )
