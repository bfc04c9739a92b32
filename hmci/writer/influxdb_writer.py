# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
InfluxDB 1.x writer for HMC Insights.

Every numeric field of a Measurement becomes its own point with a single
"value" field; the field name moves into a "name" tag. Points accumulate in a
batch that is sent once per polling interval. A failed batch is kept for the
next flush, and repeated failures force a reconnect.
"""

import enum
import logging
import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import requests
from influxdb import InfluxDBClient
from influxdb.exceptions import InfluxDBClientError, InfluxDBServerError
from influxdb.line_protocol import quote_ident

from hmci.collectors.measurement import Measurement
from hmci.utils.retry import RetryConfig, call_with_retry
from hmci.writer.base import Writer

LOG = logging.getLogger(__name__)

WRITE_ERRORS = (InfluxDBClientError, InfluxDBServerError, requests.exceptions.RequestException)


class SinkError(Exception):
    """Base class for writer errors."""


class SinkConnectionError(SinkError):
    """The database could not be reached within the connect retry policy."""


class SinkState(enum.Enum):
    DISCONNECTED = 'disconnected'
    CONNECTED = 'connected'
    RECONNECTING = 'reconnecting'
    FAILED = 'failed'


def to_epoch_ms(timestamp: datetime) -> int:
    return int(round(timestamp.timestamp() * 1000))


class InfluxDBWriter(Writer):
    """
    Writer implementation for InfluxDB 1.x.

    Args:
        url: InfluxDB URL, e.g. http://localhost:8086
        username: InfluxDB user
        password: InfluxDB password
        database: Database to create and write to
        retention: Retention duration of the database, e.g. 156w
        timeout: Request timeout in seconds
        retries: Retries of a single request, done by the InfluxDB client
        batch_size: Points per HTTP write
        error_threshold: Consecutive failed flushes before a forced reconnect
        connect_policy: Retry policy for connect()
        client_factory: Builds the InfluxDB client, replaceable in tests
        sleep: Sleep function used between connect attempts
    """

    def __init__(self, url: str = 'http://localhost:8086',
                 username: str = 'root', password: str = '',
                 database: str = 'hmci', retention: str = '156w',
                 timeout: float = 30, retries: int = 3,
                 batch_size: int = 5000, error_threshold: int = 5,
                 connect_policy: Optional[RetryConfig] = None,
                 client_factory: Callable[..., Any] = InfluxDBClient,
                 sleep: Callable[[float], None] = time.sleep):
        self.url = url
        self.username = username
        self.password = password
        self.database = database
        self.retention = retention
        self.timeout = timeout
        self.retries = retries
        self.batch_size = batch_size
        self.error_threshold = error_threshold
        self.connect_policy = connect_policy or RetryConfig.fixed(max_attempts=5, delay=15,
                                                                  retryable_exceptions=WRITE_ERRORS)
        self.client_factory = client_factory
        self._sleep = sleep

        self.client = None
        self.batch: List[Dict[str, Any]] = []
        self.error_counter = 0
        self._connected_once = False
        self._state = SinkState.DISCONNECTED
        self._lock = threading.RLock()

        LOG.info(f"InfluxDBWriter initialized: {self.url} -> {self.database}")

    @property
    def state(self) -> SinkState:
        return self._state

    def _client_options(self) -> Dict[str, Any]:
        parsed = urlparse(self.url)
        use_ssl = parsed.scheme == 'https'
        return {
            'host': parsed.hostname or 'localhost',
            'port': parsed.port or 8086,
            'username': self.username,
            'password': self.password,
            'ssl': use_ssl,
            'verify_ssl': use_ssl,
            'timeout': self.timeout,
            'retries': self.retries,
            'path': parsed.path.strip('/'),
        }

    def _open(self) -> None:
        client = self.client_factory(**self._client_options())
        try:
            client.query(f'CREATE DATABASE {quote_ident(self.database)} WITH DURATION {self.retention}',
                         method='POST')
            client.switch_database(self.database)
        except WRITE_ERRORS:
            client.close()
            raise
        self.client = client

    def connect(self) -> None:
        """
        Connect and create the database if needed. Does nothing when connected.

        Raises:
            SinkConnectionError: The connect retry policy was exhausted
        """
        with self._lock:
            if self.client is not None:
                return
            LOG.info(f"Connecting to InfluxDB {self.url}, database {self.database}")
            try:
                call_with_retry(self._open, self.connect_policy, sleep=self._sleep)
            except WRITE_ERRORS as e:
                self._state = SinkState.FAILED
                raise SinkConnectionError(f"Could not connect to InfluxDB at {self.url}: {e}") from e
            if not self._connected_once:
                self.batch = []
                self._connected_once = True
            self._state = SinkState.CONNECTED
            LOG.info(f"Connected to InfluxDB {self.url}")

    def disconnect(self) -> None:
        """Close the client. Pending points stay in the batch."""
        with self._lock:
            client, self.client = self.client, None
            self._state = SinkState.DISCONNECTED
            if client is None:
                return
            try:
                client.close()
            except WRITE_ERRORS as e:
                LOG.warning(f"Error closing InfluxDB client: {e}")

    def close(self) -> None:
        self.disconnect()

    def enqueue(self, measurement: Measurement, timestamp: datetime, measurement_name: str) -> None:
        epoch_ms = to_epoch_ms(timestamp)
        points = []
        for field_name, value in measurement.fields.items():
            tags = dict(measurement.tags)
            tags['name'] = field_name
            points.append({
                'measurement': measurement_name,
                'tags': tags,
                'fields': {'value': float(value)},
                'time': epoch_ms,
            })
        with self._lock:
            self.batch.extend(points)

    def write_measurements(self, records: List[Tuple[str, Measurement]], timestamp: datetime) -> None:
        with self._lock:
            super().write_measurements(records, timestamp)

    def flush(self) -> bool:
        """
        Write the batch.

        Returns:
            True if the batch was written (or empty), False otherwise

        Raises:
            SinkConnectionError: A forced reconnect failed
        """
        with self._lock:
            if not self.batch:
                LOG.debug("Nothing to write to InfluxDB")
                return True

            count = len(self.batch)
            if self.client is None:
                LOG.error(f"Not connected to InfluxDB, keeping {count} points")
                self._record_failure()
                return False

            try:
                self.client.write_points(self.batch, time_precision='ms', batch_size=self.batch_size)
            except WRITE_ERRORS as e:
                LOG.error(f"InfluxDB write of {count} points failed: {e}")
                self._record_failure()
                return False

            LOG.debug(f"Wrote {count} points to InfluxDB")
            self.batch = []
            return True

    def _record_failure(self) -> None:
        self.error_counter += 1
        if self.error_counter < self.error_threshold:
            return

        LOG.warning(f"{self.error_counter} failed writes to InfluxDB, reconnecting")
        self.error_counter = 0
        self.disconnect()
        self._state = SinkState.RECONNECTING
        self.connect()
