"""Tests for the writer factory and the dry-run writer."""
import logging
from datetime import datetime, timezone

from hmci.collectors.measurement import Measurement
from hmci.config import InfluxSettings
from hmci.writer.factory import WriterFactory
from hmci.writer.influxdb_writer import InfluxDBWriter
from hmci.writer.log_writer import LogWriter

TIMESTAMP = datetime(2023, 5, 1, 10, 0, tzinfo=timezone.utc)


def test_factory_creates_influxdb_writer():
    influx = InfluxSettings(url='http://influx:8086', database='power', error_threshold=3,
                            connect_attempts=2, connect_delay=1)

    writer = WriterFactory.create_writer(influx)

    assert isinstance(writer, InfluxDBWriter)
    assert writer.database == 'power'
    assert writer.error_threshold == 3
    assert writer.connect_policy.max_attempts == 2
    assert writer.connect_policy.calculate_delay(1) == 1
    assert writer.client is None


def test_factory_dry_run():
    assert isinstance(WriterFactory.create_writer(InfluxSettings(), do_not_post=True), LogWriter)


def test_log_writer_counts_points(caplog):
    writer = LogWriter()
    writer.write_measurements([
        ('SystemMemory', Measurement(tags={'system': 'sys01'}, fields={'totalMem': 1.0, 'availableMem': 2.0})),
    ], TIMESTAMP)

    with caplog.at_level(logging.INFO):
        assert writer.flush() is True

    assert 'Dry run: 2 points not posted' in caplog.text
    assert writer.pending == 0
