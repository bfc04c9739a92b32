"""Tests for the InfluxDB writer."""
import concurrent.futures
import itertools
import logging
import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests
from influxdb.exceptions import InfluxDBClientError, InfluxDBServerError

from hmci.collectors.measurement import Measurement
from hmci.utils.retry import RetryConfig
from hmci.writer.influxdb_writer import (
    WRITE_ERRORS, InfluxDBWriter, SinkConnectionError, SinkState, to_epoch_ms,
)

TIMESTAMP = datetime(2023, 5, 1, 10, 0, tzinfo=timezone.utc)
EPOCH_MS = 1682935200000

SYS01_MEMORY = Measurement(
    tags={'system': 'sys01'},
    fields={'totalMem': 16384.0, 'availableMem': 4096.0, 'configurableMem': 16384.0, 'assignedMemToLpars': 12288.0},
)


@pytest.fixture
def clients():
    """Every InfluxDB client the writer creates, in creation order."""
    return []


@pytest.fixture
def factory(clients):
    def create(**kwargs):
        client = MagicMock(name=f'client{len(clients)}')
        client.options = kwargs
        clients.append(client)
        return client
    return MagicMock(side_effect=create)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def writer(factory, sleeps):
    return InfluxDBWriter(url='http://influx:8086', username='u', password='p', database='hmci',
                          batch_size=1000, error_threshold=5,
                          connect_policy=RetryConfig.fixed(max_attempts=5, delay=15, retryable_exceptions=WRITE_ERRORS),
                          client_factory=factory, sleep=sleeps.append)


def test_epoch_ms():
    assert to_epoch_ms(TIMESTAMP) == EPOCH_MS


def test_connect_creates_database(writer, clients):
    writer.connect()

    client, = clients
    assert client.options['host'] == 'influx'
    assert client.options['port'] == 8086
    assert client.options['ssl'] is False
    client.query.assert_called_once_with('CREATE DATABASE "hmci" WITH DURATION 156w', method='POST')
    client.switch_database.assert_called_once_with('hmci')
    assert writer.state is SinkState.CONNECTED


def test_connect_is_idempotent(writer, factory):
    writer.connect()
    writer.connect()
    assert factory.call_count == 1


def test_https_url(factory):
    writer = InfluxDBWriter(url='https://influx.example.com:8443/proxy', client_factory=factory)
    options = writer._client_options()
    assert options['ssl'] is True
    assert options['port'] == 8443
    assert options['path'] == 'proxy'


def test_connect_retries_then_succeeds(writer, factory, clients, sleeps):
    attempts = []

    def flaky(**kwargs):
        client = MagicMock()
        attempts.append(client)
        if len(attempts) < 3:
            client.query.side_effect = requests.exceptions.ConnectionError('refused')
        clients.append(client)
        return client
    factory.side_effect = flaky

    writer.connect()

    assert len(attempts) == 3
    assert sleeps == [15, 15]
    assert writer.client is attempts[2]
    attempts[0].close.assert_called_once()


def test_connect_gives_up_after_policy(writer, factory, sleeps):
    def broken(**kwargs):
        client = MagicMock()
        client.query.side_effect = InfluxDBServerError('down')
        return client
    factory.side_effect = broken

    with pytest.raises(SinkConnectionError):
        writer.connect()

    assert factory.call_count == 5
    assert sleeps == [15, 15, 15, 15]
    assert writer.state is SinkState.FAILED
    assert writer.client is None


def test_enqueue_expands_fields_into_points(writer):
    writer.enqueue(SYS01_MEMORY, TIMESTAMP, 'SystemMemory')

    assert len(writer.batch) == 4
    assert {point['tags']['name'] for point in writer.batch} == {
        'totalMem', 'availableMem', 'configurableMem', 'assignedMemToLpars'}
    first = writer.batch[0]
    assert first == {
        'measurement': 'SystemMemory',
        'tags': {'system': 'sys01', 'name': 'totalMem'},
        'fields': {'value': 16384.0},
        'time': EPOCH_MS,
    }


def test_enqueue_does_not_touch_network(writer, factory):
    writer.enqueue(SYS01_MEMORY, TIMESTAMP, 'SystemMemory')
    factory.assert_not_called()


def test_enqueue_empty_measurement(writer):
    writer.enqueue(Measurement(tags={'system': 'sys01'}), TIMESTAMP, 'SystemMemory')
    assert writer.batch == []


def test_enqueue_does_not_modify_measurement_tags(writer):
    writer.enqueue(SYS01_MEMORY, TIMESTAMP, 'SystemMemory')
    assert SYS01_MEMORY.tags == {'system': 'sys01'}


def test_write_measurements(writer):
    writer.write_measurements([
        ('SystemMemory', SYS01_MEMORY),
        ('SystemProcessor', Measurement(tags={'system': 'sys01'}, fields={'totalProcUnits': 8.0})),
    ], TIMESTAMP)
    assert [point['measurement'] for point in writer.batch] == ['SystemMemory'] * 4 + ['SystemProcessor']


def test_flush_writes_batch(writer, clients):
    writer.connect()
    writer.enqueue(SYS01_MEMORY, TIMESTAMP, 'SystemMemory')
    points = list(writer.batch)

    assert writer.flush() is True

    clients[0].write_points.assert_called_once_with(points, time_precision='ms', batch_size=1000)
    assert writer.batch == []


def test_flush_empty_batch(writer, clients):
    writer.connect()
    assert writer.flush() is True
    clients[0].write_points.assert_not_called()


def test_failed_flush_keeps_batch(writer, clients, caplog):
    writer.connect()
    writer.enqueue(SYS01_MEMORY, TIMESTAMP, 'SystemMemory')
    clients[0].write_points.side_effect = InfluxDBClientError('bad request', 400)

    with caplog.at_level(logging.ERROR):
        assert writer.flush() is False

    assert len(writer.batch) == 4
    assert writer.error_counter == 1
    assert 'InfluxDB write of 4 points failed' in caplog.text


def test_threshold_forces_one_reconnect(writer, clients):
    writer.connect()
    writer.enqueue(SYS01_MEMORY, TIMESTAMP, 'SystemMemory')
    clients[0].write_points.side_effect = requests.exceptions.ConnectionError('refused')

    for _ in range(4):
        assert writer.flush() is False
    assert len(clients) == 1
    assert writer.error_counter == 4

    assert writer.flush() is False

    assert len(clients) == 2
    clients[0].close.assert_called_once()
    assert writer.error_counter == 0
    assert writer.state is SinkState.CONNECTED
    assert len(writer.batch) == 4

    assert writer.flush() is True
    clients[1].write_points.assert_called_once()
    assert writer.batch == []


def test_success_does_not_reset_error_counter(writer, clients):
    writer.connect()
    writer.enqueue(SYS01_MEMORY, TIMESTAMP, 'SystemMemory')
    clients[0].write_points.side_effect = [InfluxDBServerError('oops'), None]

    writer.flush()
    writer.flush()

    assert writer.error_counter == 1


def test_failed_reconnect_is_fatal(writer, factory, clients):
    writer.connect()
    writer.enqueue(SYS01_MEMORY, TIMESTAMP, 'SystemMemory')
    clients[0].write_points.side_effect = InfluxDBServerError('down')
    for _ in range(4):
        writer.flush()

    def broken(**kwargs):
        client = MagicMock()
        client.query.side_effect = InfluxDBServerError('still down')
        return client
    factory.side_effect = broken

    with pytest.raises(SinkConnectionError):
        writer.flush()
    assert writer.state is SinkState.FAILED


def test_flush_without_client_counts_as_failure(writer):
    writer.enqueue(SYS01_MEMORY, TIMESTAMP, 'SystemMemory')
    assert writer.flush() is False
    assert writer.error_counter == 1


def test_disconnect(writer, clients):
    writer.connect()
    writer.enqueue(SYS01_MEMORY, TIMESTAMP, 'SystemMemory')

    writer.disconnect()

    clients[0].close.assert_called_once()
    assert writer.client is None
    assert writer.state is SinkState.DISCONNECTED
    assert len(writer.batch) == 4


def test_disconnect_logs_close_errors(writer, clients, caplog):
    writer.connect()
    clients[0].close.side_effect = requests.exceptions.ConnectionError('reset')

    with caplog.at_level(logging.WARNING):
        writer.disconnect()

    assert writer.client is None
    assert 'Error closing InfluxDB client' in caplog.text


def test_first_connect_starts_with_empty_batch(writer):
    writer.enqueue(SYS01_MEMORY, TIMESTAMP, 'SystemMemory')
    writer.connect()
    assert writer.batch == []


def test_concurrent_outputs_are_never_split_by_flush(writer, clients):
    writer.connect()
    written = []
    flushed_sizes = []

    def write_points(points, **kwargs):
        flushed_sizes.append(len(points))
        written.extend(points)
    clients[0].write_points.side_effect = write_points

    def output(system):
        # 3 measurements x 4 fields = 12 points per system
        return [(name, Measurement(tags={'system': system}, fields=SYS01_MEMORY.fields))
                for name in ('SystemMemory', 'SystemProcessor', 'SystemViosMemory')]

    stop = threading.Event()

    def keep_flushing():
        while not stop.is_set():
            writer.flush()

    systems = [f'sys{i:02d}' for i in range(32)]
    with concurrent.futures.ThreadPoolExecutor(9) as executor:
        flusher = executor.submit(keep_flushing)
        list(executor.map(lambda system: writer.write_measurements(output(system), TIMESTAMP), systems))
        stop.set()
        flusher.result()
    assert writer.flush() is True

    assert writer.batch == []
    assert all(size % 12 == 0 for size in flushed_sizes)
    runs = [(system, len(list(points)))
            for system, points in itertools.groupby(written, key=lambda point: point['tags']['system'])]
    assert sorted(runs) == [(system, 12) for system in systems]
