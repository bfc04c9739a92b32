"""Tests for managed system and VIOS extraction."""
import json
import logging
from datetime import datetime, timezone

import pytest

from hmci.collectors.managed_system import ManagedSystem
from hmci.collectors.measurement import Measurement
from hmci.schema.parser import PcmParser

TIMESTAMP = datetime(2023, 5, 1, 10, 0, tzinfo=timezone.utc)


def by_name(records, name):
    return [measurement for measurement_name, measurement in records if measurement_name == name]


@pytest.fixture
def records(managed_system, managed_system_json):
    managed_system.process_metrics(managed_system_json)
    return managed_system.extract(managed_system.get_timestamp())


def test_system_memory_end_to_end(records):
    memory = by_name(records, 'SystemMemory')
    assert memory == [Measurement(
        tags={'system': 'sys01'},
        fields={
            'totalMem': 16384.0,
            'availableMem': 4096.0,
            'configurableMem': 16384.0,
            'assignedMemToLpars': 12288.0,
        },
    )]


def test_system_processor(records):
    processor, = by_name(records, 'SystemProcessor')
    assert processor.tags == {'system': 'sys01'}
    assert processor.fields == {
        'totalProcUnits': 8.0,
        'utilizedProcUnits': 0.762,
        'availableProcUnits': 5.25,
        'configurableProcUnits': 8.0,
    }


def test_one_measurement_per_shared_pool(records):
    pools = by_name(records, 'SystemSharedProcessorPool')
    assert [pool.tags['pool'] for pool in pools] == ['DefaultPool', 'SharedPool01']
    assert pools[0].fields == {'assignedProcUnits': 6.5, 'availableProcUnits': 6.02}
    assert all(pool.tags['system'] == 'sys01' for pool in pools)


def test_shared_adapters(records):
    adapter, = by_name(records, 'SystemSharedAdapters')
    assert adapter.tags == {
        'system': 'sys01',
        'type': 'sea',
        'vios': 'vios1',
        'device': 'U9009.42A.21F64EV-V1-C2',
    }
    assert adapter.fields == {'sentBytes': 195.6, 'receivedBytes': 1370.467, 'transferredBytes': 1566.067}


def test_fiber_channel_adapters(records):
    adapter, = by_name(records, 'SystemFiberChannelAdapters')
    assert adapter.tags == {
        'id': 'fcs0',
        'system': 'sys01',
        'wwpn': '10000090fab674d7',
        'vios': 'vios1',
        'device': 'U78CA.001.CSS08ZN-P1-C2-T1',
    }
    assert adapter.fields == {'writeBytes': 3020.8, 'readBytes': 0.0, 'transmittedBytes': 3020.8}


def test_generic_physical_adapters(records):
    adapter, = by_name(records, 'SystemGenericPhysicalAdapters')
    assert adapter.tags['id'] == 'sissas0'
    assert adapter.tags['device'] == 'U78CA.001.CSS08ZN-P1-C14-T1'
    assert adapter.fields['writeBytes'] == 2321.067


def test_virtual_ethernet_adapters(records):
    adapter, = by_name(records, 'SystemVirtualEthernetAdapters')
    assert adapter.tags == {'system': 'sys01', 'vios': 'vios1', 'device': 'U9009.42A.21F64EV-V1-C2'}
    assert adapter.fields == {'sentBytes': 100.0, 'receivedBytes': 200.0}


def test_vios_memory_percentage(records):
    memory, = by_name(records, 'SystemViosMemory')
    assert memory.tags == {'system': 'sys01', 'vios': 'vios1'}
    assert memory.fields == {'assignedMem': 1000.0, 'utilizedMem': 250.0, 'utilizedMemPct': 25.0}


def test_vios_processor_fields_named_after_their_source(records):
    processor, = by_name(records, 'SystemViosProcessor')
    assert processor.fields['timeSpentWaitingForDispatch'] == 0.123
    assert processor.fields['timePerInstructionExecution'] == 51.0
    assert processor.fields['entitledProcUnits'] == 1.0


def test_emission_order_is_stable(managed_system, managed_system_json):
    managed_system.process_metrics(managed_system_json)
    first = managed_system.extract(TIMESTAMP)
    second = managed_system.extract(TIMESTAMP)
    assert [name for name, _ in first] == [name for name, _ in second]
    assert [name for name, _ in first][:3] == ['SystemMemory', 'SystemProcessor', 'SystemSharedProcessorPool']


def vios_document(memory):
    return json.dumps({"systemUtil": {"utilSamples": [{
        "sampleInfo": {"timeStamp": "2023-05-01T10:00:00Z"},
        "viosUtil": [{"name": "vios1", "memory": memory}],
    }]}})


@pytest.mark.parametrize("memory", [
    {"assignedMem": [1000.0]},
    {"utilizedMem": [250.0]},
    {"assignedMem": [1000.0], "utilizedMem": None},
])
def test_vios_memory_percentage_needs_both_inputs(memory):
    system = ManagedSystem(id='1', name='sys01')
    system.process_metrics(vios_document(memory))
    vios_memory, = by_name(system.extract(TIMESTAMP), 'SystemViosMemory')
    assert 'utilizedMemPct' not in vios_memory.fields


@pytest.mark.parametrize("utilized", [0.0, 10.0])
def test_vios_memory_with_zero_assigned(utilized):
    system = ManagedSystem(id='1', name='sys01')
    system.process_metrics(vios_document({"assignedMem": [0.0], "utilizedMem": [utilized]}))
    vios_memory, = by_name(system.extract(TIMESTAMP), 'SystemViosMemory')
    assert vios_memory.fields == {'assignedMem': 0.0, 'utilizedMem': utilized}


def test_absent_fields_are_omitted():
    system = ManagedSystem(id='1', name='sys01')
    system.process_metrics(json.dumps({"systemUtil": {"utilSamples": [{
        "sampleInfo": {"timeStamp": "2023-05-01T10:00:00Z"},
        "serverUtil": {"memory": {"totalMem": [100.0], "availableMem": "bogus"}},
    }]}}))
    memory, = by_name(system.extract(TIMESTAMP), 'SystemMemory')
    assert memory.fields == {'totalMem': 100.0}


def test_missing_categories_are_skipped():
    system = ManagedSystem(id='1', name='sys01')
    system.process_metrics('{"systemUtil": {"utilSamples": [{"sampleInfo": {"timeStamp": "2023-05-01T10:00:00Z"}}]}}')
    assert system.extract(TIMESTAMP) == []


def test_null_metrics_logs_debug(caplog):
    system = ManagedSystem(id='1', name='sys01')
    system.process_metrics(None)
    with caplog.at_level(logging.DEBUG):
        assert system.extract(TIMESTAMP) == []
    assert any(r.levelno == logging.DEBUG and 'No metrics' in r.getMessage() for r in caplog.records)
    assert not any(r.levelno >= logging.WARNING for r in caplog.records)


def test_null_system_util_logs_debug(caplog):
    system = ManagedSystem(id='1', name='sys01')
    system.process_metrics('{"other": 1}')
    with caplog.at_level(logging.DEBUG):
        assert system.extract(TIMESTAMP) == []
    assert not any(r.levelno >= logging.WARNING for r in caplog.records)


def test_bad_timestamp_logs_warning(managed_system, managed_system_json, caplog):
    bad = managed_system_json.replace('"timeStamp": "2023-05-01T10:00:00+0000"', '"timeStamp": "not a time"')
    managed_system.process_metrics(bad)
    with caplog.at_level(logging.WARNING):
        assert managed_system.extract() == []
    assert any(r.levelno == logging.WARNING and 'No valid timestamp' in r.getMessage() for r in caplog.records)


def test_shared_parser_is_used():
    parser = PcmParser()
    system = ManagedSystem(id='1', name='sys01', parser=parser)
    assert system.parser is parser
