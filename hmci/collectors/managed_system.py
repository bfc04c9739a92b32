# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Managed system (server) metrics, including the VIOS partitions it hosts.
"""

import functools
import logging
from datetime import datetime
from typing import List, Optional

from hmci.collectors.base import Record, extract, required_tag
from hmci.collectors.measurement import Measurement
from hmci.schema.models import PcmData, ServerUtil, UtilSample, ViosUtil
from hmci.schema.parser import PcmParser

LOG = logging.getLogger(__name__)


def _sample(document: PcmData) -> Optional[UtilSample]:
    return document.sample


def _server_util(document: PcmData) -> Optional[ServerUtil]:
    sample = _sample(document)
    return sample.serverUtil if sample is not None else None


def _vios_list(document: PcmData) -> List[ViosUtil]:
    sample = _sample(document)
    return sample.viosUtil if sample is not None else []


def memory_metrics(document: PcmData, system: str) -> List[Record]:
    server = _server_util(document)
    if server is None or server.memory is None:
        return []

    memory = server.memory
    return [('SystemMemory', Measurement.build(
        {'system': required_tag(system)},
        {
            'totalMem': memory.totalMem,
            'availableMem': memory.availableMem,
            'configurableMem': memory.configurableMem,
            'assignedMemToLpars': memory.assignedMemToLpars,
        },
    ))]


def processor_metrics(document: PcmData, system: str) -> List[Record]:
    server = _server_util(document)
    if server is None or server.processor is None:
        return []

    processor = server.processor
    return [('SystemProcessor', Measurement.build(
        {'system': required_tag(system)},
        {
            'totalProcUnits': processor.totalProcUnits,
            'utilizedProcUnits': processor.utilizedProcUnits,
            'availableProcUnits': processor.availableProcUnits,
            'configurableProcUnits': processor.configurableProcUnits,
        },
    ))]


def shared_processor_pool_metrics(document: PcmData, system: str) -> List[Record]:
    """One measurement per shared processor pool, tagged by pool name."""
    server = _server_util(document)
    if server is None:
        return []

    records = []
    for pool in server.sharedProcessorPool:
        records.append(('SystemSharedProcessorPool', Measurement.build(
            {'system': required_tag(system), 'pool': required_tag(pool.name)},
            {
                'assignedProcUnits': pool.assignedProcUnits,
                'availableProcUnits': pool.availableProcUnits,
            },
        )))
    return records


def shared_adapter_metrics(document: PcmData, system: str) -> List[Record]:
    records = []
    for vios in _vios_list(document):
        if vios.network is None:
            continue
        for adapter in vios.network.sharedAdapters:
            records.append(('SystemSharedAdapters', Measurement.build(
                {
                    'system': required_tag(system),
                    'type': adapter.type,
                    'vios': required_tag(vios.name),
                    'device': adapter.physicalLocation,
                },
                {
                    'sentBytes': adapter.sentBytes,
                    'receivedBytes': adapter.receivedBytes,
                    'transferredBytes': adapter.transferredBytes,
                },
            )))
    return records


def fiber_channel_adapter_metrics(document: PcmData, system: str) -> List[Record]:
    records = []
    for vios in _vios_list(document):
        if vios.storage is None:
            continue
        for adapter in vios.storage.fiberChannelAdapters:
            records.append(('SystemFiberChannelAdapters', Measurement.build(
                {
                    'id': adapter.id,
                    'system': required_tag(system),
                    'wwpn': adapter.wwpn,
                    'vios': required_tag(vios.name),
                    'device': adapter.physicalLocation,
                },
                {
                    'writeBytes': adapter.writeBytes,
                    'readBytes': adapter.readBytes,
                    'transmittedBytes': adapter.transmittedBytes,
                },
            )))
    return records


def generic_physical_adapter_metrics(document: PcmData, system: str) -> List[Record]:
    records = []
    for vios in _vios_list(document):
        if vios.storage is None:
            continue
        for adapter in vios.storage.genericPhysicalAdapters:
            records.append(('SystemGenericPhysicalAdapters', Measurement.build(
                {
                    'id': adapter.id,
                    'system': required_tag(system),
                    'vios': required_tag(vios.name),
                    'device': adapter.physicalLocation,
                },
                {
                    'writeBytes': adapter.writeBytes,
                    'readBytes': adapter.readBytes,
                    'transmittedBytes': adapter.transmittedBytes,
                },
            )))
    return records


def virtual_ethernet_adapter_metrics(document: PcmData, system: str) -> List[Record]:
    records = []
    for vios in _vios_list(document):
        if vios.network is None:
            continue
        for adapter in vios.network.virtualEthernetAdapters:
            records.append(('SystemVirtualEthernetAdapters', Measurement.build(
                {
                    'system': required_tag(system),
                    'vios': required_tag(vios.name),
                    'device': adapter.physicalLocation,
                },
                {
                    'sentBytes': adapter.sentBytes,
                    'receivedBytes': adapter.receivedBytes,
                },
            )))
    return records


def vios_memory_metrics(document: PcmData, system: str) -> List[Record]:
    """
    VIOS memory, with utilizedMemPct derived from assignedMem and utilizedMem.

    utilizedMemPct is written only when both inputs are reported AND
    assignedMem is not 0. Presence of both inputs alone is not enough: an
    assignedMem of 0 gives an infinite percentage, which InfluxDB cannot
    store. The two raw fields are written either way.
    """
    records = []
    for vios in _vios_list(document):
        if vios.memory is None:
            continue
        assigned = vios.memory.assignedMem
        utilized = vios.memory.utilizedMem
        utilized_pct = None
        if assigned is not None and utilized is not None and assigned != 0:
            utilized_pct = utilized * 100 / assigned
        records.append(('SystemViosMemory', Measurement.build(
            {'system': required_tag(system), 'vios': required_tag(vios.name)},
            {
                'assignedMem': assigned,
                'utilizedMem': utilized,
                'utilizedMemPct': utilized_pct,
            },
        )))
    return records


def vios_processor_metrics(document: PcmData, system: str) -> List[Record]:
    records = []
    for vios in _vios_list(document):
        processor = vios.processor
        if processor is None:
            continue
        records.append(('SystemViosProcessor', Measurement.build(
            {'system': required_tag(system), 'vios': required_tag(vios.name)},
            {
                'utilizedProcUnits': processor.utilizedProcUnits,
                'maxVirtualProcessors': processor.maxVirtualProcessors,
                'currentVirtualProcessors': processor.currentVirtualProcessors,
                'entitledProcUnits': processor.entitledProcUnits,
                'utilizedCappedProcUnits': processor.utilizedCappedProcUnits,
                'utilizedUncappedProcUnits': processor.utilizedUncappedProcUnits,
                'timePerInstructionExecution': processor.timePerInstructionExecution,
                'timeSpentWaitingForDispatch': processor.timeSpentWaitingForDispatch,
            },
        )))
    return records


CATEGORIES = (
    memory_metrics,
    processor_metrics,
    shared_processor_pool_metrics,
    shared_adapter_metrics,
    fiber_channel_adapter_metrics,
    generic_physical_adapter_metrics,
    virtual_ethernet_adapter_metrics,
    vios_memory_metrics,
    vios_processor_metrics,
)


class ManagedSystem:
    """A Power server managed by the HMC, with its most recent PCM document."""

    def __init__(self, id: str, name: str, type: Optional[str] = None,
                 model: Optional[str] = None, serial_number: Optional[str] = None,
                 parser: Optional[PcmParser] = None):
        self.id = id
        self.name = name
        self.type = type
        self.model = model
        self.serial_number = serial_number
        self.parser = parser or PcmParser()
        self.metrics: Optional[PcmData] = None

    def __repr__(self):
        return f"ManagedSystem(name={self.name!r}, id={self.id!r}, mtms={self.type}-{self.model}*{self.serial_number})"

    def __str__(self):
        return self.name

    def process_metrics(self, raw_json: Optional[str]) -> None:
        """Parse and keep a raw ProcessedMetrics payload."""
        self.metrics = self.parser.parse(raw_json)

    def get_timestamp(self) -> Optional[datetime]:
        return self.parser.get_timestamp(self.metrics)

    def extract(self, timestamp: Optional[datetime] = None) -> List[Record]:
        """
        All system and VIOS measurements of the current document.

        Args:
            timestamp: Sample timestamp; resolved from the document when omitted
        """
        if timestamp is None:
            timestamp = self.get_timestamp()
        categories = [functools.partial(category, system=self.name) for category in CATEGORIES]
        return extract(self.metrics, timestamp, categories, f"managed system {self.name}")
