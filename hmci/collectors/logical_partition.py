# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

import functools
import logging
from datetime import datetime
from typing import List, Optional

from hmci.collectors.base import Record, extract, required_tag
from hmci.collectors.managed_system import ManagedSystem
from hmci.collectors.measurement import Measurement
from hmci.schema.models import LparUtil, PcmData
from hmci.schema.parser import PcmParser

LOG = logging.getLogger(__name__)


def _lpar_util(document: PcmData) -> Optional[LparUtil]:
    sample = document.sample
    return sample.lparsUtil if sample is not None else None


def affinity_score_metrics(document: PcmData, system: str, partition: str) -> List[Record]:
    lpar = _lpar_util(document)
    if lpar is None:
        return []
    return [('PartitionAffinityScore', Measurement.build(
        {'system': required_tag(system), 'partition': required_tag(partition)},
        {'affinityScore': lpar.affinityScore},
    ))]


def memory_metrics(document: PcmData, system: str, partition: str) -> List[Record]:
    lpar = _lpar_util(document)
    if lpar is None or lpar.memory is None:
        return []
    return [('PartitionMemory', Measurement.build(
        {'system': required_tag(system), 'partition': required_tag(partition)},
        {
            'logicalMem': lpar.memory.logicalMem,
            'backedPhysicalMem': lpar.memory.backedPhysicalMem,
        },
    ))]


def processor_metrics(document: PcmData, system: str, partition: str) -> List[Record]:
    lpar = _lpar_util(document)
    if lpar is None or lpar.processor is None:
        return []

    processor = lpar.processor
    return [('PartitionProcessor', Measurement.build(
        {'system': required_tag(system), 'partition': required_tag(partition)},
        {
            'utilizedProcUnits': processor.utilizedProcUnits,
            'maxVirtualProcessors': processor.maxVirtualProcessors,
            'currentVirtualProcessors': processor.currentVirtualProcessors,
            'donatedProcUnits': processor.donatedProcUnits,
            'entitledProcUnits': processor.entitledProcUnits,
            'idleProcUnits': processor.idleProcUnits,
            'maxProcUnits': processor.maxProcUnits,
            'utilizedCappedProcUnits': processor.utilizedCappedProcUnits,
            'utilizedUncappedProcUnits': processor.utilizedUncappedProcUnits,
            'timePerInstructionExecution': processor.timePerInstructionExecution,
            'timeSpentWaitingForDispatch': processor.timeSpentWaitingForDispatch,
        },
    ))]


def virtual_ethernet_adapter_metrics(document: PcmData, system: str, partition: str) -> List[Record]:
    lpar = _lpar_util(document)
    if lpar is None or lpar.network is None:
        return []

    records = []
    for adapter in lpar.network.virtualEthernetAdapters:
        records.append(('PartitionVirtualEthernetAdapters', Measurement.build(
            {
                'system': required_tag(system),
                'partition': required_tag(partition),
                'sea': adapter.sharedEthernetAdapterId,
                'viosId': adapter.viosId,
                'vlanId': adapter.vlanId,
                'vswitchId': adapter.vswitchId,
            },
            {
                'receivedPhysicalBytes': adapter.receivedPhysicalBytes,
                'sentPhysicalBytes': adapter.sentPhysicalBytes,
                'receivedBytes': adapter.receivedBytes,
                'sentBytes': adapter.sentBytes,
            },
        )))
    return records


def virtual_fiber_channel_adapter_metrics(document: PcmData, system: str, partition: str) -> List[Record]:
    lpar = _lpar_util(document)
    if lpar is None or lpar.storage is None:
        return []

    records = []
    for adapter in lpar.storage.virtualFiberChannelAdapters:
        records.append(('PartitionVirtualFiberChannelAdapters', Measurement.build(
            {
                'system': required_tag(system),
                'partition': required_tag(partition),
                'viosId': adapter.viosId,
                'wwpn': adapter.wwpn,
            },
            {
                'transmittedBytes': adapter.transmittedBytes,
                'writeBytes': adapter.writeBytes,
                'readBytes': adapter.readBytes,
            },
        )))
    return records


CATEGORIES = (
    affinity_score_metrics,
    memory_metrics,
    processor_metrics,
    virtual_ethernet_adapter_metrics,
    virtual_fiber_channel_adapter_metrics,
)


class LogicalPartition:
    """An LPAR on a managed system."""

    def __init__(self, id: str, name: str, type: Optional[str], system: ManagedSystem,
                 parser: Optional[PcmParser] = None):
        self.id = id
        self.name = name
        self.type = type
        self.system = system
        self.parser = parser or PcmParser()
        self.metrics: Optional[PcmData] = None

    def __repr__(self):
        return f"LogicalPartition(name={self.name!r}, id={self.id!r}, system={self.system.name!r})"

    def __str__(self):
        return self.name

    def process_metrics(self, raw_json: Optional[str]) -> None:
        self.metrics = self.parser.parse(raw_json)

    def get_timestamp(self) -> Optional[datetime]:
        return self.parser.get_timestamp(self.metrics)

    def extract(self, timestamp: Optional[datetime] = None) -> List[Record]:
        if timestamp is None:
            timestamp = self.get_timestamp()
        categories = [functools.partial(category, system=self.system.name, partition=self.name)
                      for category in CATEGORIES]
        return extract(self.metrics, timestamp, categories,
                       f"partition {self.name} on {self.system.name}")
