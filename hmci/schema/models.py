# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Dataclasses for the HMC PCM "ProcessedMetrics" JSON document.

Field names follow the HMC API. Every field is optional: older HMC releases
and older Power servers leave out whole subtrees (energy, shared processor
pools, adapters), and the extractors treat absence as "nothing to report".
"""

from dataclasses import dataclass, field
from typing import List, Optional

from hmci.schema.base_model import BaseModel


# Shared building blocks

@dataclass
class ProcessorPool(BaseModel):
    """Shared or physical processor pool utilization."""
    id: Optional[str] = None
    name: Optional[str] = None
    assignedProcUnits: Optional[float] = None
    utilizedProcUnits: Optional[float] = None
    availableProcUnits: Optional[float] = None
    configuredProcUnits: Optional[float] = None
    borrowedProcUnits: Optional[float] = None


@dataclass
class PartitionProcessor(BaseModel):
    """Processor utilization of a VIOS or logical partition."""
    poolId: Optional[str] = None
    weight: Optional[float] = None
    mode: Optional[str] = None
    maxVirtualProcessors: Optional[float] = None
    currentVirtualProcessors: Optional[float] = None
    maxProcUnits: Optional[float] = None
    entitledProcUnits: Optional[float] = None
    utilizedProcUnits: Optional[float] = None
    utilizedCappedProcUnits: Optional[float] = None
    utilizedUncappedProcUnits: Optional[float] = None
    idleProcUnits: Optional[float] = None
    donatedProcUnits: Optional[float] = None
    timeSpentWaitingForDispatch: Optional[float] = None
    timePerInstructionExecution: Optional[float] = None


@dataclass
class VirtualEthernetAdapter(BaseModel):
    physicalLocation: Optional[str] = None
    vlanId: Optional[str] = None
    vswitchId: Optional[str] = None
    isPortVlanId: Optional[bool] = None
    viosId: Optional[str] = None
    sharedEthernetAdapterId: Optional[str] = None
    receivedPackets: Optional[float] = None
    sentPackets: Optional[float] = None
    droppedPackets: Optional[float] = None
    sentBytes: Optional[float] = None
    receivedBytes: Optional[float] = None
    receivedPhysicalPackets: Optional[float] = None
    sentPhysicalPackets: Optional[float] = None
    droppedPhysicalPackets: Optional[float] = None
    sentPhysicalBytes: Optional[float] = None
    receivedPhysicalBytes: Optional[float] = None
    transferredBytes: Optional[float] = None
    transferredPhysicalBytes: Optional[float] = None


# Managed system (server) level

@dataclass
class UtilInfo(BaseModel):
    version: Optional[str] = None
    metricType: Optional[str] = None
    frequency: Optional[float] = None
    startTimeStamp: Optional[str] = None
    endTimeStamp: Optional[str] = None
    mtms: Optional[str] = None
    name: Optional[str] = None
    uuid: Optional[str] = None


@dataclass
class SampleInfo(BaseModel):
    timeStamp: Optional[str] = None
    status: Optional[float] = None


@dataclass
class ServerMemory(BaseModel):
    totalMem: Optional[float] = None
    availableMem: Optional[float] = None
    configurableMem: Optional[float] = None
    assignedMemToLpars: Optional[float] = None
    virtualPersistentMem: Optional[float] = None


@dataclass
class ServerProcessor(BaseModel):
    totalProcUnits: Optional[float] = None
    utilizedProcUnits: Optional[float] = None
    availableProcUnits: Optional[float] = None
    configurableProcUnits: Optional[float] = None


@dataclass
class ServerUtil(BaseModel):
    processor: Optional[ServerProcessor] = None
    memory: Optional[ServerMemory] = None
    physicalProcessorPool: Optional[ProcessorPool] = None
    sharedProcessorPool: List[ProcessorPool] = field(default_factory=list)


# VIOS level

@dataclass
class ViosMemory(BaseModel):
    assignedMem: Optional[float] = None
    utilizedMem: Optional[float] = None
    virtualPersistentMem: Optional[float] = None


@dataclass
class SharedAdapter(BaseModel):
    """Shared Ethernet Adapter (SEA) bridged by a VIOS."""
    id: Optional[str] = None
    type: Optional[str] = None
    physicalLocation: Optional[str] = None
    receivedPackets: Optional[float] = None
    sentPackets: Optional[float] = None
    droppedPackets: Optional[float] = None
    sentBytes: Optional[float] = None
    receivedBytes: Optional[float] = None
    transferredBytes: Optional[float] = None
    bridgedAdapters: List[str] = field(default_factory=list)


@dataclass
class FiberChannelAdapter(BaseModel):
    id: Optional[str] = None
    wwpn: Optional[str] = None
    physicalLocation: Optional[str] = None
    numOfPorts: Optional[float] = None
    numOfReads: Optional[float] = None
    numOfWrites: Optional[float] = None
    readBytes: Optional[float] = None
    writeBytes: Optional[float] = None
    runningSpeed: Optional[float] = None
    transmittedBytes: Optional[float] = None


@dataclass
class GenericPhysicalAdapter(BaseModel):
    id: Optional[str] = None
    type: Optional[str] = None
    physicalLocation: Optional[str] = None
    numOfReads: Optional[float] = None
    numOfWrites: Optional[float] = None
    readBytes: Optional[float] = None
    writeBytes: Optional[float] = None
    transmittedBytes: Optional[float] = None


@dataclass
class ViosNetwork(BaseModel):
    clientLpars: List[str] = field(default_factory=list)
    sharedAdapters: List[SharedAdapter] = field(default_factory=list)
    virtualEthernetAdapters: List[VirtualEthernetAdapter] = field(default_factory=list)


@dataclass
class ViosStorage(BaseModel):
    clientLpars: List[str] = field(default_factory=list)
    fiberChannelAdapters: List[FiberChannelAdapter] = field(default_factory=list)
    genericPhysicalAdapters: List[GenericPhysicalAdapter] = field(default_factory=list)


@dataclass
class ViosUtil(BaseModel):
    id: Optional[str] = None
    uuid: Optional[str] = None
    name: Optional[str] = None
    state: Optional[str] = None
    affinityScore: Optional[float] = None
    memory: Optional[ViosMemory] = None
    processor: Optional[PartitionProcessor] = None
    network: Optional[ViosNetwork] = None
    storage: Optional[ViosStorage] = None


# Logical partition level

@dataclass
class LparMemory(BaseModel):
    logicalMem: Optional[float] = None
    backedPhysicalMem: Optional[float] = None


@dataclass
class VirtualFiberChannelAdapter(BaseModel):
    wwpn: Optional[str] = None
    wwpn2: Optional[str] = None
    physicalLocation: Optional[str] = None
    physicalPortWWPN: Optional[str] = None
    viosId: Optional[str] = None
    numOfReads: Optional[float] = None
    numOfWrites: Optional[float] = None
    readBytes: Optional[float] = None
    writeBytes: Optional[float] = None
    runningSpeed: Optional[float] = None
    transmittedBytes: Optional[float] = None


@dataclass
class LparNetwork(BaseModel):
    virtualEthernetAdapters: List[VirtualEthernetAdapter] = field(default_factory=list)


@dataclass
class LparStorage(BaseModel):
    virtualFiberChannelAdapters: List[VirtualFiberChannelAdapter] = field(default_factory=list)


@dataclass
class LparUtil(BaseModel):
    id: Optional[str] = None
    uuid: Optional[str] = None
    name: Optional[str] = None
    state: Optional[str] = None
    type: Optional[str] = None
    osType: Optional[str] = None
    affinityScore: Optional[float] = None
    memory: Optional[LparMemory] = None
    processor: Optional[PartitionProcessor] = None
    network: Optional[LparNetwork] = None
    storage: Optional[LparStorage] = None


# Energy (HMC v8+ and POWER8+ servers only)

@dataclass
class Temperature(BaseModel):
    entityId: Optional[str] = None
    entityInstance: Optional[str] = None
    temperatureReading: Optional[float] = None


@dataclass
class PowerUtil(BaseModel):
    powerReading: Optional[float] = None


@dataclass
class ThermalUtil(BaseModel):
    inletTemperatures: List[Temperature] = field(default_factory=list)
    cpuTemperatures: List[Temperature] = field(default_factory=list)
    baseboardTemperatures: List[Temperature] = field(default_factory=list)


@dataclass
class EnergyUtil(BaseModel):
    powerUtil: Optional[PowerUtil] = None
    thermalUtil: Optional[ThermalUtil] = None


# Document root

@dataclass
class UtilSample(BaseModel):
    sampleType: Optional[str] = None
    sampleInfo: Optional[SampleInfo] = None
    serverUtil: Optional[ServerUtil] = None
    energyUtil: Optional[EnergyUtil] = None
    viosUtil: List[ViosUtil] = field(default_factory=list)
    # A partition document carries exactly one partition
    lparsUtil: Optional[LparUtil] = None


@dataclass
class SystemUtil(BaseModel):
    utilInfo: Optional[UtilInfo] = None
    sample: Optional[UtilSample] = field(default=None, metadata={'json': 'utilSamples'})


@dataclass
class PcmData(BaseModel):
    systemUtil: Optional[SystemUtil] = None

    @property
    def system_util(self) -> Optional[SystemUtil]:
        return self.systemUtil

    @property
    def sample(self) -> Optional[UtilSample]:
        """The (first) utilization sample, or None."""
        if self.systemUtil is None:
            return None
        return self.systemUtil.sample
