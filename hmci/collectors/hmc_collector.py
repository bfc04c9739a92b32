# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Discovery of managed systems and partitions, and retrieval of PCM documents.

The HMC answers discovery calls with Atom feeds whose entries wrap the UOM
(universal object model) XML. PCM data is a two step fetch: the
ProcessedMetrics feed links to the JSON document holding the samples.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

import requests

from hmci.collectors.logical_partition import LogicalPartition
from hmci.collectors.managed_system import ManagedSystem
from hmci.collectors.system_energy import SystemEnergy
from hmci.connection import RestClient
from hmci.schema.parser import PcmParser
from hmci.utils import write_trace

LOG = logging.getLogger(__name__)

MANAGEMENT_CONSOLE_PATH = '/rest/api/uom/ManagementConsole'
PARTITIONS_PATH = '/rest/api/uom/ManagedSystem/{system_id}/LogicalPartition'
SYSTEM_PCM_PATH = '/rest/api/pcm/ManagedSystem/{system_id}/ProcessedMetrics?NoOfSamples=1'
ENERGY_PCM_PATH = '/rest/api/pcm/ManagedSystem/{system_id}/ProcessedMetrics?Type=Energy&NoOfSamples=1'
PARTITION_PCM_PATH = '/rest/api/pcm/ManagedSystem/{system_id}/LogicalPartition/{partition_id}/ProcessedMetrics?NoOfSamples=1'
PREFERENCES_PATH = '/rest/api/pcm/ManagedSystem/{system_id}/preferences'


def parse_xml(body: Optional[str]) -> Optional[ET.Element]:
    """Parse an XML body; None for empty bodies (HTTP 204)."""
    if body is None or not body.strip():
        return None
    return ET.fromstring(body)


def _text(element: ET.Element, path: str) -> Optional[str]:
    value = element.findtext(path)
    if value is None:
        return None
    return value.strip() or None


def _id_from_href(href: str) -> str:
    return href.split('?', 1)[0].rstrip('/').rsplit('/', 1)[-1]


class HmcCollector:
    """
    Talks to one HMC.

    Args:
        client: Logged on (or lazily logging on) REST client
        name: HMC name from the configuration, used in logs
        trace_dir: Directory for raw PCM JSON dumps, or None
        parser: PCM parser shared by the entities this collector creates
    """

    def __init__(self, client: RestClient, name: str = 'hmc', trace_dir: Optional[str] = None,
                 parser: Optional[PcmParser] = None):
        self.client = client
        self.name = name
        self.trace_dir = trace_dir
        self.parser = parser or PcmParser()

    def get_managed_systems(self) -> Dict[str, ManagedSystem]:
        """
        Discover the systems managed by this HMC.

        Returns:
            ManagedSystem objects keyed by system id
        """
        root = parse_xml(self.client.get(MANAGEMENT_CONSOLE_PATH))
        systems = {}
        if root is None:
            LOG.warning(f"HMC {self.name} returned no management console data")
            return systems

        hrefs = [link.get('href') for link in root.iterfind('.//{*}ManagedSystems/{*}link')]
        for href in filter(None, hrefs):
            system = self._get_managed_system(href)
            if system is not None:
                systems[system.id] = system
                LOG.info(f"HMC {self.name}: found managed system {system!r}")
        return systems

    def _get_managed_system(self, href: str) -> Optional[ManagedSystem]:
        root = parse_xml(self.client.get(href))
        if root is None:
            return None

        name = _text(root, './/{*}SystemName')
        if name is None:
            LOG.warning(f"No SystemName in {href}, skipping")
            return None
        mtms = './/{*}MachineTypeModelAndSerialNumber/{*}'
        return ManagedSystem(
            id=_id_from_href(href),
            name=name,
            type=_text(root, mtms + 'MachineType'),
            model=_text(root, mtms + 'Model'),
            serial_number=_text(root, mtms + 'SerialNumber'),
            parser=self.parser,
        )

    def get_logical_partitions(self, system: ManagedSystem) -> Dict[str, LogicalPartition]:
        """
        Discover the partitions of a managed system.

        Returns:
            LogicalPartition objects keyed by partition id
        """
        root = parse_xml(self.client.get(PARTITIONS_PATH.format(system_id=system.id)))
        partitions = {}
        if root is None:
            return partitions

        for entry in root.iterfind('{*}entry'):
            partition_id = _text(entry, '{*}id') or _text(entry, './/{*}PartitionUUID')
            name = _text(entry, './/{*}PartitionName')
            if partition_id is None or name is None:
                continue
            partitions[partition_id] = LogicalPartition(
                id=partition_id,
                name=name,
                type=_text(entry, './/{*}PartitionType'),
                system=system,
                parser=self.parser,
            )
        LOG.info(f"HMC {self.name}: found {len(partitions)} partitions on {system.name}")
        return partitions

    def _get_pcm_json(self, feed_path: str, kind: str, entity_id: str) -> Optional[str]:
        feed = parse_xml(self.client.get(feed_path))
        if feed is None:
            LOG.debug(f"No {kind} PCM feed for {entity_id}")
            return None

        links = self._entry_links(feed)
        if not links:
            LOG.debug(f"No {kind} PCM entries for {entity_id}")
            return None

        body = self.client.get(links[0])
        if not body or not body.strip():
            return None
        if self.trace_dir:
            write_trace(kind, entity_id, body, self.trace_dir)
        return body

    @staticmethod
    def _entry_links(feed: ET.Element) -> List[str]:
        hrefs = [link.get('href') for link in feed.iterfind('{*}entry/{*}link')]
        return [href for href in hrefs if href]

    def get_pcm_data_for_managed_system(self, system: ManagedSystem) -> Optional[str]:
        """Latest processed metrics JSON of a system, or None when the HMC has none."""
        return self._get_pcm_json(SYSTEM_PCM_PATH.format(system_id=system.id), 'system', system.id)

    def get_pcm_data_for_logical_partition(self, partition: LogicalPartition) -> Optional[str]:
        path = PARTITION_PCM_PATH.format(system_id=partition.system.id, partition_id=partition.id)
        return self._get_pcm_json(path, 'partition', partition.id)

    def get_pcm_data_for_energy(self, energy: SystemEnergy) -> Optional[str]:
        return self._get_pcm_json(ENERGY_PCM_PATH.format(system_id=energy.system.id), 'energy', energy.system.id)

    def enable_energy_monitoring(self, system: ManagedSystem) -> bool:
        """
        Switch on energy monitoring in the PCM preferences of a system.

        Returns:
            True if monitoring is (now) enabled
        """
        path = PREFERENCES_PATH.format(system_id=system.id)
        try:
            root = parse_xml(self.client.get(path))
            if root is None:
                LOG.warning(f"No PCM preferences for {system.name}")
                return False

            capable = _text(root, './/{*}EnergyMonitoringCapable')
            if capable is not None and capable.lower() != 'true':
                LOG.info(f"{system.name} is not capable of energy monitoring")
                return False

            flags = list(root.iterfind('.//{*}EnergyMonitorEnabled'))
            if not flags:
                LOG.warning(f"No EnergyMonitorEnabled preference for {system.name}")
                return False
            if all(flag.text == 'true' for flag in flags):
                LOG.debug(f"Energy monitoring already enabled on {system.name}")
                return True

            for flag in flags:
                flag.text = 'true'
            preference = root.find('.//{*}ManagedSystemPcmPreference')
            payload = ET.tostring(preference if preference is not None else root, encoding='unicode')
            self.client.post(path, payload)
            LOG.info(f"Enabled energy monitoring on {system.name}")
            return True
        except (requests.exceptions.RequestException, ET.ParseError) as e:
            LOG.error(f"Failed to enable energy monitoring on {system.name}: {e}")
            return False
