# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Power draw and thermal sensors of a managed system.

Energy metrics need HMC v8+ and a POWER8 or newer server, and have to be
switched on through the PCM preferences (see HmcCollector.enable_energy_monitoring).
"""

import functools
import logging
from datetime import datetime
from typing import List, Optional

from hmci.collectors.base import Record, extract, required_tag
from hmci.collectors.managed_system import ManagedSystem
from hmci.collectors.measurement import Measurement
from hmci.schema.models import EnergyUtil, PcmData, Temperature
from hmci.schema.parser import PcmParser

LOG = logging.getLogger(__name__)


def _energy_util(document: PcmData) -> Optional[EnergyUtil]:
    sample = document.sample
    return sample.energyUtil if sample is not None else None


def power_metrics(document: PcmData, system: str) -> List[Record]:
    energy = _energy_util(document)
    if energy is None or energy.powerUtil is None:
        return []
    return [('SystemEnergyPower', Measurement.build(
        {'system': required_tag(system)},
        {'powerReading': energy.powerUtil.powerReading},
    ))]


def _temperature_fields(prefix: str, temperatures: List[Temperature]) -> dict:
    # inletTemperature_1, cpuTemperature_2, ...
    fields = {}
    for temperature in temperatures:
        if temperature.entityInstance is None:
            continue
        fields[f"{prefix}_{temperature.entityInstance}"] = temperature.temperatureReading
    return fields


def thermal_metrics(document: PcmData, system: str) -> List[Record]:
    energy = _energy_util(document)
    if energy is None or energy.thermalUtil is None:
        return []

    thermal = energy.thermalUtil
    fields = {}
    fields.update(_temperature_fields('inletTemperature', thermal.inletTemperatures))
    fields.update(_temperature_fields('cpuTemperature', thermal.cpuTemperatures))
    fields.update(_temperature_fields('baseboardTemperature', thermal.baseboardTemperatures))
    return [('SystemEnergyThermal', Measurement.build({'system': required_tag(system)}, fields))]


CATEGORIES = (
    power_metrics,
    thermal_metrics,
)


class SystemEnergy:
    """Energy readings for one managed system."""

    def __init__(self, system: ManagedSystem, parser: Optional[PcmParser] = None):
        self.system = system
        self.parser = parser or PcmParser()
        self.metrics: Optional[PcmData] = None

    def __repr__(self):
        return f"SystemEnergy(system={self.system.name!r})"

    def process_metrics(self, raw_json: Optional[str]) -> None:
        self.metrics = self.parser.parse(raw_json)

    def get_timestamp(self) -> Optional[datetime]:
        return self.parser.get_timestamp(self.metrics)

    def extract(self, timestamp: Optional[datetime] = None) -> List[Record]:
        if timestamp is None:
            timestamp = self.get_timestamp()
        categories = [functools.partial(category, system=self.system.name) for category in CATEGORIES]
        return extract(self.metrics, timestamp, categories, f"energy of {self.system.name}")
