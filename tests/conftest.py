"""Shared fixtures for the HMC Insights tests."""
import os

import pytest

from hmci.collectors.logical_partition import LogicalPartition
from hmci.collectors.managed_system import ManagedSystem
from hmci.collectors.system_energy import SystemEnergy

FIXTURES = os.path.join(os.path.dirname(__file__), 'fixtures')


def load_fixture(name):
    with open(os.path.join(FIXTURES, name), 'r') as f:
        return f.read()


@pytest.fixture
def managed_system_json():
    return load_fixture('pcm-managed-system.json')


@pytest.fixture
def logical_partition_json():
    return load_fixture('pcm-logical-partition.json')


@pytest.fixture
def energy_json():
    return load_fixture('pcm-energy.json')


@pytest.fixture
def managed_system():
    return ManagedSystem(id='b597e4da-2aab-3f52-8616-341d62153559', name='sys01',
                         type='9009', model='42A', serial_number='21F64EV')


@pytest.fixture
def logical_partition(managed_system):
    return LogicalPartition(id='62F4D488-C838-41E2-B83B-E68E004E3B63', name='lpar01',
                            type='AIX/Linux', system=managed_system)


@pytest.fixture
def system_energy(managed_system):
    return SystemEnergy(managed_system)
