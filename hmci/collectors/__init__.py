# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

from hmci.collectors.measurement import Measurement
from hmci.collectors.managed_system import ManagedSystem
from hmci.collectors.logical_partition import LogicalPartition
from hmci.collectors.system_energy import SystemEnergy
from hmci.collectors.hmc_collector import HmcCollector

__all__ = ['Measurement', 'ManagedSystem', 'LogicalPartition', 'SystemEnergy', 'HmcCollector']
