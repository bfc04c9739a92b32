# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
HMC Insights: collects IBM Power HMC performance metrics and stores them in InfluxDB.
"""

__version__ = '1.0.0'
