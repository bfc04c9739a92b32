#!/usr/bin/env python3

# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Entry point for the HMC Insights collector.

Each interval, every managed system, its energy readings and its logical
partitions are polled for their latest PCM sample; the extracted
measurements are written to InfluxDB in one batch per interval.
"""

import argparse
import concurrent.futures
import logging
import sys
import time
import xml.etree.ElementTree as ET
from typing import Callable, Dict, List, Optional

import requests

from hmci.collectors.hmc_collector import HmcCollector
from hmci.collectors.logical_partition import LogicalPartition
from hmci.collectors.managed_system import ManagedSystem
from hmci.collectors.system_energy import SystemEnergy
from hmci.config import HmcSettings, Settings, load_settings
from hmci.connection import LogonError, RestClient
from hmci.schema.parser import PcmParser
from hmci.writer.base import Writer
from hmci.writer.factory import WriterFactory
from hmci.writer.influxdb_writer import SinkConnectionError

LOG = logging.getLogger(__name__)

FORMAT = '%(asctime)s - %(levelname)s - %(funcName)s - %(lineno)d - %(message)s'
DATEFMT = '%Y-%m-%dT%H:%M:%SZ'


class HmcSource:
    """One configured HMC and the entities discovered on it."""

    def __init__(self, name: str, settings: HmcSettings, parser: Optional[PcmParser] = None):
        self.name = name
        self.settings = settings
        self.client = RestClient(settings.url, settings.username, settings.password,
                                 trust_all=settings.unsafe,
                                 connect_timeout=settings.connect_timeout,
                                 write_timeout=settings.write_timeout,
                                 read_timeout=settings.read_timeout)
        self.collector = HmcCollector(self.client, name=name, trace_dir=settings.trace, parser=parser)
        self.systems: Dict[str, ManagedSystem] = {}
        self.partitions: Dict[str, LogicalPartition] = {}
        self.energy: Dict[str, SystemEnergy] = {}
        self.discovered = False

    def discover(self) -> None:
        """Log on and find systems and partitions. Transport errors propagate."""
        self.client.login()
        self.systems = self.collector.get_managed_systems()
        self.partitions = {}
        self.energy = {}
        for system in self.systems.values():
            self.partitions.update(self.collector.get_logical_partitions(system))
            if self.settings.energy and self.collector.enable_energy_monitoring(system):
                self.energy[system.id] = SystemEnergy(system, parser=self.collector.parser)
        self.discovered = True
        LOG.info(f"HMC {self.name}: {len(self.systems)} systems, {len(self.partitions)} partitions, "
                 f"{len(self.energy)} with energy monitoring")

    def tasks(self) -> List[Callable[[Writer], int]]:
        """One poll task per tracked entity."""
        tasks = []
        for system in self.systems.values():
            tasks.append(lambda writer, s=system: poll(s, self.collector.get_pcm_data_for_managed_system, writer))
        for energy in self.energy.values():
            tasks.append(lambda writer, e=energy: poll(e, self.collector.get_pcm_data_for_energy, writer))
        for partition in self.partitions.values():
            tasks.append(lambda writer, p=partition: poll(p, self.collector.get_pcm_data_for_logical_partition, writer))
        return tasks

    def close(self) -> None:
        self.client.logoff()


def poll(entity, fetch, writer: Writer) -> int:
    """
    Fetch, parse and extract one entity and queue its measurements.

    Returns:
        Number of measurements queued
    """
    entity.process_metrics(fetch(entity))
    timestamp = entity.get_timestamp()
    records = entity.extract(timestamp)
    if records:
        writer.write_measurements(records, timestamp)
    LOG.debug(f"{entity!r}: {len(records)} measurements")
    return len(records)


def run_iteration(sources: List[HmcSource], writer: Writer,
                  executor: concurrent.futures.ThreadPoolExecutor) -> int:
    """
    Poll every entity of every HMC once, then flush the writer.

    Returns:
        Number of measurements queued during the iteration

    Raises:
        SinkConnectionError: The writer could not (re)connect
    """
    futures = []
    for source in sources:
        if not source.discovered:
            try:
                source.discover()
            except (requests.exceptions.RequestException, LogonError, ET.ParseError) as e:
                LOG.error(f"Discovery on HMC {source.name} failed, will retry next interval: {e}")
                continue
        futures.extend(executor.submit(task, writer) for task in source.tasks())

    total = 0
    for future in concurrent.futures.as_completed(futures):
        try:
            total += future.result()
        except Exception as e:
            # One failing entity must not stop the others
            LOG.error(f"Polling failed: {e}")

    if not writer.flush():
        LOG.error("Failed to write data to output destination")
    return total


def configure_logging(loglevel: str, logfile: Optional[str] = None) -> None:
    log_level = getattr(logging, loglevel.upper())
    if logfile:
        try:
            logging.basicConfig(filename=logfile, level=log_level, format=FORMAT, datefmt=DATEFMT)
            logging.info('Logging to file: ' + logfile)
        except OSError as e:
            logging.basicConfig(level=log_level, format=FORMAT, datefmt=DATEFMT)
            logging.error(f'Failed to configure file logging to {logfile}: {e}')
            logging.warning('Falling back to console logging only')
    else:
        logging.basicConfig(level=log_level, format=FORMAT, datefmt=DATEFMT)

    # Never allow requests/urllib3 to log below INFO level due to credential exposure
    requests_level = max(log_level, logging.INFO)
    logging.getLogger("requests").setLevel(level=requests_level)
    logging.getLogger("urllib3").setLevel(level=requests_level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Collect IBM Power HMC performance metrics into InfluxDB")
    parser.add_argument('--config', type=str, default=None,
        help='Path to YAML config file. HMCI_* environment variables override its values.')
    parser.add_argument('--intervalTime', type=int, default=None,
        help='Collection interval in seconds. Overrides interval_time from the config file.')
    parser.add_argument('--maxIterations', type=int, default=0,
        help='Maximum number of collection iterations to run before exiting. Default: 0 (run indefinitely).')
    parser.add_argument('--threads', type=int, default=None,
        help='Number of concurrent threads for polling. Overrides threads from the config file.')
    parser.add_argument('--logfile', type=str, default=None,
        help='Path to log file. If not provided, logs to console only.')
    parser.add_argument('--loglevel', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], default='INFO',
        help='Log level for both console and file output. Default: INFO')
    parser.add_argument('--doNotPost', action='store_true', default=False,
        help='Collect and log measurements but do not write them to InfluxDB.')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    CMD = build_parser().parse_args(argv)
    configure_logging(CMD.loglevel, CMD.logfile)

    settings: Settings = load_settings(CMD.config)
    interval = CMD.intervalTime or settings.interval_time
    threads = CMD.threads or settings.threads
    if not settings.hmc:
        LOG.error("No HMC configured, nothing to collect")
        return 1

    parser = PcmParser()
    sources = [HmcSource(name, hmc, parser=parser) for name, hmc in settings.hmc.items()]
    writer = WriterFactory.create_writer(settings.influx, do_not_post=CMD.doNotPost)
    executor = concurrent.futures.ThreadPoolExecutor(threads)
    LOG.info(f"Starting collection loop with {threads} threads, interval {interval}s")

    exit_code = 0
    loop_iteration = 1
    try:
        writer.connect()
        while True:
            time_start = time.time()
            count = run_iteration(sources, writer, executor)
            elapsed = time.time() - time_start

            if elapsed >= interval:
                LOG.warning(f"Collection took {elapsed:.2f}s but interval is {interval}s - "
                            f"consider increasing --intervalTime or adding more --threads")
            else:
                LOG.info(f"Collected {count} measurements in {elapsed:.2f}s")

            if CMD.maxIterations > 0 and loop_iteration >= CMD.maxIterations:
                LOG.info(f"Completed final iteration ({CMD.maxIterations}). Exiting gracefully.")
                break

            if elapsed < interval:
                time.sleep(interval - elapsed)
            loop_iteration += 1
    except SinkConnectionError as e:
        LOG.error(f"Fatal: {e}")
        exit_code = 1
    except KeyboardInterrupt:
        LOG.info("Interrupted by user. Exiting gracefully.")
    finally:
        executor.shutdown()
        for source in sources:
            source.close()
        writer.close()

    return exit_code


if __name__ == '__main__':
    sys.exit(main())
