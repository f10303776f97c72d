"""Top-level context that exposes portsniper's operations."""

import logging

from portsniper.config import Settings
from portsniper.killer import kill_process
from portsniper.listeners import parse_listener_table, run_listing_command
from portsniper.models import GlobalStats, KillResult, PortInfo
from portsniper.ports import aggregate_ports
from portsniper.resolver import ProcessTable
from portsniper.stats import StatsGauge

logger = logging.getLogger(__name__)


class PortSniper:
    """
    Owns the shared stats gauge and runs the port, stats and kill operations.

    The three operations may be called concurrently from different threads.
    Port listing captures its own process table so that it never holds the
    gauge lock.
    """

    def __init__(self, settings: Settings | None = None, gauge: StatsGauge | None = None) -> None:
        self.settings = settings or Settings()
        self._gauge = gauge or StatsGauge()

    def get_active_ports(self) -> list[PortInfo]:
        """
        List listening TCP ports with their owning processes.

        Raises:
            ListingError: lsof could not be launched or timed out.
        """
        output = run_listing_command(timeout=self.settings.command_timeout)
        table = ProcessTable.capture()
        ports = aggregate_ports(parse_listener_table(output), table)
        logger.debug("Found %d listening ports", len(ports))
        return ports

    def get_global_stats(self, sample_interval: float | None = None) -> GlobalStats:
        """Return current CPU and memory utilization."""
        return self._gauge.read(sample_interval)

    def kill_process(self, pid: int) -> KillResult:
        """Forcefully terminate pid."""
        return kill_process(pid, timeout=self.settings.command_timeout)
