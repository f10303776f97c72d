"""Background polling for portsniper."""

import logging
import threading
from dataclasses import dataclass, field
from queue import Queue

from portsniper.errors import ListingError
from portsniper.models import GlobalStats, PortInfo
from portsniper.service import PortSniper

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MonitorSnapshot:
    """Latest stats and port listing known to the monitor."""

    stats: GlobalStats
    ports: list[PortInfo] = field(default_factory=list)
    ports_refreshed: bool = False
    error: str | None = None


class SystemMonitor:
    """
    Polls a PortSniper service from two daemon threads.

    The stats thread reads CPU and memory every ``poll_rate`` seconds. The
    port thread lists listening ports every ``port_interval`` seconds, or
    as soon as :meth:`request_ports` is called. Both push MonitorSnapshot
    values onto the same queue, so a slow lsof run or process scan never
    delays telemetry. A failed listing keeps the last good port list and
    reports the failure in the snapshot.
    """

    def __init__(
        self,
        service: PortSniper,
        update_queue: Queue[MonitorSnapshot],
        poll_rate: float = 2.0,
        port_interval: float = 3.0,
    ) -> None:
        """
        Initialize the SystemMonitor.

        Args:
            service: Service the operations are read from.
            update_queue: Thread-safe queue to push updates to.
            poll_rate: Seconds between stats reads. Default 2.0s.
            port_interval: Seconds between port listings. Default 3.0s.
        """
        self._service = service
        self._queue = update_queue
        self._poll_rate = max(0.1, poll_rate)
        self._port_interval = max(0.5, port_interval)
        self._stop_event = threading.Event()
        self._ports_wake = threading.Event()
        self._state_lock = threading.Lock()
        self._stats_thread: threading.Thread | None = None
        self._ports_thread: threading.Thread | None = None
        self._stats: GlobalStats | None = None
        self._ports: list[PortInfo] = []

    @property
    def poll_rate(self) -> float:
        """Seconds between stats reads."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        self._poll_rate = max(0.1, value)

    @property
    def port_interval(self) -> float:
        """Seconds between port listings."""
        return self._port_interval

    @property
    def is_running(self) -> bool:
        """True while both polling threads are alive."""
        return all(
            thread is not None and thread.is_alive()
            for thread in (self._stats_thread, self._ports_thread)
        )

    def start(self) -> None:
        """Start the stats and port threads unless they already run."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._ports_wake.clear()
        self._stats_thread = threading.Thread(
            target=self._stats_loop,
            daemon=True,
            name="SystemMonitor-stats",
        )
        self._ports_thread = threading.Thread(
            target=self._ports_loop,
            daemon=True,
            name="SystemMonitor-ports",
        )
        self._stats_thread.start()
        self._ports_thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop both polling threads.

        A port thread blocked in lsof finishes its current listing first,
        so ``timeout`` bounds how long each join may take.
        """
        self._stop_event.set()
        self._ports_wake.set()
        for thread in (self._stats_thread, self._ports_thread):
            if thread is not None:
                thread.join(timeout=timeout)
        self._stats_thread = None
        self._ports_thread = None

    def request_ports(self) -> None:
        """Wake the port thread for an immediate listing."""
        self._ports_wake.set()

    def _stats_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self._queue.put(self.collect_stats())
            except Exception:
                logger.exception("Stats read failed")
            self._stop_event.wait(timeout=self._poll_rate)

    def _ports_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self._queue.put(self.collect_ports())
            except Exception:
                logger.exception("Port listing failed")

            # Sleep until the next listing is due, a refresh or a stop request
            self._ports_wake.wait(timeout=self._port_interval)
            self._ports_wake.clear()

    def _latest_stats(self) -> GlobalStats:
        with self._state_lock:
            stats = self._stats
        return stats if stats is not None else self.collect_stats().stats

    def collect_stats(self) -> MonitorSnapshot:
        """Read stats and pair them with the last known port list."""
        stats = self._service.get_global_stats()
        with self._state_lock:
            self._stats = stats
            ports = list(self._ports)
        return MonitorSnapshot(stats=stats, ports=ports)

    def collect_ports(self) -> MonitorSnapshot:
        """List ports and pair them with the last known stats."""
        try:
            ports = self._service.get_active_ports()
        except ListingError as exc:
            logger.error("Port listing failed: %s", exc)
            with self._state_lock:
                previous = list(self._ports)
            return MonitorSnapshot(stats=self._latest_stats(), ports=previous, error=str(exc))

        with self._state_lock:
            self._ports = list(ports)
        return MonitorSnapshot(stats=self._latest_stats(), ports=list(ports), ports_refreshed=True)
