"""Shared fixtures for portsniper tests."""

import threading
import time

import pytest

from portsniper.errors import ListingError
from portsniper.models import GlobalStats, KillResult, PortInfo


class FakeService:
    """Stand-in for PortSniper that never touches the OS."""

    def __init__(self, ports=None, stats=None, fail_listing=False, kill_ok=True, listing_delay=0.0):
        self.ports = list(ports or [])
        self.stats = stats or GlobalStats(cpu_usage=12.5, memory_total=16 * 1024**3, memory_used=4 * 1024**3)
        self.fail_listing = fail_listing
        self.kill_ok = kill_ok
        self.killed: list[int] = []
        self.listings = 0
        self.listing_delay = listing_delay
        self.sample_intervals: list[float | None] = []
        self._lock = threading.Lock()

    def get_active_ports(self) -> list[PortInfo]:
        with self._lock:
            self.listings += 1
        if self.listing_delay:
            time.sleep(self.listing_delay)
        if self.fail_listing:
            raise ListingError("Failed to run lsof: not found", ("lsof",))
        return list(self.ports)

    def get_global_stats(self, sample_interval: float | None = None) -> GlobalStats:
        self.sample_intervals.append(sample_interval)
        return self.stats

    def kill_process(self, pid: int) -> KillResult:
        self.killed.append(pid)
        if self.kill_ok:
            return KillResult.success(pid)
        return KillResult.failure(pid, "Operation not permitted")


@pytest.fixture
def sample_ports() -> list[PortInfo]:
    return [
        PortInfo(pid=100, name="nginx", port=80, protocol="TCP"),
        PortInfo(pid=1234, name="server.js", port=3000, protocol="TCP"),
        PortInfo(pid=4321, name="postgres", port=5432, protocol="TCP"),
    ]


@pytest.fixture
def fake_service(sample_ports) -> FakeService:
    return FakeService(ports=sample_ports)
