"""Global CPU and memory gauge for portsniper."""

import math
import threading

import psutil

from portsniper.models import GlobalStats


class StatsGauge:
    """
    Long-lived handle to the system CPU and memory counters.

    psutil measures CPU utilization between successive calls, so the gauge
    must be reused for the life of the process rather than recreated per
    read. Every refresh-then-read sequence runs under one lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # Initialize CPU percent (first call returns 0.0)
        psutil.cpu_percent(interval=None)

    def read(self, sample_interval: float | None = None) -> GlobalStats:
        """
        Refresh the counters and return current utilization.

        Args:
            sample_interval: Seconds to sample CPU for before returning.
                None measures since the previous read, which is only
                meaningful when reads are repeated. One-shot callers
                should pass a short window such as 0.5.
        """
        with self._lock:
            cpu = psutil.cpu_percent(interval=sample_interval)
            mem = psutil.virtual_memory()

        if not math.isfinite(cpu):
            cpu = 0.0
        total = max(0, int(mem.total))
        used = min(max(0, int(mem.used)), total)

        return GlobalStats(
            cpu_usage=min(max(float(cpu), 0.0), 100.0),
            memory_total=total,
            memory_used=used,
        )
