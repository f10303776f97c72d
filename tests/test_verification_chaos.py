"""Verification Test: Chaos Monkey - random process termination resilience.

Processes are created and terminated while the process table is being
captured and while the monitor is polling the real service. Name
resolution must never crash on NoSuchProcess, AccessDenied or
ZombieProcess.
"""

import multiprocessing
import random
import time
from queue import Empty, Queue

import pytest

from portsniper.config import Settings
from portsniper.monitor import MonitorSnapshot, SystemMonitor
from portsniper.resolver import ProcessTable, resolve_display_name
from portsniper.service import PortSniper


def dummy_worker(duration: float = 60.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_capture_survives_process_termination(self):
        """
        Test capturing the process table while processes die.

        Every capture must succeed, and resolving a pid that died after the
        capture still yields a name.
        """
        processes = []
        for _ in range(30):
            p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
            p.start()
            processes.append(p)

        try:
            to_kill = random.sample(processes, 15)
            tables = []
            for p in to_kill:
                p.terminate()
                tables.append(ProcessTable.capture())

            for table in tables:
                assert len(table) > 0
                for p in to_kill:
                    assert resolve_display_name(p.pid, "worker", table)
        except Exception as e:
            pytest.fail(f"Process table capture raised an exception: {e}")
        finally:
            for p in processes:
                if p.is_alive():
                    p.terminate()
            for p in processes:
                p.join(timeout=1.0)

    def test_capture_handles_zombie(self):
        """Test a finished but unreaped child does not break the capture."""
        p = multiprocessing.Process(target=dummy_worker, args=(0.1,))
        p.start()
        time.sleep(0.5)

        try:
            table = ProcessTable.capture()
            assert resolve_display_name(p.pid, "worker", table)
        finally:
            p.join(timeout=1.0)

    def test_monitor_keeps_polling_during_churn(self):
        """
        Test the monitor keeps providing snapshots while processes churn.

        Uses the real service; when lsof is unavailable the snapshots carry
        the listing error instead of ports, which is still a live loop.
        """
        queue: Queue[MonitorSnapshot] = Queue()
        service = PortSniper(Settings(command_timeout=5.0))
        monitor = SystemMonitor(service, queue, poll_rate=0.2, port_interval=0.5)
        processes = []

        try:
            monitor.start()

            start_time = time.time()
            while time.time() - start_time < 3.0:
                for _ in range(3):
                    p = multiprocessing.Process(target=dummy_worker, args=(10.0,))
                    p.start()
                    processes.append(p)

                alive = [p for p in processes if p.is_alive()]
                for p in random.sample(alive, min(2, len(alive))):
                    p.terminate()

                time.sleep(0.1)

            assert monitor.is_running, "Monitor crashed during rapid churn"

            snapshots = 0
            deadline = time.time() + 5.0
            while time.time() < deadline and snapshots < 3:
                try:
                    snapshot = queue.get(timeout=1.0)
                except Empty:
                    continue
                assert snapshot.stats.memory_used <= snapshot.stats.memory_total
                snapshots += 1

            assert snapshots >= 3, f"Expected at least 3 snapshots, got {snapshots}"
        finally:
            monitor.stop()
            for p in processes:
                if p.is_alive():
                    p.terminate()
            for p in processes:
                p.join(timeout=0.5)
