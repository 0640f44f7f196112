"""
Behavioral tests for MemoryPressureMonitor.

System memory readings are scripted by patching ``_read_usage``; callbacks
and thread lifecycle are real.
"""

from __future__ import annotations

import threading
from unittest.mock import patch

import pytest

from invcu_image_cache.core import MemoryPressureMonitor


class TestMemoryPressureMonitor:
    """Behavioral tests for threshold crossing and callbacks."""

    @pytest.mark.parametrize("threshold", [0.0, 1.0, -0.5, 1.5])
    def test_invalid_threshold_raises(self, threshold):
        with pytest.raises(ValueError):
            MemoryPressureMonitor(threshold=threshold)

    def test_fires_once_per_crossing(self):
        """Test that sustained pressure trims once and rearms after recovery."""
        monitor = MemoryPressureMonitor(threshold=0.9)
        fired: list[int] = []
        monitor.add_callback(lambda: fired.append(1))

        with patch.object(monitor, "_read_usage", side_effect=[0.95, 0.97, 0.50, 0.92]):
            results = [monitor.check() for _ in range(4)]

        assert results == [True, True, False, True]
        assert len(fired) == 2
        stats = monitor.get_stats()
        assert stats.checks == 4
        assert stats.trims == 2
        assert stats.last_usage == 0.92

    def test_below_threshold_never_fires(self):
        monitor = MemoryPressureMonitor(threshold=0.9)
        fired: list[int] = []
        monitor.add_callback(lambda: fired.append(1))

        with patch.object(monitor, "_read_usage", return_value=0.4):
            monitor.check()
            monitor.check()

        assert fired == []
        assert monitor.get_stats().trims == 0

    def test_get_stats_returns_snapshot(self):
        """Test that changing a returned stats object leaves the monitor untouched."""
        monitor = MemoryPressureMonitor(threshold=0.9)
        with patch.object(monitor, "_read_usage", return_value=0.95):
            monitor.check()

        stats = monitor.get_stats()
        stats.trims = 99
        stats.checks = 0

        assert monitor.get_stats().trims == 1
        assert monitor.get_stats().checks == 1
        assert monitor.get_stats() is not monitor.get_stats()

    def test_failing_callback_does_not_block_others(self):
        """Test that one raising callback is logged and the rest still run."""
        monitor = MemoryPressureMonitor()
        fired: list[str] = []

        def broken():
            raise RuntimeError("boom")

        monitor.add_callback(broken)
        monitor.add_callback(lambda: fired.append("second"))

        monitor.notify()

        assert fired == ["second"]
        assert monitor.get_stats().last_trim is not None

    def test_read_usage_uses_psutil(self):
        """Test that the default reading is a fraction in [0, 1]."""
        usage = MemoryPressureMonitor()._read_usage()

        assert 0.0 <= usage <= 1.0

    def test_background_thread_triggers_callback(self):
        """Test that the polling thread checks and fires callbacks."""
        monitor = MemoryPressureMonitor(threshold=0.5, check_interval=0.01)
        fired = threading.Event()
        monitor.add_callback(fired.set)

        with patch.object(monitor, "_read_usage", return_value=0.99):
            monitor.start()
            try:
                assert monitor.running
                assert fired.wait(timeout=2.0)
            finally:
                monitor.stop()

        assert not monitor.running

    def test_start_twice_keeps_one_thread(self):
        monitor = MemoryPressureMonitor(check_interval=0.01)

        with patch.object(monitor, "_read_usage", return_value=0.1):
            monitor.start()
            first_thread = monitor._thread
            monitor.start()
            try:
                assert monitor._thread is first_thread
            finally:
                monitor.stop()

    def test_stop_without_start(self):
        MemoryPressureMonitor().stop()
