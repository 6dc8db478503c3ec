"""Tests for PerformanceMonitor and the timed helper."""

import pytest

from qwenbot.services.performance import PerformanceMonitor, timed


class TestRecord:
    """Tests for recording and aggregate stats."""

    def test_stats_track_outcomes(self, performance_monitor):
        performance_monitor.record("chat", 100, True)
        performance_monitor.record("chat", 300, False, "ServerException")
        stats = performance_monitor.get_stats("chat")
        assert stats.total_calls == 2
        assert stats.failed_calls == 1
        assert stats.success_rate == 0.5
        assert stats.average_ms == 200
        assert (stats.min_ms, stats.max_ms) == (100, 300)

    def test_unknown_name_has_no_stats(self, performance_monitor):
        assert performance_monitor.get_stats("nothing") is None
        assert performance_monitor.get_recent_metrics("nothing") == []

    def test_history_is_bounded(self, clock):
        monitor = PerformanceMonitor(clock=clock, max_metrics=3)
        for duration in (10, 20, 30, 40):
            monitor.record("op", duration, True)
        recent = monitor.get_recent_metrics("op")
        assert [m.duration_ms for m in recent] == [20, 30, 40]
        assert monitor.get_stats("op").total_calls == 4
        assert monitor.get_stats("op").average_ms == 30

    def test_recent_metrics_limit(self, performance_monitor):
        for duration in range(5):
            performance_monitor.record("op", duration, True)
        assert [m.duration_ms for m in performance_monitor.get_recent_metrics("op", 2)] == [3, 4]


class TestReporting:
    """Tests for report text and warnings."""

    def test_empty_report(self, performance_monitor):
        assert performance_monitor.get_report() == "暂无性能数据 / No performance data"

    def test_report_lists_operations(self, performance_monitor):
        performance_monitor.record("chat.complete", 120, True)
        report = performance_monitor.get_report()
        assert "chat.complete" in report
        assert "100.00%" in report

    def test_low_success_rate_needs_enough_calls(self, performance_monitor):
        for _ in range(10):
            performance_monitor.record("op", 10, False)
        assert performance_monitor.get_warnings() == []
        performance_monitor.record("op", 10, False)
        assert any("success rate" in w for w in performance_monitor.get_warnings())

    def test_slow_operation_warnings(self, performance_monitor):
        performance_monitor.record("op", 12000, True)
        warnings = performance_monitor.get_warnings()
        assert any("average duration" in w for w in warnings)
        assert any("max duration" in w for w in warnings)

    def test_reset(self, performance_monitor):
        performance_monitor.record("op", 10, True)
        performance_monitor.reset()
        assert performance_monitor.get_all_stats() == {}


class TestCleanup:
    """Tests for age-based cleanup."""

    def test_cleanup_drops_old_metrics(self, performance_monitor, clock):
        performance_monitor.record("old", 10, True)
        performance_monitor.record("mixed", 100, True)
        clock.advance(3601)
        performance_monitor.record("mixed", 300, True)

        assert performance_monitor.cleanup() == 2
        assert performance_monitor.get_stats("old") is None
        assert performance_monitor.get_stats("mixed").average_ms == 300
        assert performance_monitor.get_stats("mixed").total_calls == 2


class TestTimed:
    """Tests for timed."""

    @pytest.mark.asyncio
    async def test_records_success(self, performance_monitor):
        async def call():
            return "ok"

        assert await timed(performance_monitor, "op", call) == "ok"
        assert performance_monitor.get_stats("op").success_calls == 1

    @pytest.mark.asyncio
    async def test_records_failure_and_reraises(self, performance_monitor):
        async def call():
            raise ValueError("boom")

        with pytest.raises(ValueError):
            await timed(performance_monitor, "op", call)
        metric = performance_monitor.get_recent_metrics("op")[0]
        assert not metric.success
        assert metric.error_type == "ValueError"
