"""Call timing and success-rate tracking for outbound operations."""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional, TypeVar

from qwenbot.constants import PerformanceThresholds
from qwenbot.utils import utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PerformanceMetric:
    name: str
    duration_ms: float
    timestamp: datetime
    success: bool
    error_type: Optional[str] = None


@dataclass
class PerformanceStats:
    """Aggregates for one operation name."""

    total_calls: int = 0
    success_calls: int = 0
    failed_calls: int = 0
    average_ms: float = 0.0
    min_ms: float = float("inf")
    max_ms: float = 0.0
    last_call: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        return self.success_calls / self.total_calls if self.total_calls else 0.0


@dataclass
class _Series:
    metrics: deque = field(
        default_factory=lambda: deque(maxlen=PerformanceThresholds.MAX_METRICS_PER_NAME)
    )
    stats: PerformanceStats = field(default_factory=PerformanceStats)


class PerformanceMonitor:
    """Keeps a bounded metric history and running stats per operation name."""

    def __init__(
        self,
        clock: Callable[[], datetime] = utcnow,
        max_metrics: int = PerformanceThresholds.MAX_METRICS_PER_NAME,
    ) -> None:
        self._clock = clock
        self._max_metrics = max_metrics
        self._series: dict[str, _Series] = {}

    def record(
        self,
        name: str,
        duration_ms: float,
        success: bool,
        error_type: Optional[str] = None,
    ) -> None:
        series = self._series.get(name)
        if series is None:
            series = _Series(metrics=deque(maxlen=self._max_metrics))
            self._series[name] = series

        metric = PerformanceMetric(name, duration_ms, self._clock(), success, error_type)
        series.metrics.append(metric)

        stats = series.stats
        stats.total_calls += 1
        if success:
            stats.success_calls += 1
        else:
            stats.failed_calls += 1
        stats.min_ms = min(stats.min_ms, duration_ms)
        stats.max_ms = max(stats.max_ms, duration_ms)
        stats.last_call = metric.timestamp
        stats.average_ms = sum(m.duration_ms for m in series.metrics) / len(series.metrics)

        if duration_ms > PerformanceThresholds.SLOW_CALL_MS:
            logger.warning(
                "Operation %s took %.0fms (success=%s)", name, duration_ms, success
            )

    def get_stats(self, name: str) -> Optional[PerformanceStats]:
        series = self._series.get(name)
        return series.stats if series else None

    def get_all_stats(self) -> dict[str, PerformanceStats]:
        return {name: series.stats for name, series in self._series.items()}

    def get_recent_metrics(self, name: str, limit: int = 10) -> list[PerformanceMetric]:
        series = self._series.get(name)
        if series is None or limit <= 0:
            return []
        return list(series.metrics)[-limit:]

    def get_report(self) -> str:
        stats = self.get_all_stats()
        if not stats:
            return "暂无性能数据 / No performance data"

        lines = ["📊 性能监控报告 / Performance Report", "=" * 40]
        for name, stat in stats.items():
            lines.extend(
                [
                    f"命令 / Operation: {name}",
                    f"  总调用数 / Calls: {stat.total_calls}",
                    f"  成功 / OK: {stat.success_calls} | 失败 / Failed: {stat.failed_calls}",
                    f"  成功率 / Success rate: {stat.success_rate * 100:.2f}%",
                    f"  平均耗时 / Avg: {stat.average_ms:.0f}ms",
                    f"  最小耗时 / Min: {stat.min_ms:.0f}ms",
                    f"  最大耗时 / Max: {stat.max_ms:.0f}ms",
                    "",
                ]
            )
        return "\n".join(lines).rstrip()

    def get_warnings(self) -> list[str]:
        warnings = []
        for name, stat in self.get_all_stats().items():
            if (
                stat.total_calls > PerformanceThresholds.WARN_MIN_CALLS
                and stat.success_rate < PerformanceThresholds.WARN_SUCCESS_RATE
            ):
                warnings.append(
                    f"⚠️ {name}: success rate too low ({stat.success_rate * 100:.2f}%)"
                )
            if stat.average_ms > PerformanceThresholds.WARN_AVERAGE_MS:
                warnings.append(f"⚠️ {name}: average duration too high ({stat.average_ms:.0f}ms)")
            if stat.max_ms > PerformanceThresholds.WARN_MAX_MS:
                warnings.append(f"⚠️ {name}: max duration too high ({stat.max_ms:.0f}ms)")
        return warnings

    def reset(self) -> None:
        self._series.clear()
        logger.info("Performance metrics reset")

    def cleanup(self, max_age: float = PerformanceThresholds.RETENTION_SECONDS) -> int:
        """Drop metrics older than ``max_age`` seconds; names left empty are removed.

        Running totals are kept for names that still have metrics.
        """
        cutoff = self._clock() - timedelta(seconds=max_age)
        removed = 0
        for name, series in list(self._series.items()):
            kept = [m for m in series.metrics if m.timestamp > cutoff]
            removed += len(series.metrics) - len(kept)
            if not kept:
                del self._series[name]
                continue
            series.metrics = deque(kept, maxlen=self._max_metrics)
            series.stats.average_ms = sum(m.duration_ms for m in kept) / len(kept)

        logger.debug("Performance cleanup removed %d metrics", removed)
        return removed


async def timed(
    monitor: PerformanceMonitor,
    name: str,
    call: Callable[[], Awaitable[T]],
) -> T:
    """Await ``call()`` and record its duration and outcome under ``name``."""
    start = time.perf_counter()
    try:
        result = await call()
    except Exception as e:
        monitor.record(name, (time.perf_counter() - start) * 1000, False, type(e).__name__)
        raise
    monitor.record(name, (time.perf_counter() - start) * 1000, True)
    return result
