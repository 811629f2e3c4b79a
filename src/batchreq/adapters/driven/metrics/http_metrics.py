"""Rolling request metrics for the HTTP transport."""

from __future__ import annotations

import statistics
from collections import Counter, deque
from dataclasses import dataclass, field

from batchreq.ports.metrics import HttpAttemptDto, MetricsPort

__all__ = ["Metrics", "MetricsSnapshot", "status_class"]

NETWORK_ERROR = "net"


def status_class(status_code: int | None) -> str:
    """Bucket a status code as ``2xx``/``3xx``/...; no response is ``net``."""
    if status_code is None:
        return NETWORK_ERROR
    return f"{status_code // 100}xx"


@dataclass(slots=True, frozen=True)
class MetricsSnapshot:
    """Aggregates over the attempts currently in the window.

    Attributes:
        count: Attempts in the window.
        total_seen: Attempts recorded since creation.
        mean_latency_ms: Mean wall time per attempt.
        p95_latency_ms: 95th percentile wall time (the max below 20 samples).
        failure_rate: Fraction of failed attempts, 0.0 to 1.0.
        by_method: Attempts per HTTP verb.
        by_status: Attempts per status class, see ``status_class``.
    """

    count: int = 0
    total_seen: int = 0
    mean_latency_ms: float = 0.0
    p95_latency_ms: float = 0.0
    failure_rate: float = 0.0
    by_method: dict[str, int] = field(default_factory=dict)
    by_status: dict[str, int] = field(default_factory=dict)


class Metrics(MetricsPort):
    """Window over the most recent transport attempts.

    Each batch member costs one attempt, so a window of 100 covers a few
    typical batches. Not thread-safe; create one instance per event loop.
    """

    def __init__(self, *, window_size: int = 100) -> None:
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")
        self._window: deque[HttpAttemptDto] = deque(maxlen=window_size)
        self._total_seen = 0

    def update(self, attempt: HttpAttemptDto) -> None:
        self._window.append(attempt)
        self._total_seen += 1

    @property
    def total_seen(self) -> int:
        return self._total_seen

    def snapshot(self) -> MetricsSnapshot:
        """Compute aggregates for the current window.

        Returns:
            A frozen snapshot; empty when nothing was recorded yet.
        """
        if not self._window:
            return MetricsSnapshot(total_seen=self._total_seen)

        latencies = sorted(
            (a.finished_at_sec - a.started_at_sec) * 1_000.0 for a in self._window
        )
        if len(latencies) < 20:
            p95 = latencies[-1]
        else:
            p95 = statistics.quantiles(latencies, n=20)[-1]

        statuses = Counter(status_class(a.status_code) for a in self._window)
        return MetricsSnapshot(
            count=len(latencies),
            total_seen=self._total_seen,
            mean_latency_ms=statistics.fmean(latencies),
            p95_latency_ms=p95,
            failure_rate=sum(a.is_failed for a in self._window) / len(latencies),
            by_method=dict(Counter(a.method for a in self._window)),
            by_status=dict(sorted(statuses.items())),
        )

    def __str__(self) -> str:
        snap = self.snapshot()
        if not snap.count:
            return "Metrics: no requests yet"

        statuses = " ".join(f"{k}:{v}" for k, v in snap.by_status.items())
        methods = " ".join(f"{k}:{v}" for k, v in sorted(snap.by_method.items()))
        return (
            f"n={snap.count}/{snap.total_seen} | "
            f"mean={snap.mean_latency_ms:.1f} ms p95={snap.p95_latency_ms:.1f} ms | "
            f"fail={snap.failure_rate:.0%} | "
            f"{methods} | {statuses}"
        )
